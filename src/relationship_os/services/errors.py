"""Error taxonomy shared by services and the HTTP layer.

Services raise these; ``app.main`` renders them as ``{"error": message}``
with the class's ``status_code``.
"""


class AppError(Exception):
    """Base for every error a service raises on purpose."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(AppError):
    """Missing or malformed input."""

    status_code = 400


class AuthenticationError(AppError):
    """Missing, invalid or expired session or identity-provider token."""

    status_code = 401


class AuthorizationError(AppError):
    """Authenticated, but the role does not allow the action."""

    status_code = 403


class NotFoundError(AppError):
    """Resource absent, or present but not owned by the caller."""

    status_code = 404


class ConflictError(AppError):
    """Uniqueness violation, e.g. an email that is already registered."""

    status_code = 409


class InvalidStateError(AppError):
    """The resource exists but its lifecycle forbids the transition."""

    status_code = 409


class InviteNotFoundError(NotFoundError):
    def __init__(self, message: str = "Invite not found"):
        super().__init__(message)


class InviteAlreadyUsedError(ConflictError):
    status_code = 400

    def __init__(self, message: str = "Invite already used"):
        super().__init__(message)


class InviteExpiredError(ValidationError):
    def __init__(self, message: str = "Invite expired"):
        super().__init__(message)


class UpstreamError(AppError):
    """Identity provider, payment provider or AI provider failure."""

    status_code = 502
