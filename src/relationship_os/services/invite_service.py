"""Invite Service: issues, validates and redeems single-use invite tokens.

Only the SHA-256 of a raw token is stored; the raw token is returned once,
at creation. An invite is valid iff it has not been accepted and
``expires_at`` is still in the future.
"""
import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.app.config import Settings
from relationship_os.domain.enums import Capability, InviteState, Role, has_capability
from relationship_os.domain.models import Invite, User, utcnow
from relationship_os.services.auth_service import AuthResult, issue_session, normalize_email
from relationship_os.services.errors import (
    AuthorizationError,
    ConflictError,
    InviteAlreadyUsedError,
    InviteExpiredError,
    InviteNotFoundError,
    ValidationError,
)

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32
IDENTITY_LINKED = "This identity is already linked to another account"


def hash_token(raw_token: str) -> str:
    return hashlib.sha256(raw_token.encode("utf-8")).hexdigest()


def invite_state(invite: Invite, now: datetime | None = None) -> InviteState:
    """Derive PENDING / ACCEPTED / EXPIRED. Expiry is exclusive: expires_at == now is expired."""
    if invite.accepted_at is not None:
        return InviteState.ACCEPTED
    if invite.expires_at <= (now or utcnow()):
        return InviteState.EXPIRED
    return InviteState.PENDING


@dataclass
class IssuedInvite:
    invite: Invite
    token: str
    accept_url: str


class InviteService:
    """Manages Invite records for seller/admin-driven onboarding."""

    def __init__(self, db: AsyncSession, settings: Settings):
        self.db = db
        self.settings = settings

    async def create_invite(
        self,
        issuer: User,
        email: str,
        role: Role | None,
        company_name: str | None = None,
    ) -> IssuedInvite:
        """Create an invite and return its raw token exactly once.

        Supersedes the issuer's still-valid, unaccepted invites for the same email.
        """
        if not has_capability(issuer.role, Capability.ISSUE_INVITES):
            raise AuthorizationError("Forbidden")
        if not email or not email.strip() or role is None:
            raise ValidationError("Missing email or role")

        normalized_email = normalize_email(email)
        issuer_id = issuer.id
        now = utcnow()

        await self.db.execute(
            delete(Invite).where(
                Invite.created_by_user_id == issuer_id,
                Invite.email == normalized_email,
                Invite.accepted_at.is_(None),
                Invite.expires_at > now,
            )
        )

        raw_token = secrets.token_hex(TOKEN_BYTES)
        invite = Invite(
            email=normalized_email,
            role=Role(role).value,
            company_name=company_name or None,
            token_hash=hash_token(raw_token),
            expires_at=now + timedelta(days=self.settings.invite_expiry_days),
            created_by_user_id=issuer_id,
            created_at=now,
        )
        self.db.add(invite)
        await self.db.commit()

        logger.info("Created invite %s for %s (role=%s) by %s", invite.id, normalized_email, invite.role, issuer_id)
        accept_url = f"{self.settings.frontend_url.rstrip('/')}/accept-invite?token={raw_token}"
        return IssuedInvite(invite=invite, token=raw_token, accept_url=accept_url)

    async def validate_invite(self, raw_token: str) -> Invite:
        """Return the invite if it can still be accepted. Read-only."""
        if not raw_token:
            raise ValidationError("Missing token")

        result = await self.db.execute(
            select(Invite)
            .where(Invite.token_hash == hash_token(raw_token))
            .execution_options(populate_existing=True)
        )
        invite = result.scalar_one_or_none()

        if not invite:
            raise InviteNotFoundError()

        state = invite_state(invite)
        if state == InviteState.ACCEPTED:
            logger.warning("Invite %s already used", invite.id)
            raise InviteAlreadyUsedError()
        if state == InviteState.EXPIRED:
            logger.warning("Invite %s expired", invite.id)
            raise InviteExpiredError()

        return invite

    async def accept_invite(
        self,
        raw_token: str,
        name: str | None = None,
        external_sub: str | None = None,
    ) -> AuthResult:
        """Consume the invite and create or update the invited user, in one transaction."""
        invite = await self.validate_invite(raw_token)
        now = utcnow()

        if external_sub:
            result = await self.db.execute(select(User).where(User.external_sub == external_sub))
            linked = result.scalar_one_or_none()
            if linked is not None and linked.email != invite.email:
                logger.warning("Invite %s: subject already linked to user %s", invite.id, linked.id)
                raise ConflictError(IDENTITY_LINKED)

        try:
            # Conditional consume: only one caller can flip accepted_at
            consumed = await self.db.execute(
                update(Invite)
                .where(
                    Invite.id == invite.id,
                    Invite.accepted_at.is_(None),
                    Invite.expires_at > now,
                )
                .values(accepted_at=now)
                .execution_options(synchronize_session=False)
            )
            if consumed.rowcount != 1:
                raise InviteAlreadyUsedError()

            result = await self.db.execute(select(User).where(User.email == invite.email))
            user = result.scalar_one_or_none()

            final_name = (
                (name and name.strip())
                or (user is not None and user.name and user.name.strip())
                or invite.email.split("@")[0]
            )

            if user is not None:
                user.role = invite.role
                user.company_name = invite.company_name or user.company_name
                user.external_sub = external_sub or user.external_sub
                user.name = final_name
                user.password_hash = None  # invited accounts sign in via SSO
            else:
                user = User(
                    email=invite.email,
                    password_hash=None,
                    external_sub=external_sub or None,
                    name=final_name,
                    role=invite.role,
                    company_name=invite.company_name,
                )
                self.db.add(user)

            await self.db.commit()
        except IntegrityError:
            # Subject linked elsewhere between the check above and the commit
            await self.db.rollback()
            raise ConflictError(IDENTITY_LINKED)
        except Exception:
            await self.db.rollback()
            raise

        await self.db.refresh(user)
        logger.info("Invite %s accepted by user %s", invite.id, user.id)
        return issue_session(user, self.settings)

    async def list_pending_invites(self, issuer: User) -> list[Invite]:
        """The issuer's own unaccepted, unexpired invites, newest first."""
        if not has_capability(issuer.role, Capability.ISSUE_INVITES):
            raise AuthorizationError("Forbidden")

        result = await self.db.execute(
            select(Invite)
            .where(
                Invite.created_by_user_id == issuer.id,
                Invite.accepted_at.is_(None),
                Invite.expires_at > utcnow(),
            )
            .order_by(Invite.created_at.desc())
        )
        return list(result.scalars().all())
