"""Application configuration via Pydantic Settings."""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

# Resolve .env from the project root regardless of CWD
_ENV_FILE = Path(__file__).resolve().parents[3] / ".env"


class Settings(BaseSettings):
    """Central configuration loaded from environment variables / .env file.

    Instances are frozen: the object built at startup is shared by every
    request and handed to services explicitly.
    """

    # Database
    database_url: str = "sqlite+aiosqlite:///./relationship_os.db"

    # Auth / JWT
    jwt_secret_key: str = "dev-secret"
    jwt_algorithm: str = "HS256"
    jwt_expiration_days: int = 7

    # Invites
    invite_expiry_days: int = 7

    # SSO (OIDC identity provider, e.g. an Auth0 tenant)
    sso_domain: str = ""
    sso_audience: str = ""

    # AI
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"

    # Payments
    stripe_secret_key: str = ""

    # CORS / Frontend
    cors_origins: str = "http://localhost:5173"
    frontend_url: str = "http://localhost:5173"

    # General
    debug: bool = True

    model_config = {
        "env_file": str(_ENV_FILE),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "frozen": True,
    }

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse comma-separated CORS origins into a list.

        In debug mode, returns ["*"] to allow any origin (LAN IPs, etc.).
        """
        if self.debug:
            return ["*"]
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    @property
    def sso_issuer(self) -> str:
        return f"https://{self.sso_domain}/" if self.sso_domain else ""


@lru_cache
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()
