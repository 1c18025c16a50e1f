"""SSO exchange: external OIDC access token -> local account + session token.

The identity provider (an Auth0-style tenant at ``settings.sso_domain``)
signs access tokens with RS256 keys published at its JWKS endpoint. A
verified token is resolved to a local user by subject id, then by email,
and otherwise auto-provisions a CUSTOMER account.
"""

from __future__ import annotations

import logging
import time
from typing import Optional

import httpx
from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.app.config import Settings
from relationship_os.domain.enums import Role
from relationship_os.domain.models import User
from relationship_os.services.auth_service import AuthResult, issue_session, normalize_email
from relationship_os.services.errors import (
    AuthenticationError,
    ConflictError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)

JWKS_TTL_SECONDS = 60 * 60
PLACEHOLDER_EMAIL_DOMAIN = "sso.local"


class IdentityProviderClient:
    """Async client for the identity provider's JWKS and userinfo endpoints."""

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self._jwks: list[dict] = []
        self._jwks_fetched_at = 0.0

    @property
    def base_url(self) -> str:
        return f"https://{self._settings.sso_domain}"

    async def fetch_jwks(self) -> list[dict]:
        """Return the provider's signing keys, cached for an hour."""
        now = time.time()
        if self._jwks and now - self._jwks_fetched_at < JWKS_TTL_SECONDS:
            return self._jwks
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                resp = await client.get(f"{self.base_url}/.well-known/jwks.json")
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPError as exc:
            logger.warning("JWKS fetch failed: %s", exc)
            raise UpstreamError("Identity provider unavailable") from exc
        self._jwks = data.get("keys", [])
        self._jwks_fetched_at = now
        return self._jwks

    async def fetch_userinfo(self, access_token: str) -> dict:
        """Best-effort profile lookup. Returns {} on any failure."""
        try:
            async with httpx.AsyncClient(timeout=10.0) as client:
                resp = await client.get(
                    f"{self.base_url}/userinfo",
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                resp.raise_for_status()
                return resp.json() or {}
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Could not fetch /userinfo: %s", exc)
            return {}

    async def verify(self, token: str) -> dict:
        """Verify *token* against the provider's keys, audience and issuer.

        Raises AuthenticationError on any verification failure.
        """
        if not self._settings.sso_domain:
            raise AuthenticationError("SSO is not configured")

        try:
            header = jwt.get_unverified_header(token)
        except JWTError as exc:
            raise AuthenticationError("Invalid SSO token") from exc

        kid = header.get("kid")
        try:
            keys = await self.fetch_jwks()
        except UpstreamError as exc:
            raise AuthenticationError("Could not verify SSO token") from exc
        key = next((k for k in keys if k.get("kid") == kid), None)
        if key is None:
            raise AuthenticationError("Invalid SSO token")

        audience = self._settings.sso_audience or None
        try:
            return jwt.decode(
                token,
                key,
                algorithms=["RS256"],
                audience=audience,
                issuer=self._settings.sso_issuer,
                options={"verify_aud": audience is not None, "verify_at_hash": False},
            )
        except JWTError as exc:
            logger.info("SSO token rejected: %s", exc)
            raise AuthenticationError("Invalid or expired SSO token") from exc


def placeholder_email(sub: str) -> str:
    """Deterministic stand-in address for providers that never reveal an email."""
    safe_sub = sub.replace("|", "-").lower()
    return f"{safe_sub}@{PLACEHOLDER_EMAIL_DOMAIN}"


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None


class SsoService:
    """Exchanges a verified external identity for a local session."""

    def __init__(
        self,
        db: AsyncSession,
        settings: Settings,
        provider: IdentityProviderClient | None = None,
    ):
        self.db = db
        self.settings = settings
        self.provider = provider or IdentityProviderClient(settings)

    async def exchange(self, external_token: str) -> AuthResult:
        if not external_token:
            raise AuthenticationError("Missing SSO token")

        claims = await self.provider.verify(external_token)

        sub = claims.get("sub")
        if not sub:
            raise ValidationError("No sub found in SSO token.")

        # Often missing on API access tokens
        email = _first(claims.get("email"), claims.get("upn"), claims.get("preferred_username"))
        name = _first(claims.get("name"), claims.get("given_name"))

        if not email or not name:
            info = await self.provider.fetch_userinfo(external_token)
            email = _first(email, info.get("email"), info.get("preferred_username"), info.get("upn"))
            name = _first(name, info.get("name"), info.get("nickname"))

        needs_email = not email
        email = normalize_email(email) if email else placeholder_email(sub)
        name = name or email.split("@")[0]

        user = await self._resolve_user(sub, email, name)
        logger.info("SSO login for user %s (needs_email=%s)", user.id, needs_email)
        return issue_session(user, self.settings, needs_email=needs_email)

    async def _resolve_user(self, sub: str, email: str, name: str) -> User:
        # 1) Already linked
        user = await self._get_by_sub(sub)
        if user:
            return user

        # 2) Existing account with the same email: link it
        result = await self.db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()
        if user:
            user.external_sub = sub
            user.name = user.name or name
        else:
            # 3) Auto-provision
            user = User(
                email=email,
                external_sub=sub,
                name=name,
                role=Role.CUSTOMER.value,
                password_hash=None,
            )
            self.db.add(user)

        try:
            await self.db.commit()
        except IntegrityError:
            # A concurrent first login for the same subject won the insert
            await self.db.rollback()
            user = await self._get_by_sub(sub)
            if user is None:
                raise ConflictError("Account for this identity could not be created")
            return user

        await self.db.refresh(user)
        return user

    async def _get_by_sub(self, sub: str) -> User | None:
        result = await self.db.execute(select(User).where(User.external_sub == sub))
        return result.scalar_one_or_none()
