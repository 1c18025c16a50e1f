"""Authentication routes: register, login, SSO exchange, me."""

import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.app.config import Settings, get_settings
from relationship_os.domain.enums import Capability, has_capability
from relationship_os.domain.models import User
from relationship_os.domain.schemas import (
    LoginRequest,
    RegisterRequest,
    SsoTokenResponse,
    SsoUserResponse,
    TokenResponse,
    UserResponse,
)
from relationship_os.infra.database import get_db
from relationship_os.services import auth_service
from relationship_os.services.auth_service import AuthResult, decode_token, get_user_by_id
from relationship_os.services.sso_service import IdentityProviderClient, SsoService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


def _bearer_token(request: Request) -> str | None:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    return auth_header.removeprefix("Bearer ").strip() or None


async def get_current_user_dep(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
) -> User:
    """Dependency: extract current user from Bearer token."""
    token = _bearer_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    payload = decode_token(token, settings)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    user = await get_user_by_id(db, payload["id"])
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )
    return user


def require_capability(capability: Capability):
    """Factory: dependency that checks the user's role grants *capability*."""

    async def checker(user: User = Depends(get_current_user_dep)) -> User:
        if not has_capability(user.role, capability):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden: insufficient role",
            )
        return user

    return checker


def session_payload(result: AuthResult) -> dict:
    return {
        "token": result.token,
        "user": UserResponse.model_validate(result.user),
    }


def sso_payload(result: AuthResult) -> dict:
    user = SsoUserResponse.model_validate(result.user)
    user.needs_email = result.needs_email
    return {"token": result.token, "user": user}


@lru_cache
def get_identity_provider(settings: Settings) -> IdentityProviderClient:
    """One client per settings object so the JWKS cache survives across requests."""
    return IdentityProviderClient(settings)


@router.post("/register", response_model=TokenResponse)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    result = await auth_service.register(
        db,
        settings,
        email=data.email,
        password=data.password,
        name=data.name,
        role=data.role,
        company_name=data.company_name,
    )
    return session_payload(result)


@router.post("/login", response_model=TokenResponse)
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    result = await auth_service.login(db, settings, data.email, data.password)
    return session_payload(result)


@router.post("/sso", response_model=SsoTokenResponse)
async def sso(
    request: Request,
    db: AsyncSession = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    """Exchange an identity-provider token (Authorization header) for a session."""
    token = _bearer_token(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing SSO token",
        )
    service = SsoService(db, settings, provider=get_identity_provider(settings))
    result = await service.exchange(token)
    return sso_payload(result)


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user_dep)):
    return UserResponse.model_validate(user)
