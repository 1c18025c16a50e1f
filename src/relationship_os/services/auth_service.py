"""Authentication service: password hashing, session tokens, register/login."""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from relationship_os.app.config import Settings
from relationship_os.domain.enums import Role
from relationship_os.domain.models import User
from relationship_os.services.errors import AuthenticationError, ConflictError, ValidationError

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


@dataclass
class AuthResult:
    """A freshly issued session token and the user it belongs to."""

    token: str
    user: User
    needs_email: bool = False


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def create_access_token(user_id: str, role: str, settings: Settings) -> str:
    """Sign a session token carrying ``{id, role}`` with a fixed expiry."""
    expire = datetime.now(timezone.utc) + timedelta(days=settings.jwt_expiration_days)
    payload = {"sub": user_id, "id": user_id, "role": role, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, settings: Settings) -> dict | None:
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None
    if not payload.get("id") or not payload.get("role"):
        return None
    return payload


def issue_session(user: User, settings: Settings, needs_email: bool = False) -> AuthResult:
    return AuthResult(
        token=create_access_token(user.id, user.role, settings),
        user=user,
        needs_email=needs_email,
    )


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == normalize_email(email)))
    return result.scalar_one_or_none()


async def get_user_by_id(db: AsyncSession, user_id: str) -> User | None:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def register(
    db: AsyncSession,
    settings: Settings,
    email: str,
    password: str,
    name: str | None = None,
    role: Role | None = None,
    company_name: str | None = None,
) -> AuthResult:
    """Create a local-password account and sign it in."""
    if not email or not email.strip() or not password:
        raise ValidationError("Missing email or password")

    email = normalize_email(email)
    if await get_user_by_email(db, email):
        raise ConflictError("Email already exists")

    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        role=(role or Role.CUSTOMER).value,
        company_name=company_name,
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError:
        # Lost a race with a concurrent registration for the same email
        await db.rollback()
        raise ConflictError("Email already exists")
    await db.refresh(user)

    logger.info("Registered user %s with role %s", user.id, user.role)
    return issue_session(user, settings)


async def login(db: AsyncSession, settings: Settings, email: str, password: str) -> AuthResult:
    """Password login. SSO-only accounts (no password hash) cannot use it."""
    if not email or not password:
        raise AuthenticationError("Invalid credentials")

    user = await get_user_by_email(db, email)
    if not user:
        raise AuthenticationError("Invalid credentials")
    if not user.password_hash:
        raise AuthenticationError(
            "This account uses SSO. Please sign in with Single Sign-On."
        )
    if not verify_password(password, user.password_hash):
        raise AuthenticationError("Invalid credentials")

    return issue_session(user, settings)
