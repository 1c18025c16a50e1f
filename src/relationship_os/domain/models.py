"""SQLAlchemy ORM models for Relationship OS.

All models use SQLite-compatible types:
- String(36) for UUID primary keys
- JSON for structured data (no JSONB)
- naive UTC DateTime for timestamps (no TIMESTAMPTZ)

Ownership forms a strict creation chain: Quote -> Subscription -> Entitlement.
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    JSON,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from relationship_os.infra.database import Base


def utcnow() -> datetime:
    """Naive UTC now, matching how SQLite hands timestamps back."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _uuid() -> str:
    return str(uuid.uuid4())


# ---------------------------------------------------------------------------
# Auth / User
# ---------------------------------------------------------------------------


class User(Base):
    """Platform account. Never hard-deleted.

    A password-login account has ``password_hash``; an SSO account has
    ``external_sub``. Invite acceptance clears the password hash.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)
    external_sub = Column(String(255), unique=True, nullable=True)
    name = Column(String(255), nullable=True)
    role = Column(String(20), nullable=False, default="CUSTOMER")  # CUSTOMER, SELLER, ADMIN
    company_name = Column(String(255), nullable=True)
    created_at = Column(DateTime, default=utcnow)


class Invite(Base):
    """Single-use, expiring invitation binding email + role + company.

    Only the SHA-256 of the raw token is stored. Valid iff
    ``accepted_at is None and expires_at > now``.
    """

    __tablename__ = "invites"

    id = Column(String(36), primary_key=True, default=_uuid)
    email = Column(String(255), nullable=False, index=True)
    role = Column(String(20), nullable=False)
    company_name = Column(String(255), nullable=True)
    token_hash = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    accepted_at = Column(DateTime, nullable=True)
    created_by_user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow)

    created_by = relationship("User")


# ---------------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------------


class Quote(Base):
    """Seller-issued quote. Immutable once APPROVED."""

    __tablename__ = "quotes"

    id = Column(String(36), primary_key=True, default=_uuid)
    quote_number = Column(String(32), unique=True, nullable=False)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    seller_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    total_amount = Column(Float, nullable=False, default=0.0)
    currency = Column(String(3), nullable=False, default="USD")
    status = Column(String(20), nullable=False, default="SENT", index=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    # Relationships
    customer = relationship("User", foreign_keys=[customer_id])
    seller = relationship("User", foreign_keys=[seller_id])
    lines = relationship(
        "QuoteLine",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteLine.position",
    )
    subscription = relationship("Subscription", back_populates="quote", uselist=False)


class QuoteLine(Base):
    """Line item of a quote. Created with its parent, immutable thereafter."""

    __tablename__ = "quote_lines"
    __table_args__ = (CheckConstraint("quantity >= 1", name="ck_quote_lines_quantity"),)

    id = Column(String(36), primary_key=True, default=_uuid)
    quote_id = Column(String(36), ForeignKey("quotes.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    type = Column(String(30), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    unit_price = Column(Float, nullable=False)
    quantity = Column(Integer, nullable=False, default=1)
    billing_cycle = Column(String(20), nullable=True)  # MONTHLY, QUARTERLY, YEARLY
    metadata_ = Column("metadata", JSON, nullable=True)

    quote = relationship("Quote", back_populates="lines")


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


class Subscription(Base):
    """Created only when a quote is approved; at most one per quote."""

    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True, default=_uuid)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    quote_id = Column(String(36), ForeignKey("quotes.id"), unique=True, nullable=False)
    name = Column(String(255), nullable=False)
    status = Column(String(20), nullable=False, default="ACTIVE", index=True)
    auto_renew = Column(Boolean, nullable=False, default=True)
    start_date = Column(DateTime, nullable=False, default=utcnow)
    renewal_date = Column(DateTime, nullable=True)
    end_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=utcnow)

    customer = relationship("User")
    quote = relationship("Quote", back_populates="subscription")
    entitlements = relationship(
        "Entitlement",
        back_populates="subscription",
        cascade="all, delete-orphan",
    )


class Entitlement(Base):
    """Capacity granted by a subscription, mirrored from one quote line."""

    __tablename__ = "entitlements"

    id = Column(String(36), primary_key=True, default=_uuid)
    subscription_id = Column(String(36), ForeignKey("subscriptions.id"), nullable=False, index=True)
    type = Column(String(30), nullable=False)
    name = Column(String(255), nullable=False)
    capacity = Column(Integer, nullable=False, default=1)
    metadata_ = Column("metadata", JSON, nullable=True)

    subscription = relationship("Subscription", back_populates="entitlements")


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatMessage(Base):
    """Append-only message between one customer and one seller."""

    __tablename__ = "chat_messages"

    id = Column(String(36), primary_key=True, default=_uuid)
    sender_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    seller_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)

    customer = relationship("User", foreign_keys=[customer_id])
    seller = relationship("User", foreign_keys=[seller_id])
