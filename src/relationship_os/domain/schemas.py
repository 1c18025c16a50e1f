"""Pydantic v2 schemas for API request/response validation.

JSON bodies use camelCase keys; snake_case field names are accepted on input.
"""

from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from relationship_os.domain.enums import BillingCycle, LineType, QuoteStatus, Role


class ApiModel(BaseModel):
    """Base for every API schema: camelCase on the wire, ORM-readable."""

    model_config = ConfigDict(
        from_attributes=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )


# ORM rows keep JSON metadata in ``metadata_`` (``metadata`` is reserved by SQLAlchemy)
_METADATA_FIELD = dict(
    default=None,
    validation_alias=AliasChoices("metadata_", "metadata", "metadataJson"),
    serialization_alias="metadata",
)


# ---------------------------------------------------------------------------
# Users / Auth
# ---------------------------------------------------------------------------


class UserSummary(ApiModel):
    """Counterpart details embedded in quotes, subscriptions and messages."""

    id: str
    name: str | None = None
    email: str


class UserResponse(ApiModel):
    """Schema for user API responses. Never includes password or SSO subject."""

    id: str
    email: str
    name: str | None = None
    role: str
    company_name: str | None = None
    created_at: datetime | None = None


class RegisterRequest(ApiModel):
    email: str = ""
    password: str = ""
    name: str | None = None
    role: Role | None = None
    company_name: str | None = None


class LoginRequest(ApiModel):
    email: str = ""
    password: str = ""


class TokenResponse(ApiModel):
    """Session token plus the user it was issued for."""

    token: str
    token_type: str = "bearer"
    user: UserResponse


class SsoUserResponse(UserResponse):
    # True when no real email could be obtained and a placeholder was minted
    needs_email: bool = False


class SsoTokenResponse(TokenResponse):
    """SSO session. ``needsEmail`` travels inside ``user``."""

    user: SsoUserResponse


# ---------------------------------------------------------------------------
# Invites
# ---------------------------------------------------------------------------


class InviteCreate(ApiModel):
    email: str = ""
    role: Role | None = None
    company_name: str | None = None


class InviteResponse(ApiModel):
    """Invite as shown to its issuer. The token and its hash are never included."""

    id: str
    email: str
    role: str
    company_name: str | None = None
    expires_at: datetime
    accepted_at: datetime | None = None
    created_at: datetime | None = None
    created_by_user_id: str


class InviteCreateResponse(ApiModel):
    invite: InviteResponse
    token: str
    accept_url: str


class InviteInfo(ApiModel):
    email: str
    role: str
    company_name: str | None = None
    expires_at: datetime


class InviteLookupResponse(ApiModel):
    invite: InviteInfo


class InviteAccept(ApiModel):
    token: str = ""
    name: str | None = None
    external_sub: str | None = Field(
        default=None,
        validation_alias=AliasChoices("externalSub", "external_sub", "auth0Sub"),
    )


class PendingInvitesResponse(ApiModel):
    invites: list[InviteResponse]


# ---------------------------------------------------------------------------
# Quote line metadata (tagged by line type)
# ---------------------------------------------------------------------------


class SeatMetadata(ApiModel):
    """Metadata for seat-based lines (subscription services, licenses)."""

    model_config = ConfigDict(extra="allow")

    seats: int | None = Field(default=None, ge=1)
    tier: str | None = None


class UsageMetadata(ApiModel):
    """Metadata for metered lines."""

    model_config = ConfigDict(extra="allow")

    unit: str | None = None
    included_units: int | None = Field(default=None, ge=0)


LINE_METADATA_MODELS: dict[LineType, type[ApiModel]] = {
    LineType.SUBSCRIPTION_SERVICE: SeatMetadata,
    LineType.LICENSE: SeatMetadata,
    LineType.USAGE: UsageMetadata,
}


def normalize_line_metadata(line_type: LineType, raw: dict[str, Any] | None) -> dict[str, Any] | None:
    """Validate *raw* against the model for *line_type*.

    Types without a known shape keep their metadata as an opaque dict.
    """
    if raw is None:
        return None
    model = LINE_METADATA_MODELS.get(line_type)
    if model is None:
        return raw
    return model.model_validate(raw).model_dump(by_alias=True, exclude_none=True)


# ---------------------------------------------------------------------------
# Quotes
# ---------------------------------------------------------------------------


class QuoteLineCreate(ApiModel):
    type: LineType = LineType.SUBSCRIPTION_SERVICE
    name: str
    description: str | None = None
    unit_price: float
    quantity: int | None = None
    billing_cycle: BillingCycle | None = None
    metadata: dict[str, Any] | None = Field(
        default=None,
        validation_alias=AliasChoices("metadata", "metadataJson"),
    )

    @field_validator("name")
    @classmethod
    def _name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("line name is required")
        return v.strip()

    @field_validator("quantity")
    @classmethod
    def _quantity_at_least_one(cls, v: int | None) -> int | None:
        if v is not None and v < 1:
            raise ValueError("quantity must be at least 1")
        return v

    @model_validator(mode="after")
    def _typed_metadata(self) -> "QuoteLineCreate":
        if self.unit_price < 0 and self.type != LineType.DISCOUNT:
            raise ValueError("unitPrice must not be negative")
        self.metadata = normalize_line_metadata(self.type, self.metadata)
        return self


class QuoteCreate(ApiModel):
    customer_id: str = ""
    lines: list[QuoteLineCreate] = []
    notes: str | None = None
    currency: str = "USD"


class QuoteLineResponse(ApiModel):
    id: str
    type: str
    name: str
    description: str | None = None
    unit_price: float
    quantity: int
    billing_cycle: str | None = None
    metadata: dict[str, Any] | None = Field(**_METADATA_FIELD)


class QuoteSummary(ApiModel):
    """Quote header without lines."""

    id: str
    quote_number: str
    status: str
    total_amount: float
    currency: str
    created_at: datetime | None = None


class QuoteResponse(QuoteSummary):
    customer_id: str
    seller_id: str
    notes: str | None = None
    updated_at: datetime | None = None
    lines: list[QuoteLineResponse] = []


class QuoteWithCustomer(QuoteResponse):
    customer: UserSummary


class QuoteWithSeller(QuoteResponse):
    seller: UserSummary


class QuoteStatusUpdate(ApiModel):
    status: QuoteStatus | None = None
    comment: str | None = None


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


class EntitlementResponse(ApiModel):
    id: str
    type: str
    name: str
    capacity: int
    metadata: dict[str, Any] | None = Field(**_METADATA_FIELD)


class SubscriptionResponse(ApiModel):
    id: str
    customer_id: str
    quote_id: str
    name: str
    status: str
    auto_renew: bool
    start_date: datetime
    renewal_date: datetime | None = None
    end_date: datetime | None = None
    created_at: datetime | None = None
    entitlements: list[EntitlementResponse] = []


class SubscriptionWithQuote(SubscriptionResponse):
    quote: QuoteSummary


class SellerSubscriptionResponse(SubscriptionWithQuote):
    customer: UserSummary


class QuoteDecisionResponse(ApiModel):
    quote: QuoteResponse
    subscription: SubscriptionResponse | None = None


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatMessageCreate(ApiModel):
    content: str = ""


class ChatMessageResponse(ApiModel):
    id: str
    sender_id: str
    customer_id: str
    seller_id: str
    content: str
    created_at: datetime | None = None


class ChatMessageWithCustomer(ChatMessageResponse):
    customer: UserSummary


class ChatMessageWithSeller(ChatMessageResponse):
    seller: UserSummary


# ---------------------------------------------------------------------------
# Dashboards
# ---------------------------------------------------------------------------


class SellerDashboardSummary(ApiModel):
    total_quotes: int
    total_active_subscriptions: int
    estimated_mrr: float = Field(serialization_alias="estimatedMRR")


class SellerDashboardResponse(ApiModel):
    summary: SellerDashboardSummary
    recent_quotes: list[QuoteWithCustomer]
    recent_subscriptions: list[SellerSubscriptionResponse]
    recent_messages: list[ChatMessageWithCustomer]


class CustomerProfile(ApiModel):
    id: str
    name: str | None = None
    email: str
    company_name: str | None = None
    created_at: datetime | None = None


class SellerCustomerDetailResponse(ApiModel):
    customer: CustomerProfile
    quotes: list[QuoteResponse]
    subscriptions: list[SubscriptionWithQuote]
    recent_messages: list[ChatMessageResponse]


class CustomerDashboardSummary(ApiModel):
    total_quotes: int
    total_subscriptions: int
    active_subscriptions: int
    estimated_monthly_spend: float


class CustomerDashboardResponse(ApiModel):
    summary: CustomerDashboardSummary
    recent_quotes: list[QuoteWithSeller]
    subscriptions: list[SubscriptionWithQuote]
    recent_messages: list[ChatMessageWithSeller]


# ---------------------------------------------------------------------------
# AI / Payments / Health
# ---------------------------------------------------------------------------


class QuoteSummaryResponse(ApiModel):
    summary: str


class InsightsResponse(ApiModel):
    insights: str


class CheckoutResponse(ApiModel):
    url: str


class HealthResponse(ApiModel):
    status: str
    service: str
