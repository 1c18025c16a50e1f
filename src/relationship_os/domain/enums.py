"""Domain enumerations for Relationship OS.

All enums use the (str, Enum) pattern to ensure JSON serialization compatibility.
"""

from enum import Enum


class Role(str, Enum):
    """Account role. Gates every route via ``has_capability``."""

    CUSTOMER = "CUSTOMER"
    SELLER = "SELLER"
    ADMIN = "ADMIN"


class Capability(str, Enum):
    """Actions a role may be allowed to perform."""

    ISSUE_INVITES = "issue_invites"
    CREATE_QUOTES = "create_quotes"
    VIEW_SELLER_DASHBOARD = "view_seller_dashboard"
    DECIDE_QUOTES = "decide_quotes"
    MANAGE_SUBSCRIPTIONS = "manage_subscriptions"
    CHECKOUT = "checkout"
    VIEW_CUSTOMER_DASHBOARD = "view_customer_dashboard"


ROLE_CAPABILITIES: dict[Role, frozenset[Capability]] = {
    Role.CUSTOMER: frozenset({
        Capability.DECIDE_QUOTES,
        Capability.MANAGE_SUBSCRIPTIONS,
        Capability.CHECKOUT,
        Capability.VIEW_CUSTOMER_DASHBOARD,
    }),
    Role.SELLER: frozenset({
        Capability.ISSUE_INVITES,
        Capability.CREATE_QUOTES,
        Capability.VIEW_SELLER_DASHBOARD,
    }),
    Role.ADMIN: frozenset({
        Capability.ISSUE_INVITES,
        Capability.CREATE_QUOTES,
        Capability.VIEW_SELLER_DASHBOARD,
    }),
}


def has_capability(role: "Role | str", capability: Capability) -> bool:
    """Return True if *role* grants *capability*. Unknown roles grant nothing."""
    try:
        role = Role(role)
    except ValueError:
        return False
    return capability in ROLE_CAPABILITIES[role]


class QuoteStatus(str, Enum):
    """Quote lifecycle. APPROVED and REJECTED are terminal."""

    SENT = "SENT"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class LineType(str, Enum):
    """Kind of quote line."""

    SUBSCRIPTION_SERVICE = "SUBSCRIPTION_SERVICE"
    LICENSE = "LICENSE"
    SUPPORT = "SUPPORT"
    USAGE = "USAGE"
    ONE_TIME_PART = "ONE_TIME_PART"
    DISCOUNT = "DISCOUNT"


# Line types that never become entitlements
NON_ENTITLEMENT_LINE_TYPES: frozenset[str] = frozenset({
    LineType.DISCOUNT.value,
    LineType.ONE_TIME_PART.value,
})


class BillingCycle(str, Enum):
    """Recurring billing cadence of a quote line. ``None`` means one-time."""

    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class SubscriptionStatus(str, Enum):
    """Subscription lifecycle. CANCELLED is terminal."""

    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"


class InviteState(str, Enum):
    """Derived invite state; never stored."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    EXPIRED = "EXPIRED"
