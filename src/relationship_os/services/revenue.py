"""Revenue estimation: converts quote lines into monthly recurring value.

Pure functions only; callers load the subscriptions and their quote lines.
"""

from typing import Iterable

from relationship_os.domain.enums import BillingCycle, LineType, SubscriptionStatus

# Months covered by one billing period
CYCLE_MONTHS: dict[str, int] = {
    BillingCycle.MONTHLY.value: 1,
    BillingCycle.QUARTERLY.value: 3,
    BillingCycle.YEARLY.value: 12,
}


def monthly_value(line) -> float:
    """Monthly value of one quote line.

    DISCOUNT lines and one-time lines (no billing cycle) contribute 0.
    Accepts anything exposing ``type``, ``unit_price``, ``quantity`` and
    ``billing_cycle`` (ORM rows, schemas, namespaces).
    """
    line_type = getattr(line.type, "value", line.type)
    if line_type == LineType.DISCOUNT.value:
        return 0.0

    base = line.unit_price * max(line.quantity or 1, 1)
    cycle = getattr(line.billing_cycle, "value", line.billing_cycle)
    months = CYCLE_MONTHS.get(cycle)
    if months is None:
        return 0.0
    return base / months


def estimate_monthly_total(subscriptions: Iterable) -> float:
    """Sum ``monthly_value`` over the quote lines of ACTIVE subscriptions.

    Each subscription must have ``quote.lines`` loaded. Rounded to cents.
    """
    total = 0.0
    for sub in subscriptions:
        if sub.status != SubscriptionStatus.ACTIVE.value:
            continue
        if sub.quote is None:
            continue
        for line in sub.quote.lines:
            total += monthly_value(line)
    return round(total, 2)
