"""Unit tests for monthly value conversion and recurring revenue totals."""

from types import SimpleNamespace

import pytest

from relationship_os.services.revenue import estimate_monthly_total, monthly_value


def _line(**kwargs):
    defaults = {
        "type": "SUBSCRIPTION_SERVICE",
        "unit_price": 120.0,
        "quantity": 1,
        "billing_cycle": "MONTHLY",
    }
    defaults.update(kwargs)
    return SimpleNamespace(**defaults)


def _subscription(status="ACTIVE", lines=()):
    return SimpleNamespace(status=status, quote=SimpleNamespace(lines=list(lines)))


class TestMonthlyValue:
    def test_yearly_divides_by_twelve(self):
        assert monthly_value(_line(billing_cycle="YEARLY")) == pytest.approx(10.0)

    def test_quarterly_divides_by_three(self):
        assert monthly_value(_line(billing_cycle="QUARTERLY")) == pytest.approx(40.0)

    def test_monthly_is_base(self):
        assert monthly_value(_line(quantity=3)) == pytest.approx(360.0)

    @pytest.mark.parametrize("cycle", ["MONTHLY", "QUARTERLY", "YEARLY", None])
    def test_discount_is_zero_regardless_of_cycle(self, cycle):
        assert monthly_value(_line(type="DISCOUNT", unit_price=-50, billing_cycle=cycle)) == 0

    def test_unset_cycle_is_zero(self):
        assert monthly_value(_line(type="ONE_TIME_PART", billing_cycle=None)) == 0

    def test_quantity_below_one_counts_as_one(self):
        assert monthly_value(_line(quantity=0)) == pytest.approx(120.0)


class TestEstimateMonthlyTotal:
    def test_only_active_subscriptions_count(self):
        subs = [
            _subscription("ACTIVE", [_line(unit_price=100)]),
            _subscription("PAUSED", [_line(unit_price=500)]),
            _subscription("CANCELLED", [_line(unit_price=900)]),
        ]
        assert estimate_monthly_total(subs) == pytest.approx(100.0)

    def test_rounds_to_cents(self):
        subs = [_subscription("ACTIVE", [_line(unit_price=100, billing_cycle="QUARTERLY")])]
        assert estimate_monthly_total(subs) == 33.33

    def test_empty_is_zero(self):
        assert estimate_monthly_total([]) == 0
