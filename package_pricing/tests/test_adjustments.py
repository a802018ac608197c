"""
Adjustment arithmetic and rule selection.
"""
from datetime import datetime
from decimal import Decimal

import pytest

from package_pricing.pricing.adjustments import apply_adjustment, select_most_recent, select_narrowest
from package_pricing.pricing.currency import floor_at_zero, quantize_amount
from package_pricing.pricing.rules import AdjustmentType

from .factories import created, make_group_rule


@pytest.mark.parametrize("adjustment_type,value,discount,expected", [
    (AdjustmentType.PERCENTAGE, "10", True, "180.00"),
    (AdjustmentType.PERCENTAGE, "10", False, "220.00"),
    (AdjustmentType.PERCENTAGE, "-10", True, "220.00"),
    (AdjustmentType.FIXED_AMOUNT, "25", True, "175.00"),
    (AdjustmentType.FIXED_AMOUNT, "25", False, "225.00"),
    (AdjustmentType.OVERRIDE_PRICE, "99.5", True, "99.50"),
    (AdjustmentType.PERCENTAGE, "150", True, "0.00"),
])
def test_apply_adjustment(adjustment_type, value, discount, expected):
    result = apply_adjustment(Decimal("200.00"), adjustment_type, Decimal(value), "USD", discount=discount)

    assert result == Decimal(expected)
    assert str(result) == expected


def test_rounding_is_half_up():
    assert quantize_amount(Decimal("10.005"), "USD") == Decimal("10.01")
    assert quantize_amount(Decimal("2.5"), "JPY") == Decimal("3")


def test_floor_at_zero_keeps_scale():
    assert str(floor_at_zero(Decimal("-3.20"))) == "0.00"
    assert floor_at_zero(Decimal("4.10")) == Decimal("4.10")


class TestRuleSelection:

    def test_bounded_beats_unbounded(self):
        open_ended = make_group_rule(1, None, "5", created_at=created(30))
        bounded = make_group_rule(1, 100, "5", created_at=created(1))

        assert select_narrowest([open_ended, bounded], lambda r: (r.min_size, r.max_size)) is bounded

    def test_missing_created_at_loses(self):
        undated = make_group_rule(2, 4, "5")
        dated = make_group_rule(2, 4, "5", created_at=created(1))

        assert select_most_recent([dated, undated]) is dated

    def test_naive_and_aware_timestamps_compare(self):
        naive = make_group_rule(2, 4, "5", created_at=datetime(2025, 1, 10, 12, 0))
        aware = make_group_rule(2, 4, "5", created_at=created(3))

        assert select_most_recent([aware, naive]) is naive

    def test_full_tie_goes_to_greatest_id(self):
        first = make_group_rule(2, 4, "5", id="a0000000-0000-0000-0000-000000000000", created_at=created(1))
        second = make_group_rule(2, 4, "5", id="b0000000-0000-0000-0000-000000000000", created_at=created(1))

        assert select_most_recent([second, first]) is second
        assert select_most_recent([first, second]) is second

    def test_empty(self):
        assert select_narrowest([], lambda r: (r.min_size, r.max_size)) is None
