"""
Adjustment pipeline tests: rule selection and direction per step.
"""
from datetime import date
from decimal import Decimal

import pytest

from package_pricing.pricing.errors import PromotionNotApplicable
from package_pricing.pricing.pipeline import AdjustmentKind, AdjustmentPipeline, PipelineSettings
from package_pricing.pricing.tiers import TierResolver

from .factories import (
    BOOKING_DATE, TRAVEL_DATE, created, make_departure, make_group_rule, make_package,
    make_promotion, make_season, make_snapshot, make_tier, make_time_discount,
)


def run(snapshot, travelers=None, settings=None, booking_date=BOOKING_DATE, promotion_code=None):
    resolution = TierResolver(snapshot.package, snapshot.tiers, "USD").resolve(travelers or {"adult": 2})
    pipeline = AdjustmentPipeline(snapshot, "USD", settings or PipelineSettings())
    return pipeline.run(resolution, TRAVEL_DATE, booking_date, promotion_code=promotion_code)


class TestGroupAndSeasonal:

    def test_unbounded_band_used_when_nothing_narrower_matches(self):
        snapshot = make_snapshot(group_rules=[
            make_group_rule(2, 3, "10"),
            make_group_rule(5, None, "15"),
        ])

        result = run(snapshot, travelers={"adult": 6})

        assert result.amount == Decimal("510.00")
        assert result.adjustments[0].label == "Group 5-+"

    def test_equal_width_goes_to_newest_rule(self):
        snapshot = make_snapshot(group_rules=[
            make_group_rule(2, 4, "10", created_at=created(1)),
            make_group_rule(1, 3, "15", created_at=created(5)),
        ])

        assert run(snapshot).amount == Decimal("170.00")

    def test_seasonal_positive_value_is_surcharge(self):
        snapshot = make_snapshot(seasonal_rules=[make_season(date(2025, 7, 1), date(2025, 8, 31), "25")])

        assert run(snapshot).amount == Decimal("250.00")

    def test_seasonal_negative_value_is_discount(self):
        snapshot = make_snapshot(seasonal_rules=[
            make_season(date(2025, 7, 1), date(2025, 8, 31), "-15", adjustment_type="fixed_amount"),
        ])

        assert run(snapshot).amount == Decimal("185.00")

    def test_narrowest_season_wins(self):
        snapshot = make_snapshot(seasonal_rules=[
            make_season(date(2025, 6, 1), date(2025, 9, 30), "10", season_name="Summer"),
            make_season(date(2025, 7, 14), date(2025, 7, 16), "50", season_name="Festival"),
        ])

        result = run(snapshot)

        assert result.amount == Decimal("300.00")
        assert result.adjustments[0].label == "Festival"

    def test_override_price_replaces_amount(self):
        snapshot = make_snapshot(group_rules=[make_group_rule(2, 2, "150", adjustment_type="override_price")])

        assert run(snapshot).amount == Decimal("150.00")


class TestTimeBasedDiscounts:

    def test_early_bird_takes_largest_met_threshold(self):
        snapshot = make_snapshot(time_based_discounts=[
            make_time_discount("early_bird", 30, "5"),
            make_time_discount("early_bird", 60, "10"),
            make_time_discount("early_bird", 90, "20"),
        ])

        result = run(snapshot)

        assert result.days_until_travel == 75
        assert result.amount == Decimal("180.00")
        assert result.adjustments[0].kind == AdjustmentKind.EARLY_BIRD_DISCOUNT

    def test_last_minute_takes_smallest_met_threshold(self):
        snapshot = make_snapshot(time_based_discounts=[
            make_time_discount("last_minute", 14, "5"),
            make_time_discount("last_minute", 7, "20"),
        ])

        result = run(snapshot, booking_date=date(2025, 7, 10))

        assert result.days_until_travel == 5
        assert result.amount == Decimal("160.00")
        assert result.adjustments[0].kind == AdjustmentKind.LAST_MINUTE_DISCOUNT

    def test_threshold_boundary_is_inclusive(self):
        snapshot = make_snapshot(time_based_discounts=[make_time_discount("early_bird", 75, "10")])

        assert run(snapshot).amount == Decimal("180.00")

    def test_rule_outside_validity_window_is_skipped(self):
        snapshot = make_snapshot(time_based_discounts=[
            make_time_discount("early_bird", 30, "10", valid_to=date(2025, 4, 30)),
        ])

        result = run(snapshot)

        assert result.adjustments == []
        assert result.amount == Decimal("200.00")

    def test_threshold_tie_goes_to_newest(self):
        snapshot = make_snapshot(time_based_discounts=[
            make_time_discount("early_bird", 60, "10", created_at=created(2)),
            make_time_discount("early_bird", 60, "25", created_at=created(8)),
        ])

        assert run(snapshot).amount == Decimal("150.00")


class TestDepartureOverride:

    def test_discounts_before_departure_carry_over(self):
        snapshot = make_snapshot(
            group_rules=[make_group_rule(2, 4, "10")],
            departure=make_departure(custom_adult_price=Decimal("90")),
        )

        result = run(snapshot)

        assert [a.kind for a in result.adjustments] == [
            AdjustmentKind.GROUP_DISCOUNT, AdjustmentKind.DEPARTURE_OVERRIDE,
        ]
        assert result.amount == Decimal("160.00")

    def test_tiers_without_custom_price_keep_catalog_price(self):
        child = make_tier("child", "50")
        snapshot = make_snapshot(
            tiers=[make_tier("adult", "100"), child],
            departure=make_departure(custom_adult_price=Decimal("120")),
        )

        result = run(snapshot, travelers={"adult": 1, "child": 2})

        assert result.amount == Decimal("220.00")
        assert result.departure_unit_prices[child.id] == Decimal("50.00")

    def test_whole_departure_adjustment(self):
        snapshot = make_snapshot(departure=make_departure(adjustment_type="percentage", adjustment_value=Decimal("10")))

        assert run(snapshot).amount == Decimal("220.00")

    def test_departure_without_custom_pricing_is_ignored(self):
        snapshot = make_snapshot(departure=make_departure(available_slots=20))

        result = run(snapshot)

        assert result.adjustments == []
        assert result.departure_unit_prices == {}

    def test_disabled_departure_step(self):
        snapshot = make_snapshot(departure=make_departure(custom_adult_price=Decimal("90")))

        result = run(snapshot, settings=PipelineSettings(enable_departure=False))

        assert result.amount == Decimal("200.00")


class TestPromotions:

    def test_code_matches_case_insensitively(self):
        snapshot = make_snapshot(promotions=[make_promotion(code="SUMMER10")])

        result = run(snapshot, promotion_code="  summer10 ")

        assert result.amount == Decimal("180.00")
        assert result.adjustments[0].kind == AdjustmentKind.PROMOTION

    def test_blank_code_is_no_promotion(self):
        snapshot = make_snapshot(promotions=[make_promotion()])

        assert run(snapshot, promotion_code="   ").adjustments == []

    @pytest.mark.parametrize("overrides,message", [
        ({"is_active": False}, "is not valid"),
        ({"package_ids": ["another-package"]}, "does not apply"),
        ({"valid_from": date(2025, 6, 1)}, "not active yet"),
        ({"valid_to": date(2025, 4, 1)}, "has expired"),
        ({"max_uses": 5, "current_uses": 5}, "usage limit"),
        ({"min_pax": 4}, "at least 4 travelers"),
        ({"min_purchase_amount": Decimal("500")}, "minimum spend"),
    ])
    def test_ineligible_promotion_rejects(self, overrides, message):
        snapshot = make_snapshot(promotions=[make_promotion(**overrides)])

        with pytest.raises(PromotionNotApplicable) as exc_info:
            run(snapshot, promotion_code="SUMMER10")

        assert message in exc_info.value.message

    def test_promotion_scoped_to_this_package(self):
        package = make_package()
        snapshot = make_snapshot(package=package, promotions=[make_promotion(package_ids=[package.id])])

        assert run(snapshot, promotion_code="SUMMER10").amount == Decimal("180.00")

    def test_disabled_promotion_step_ignores_code(self):
        snapshot = make_snapshot()

        result = run(snapshot, settings=PipelineSettings(enable_promotion=False), promotion_code="NOPE")

        assert result.amount == Decimal("200.00")


class TestPipelineReuse:

    def test_runs_on_one_instance_are_independent(self):
        snapshot = make_snapshot(group_rules=[make_group_rule(5, None, "10")])
        resolver = TierResolver(snapshot.package, snapshot.tiers, "USD")
        pipeline = AdjustmentPipeline(snapshot, "USD", PipelineSettings())

        large = pipeline.run(resolver.resolve({"adult": 6}), TRAVEL_DATE, BOOKING_DATE)
        small = pipeline.run(resolver.resolve({"adult": 2}), TRAVEL_DATE, BOOKING_DATE)

        assert small.amount == Decimal("200")
        assert small.adjustments == []
        assert large.amount == Decimal("540.00")
        assert [a.kind for a in large.adjustments] == [AdjustmentKind.GROUP_DISCOUNT]
