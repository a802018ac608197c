"""
Price composer: folds tier lines, adjustments and add-ons into one breakdown.
"""

from datetime import date
from decimal import Decimal
from typing import List

from pydantic import BaseModel

from .addons import AddonLine, AddonTotal
from .currency import floor_at_zero
from .pipeline import AppliedAdjustment, PipelineResult
from .tiers import TierLine, TierResolution


class PriceBreakdown(BaseModel):
    """
    Everything needed to explain a final total without re-reading rules.

    ``base_subtotal`` plus every adjustment ``delta`` equals
    ``adjusted_tier_amount``; adding ``addon_total`` gives ``final_total``.
    """
    package_id: str
    travel_date: date
    booking_date: date
    days_until_travel: int
    total_travelers: int
    base_subtotal: Decimal
    tier_breakdown: List[TierLine]
    adjustments_applied: List[AppliedAdjustment]
    adjusted_tier_amount: Decimal
    addon_total: Decimal
    addon_breakdown: List[AddonLine]
    final_total: Decimal
    currency: str


class PriceComposer:
    def __init__(self, currency: str):
        self.currency = currency

    def compose(
        self,
        package_id: str,
        travel_date: date,
        booking_date: date,
        resolution: TierResolution,
        pipeline: PipelineResult,
        addons: AddonTotal
    ) -> PriceBreakdown:
        tier_lines = [
            line.model_copy(update={"departure_unit_price": pipeline.departure_unit_prices.get(line.tier_id)})
            for line in resolution.lines
        ]
        adjusted = floor_at_zero(pipeline.amount)

        return PriceBreakdown(
            package_id=package_id,
            travel_date=travel_date,
            booking_date=booking_date,
            days_until_travel=pipeline.days_until_travel,
            total_travelers=resolution.total_travelers,
            base_subtotal=resolution.tier_subtotal,
            tier_breakdown=tier_lines,
            adjustments_applied=pipeline.adjustments,
            adjusted_tier_amount=adjusted,
            addon_total=addons.total,
            addon_breakdown=addons.lines,
            final_total=adjusted + addons.total,
            currency=self.currency,
        )
