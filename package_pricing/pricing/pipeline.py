"""
Adjustment pipeline.

Steps run in a fixed order against a running amount that starts at the tier
subtotal: group discount, seasonal adjustment, time-based discounts,
departure override, promotion.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
import enum
import logging

from pydantic import BaseModel

from .. import config
from .adjustments import apply_adjustment, select_most_recent, select_narrowest
from .currency import floor_at_zero, quantize_amount
from .errors import PromotionNotApplicable
from .rules import AdjustmentType, RuleSnapshot, TimeDiscountType
from .tiers import TierResolution

logger = logging.getLogger(__name__)


class AdjustmentKind(str, enum.Enum):
    GROUP_DISCOUNT = "group_discount"
    SEASONAL_ADJUSTMENT = "seasonal_adjustment"
    EARLY_BIRD_DISCOUNT = "early_bird_discount"
    LAST_MINUTE_DISCOUNT = "last_minute_discount"
    DEPARTURE_OVERRIDE = "departure_override"
    PROMOTION = "promotion"


class PipelineSettings(BaseModel):
    """Per-step switches, passed explicitly to every computation."""
    enable_group: bool = True
    enable_seasonal: bool = True
    enable_time_based: bool = True
    enable_departure: bool = True
    enable_promotion: bool = True

    @classmethod
    def from_env(cls) -> "PipelineSettings":
        return cls(
            enable_group=config.PRICING_ENABLE_GROUP,
            enable_seasonal=config.PRICING_ENABLE_SEASONAL,
            enable_time_based=config.PRICING_ENABLE_TIME_BASED,
            enable_departure=config.PRICING_ENABLE_DEPARTURE,
            enable_promotion=config.PRICING_ENABLE_PROMOTION,
        )


class AppliedAdjustment(BaseModel):
    kind: AdjustmentKind
    rule_id: str
    label: str
    adjustment_type: AdjustmentType
    value: Decimal
    amount_before: Decimal
    amount_after: Decimal
    delta: Decimal


class PipelineResult(BaseModel):
    amount: Decimal
    adjustments: List[AppliedAdjustment]
    days_until_travel: int
    departure_unit_prices: Dict[str, Decimal] = {}


class _RunningTotal:
    """Amount and applied adjustments for a single pipeline run."""

    def __init__(self, amount: Decimal):
        self.amount = amount
        self.adjustments: List[AppliedAdjustment] = []

    def record(self, kind, rule_id, label, adjustment_type, value, new_amount):
        before = self.amount
        self.amount = new_amount
        self.adjustments.append(AppliedAdjustment(
            kind=kind,
            rule_id=str(rule_id),
            label=label,
            adjustment_type=adjustment_type,
            value=value,
            amount_before=before,
            amount_after=new_amount,
            delta=new_amount - before,
        ))


class AdjustmentPipeline:
    """Apply a snapshot's adjustment rules to a resolved tier subtotal."""

    def __init__(self, snapshot: RuleSnapshot, currency: str, settings: Optional[PipelineSettings] = None):
        self.snapshot = snapshot
        self.currency = currency
        self.settings = settings or PipelineSettings()

    def run(
        self,
        resolution: TierResolution,
        travel_date: date,
        booking_date: date,
        promotion_code: Optional[str] = None
    ) -> PipelineResult:
        running = _RunningTotal(resolution.tier_subtotal)
        days_until_travel = (travel_date - booking_date).days
        departure_prices: Dict[str, Decimal] = {}

        if self.settings.enable_group:
            self._apply_group(running, resolution.total_travelers)
        if self.settings.enable_seasonal:
            self._apply_seasonal(running, travel_date)
        if self.settings.enable_time_based:
            self._apply_time_based(running, days_until_travel, booking_date)
        if self.settings.enable_departure:
            departure_prices = self._apply_departure(running, resolution, travel_date)
        if self.settings.enable_promotion:
            self._apply_promotion(running, promotion_code, resolution.total_travelers, booking_date)
        elif promotion_code and promotion_code.strip():
            logger.info(f"Promotion step disabled; ignoring code {promotion_code!r}")

        return PipelineResult(
            amount=running.amount,
            adjustments=running.adjustments,
            days_until_travel=days_until_travel,
            departure_unit_prices=departure_prices,
        )

    def _apply_rule(self, running, kind, rule, label, discount):
        new_amount = apply_adjustment(
            running.amount, rule.adjustment_type, rule.adjustment_value, self.currency, discount=discount
        )
        running.record(kind, rule.id, label, rule.adjustment_type, rule.adjustment_value, new_amount)

    def _apply_group(self, running: _RunningTotal, travelers: int) -> None:
        rule = select_narrowest(
            (r for r in self.snapshot.group_rules if r.is_active and r.matches(travelers)),
            bounds=lambda r: (r.min_size, r.max_size),
        )
        if rule is None:
            return
        upper = rule.max_size if rule.max_size is not None else "+"
        self._apply_rule(
            running, AdjustmentKind.GROUP_DISCOUNT, rule, f"Group {rule.min_size}-{upper}", discount=True
        )

    def _apply_seasonal(self, running: _RunningTotal, travel_date: date) -> None:
        rule = select_narrowest(
            (r for r in self.snapshot.seasonal_rules if r.is_active and r.matches(travel_date)),
            bounds=lambda r: (r.start_date, r.end_date),
        )
        if rule is None:
            return
        self._apply_rule(
            running, AdjustmentKind.SEASONAL_ADJUSTMENT, rule, rule.season_name or "Seasonal pricing",
            discount=False,
        )

    def _apply_time_based(self, running: _RunningTotal, days_until_travel: int, booking_date: date) -> None:
        eligible = [
            r for r in self.snapshot.time_based_discounts
            if r.is_active and r.is_valid_on(booking_date) and r.threshold_met(days_until_travel)
        ]

        early = [r for r in eligible if r.discount_type == TimeDiscountType.EARLY_BIRD]
        if early:
            # Tightest threshold: the largest lead time that is still met
            tightest = max(r.days_threshold for r in early)
            rule = select_most_recent(r for r in early if r.days_threshold == tightest)
            self._apply_rule(
                running, AdjustmentKind.EARLY_BIRD_DISCOUNT, rule, rule.discount_name or "Early bird", discount=True
            )

        late = [r for r in eligible if r.discount_type == TimeDiscountType.LAST_MINUTE]
        if late:
            tightest = min(r.days_threshold for r in late)
            rule = select_most_recent(r for r in late if r.days_threshold == tightest)
            self._apply_rule(
                running, AdjustmentKind.LAST_MINUTE_DISCOUNT, rule, rule.discount_name or "Last minute", discount=True
            )

    def _apply_departure(
        self,
        running: _RunningTotal,
        resolution: TierResolution,
        travel_date: date
    ) -> Dict[str, Decimal]:
        """
        Re-base the running amount on the departure's own prices.

        The departure baseline replaces the tier subtotal, but whatever steps
        1-3 already took off (or added) carries over unchanged.
        """
        departure = self.snapshot.departure
        if (
            departure is None
            or not departure.is_active
            or departure.departure_date != travel_date
            or not departure.has_custom_pricing
        ):
            return {}

        unit_prices: Dict[str, Decimal] = {}
        baseline = quantize_amount(Decimal(0), self.currency)
        for line in resolution.lines:
            custom = departure.custom_price_for(line.tier_type)
            unit_price = quantize_amount(custom, self.currency) if custom is not None else line.unit_price
            unit_prices[line.tier_id] = unit_price
            baseline += unit_price * line.count

        adjustment_type = AdjustmentType.OVERRIDE_PRICE
        if departure.adjustment_type is not None and departure.adjustment_value is not None:
            baseline = apply_adjustment(
                baseline, departure.adjustment_type, departure.adjustment_value, self.currency, discount=False
            )
            adjustment_type = departure.adjustment_type

        carried = running.amount - resolution.tier_subtotal
        new_amount = floor_at_zero(quantize_amount(baseline + carried, self.currency))
        running.record(
            AdjustmentKind.DEPARTURE_OVERRIDE,
            departure.id,
            f"Departure {departure.departure_date.isoformat()}",
            adjustment_type,
            baseline,
            new_amount,
        )
        return unit_prices

    def _apply_promotion(
        self,
        running: _RunningTotal,
        code: Optional[str],
        travelers: int,
        booking_date: date
    ) -> None:
        code = (code or "").strip()
        if not code:
            return

        package_id = self.snapshot.package.id
        matches = [p for p in self.snapshot.promotions if p.promotion_code.strip().lower() == code.lower()]
        active = [p for p in matches if p.is_active]
        if not active:
            raise PromotionNotApplicable(f"Promotion code '{code}' is not valid", promotion_code=code)

        scoped = [p for p in active if p.applies_to_package(package_id)]
        if not scoped:
            raise PromotionNotApplicable(
                f"Promotion code '{code}' does not apply to this package", promotion_code=code
            )

        promotion = select_most_recent(scoped)
        if promotion.valid_from and booking_date < promotion.valid_from:
            raise PromotionNotApplicable(f"Promotion code '{code}' is not active yet", promotion_code=code)
        if promotion.valid_to and booking_date > promotion.valid_to:
            raise PromotionNotApplicable(f"Promotion code '{code}' has expired", promotion_code=code)
        if promotion.max_uses is not None and promotion.current_uses >= promotion.max_uses:
            raise PromotionNotApplicable(
                f"Promotion code '{code}' has reached its usage limit", promotion_code=code
            )
        if promotion.min_pax is not None and travelers < promotion.min_pax:
            raise PromotionNotApplicable(
                f"Promotion code '{code}' requires at least {promotion.min_pax} travelers",
                promotion_code=code,
            )
        if promotion.min_purchase_amount is not None and running.amount < promotion.min_purchase_amount:
            raise PromotionNotApplicable(
                f"Promotion code '{code}' requires a minimum spend of {promotion.min_purchase_amount}",
                promotion_code=code,
            )

        self._apply_rule(
            running,
            AdjustmentKind.PROMOTION,
            promotion,
            promotion.promotion_name or promotion.promotion_code,
            discount=True,
        )
