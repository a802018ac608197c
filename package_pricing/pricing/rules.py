"""
Read-only snapshot of a package's pricing rules.

The repository maps database rows into these models once per request; the
engine never sees an ORM object or a session.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated, List, Optional
import enum

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field


def _as_str(value):
    return value if value is None or isinstance(value, str) else str(value)


Identifier = Annotated[str, BeforeValidator(_as_str)]


class AdjustmentType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED_AMOUNT = "fixed_amount"
    OVERRIDE_PRICE = "override_price"

class TimeDiscountType(str, enum.Enum):
    EARLY_BIRD = "early_bird"
    LAST_MINUTE = "last_minute"

class AddonPricingType(str, enum.Enum):
    PER_PERSON = "per_person"
    PER_GROUP = "per_group"
    PER_UNIT = "per_unit"

class DepartureStatus(str, enum.Enum):
    AVAILABLE = "available"
    LIMITED = "limited"
    SOLD_OUT = "sold_out"
    CANCELLED = "cancelled"


class RuleModel(BaseModel):
    model_config = ConfigDict(from_attributes=True, frozen=True)


class PackageInfo(RuleModel):
    id: Identifier
    package_name: str = ""
    currency: Optional[str] = None
    min_group_size: int = 1
    max_group_size: Optional[int] = None
    available_from: Optional[date] = None
    available_to: Optional[date] = None
    use_custom_tiers: bool = False
    is_active: bool = True


class PricingTier(RuleModel):
    id: Identifier
    tier_type: str
    tier_code: Optional[str] = None
    tier_label: Optional[str] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    base_price: Decimal
    selling_price: Optional[Decimal] = None
    display_order: int = 0
    requires_adult_accompaniment: bool = False
    max_per_booking: Optional[int] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    @property
    def effective_price(self) -> Decimal:
        """Selling price when set, otherwise the base price."""
        return self.selling_price if self.selling_price is not None else self.base_price


class GroupPricingRule(RuleModel):
    id: Identifier
    min_size: int
    max_size: Optional[int] = None
    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    is_active: bool = True
    created_at: Optional[datetime] = None

    def matches(self, travelers: int) -> bool:
        if travelers < self.min_size:
            return False
        return self.max_size is None or travelers <= self.max_size


class SeasonalPricingRule(RuleModel):
    id: Identifier
    season_name: str = ""
    start_date: date
    end_date: date
    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    is_active: bool = True
    created_at: Optional[datetime] = None

    def matches(self, travel_date: date) -> bool:
        return self.start_date <= travel_date <= self.end_date


class TimeBasedDiscount(RuleModel):
    id: Identifier
    discount_name: str = ""
    discount_type: TimeDiscountType
    days_threshold: int
    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    def is_valid_on(self, booking_date: date) -> bool:
        if self.valid_from and booking_date < self.valid_from:
            return False
        if self.valid_to and booking_date > self.valid_to:
            return False
        return True

    def threshold_met(self, days_until_travel: int) -> bool:
        if self.discount_type == TimeDiscountType.EARLY_BIRD:
            return days_until_travel >= self.days_threshold
        return days_until_travel <= self.days_threshold


class DeparturePricing(RuleModel):
    id: Identifier
    departure_date: date
    available_slots: Optional[int] = None
    booked_slots: int = 0
    status: DepartureStatus = DepartureStatus.AVAILABLE
    custom_adult_price: Optional[Decimal] = None
    custom_child_price: Optional[Decimal] = None
    custom_infant_price: Optional[Decimal] = None
    custom_senior_price: Optional[Decimal] = None
    adjustment_type: Optional[AdjustmentType] = None
    adjustment_value: Optional[Decimal] = None
    is_active: bool = True

    def custom_price_for(self, tier_type: str) -> Optional[Decimal]:
        return getattr(self, f"custom_{tier_type}_price", None)

    @property
    def has_custom_pricing(self) -> bool:
        prices = (self.custom_adult_price, self.custom_child_price,
                  self.custom_infant_price, self.custom_senior_price)
        has_adjustment = self.adjustment_type is not None and self.adjustment_value is not None
        return has_adjustment or any(price is not None for price in prices)

    @property
    def remaining_slots(self) -> Optional[int]:
        if self.available_slots is None:
            return None
        return max(0, self.available_slots - self.booked_slots)


class Addon(RuleModel):
    id: Identifier
    addon_name: str = ""
    addon_code: Optional[str] = None
    pricing_type: AddonPricingType
    unit_price: Decimal
    min_quantity: int = 0
    max_quantity: Optional[int] = None
    is_required: bool = False
    display_order: int = 0
    is_active: bool = True


class BlockedDateRange(RuleModel):
    id: Identifier
    start_date: date
    end_date: date
    reason: str
    notes: Optional[str] = None

    def contains(self, travel_date: date) -> bool:
        return self.start_date <= travel_date <= self.end_date


class Promotion(RuleModel):
    id: Identifier
    promotion_code: str
    promotion_name: str = ""
    adjustment_type: AdjustmentType
    adjustment_value: Decimal
    package_ids: Optional[List[Identifier]] = None
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    max_uses: Optional[int] = None
    current_uses: int = 0
    min_purchase_amount: Optional[Decimal] = None
    min_pax: Optional[int] = None
    is_active: bool = True
    created_at: Optional[datetime] = None

    def applies_to_package(self, package_id: str) -> bool:
        return self.package_ids is None or package_id in self.package_ids


class RuleSnapshot(RuleModel):
    """Everything the engine needs to price one request."""

    package: PackageInfo
    tiers: List[PricingTier] = Field(default_factory=list)
    group_rules: List[GroupPricingRule] = Field(default_factory=list)
    seasonal_rules: List[SeasonalPricingRule] = Field(default_factory=list)
    time_based_discounts: List[TimeBasedDiscount] = Field(default_factory=list)
    addons: List[Addon] = Field(default_factory=list)
    departure: Optional[DeparturePricing] = None
    blocked_dates: List[BlockedDateRange] = Field(default_factory=list)
    promotions: List[Promotion] = Field(default_factory=list)
