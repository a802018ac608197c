"""
Tier resolver: turns traveler counts into priced tier lines.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from pydantic import BaseModel

from .currency import ZERO, quantize_amount
from .errors import GroupSizeOutOfRange, NoTravelers, TierSelectionInvalid, UnknownTier
from .rules import PackageInfo, PricingTier

logger = logging.getLogger(__name__)

STANDARD_TIER_TYPES = ('adult', 'child', 'infant', 'senior')

# Display-only defaults; ages never gate eligibility
DEFAULT_AGE_BOUNDS: Dict[str, Tuple[Optional[int], Optional[int]]] = {
    'adult': (18, 64),
    'child': (2, 17),
    'infant': (0, 1),
    'senior': (65, None),
}


class TierLine(BaseModel):
    tier_id: str
    tier_type: str
    tier_code: Optional[str] = None
    tier_label: str
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    count: int
    unit_price: Decimal
    subtotal: Decimal
    departure_unit_price: Optional[Decimal] = None


class TierResolution(BaseModel):
    lines: List[TierLine]
    total_travelers: int
    tier_subtotal: Decimal


def _default_label(tier: PricingTier) -> str:
    return tier.tier_label or tier.tier_type.replace('_', ' ').capitalize()


def _tier_order(tier: PricingTier):
    return tier.display_order, tier.tier_type, str(tier.id)


class TierResolver:
    """Resolve requested tier identifiers against a package's active tiers."""

    def __init__(self, package: PackageInfo, tiers: Iterable[PricingTier], currency: str):
        self.package = package
        self.currency = currency
        self.tiers = sorted((t for t in tiers if t.is_active), key=_tier_order)

    def _custom_lookup(self) -> Dict[str, PricingTier]:
        lookup: Dict[str, PricingTier] = {}
        # id beats tier_code beats tier_type
        for tier in self.tiers:
            lookup.setdefault(tier.tier_type, tier)
        for tier in self.tiers:
            if tier.tier_code:
                lookup[tier.tier_code] = tier
        for tier in self.tiers:
            lookup[str(tier.id)] = tier
        return lookup

    def _standard_lookup(self) -> Dict[str, PricingTier]:
        lookup: Dict[str, PricingTier] = {}
        for tier in self.tiers:
            if tier.tier_type in STANDARD_TIER_TYPES:
                lookup.setdefault(tier.tier_type, tier)
        return lookup

    def _find(self, key: str, lookup: Dict[str, PricingTier]) -> PricingTier:
        if self.package.use_custom_tiers:
            tier = lookup.get(key) or lookup.get(key.strip().lower())
        else:
            tier = lookup.get(key.strip().lower())
        if tier is None:
            raise UnknownTier(
                f"Tier '{key}' is not offered for this package",
                tier=key,
            )
        return tier

    def resolve(self, traveler_counts: Dict[str, int]) -> TierResolution:
        lookup = self._custom_lookup() if self.package.use_custom_tiers else self._standard_lookup()

        counts: Dict[str, int] = {}
        resolved: Dict[str, PricingTier] = {}
        for key, count in traveler_counts.items():
            # Zero counts select nothing, so they never need resolving
            if not count:
                continue
            tier = self._find(key, lookup)
            tier_id = str(tier.id)
            resolved[tier_id] = tier
            counts[tier_id] = counts.get(tier_id, 0) + count

        total = sum(counts.values())
        if total == 0:
            raise NoTravelers("At least one traveler is required")
        self._check_group_size(total)
        self._check_selection(resolved, counts)

        lines = []
        for tier in sorted(resolved.values(), key=_tier_order):
            count = counts[str(tier.id)]
            min_age, max_age = tier.min_age, tier.max_age
            if min_age is None and max_age is None:
                min_age, max_age = DEFAULT_AGE_BOUNDS.get(tier.tier_type, (None, None))
            unit_price = quantize_amount(tier.effective_price, self.currency)
            lines.append(TierLine(
                tier_id=str(tier.id),
                tier_type=tier.tier_type,
                tier_code=tier.tier_code,
                tier_label=_default_label(tier),
                min_age=min_age,
                max_age=max_age,
                count=count,
                unit_price=unit_price,
                subtotal=quantize_amount(unit_price * count, self.currency),
            ))

        tier_subtotal = sum((line.subtotal for line in lines), quantize_amount(ZERO, self.currency))
        return TierResolution(lines=lines, total_travelers=total, tier_subtotal=tier_subtotal)

    def _check_group_size(self, total: int) -> None:
        min_size = self.package.min_group_size or 0
        max_size = self.package.max_group_size
        if total < min_size:
            raise GroupSizeOutOfRange(
                f"Minimum group size is {min_size} passengers. You have {total}.",
                min_group_size=min_size,
                max_group_size=max_size,
                travelers=total,
            )
        if max_size is not None and total > max_size:
            raise GroupSizeOutOfRange(
                f"Maximum group size is {max_size} passengers. You have {total}.",
                min_group_size=min_size,
                max_group_size=max_size,
                travelers=total,
            )

    def _check_selection(self, resolved: Dict[str, PricingTier], counts: Dict[str, int]) -> None:
        adults = sum(counts[tier_id] for tier_id, tier in resolved.items() if tier.tier_type == 'adult')

        for tier_id, tier in resolved.items():
            if tier.max_per_booking is not None and counts[tier_id] > tier.max_per_booking:
                raise TierSelectionInvalid(
                    f"{_default_label(tier)}: Maximum {tier.max_per_booking} per booking.",
                    tier=tier_id,
                )
            if tier.requires_adult_accompaniment and adults == 0:
                raise TierSelectionInvalid(
                    "At least one adult is required when booking children.",
                    tier=tier_id,
                )
