"""
Package price computation engine.

``compute_price`` is a pure function of the request, a rule snapshot and the
pipeline settings. ``PricingEngine`` adds the async read of that snapshot.
"""

from datetime import date
from typing import Dict, List, Optional
import logging

from pydantic import BaseModel, Field, NonNegativeInt

from .. import config
from .addons import AddonSelection, AddonTotalizer
from .availability import AvailabilityGuard, AvailabilityResult
from .composer import PriceBreakdown, PriceComposer
from .errors import PackageNotFound
from .pipeline import AdjustmentPipeline, PipelineSettings
from .rules import RuleSnapshot
from .tiers import TierResolver

logger = logging.getLogger(__name__)


class PriceRequest(BaseModel):
    package_id: str
    travel_date: date
    booking_date: Optional[date] = None
    traveler_counts: Dict[str, NonNegativeInt] = Field(default_factory=dict)
    addons: List[AddonSelection] = Field(default_factory=list)
    promotion_code: Optional[str] = None

    def requested_travelers(self) -> int:
        return sum(self.traveler_counts.values())


def compute_price(
    request: PriceRequest,
    snapshot: RuleSnapshot,
    settings: Optional[PipelineSettings] = None,
    today: Optional[date] = None
) -> PriceBreakdown:
    """
    Price one request against one rule snapshot.

    Flow: availability guard, tier resolver, adjustment pipeline, add-on
    totalizer, composer. Any rejection raises a ``PricingError`` and nothing
    is returned.
    """
    package = snapshot.package
    if not package.is_active or str(package.id) != str(request.package_id):
        raise PackageNotFound(f"Package {request.package_id} not found", package_id=request.package_id)

    currency = (package.currency or config.DEFAULT_CURRENCY).upper()
    booking_date = request.booking_date or today or date.today()

    guard = AvailabilityGuard(package, snapshot.blocked_dates, snapshot.departure)
    guard.check(request.travel_date, travelers=request.requested_travelers())

    resolution = TierResolver(package, snapshot.tiers, currency).resolve(request.traveler_counts)

    pipeline = AdjustmentPipeline(snapshot, currency, settings).run(
        resolution,
        travel_date=request.travel_date,
        booking_date=booking_date,
        promotion_code=request.promotion_code,
    )

    addons = AddonTotalizer(snapshot.addons, currency).totalize(request.addons, resolution.total_travelers)

    breakdown = PriceComposer(currency).compose(
        package_id=str(package.id),
        travel_date=request.travel_date,
        booking_date=booking_date,
        resolution=resolution,
        pipeline=pipeline,
        addons=addons,
    )
    logger.info(
        f"Priced package {package.id} for {request.travel_date}: "
        f"{breakdown.base_subtotal} -> {breakdown.final_total} {currency} "
        f"({len(breakdown.adjustments_applied)} adjustments)"
    )
    return breakdown


class PricingEngine:
    """Fetch a rule snapshot from the repository, then price it."""

    def __init__(self, repository, settings: Optional[PipelineSettings] = None):
        self.repository = repository
        self.settings = settings or PipelineSettings.from_env()

    async def quote(self, request: PriceRequest, today: Optional[date] = None) -> PriceBreakdown:
        snapshot = await self.repository.fetch_snapshot(request.package_id, request.travel_date)
        # The repository accepts any UUID spelling; price against its canonical id
        request = request.model_copy(update={"package_id": snapshot.package.id})
        return compute_price(request, snapshot, self.settings, today=today)

    async def check_availability(
        self,
        package_id: str,
        travel_date: date,
        travelers: Optional[int] = None
    ) -> AvailabilityResult:
        snapshot = await self.repository.fetch_snapshot(package_id, travel_date)
        guard = AvailabilityGuard(snapshot.package, snapshot.blocked_dates, snapshot.departure)
        return guard.probe(travel_date, travelers)
