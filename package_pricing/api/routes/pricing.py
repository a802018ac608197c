"""
Pricing API: package quotes and date availability.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field, NonNegativeInt
from datetime import date
from typing import Optional, List, Dict
import logging

from ...database import async_session_factory
from ...pricing.addons import AddonSelection
from ...pricing.composer import PriceBreakdown
from ...pricing.engine import PriceRequest, PricingEngine
from ...pricing.errors import PricingError
from ...services.rule_repository import RuleRepository

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Pricing"])

ERROR_STATUS = {
    "PackageNotFound": status.HTTP_404_NOT_FOUND,
    "DateBlocked": status.HTTP_409_CONFLICT,
    "DepartureUnavailable": status.HTTP_409_CONFLICT,
    "RuleFetchFailed": status.HTTP_503_SERVICE_UNAVAILABLE,
}


class PriceQuoteBody(BaseModel):
    """Request model for pricing a package."""
    travel_date: date = Field(..., description="Travel date (YYYY-MM-DD)")
    booking_date: Optional[date] = Field(None, description="Defaults to today")
    traveler_counts: Dict[str, NonNegativeInt] = Field(
        ..., description="Travelers per tier, e.g. {\"adult\": 2, \"child\": 1}"
    )
    addons: List[AddonSelection] = Field(default_factory=list)
    promotion_code: Optional[str] = None


class AvailabilityResponse(BaseModel):
    """Response model for availability checks."""
    package_id: str
    travel_date: date
    available: bool
    kind: Optional[str] = None
    message: Optional[str] = None
    reason: Optional[str] = None


def get_pricing_engine() -> PricingEngine:
    return PricingEngine(RuleRepository(async_session_factory))


def pricing_http_error(e: PricingError) -> HTTPException:
    return HTTPException(
        status_code=ERROR_STATUS.get(e.kind, status.HTTP_422_UNPROCESSABLE_ENTITY),
        detail=e.to_dict(),
    )


@router.post("/packages/{package_id}/price", response_model=PriceBreakdown)
async def price_package(
    package_id: str,
    body: PriceQuoteBody,
    engine: PricingEngine = Depends(get_pricing_engine)
):
    """
    Compute the payable amount for a package booking.

    Returns the full breakdown: tier lines, every adjustment applied with its
    delta, add-on lines and the final total.
    """
    request = PriceRequest(package_id=package_id, **body.model_dump())
    try:
        return await engine.quote(request)
    except PricingError as e:
        logger.warning(f"Pricing rejected for package {package_id}: {e.kind} - {e.message}")
        raise pricing_http_error(e)


@router.get("/packages/{package_id}/availability", response_model=AvailabilityResponse)
async def check_package_availability(
    package_id: str,
    date_: date = Query(..., alias="date", description="Travel date (YYYY-MM-DD)"),
    travelers: Optional[int] = Query(None, ge=1, description="Party size to check against departure slots"),
    engine: PricingEngine = Depends(get_pricing_engine)
):
    """
    Check whether a travel date can be booked for a package.

    Blocked dates and unavailable departures come back as ``available: false``
    with the blocking reason rather than as an error.
    """
    try:
        result = await engine.check_availability(package_id, date_, travelers)
    except PricingError as e:
        logger.warning(f"Availability check failed for package {package_id}: {e.kind} - {e.message}")
        raise pricing_http_error(e)

    return AvailabilityResponse(package_id=package_id, travel_date=date_, **result.model_dump())
