"""
Availability guard: decides whether a package can be booked for a date.
"""

from datetime import date
from typing import Iterable, Optional
import logging

from pydantic import BaseModel

from .errors import DateBlocked, DepartureUnavailable, PricingError
from .rules import BlockedDateRange, DeparturePricing, DepartureStatus, PackageInfo

logger = logging.getLogger(__name__)

OUTSIDE_WINDOW_REASON = "Outside package availability window"


class AvailabilityResult(BaseModel):
    """Outcome of a non-raising availability check."""
    available: bool
    kind: Optional[str] = None
    message: Optional[str] = None
    reason: Optional[str] = None


class AvailabilityGuard:
    """Rejects travel dates that fall in a blocked range or an unavailable departure."""

    def __init__(
        self,
        package: PackageInfo,
        blocked_dates: Iterable[BlockedDateRange],
        departure: Optional[DeparturePricing] = None
    ):
        self.package = package
        self.blocked_dates = sorted(blocked_dates, key=lambda r: (r.start_date, r.end_date, r.id))
        self.departure = departure

    def check(self, travel_date: date, travelers: Optional[int] = None) -> None:
        """
        Raise if the travel date cannot be booked.

        Blocked ranges are inclusive at both ends. When several overlap the
        date, the earliest-starting one supplies the reason.
        """
        for blocked in self.blocked_dates:
            if blocked.contains(travel_date):
                logger.info(
                    f"Travel date {travel_date} blocked for package {self.package.id}: {blocked.reason}"
                )
                raise DateBlocked(
                    "This date is not available for booking",
                    reason=blocked.reason,
                    blocked_range_id=blocked.id,
                )

        available_from = self.package.available_from
        available_to = self.package.available_to
        if (available_from and travel_date < available_from) or (available_to and travel_date > available_to):
            raise DateBlocked(
                "This date is not available for booking",
                reason=OUTSIDE_WINDOW_REASON,
            )

        self._check_departure(travel_date, travelers)

    def _check_departure(self, travel_date: date, travelers: Optional[int]) -> None:
        departure = self.departure
        if departure is None or not departure.is_active or departure.departure_date != travel_date:
            return

        if departure.status == DepartureStatus.CANCELLED:
            raise DepartureUnavailable(
                "This departure has been cancelled.",
                departure_id=departure.id,
                status=departure.status.value,
            )

        remaining = departure.remaining_slots
        if departure.status == DepartureStatus.SOLD_OUT or remaining == 0:
            raise DepartureUnavailable(
                "This departure is sold out.",
                departure_id=departure.id,
                status=DepartureStatus.SOLD_OUT.value,
            )

        if travelers is not None and remaining is not None and travelers > remaining:
            raise DepartureUnavailable(
                f"Only {remaining} slots available for this departure. You requested {travelers}.",
                departure_id=departure.id,
                available_slots=remaining,
            )

    def probe(self, travel_date: date, travelers: Optional[int] = None) -> AvailabilityResult:
        try:
            self.check(travel_date, travelers)
        except PricingError as e:
            return AvailabilityResult(
                available=False,
                kind=e.kind,
                message=e.message,
                reason=e.details.get("reason"),
            )
        return AvailabilityResult(available=True)
