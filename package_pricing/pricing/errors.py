"""
Pricing rejections.

Every failure of a price computation is terminal: the caller gets one error
with a machine-readable ``kind`` and a human-readable message, never a
partial result.
"""

from typing import Any, Dict, Optional


class PricingError(Exception):
    """Base exception for pricing engine errors"""

    kind = "PricingError"

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def to_dict(self) -> Dict[str, Any]:
        payload = {"error": self.kind, "message": self.message}
        payload.update({k: v for k, v in self.details.items() if v is not None})
        return payload


class PackageNotFound(PricingError):
    kind = "PackageNotFound"


class DateBlocked(PricingError):
    kind = "DateBlocked"

    def __init__(self, message: str, reason: str, **details: Any):
        super().__init__(message, reason=reason, **details)
        self.reason = reason


class DepartureUnavailable(PricingError):
    kind = "DepartureUnavailable"


class NoTravelers(PricingError):
    kind = "NoTravelers"


class UnknownTier(PricingError):
    kind = "UnknownTier"


class GroupSizeOutOfRange(PricingError):
    kind = "GroupSizeOutOfRange"


class TierSelectionInvalid(PricingError):
    kind = "TierSelectionInvalid"


class UnknownAddon(PricingError):
    kind = "UnknownAddon"


class InvalidAddonQuantity(PricingError):
    kind = "InvalidAddonQuantity"


class PromotionNotApplicable(PricingError):
    kind = "PromotionNotApplicable"


class RuleFetchFailed(PricingError):
    """A rule read failed; the caller decides whether to retry."""

    kind = "RuleFetchFailed"

    def __init__(self, message: str, cause: Optional[BaseException] = None, **details: Any):
        super().__init__(message, **details)
        self.cause = cause
