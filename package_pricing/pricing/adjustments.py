"""
Adjustment arithmetic and rule selection shared by the pipeline steps.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Callable, Iterable, Optional, Tuple, TypeVar

from .currency import floor_at_zero, quantize_amount
from .rules import AdjustmentType

T = TypeVar('T')

HUNDRED = Decimal('100')


def apply_adjustment(
    amount: Decimal,
    adjustment_type: AdjustmentType,
    value: Decimal,
    currency: str,
    discount: bool = True
) -> Decimal:
    """
    Apply one adjustment to a running amount.

    For discount kinds a positive value lowers the amount; for surcharge kinds
    it raises it. A negative value flips the direction either way.
    ``override_price`` replaces the amount outright. The result is rounded to
    the currency's minor unit and never drops below zero.
    """
    value = Decimal(value)
    sign = -1 if discount else 1

    if adjustment_type == AdjustmentType.OVERRIDE_PRICE:
        adjusted = value
    elif adjustment_type == AdjustmentType.PERCENTAGE:
        adjusted = amount * (1 + sign * value / HUNDRED)
    elif adjustment_type == AdjustmentType.FIXED_AMOUNT:
        adjusted = amount + sign * value
    else:
        raise ValueError(f"Unsupported adjustment type: {adjustment_type}")

    return floor_at_zero(quantize_amount(adjusted, currency))


def _span(low, high) -> int:
    if isinstance(low, date):
        return (high - low).days
    return high - low


def _recency(created_at: Optional[datetime]) -> datetime:
    if created_at is None:
        return datetime.min
    if created_at.tzinfo is not None:
        return created_at.astimezone(timezone.utc).replace(tzinfo=None)
    return created_at


def select_narrowest(rules: Iterable[T], bounds: Callable[[T], Tuple]) -> Optional[T]:
    """
    Pick one rule out of several matching ones.

    The narrowest range wins; an open-ended range counts as wider than any
    bounded one. Equal widths go to the most recently created rule, then to
    the greatest id, so the choice never depends on the input order.
    """
    def width(rule):
        low, high = bounds(rule)
        return (1, 0) if high is None else (0, _span(low, high))

    candidates = list(rules)
    if not candidates:
        return None
    narrowest = min(width(rule) for rule in candidates)
    return select_most_recent(rule for rule in candidates if width(rule) == narrowest)


def select_most_recent(rules: Iterable[T]) -> Optional[T]:
    candidates = list(rules)
    if not candidates:
        return None
    return max(candidates, key=lambda rule: (_recency(rule.created_at), str(rule.id)))
