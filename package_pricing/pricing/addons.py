"""
Add-on totalizer. Prices optional extras independently of the tier pipeline.
"""

from decimal import Decimal
from typing import Dict, Iterable, List, Optional
import logging

from pydantic import BaseModel, Field

from .currency import ZERO, quantize_amount
from .errors import InvalidAddonQuantity, UnknownAddon
from .rules import Addon, AddonPricingType

logger = logging.getLogger(__name__)


class AddonSelection(BaseModel):
    addon_id: str
    quantity: int = Field(1, ge=0)


class AddonLine(BaseModel):
    addon_id: str
    addon_name: str
    pricing_type: AddonPricingType
    quantity: int
    unit_price: Decimal
    traveler_count: Optional[int] = None
    subtotal: Decimal
    auto_included: bool = False


class AddonTotal(BaseModel):
    lines: List[AddonLine]
    total: Decimal


class AddonTotalizer:
    def __init__(self, addons: Iterable[Addon], currency: str):
        self.currency = currency
        self.addons = sorted(
            (a for a in addons if a.is_active),
            key=lambda a: (a.display_order, a.addon_name, str(a.id)),
        )
        self._by_id = {str(a.id): a for a in self.addons}

    def totalize(self, selections: Iterable[AddonSelection], traveler_count: int) -> AddonTotal:
        # Repeated ids add up
        quantities: Dict[str, int] = {}
        for selection in selections:
            if selection.addon_id not in self._by_id:
                raise UnknownAddon(
                    f"Add-on '{selection.addon_id}' is not available for this package",
                    addon_id=selection.addon_id,
                )
            quantities[selection.addon_id] = quantities.get(selection.addon_id, 0) + selection.quantity

        lines = []
        for addon_id, quantity in quantities.items():
            addon = self._by_id[addon_id]
            self._check_quantity(addon, quantity)
            lines.append(self._line(addon, quantity, traveler_count))

        for addon in self.addons:
            if addon.is_required and str(addon.id) not in quantities:
                logger.debug(f"Auto-including required add-on {addon.id} at quantity {addon.min_quantity}")
                lines.append(self._line(addon, addon.min_quantity, traveler_count, auto_included=True))

        total = sum((line.subtotal for line in lines), quantize_amount(ZERO, self.currency))
        return AddonTotal(lines=lines, total=total)

    def _check_quantity(self, addon: Addon, quantity: int) -> None:
        too_few = quantity < addon.min_quantity
        too_many = addon.max_quantity is not None and quantity > addon.max_quantity
        if too_few or too_many:
            bounds = f"{addon.min_quantity}-{addon.max_quantity}" if addon.max_quantity is not None \
                else f"at least {addon.min_quantity}"
            raise InvalidAddonQuantity(
                f"{addon.addon_name or addon.id}: quantity {quantity} is outside the allowed range ({bounds})",
                addon_id=str(addon.id),
                quantity=quantity,
                min_quantity=addon.min_quantity,
                max_quantity=addon.max_quantity,
            )

    def _line(self, addon: Addon, quantity: int, traveler_count: int, auto_included: bool = False) -> AddonLine:
        unit_price = quantize_amount(addon.unit_price, self.currency)
        if addon.pricing_type == AddonPricingType.PER_PERSON:
            subtotal = unit_price * quantity * traveler_count
            travelers = traveler_count
        else:
            subtotal = unit_price * quantity
            travelers = None
        return AddonLine(
            addon_id=str(addon.id),
            addon_name=addon.addon_name,
            pricing_type=addon.pricing_type,
            quantity=quantity,
            unit_price=unit_price,
            traveler_count=travelers,
            subtotal=quantize_amount(subtotal, self.currency),
            auto_included=auto_included,
        )
