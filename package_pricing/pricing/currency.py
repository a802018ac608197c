"""Currency minor units and rounding."""

from decimal import Decimal, ROUND_HALF_UP

ZERO = Decimal('0')

# Decimal places per ISO currency; anything unlisted uses 2
CURRENCY_DECIMALS = {
    'USD': 2, 'EUR': 2, 'GBP': 2, 'JPY': 0, 'CNY': 2, 'SGD': 2, 'HKD': 2,
    'AUD': 2, 'CAD': 2, 'CHF': 2, 'THB': 2, 'MYR': 2, 'IDR': 0, 'VND': 0,
    'KRW': 0, 'INR': 2, 'PHP': 2, 'NZD': 2, 'TWD': 0,
}


def minor_unit(currency: str) -> Decimal:
    decimals = CURRENCY_DECIMALS.get((currency or '').upper(), 2)
    return Decimal(1).scaleb(-decimals)


def quantize_amount(amount: Decimal, currency: str) -> Decimal:
    """Round half-up to the currency's minor unit."""
    return Decimal(amount).quantize(minor_unit(currency), ROUND_HALF_UP)


def floor_at_zero(amount: Decimal) -> Decimal:
    """Clamp negatives (and -0) to zero, keeping the amount's scale."""
    return amount if amount > ZERO else ZERO.quantize(amount)
