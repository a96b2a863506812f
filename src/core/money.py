"""Conversions between major and minor currency units.

Amounts are persisted as integers in the smallest currency unit. Decimal
arithmetic is used for every conversion so that 299.00 becomes exactly 29900.
"""

from decimal import ROUND_HALF_UP, Decimal

# ISO 4217 currencies whose minor unit is not 1/100
_CURRENCY_EXPONENTS = {
    "JPY": 0,
    "KRW": 0,
    "VND": 0,
    "BHD": 3,
    "KWD": 3,
    "OMR": 3,
}


def currency_exponent(currency: str) -> int:
    return _CURRENCY_EXPONENTS.get(currency.upper(), 2)


def to_minor_units(amount: Decimal | int | str, currency: str) -> int:
    """Convert a major-unit amount to an integer count of minor units.

    Raises:
        ValueError: If the amount is not positive.
    """
    value = Decimal(str(amount))
    if value <= 0:
        raise ValueError("Amount must be positive")
    scaled = value.scaleb(currency_exponent(currency))
    return int(scaled.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def from_minor_units(amount_minor_units: int, currency: str) -> Decimal:
    """Convert minor units back to a major-unit Decimal."""
    return Decimal(amount_minor_units).scaleb(-currency_exponent(currency))
