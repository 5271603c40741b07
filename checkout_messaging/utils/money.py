"""Currency helpers for minor-unit arithmetic and display formatting"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CURRENCY_SYMBOLS = {
    "USD": "$",
    "CAD": "CA$",
    "AUD": "A$",
    "EUR": "€",
    "GBP": "£",
}


def round_half_up(value: float | Decimal) -> int:
    """Round to the nearest integer, halves away from zero"""
    return int(Decimal(str(value)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_minor_units(amount: str) -> int:
    """
    Convert a decimal amount string ("35.00") to minor units (3500).

    Raises:
        ValueError: If the amount is not a finite decimal number
    """
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation as e:
        raise ValueError(f"Invalid decimal amount: {amount!r}") from e
    if not value.is_finite():
        raise ValueError(f"Invalid decimal amount: {amount!r}")
    return round_half_up(value * 100)


def format_amount(amount_minor: int, currency_code: str) -> str:
    """Format minor units for display; unknown codes render literally, e.g. JPY 15.00"""
    code = (currency_code or "").upper()
    value = (Decimal(amount_minor) / 100).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol is None:
        return f"{code} {value}".strip()
    return f"{symbol}{value}"
