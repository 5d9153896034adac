"""
Unified money formatting for the whole project.

Usage:
    from redemption.utils.money import format_money

    format_money(15.49)              -> "€15.49"
    format_money(1200.5)             -> "€1,200.50"
    format_money(-12, "EUR")         -> "-€12.00"
    format_money(10, "USD")          -> "$10.00"
"""
from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")

# Prefix symbol per ISO code; unknown codes fall back to "<CODE> "
_CURRENCY_SYMBOL = {
    "EUR": "€",
    "USD": "$",
    "GBP": "£",
}


def currency_label(code: str) -> str:
    """Human-readable currency prefix."""
    return _CURRENCY_SYMBOL.get(code, f"{code} ")


def to_decimal(value) -> Decimal:
    """int / float / str / Decimal / None -> Decimal (None -> 0)."""
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # go through str so 0.1 stays 0.1
        return Decimal(str(value))
    return Decimal(value)


def quantize_money(value) -> Decimal:
    """Round to cents, half up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def format_money(amount, currency: str = "EUR", decimals: int = 2) -> str:
    """
    Format an amount with thousands separators and a currency prefix.

    Args:
        amount: int / float / Decimal / str
        currency: ISO code (EUR, USD, ...)
        decimals: digits after the point

    Returns:
        "€15.49" / "-€12.00"
    """
    value = to_decimal(amount)
    sign = "-" if value < 0 else ""
    fmt = f"{{:,.{decimals}f}}"
    return f"{sign}{currency_label(currency)}{fmt.format(abs(value))}"
