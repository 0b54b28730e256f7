"""Display formatting shared by notification and insight messages."""

from decimal import Decimal, ROUND_HALF_UP


def format_currency(value: Decimal, symbol: str = "R$") -> str:
    """Format an amount like "R$ 1,247.85" (negative values get a leading minus)."""
    quantized = value.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
    sign = "-" if quantized < 0 else ""
    return f"{sign}{symbol} {abs(quantized):,.2f}"


def format_percent(value: Decimal, places: int = 0) -> str:
    """Format an already-multiplied percentage (85.4 -> "85")."""
    return f"{value:.{places}f}"
