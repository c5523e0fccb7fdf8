"""
Text formatting utilities for the ticket printer client.
Pure helpers shared by the layout renderer and the executor.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP, localcontext
from typing import Union

ELLIPSIS = "…"

Number = Union[int, float, Decimal]

_CENTS = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    """
    Convert a numeric value to Decimal.

    Floats go through ``str`` so that 9.005 stays 9.005 rather than its
    binary approximation.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def format_price(value: Number) -> str:
    """
    Format an amount as currency, rounded half-up to two decimals.

    Args:
        value: Amount to format

    Returns:
        Formatted price, e.g. "$9.01" for 9.005
    """
    amount = to_decimal(value)
    with localcontext() as ctx:
        # Room for every integer digit plus the cents
        ctx.prec = max(ctx.prec, amount.adjusted() + 3)
        amount = amount.quantize(_CENTS, rounding=ROUND_HALF_UP)
    return f"${amount}"


def truncate_text(text: str, max_len: int) -> str:
    """
    Fit text into a fixed-width column.

    Text longer than the column keeps its first ``max_len - 1`` characters
    followed by an ellipsis; shorter text is right-padded with spaces.
    """
    if len(text) > max_len:
        return text[:max_len - 1] + ELLIPSIS
    return text.ljust(max_len)


def format_short_date(moment: datetime) -> str:
    """Short day/month/year date and 24h time, e.g. "19/10/26, 14:30"."""
    return moment.strftime("%d/%m/%y, %H:%M")


def generate_line_pattern(line_type: str, width: int = 48) -> str:
    """
    Generate line pattern for printing.

    Args:
        line_type: Type of line (solid, dotted, double, dashed)
        width: Width in characters
    """
    if line_type == "solid":
        return "─" * width
    elif line_type == "dotted":
        return "·" * width
    elif line_type == "double":
        return "═" * width
    else:
        return "-" * width
