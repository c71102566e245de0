"""Decimal helpers for currency amounts shown and sent by the dashboard."""
import re
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Optional, Tuple

CENT = Decimal("0.01")

_LABEL_PATTERN = re.compile(r"^\s*([+-])?\$([0-9][0-9,]*(?:\.[0-9]+)?)\s*$")


def to_decimal(value: Any, default: Optional[Decimal] = None) -> Decimal:
    """Coerce API values (numbers or numeric strings) into a Decimal."""
    if isinstance(value, Decimal):
        return value
    if value is None or value == "":
        if default is not None:
            return default
        raise ValueError("Amount is required")
    try:
        # floats go through str() so 0.1 stays 0.1
        return Decimal(str(value).replace(",", "").strip())
    except (InvalidOperation, ValueError):
        if default is not None:
            return default
        raise ValueError(f"Invalid amount: {value!r}")


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def format_decimal(amount: Decimal) -> str:
    """Two-decimal string for transmission, e.g. ``-1250.00``."""
    return f"{quantize(amount):.2f}"


def format_currency(amount: Decimal, symbol: str = "$") -> str:
    """Format an unsigned amount as currency, e.g. '$1,234.56'."""
    return f"{symbol}{quantize(abs(amount)):,.2f}"


def format_signed(amount: Decimal, symbol: str = "$") -> str:
    """Format with +/- sign."""
    sign = "+" if amount >= 0 else "-"
    return f"{sign}{format_currency(amount, symbol)}"


def parse_signed(label: str) -> Tuple[Decimal, int]:
    """
    Parse a label produced by ``format_signed``.

    Returns:
        (unsigned amount, sign) where sign is 1 or -1. A label without an
        explicit sign is treated as positive.
    """
    match = _LABEL_PATTERN.match(label or "")
    if not match:
        raise ValueError(f"Not a currency label: {label!r}")
    sign = -1 if match.group(1) == "-" else 1
    return Decimal(match.group(2).replace(",", "")), sign
