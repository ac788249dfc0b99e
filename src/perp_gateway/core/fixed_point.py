"""
Conversion between human decimal strings and on-chain fixed-point integers.

On-chain values carry 18 implied decimal places. Conversion to chain units
truncates toward zero so no fractional unit is ever sent.
"""

from __future__ import annotations

from decimal import ROUND_DOWN, Context, Decimal, DecimalException, InvalidOperation, localcontext
from typing import Optional, Union

DECIMALS = 18
INT256_MIN = -(2**255)
INT256_MAX = 2**255 - 1

# int256 fits in 78 digits
_CTX = Context(prec=80)

Number = Union[str, int, Decimal]


def parse_decimal(value: Optional[Number]) -> Decimal:
    """Parse a human decimal. Raises ValueError on empty or non-finite input."""
    if value is None:
        raise ValueError("missing value")
    if isinstance(value, float):
        value = repr(value)
    raw = str(value).strip()
    if not raw:
        raise ValueError("empty value")
    try:
        dec = Decimal(raw)
    except InvalidOperation as exc:
        raise ValueError(f"not a decimal: {raw!r}") from exc
    if not dec.is_finite():
        raise ValueError(f"not a finite decimal: {raw!r}")
    return dec


def to_fixed(value: Number, decimals: int = DECIMALS) -> int:
    """Human decimal -> int256 fixed point. Raises ValueError when out of range."""
    dec = parse_decimal(value)
    try:
        with localcontext(_CTX):
            fixed = int(dec.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))
    except DecimalException as exc:
        raise ValueError(f"out of range: {value!r}") from exc
    if not INT256_MIN <= fixed <= INT256_MAX:
        raise ValueError(f"out of int256 range: {value!r}")
    return fixed


def from_fixed(value: Union[int, str], decimals: int = DECIMALS) -> Decimal:
    with localcontext(_CTX):
        return Decimal(int(value)).scaleb(-decimals)


def format_decimal(value: Optional[Decimal]) -> Optional[str]:
    """Plain (non-exponent) string without trailing zeros, None passes through."""
    if value is None:
        return None
    with localcontext(_CTX):
        normalized = value.normalize()
    if normalized == 0:
        return "0"
    return format(normalized, "f")
