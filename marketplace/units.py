"""Conversion between whole currency amounts and integer base units."""

from decimal import Decimal, InvalidOperation, localcontext
from typing import Union

DEFAULT_DECIMALS = 18

# Wide enough that scaling never rounds
_PRECISION = 120

def to_base_units(amount: Union[int, str, Decimal], decimals: int = DEFAULT_DECIMALS) -> int:
    """Convert a whole-unit amount, e.g. Decimal('2.5'), to base units.

    Floats are rejected; pass a string or Decimal instead.

    Raises:
        ValueError: If the amount is not a number or has more fractional
            digits than decimals allows
    """
    if isinstance(amount, float):
        raise ValueError("Use str or Decimal for amounts, not float")
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {amount!r}")
    if not value.is_finite():
        raise ValueError(f"Invalid amount: {amount!r}")

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = value.scaleb(decimals)
        if scaled != scaled.to_integral_value():
            raise ValueError(f"{amount} has more than {decimals} decimal places")
        return int(scaled)

def from_base_units(value: int, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """Convert base units back to a whole-unit Decimal."""
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return Decimal(value).scaleb(-decimals)
