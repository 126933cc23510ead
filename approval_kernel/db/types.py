"""
Module: approval_kernel.db.types
Responsibility: Money parsing and rounding helpers shared by models and
    services.
Architecture position: Kernel > DB.  MUST NOT import from models/, domain/,
    services/ or selectors/.

Invariants enforced:
    - Request amounts are fixed-point with MONEY_DECIMAL_PLACES (2) decimals.
      round_money() is the ONLY sanctioned rounding function for amounts.
    - No floats anywhere in amount handling.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_DECIMAL_PLACES = 2
# Numeric(15, 2) leaves 13 integer digits
MAX_MONEY = Decimal("1e13")
DEFAULT_ROUNDING = ROUND_HALF_UP


def to_decimal(value: Decimal | int | str) -> Decimal:
    """
    Coerce an int, str or Decimal amount to Decimal.

    Floats are refused: binary floating point cannot represent most
    cent values exactly.

    Raises:
        TypeError: If value is a float.
        ValueError: If value is not a valid number.
    """
    if isinstance(value, float):
        raise TypeError("Monetary amounts must not be floats")
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise ValueError(f"Not a valid amount: {value!r}") from exc


def round_money(
    value: Decimal,
    decimal_places: int = MONEY_DECIMAL_PLACES,
    rounding: str = DEFAULT_ROUNDING,
) -> Decimal:
    """
    Round a monetary value to specified decimal places.

    Args:
        value: The Decimal value to round.
        decimal_places: Number of decimal places to round to.
        rounding: Rounding mode (default: ROUND_HALF_UP).

    Returns:
        Rounded Decimal value.
    """
    quantize_str = "0." + "0" * decimal_places
    return value.quantize(Decimal(quantize_str), rounding=rounding)


def is_storable_money(value: Decimal) -> bool:
    """True for a finite amount with 0 < value < MAX_MONEY."""
    return value.is_finite() and Decimal(0) < value < MAX_MONEY
