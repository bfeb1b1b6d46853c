"""
Module: procurement_kernel.db.types
Responsibility: Decimal coercion and the rounding applied to stored amounts.
Architecture position: Kernel > DB.  Imported by domain/, services/,
    selectors/ and engines; imports nothing from the project.

Amounts and quantities are Decimal end to end.  Cost allocation keeps full
precision internally; ``round_money`` runs once, when RRP lines are written.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

MONEY_DECIMAL_PLACES = 2

ZERO = Decimal("0")


def round_money(value: Decimal, decimal_places: int = MONEY_DECIMAL_PLACES) -> Decimal:
    """Round half-up to ``decimal_places`` (0 rounds to whole units)."""
    return value.quantize(Decimal(1).scaleb(-decimal_places), rounding=ROUND_HALF_UP)


def to_decimal(value: object, field: str = "value") -> Decimal:
    """
    Coerce user input (str, int, float, Decimal) into a finite Decimal.

    Floats go through ``str`` so 0.1 stays 0.1.  Booleans are rejected even
    though Python treats them as ints.

    Raises:
        ValueError: If the value is not a finite number.
    """
    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, bool):
        raise ValueError(f"{field} must be numeric, got {value!r}")
    else:
        try:
            result = Decimal(str(value) if isinstance(value, float) else value)  # type: ignore[arg-type]
        except (InvalidOperation, TypeError) as exc:
            raise ValueError(f"{field} must be numeric, got {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"{field} must be finite, got {value!r}")
    return result
