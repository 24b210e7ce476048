from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from buildseason.core.errors import ValidationError

_CENT = Decimal("0.01")

# One billion dollars; keeps quantity * price inside a signed 64-bit column.
MAX_UNIT_PRICE_CENTS = 10**11


def dollars_to_cents(value: str | int | float | Decimal, field: str = "unitPrice") -> int:
    """Parse a dollar amount and round it to the nearest whole cent."""
    if isinstance(value, bool):
        raise ValidationError.for_field(field, f"{field} must be a number")
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        # repr() keeps the shortest round-tripping form, so 19.99 stays 19.99
        amount = Decimal(repr(value))
    else:
        text = str(value).strip().replace(",", "")
        if text.startswith("$"):
            text = text[1:].strip()
        try:
            amount = Decimal(text)
        except InvalidOperation as exc:
            raise ValidationError.for_field(field, f"{field} must be a number") from exc

    if not amount.is_finite():
        raise ValidationError.for_field(field, f"{field} must be a number")
    if abs(amount) * 100 > MAX_UNIT_PRICE_CENTS:
        raise ValidationError.for_field(field, f"{field} is too large")
    return int(amount.quantize(_CENT, rounding=ROUND_HALF_UP) * 100)


def format_cents(cents: int) -> str:
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(int(cents)), 100)
    return f"{sign}{whole}.{frac:02d}"
