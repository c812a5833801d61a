from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Tuple

from app.core.errors import ValidationError


def require_text(value: Optional[str], field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} is required.")
    return text


def parse_quantity(raw: Any, field: str = "Quantity", allow_zero: bool = False) -> int:
    """Accepts ints or numeric strings ("5", " 5 "). Rejects bools, floats with a fraction, and non-positive values."""
    if raw is None or isinstance(raw, bool):
        raise ValidationError(f"{field} is required.")
    try:
        if isinstance(raw, str):
            value = int(raw.strip())
        elif isinstance(raw, float):
            if not raw.is_integer():
                raise ValueError(raw)
            value = int(raw)
        else:
            value = int(raw)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a whole number.")
    if value < 0 or (value == 0 and not allow_zero):
        raise ValidationError(f"{field} must be greater than zero." if not allow_zero else f"{field} cannot be negative.")
    return value


def parse_iso_date(raw: Any, field: str) -> date:
    if isinstance(raw, date):
        return raw
    text = (raw or "").strip() if isinstance(raw, str) else raw
    if not text:
        raise ValidationError(f"{field} is required.")
    try:
        return date.fromisoformat(str(text))
    except ValueError:
        raise ValidationError(f"{field} must be a valid date (YYYY-MM-DD).")


def parse_date_range(raw_start: Any, raw_end: Any) -> Tuple[date, date]:
    start_date = parse_iso_date(raw_start, "Start date")
    end_date = parse_iso_date(raw_end, "End date")
    if end_date < start_date:
        raise ValidationError("End date must be on or after start date.")
    return start_date, end_date


def parse_price(raw: Any) -> Decimal:
    try:
        price = Decimal(str(raw).strip())
    except (InvalidOperation, ValueError):
        raise ValidationError("Price must be a number.")
    if price.is_nan() or price < 0:
        raise ValidationError("Price cannot be negative.")
    return price
