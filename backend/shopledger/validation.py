from __future__ import annotations

from typing import Any, Iterable

from .errors import ValidationError


# Maximum amount: 9,999,999.99 (999,999,999 cents)
# This prevents database overflow issues and nonsensical prices
MAX_AMOUNT_CENTS = 999_999_999


def require_int(value: Any, field: str, *, minimum: int | None = None, maximum: int | None = None) -> int:
    """
    Coerce value to int with strict rules.

    Rejects floats, booleans, decimals and scientific notation so that
    "12.5" or 1e3 never silently turn into a quantity.
    """
    if value is None:
        raise ValidationError(f"{field} is required", field=field)

    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", field=field)

    if isinstance(value, int):
        result = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer", field=field)
        # Reject scientific notation (e.g., "1e15", "1E10")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)", field=field)
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)", field=field)
        try:
            result = int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer", field=field)
    elif isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal", field=field)
    else:
        raise ValidationError(f"{field} must be an integer", field=field)

    if minimum is not None and result < minimum:
        raise ValidationError(f"{field} must be at least {minimum}", field=field)
    if maximum is not None and result > maximum:
        raise ValidationError(f"{field} must be at most {maximum}", field=field)
    return result


def optional_int(value: Any, field: str, **bounds) -> int | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return require_int(value, field, **bounds)


def require_amount(value: Any, field: str, *, allow_zero: bool = True) -> int:
    return require_int(value, field, minimum=0 if allow_zero else 1, maximum=MAX_AMOUNT_CENTS)


def require_str(value: Any, field: str, *, max_length: int = 255) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} is required", field=field)
    stripped = value.strip()
    if len(stripped) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters", field=field)
    return stripped


def optional_str(value: Any, field: str, *, max_length: int = 255) -> str | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return require_str(value, field, max_length=max_length)


def require_choice(value: Any, field: str, choices: Iterable[str]) -> str:
    choices = tuple(choices)
    if value not in choices:
        raise ValidationError(f"{field} must be one of {list(choices)}", field=field)
    return value
