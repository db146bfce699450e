from __future__ import annotations

from app.laporfik.errors import LaporError, ValidationError


def text_field(
    value: object,
    name: str,
    *,
    required: bool = False,
    error: type[LaporError] = ValidationError,
) -> str:
    """Normalize a client-supplied text field. Missing becomes ""; anything that isn't a string is rejected."""
    if value is None:
        value = ""
    if not isinstance(value, str):
        raise error(f"{name} must be a string")
    value = value.strip()
    if required and not value:
        raise error(f"{name} is required")
    return value


def optional_text(value: object, name: str) -> str | None:
    return text_field(value, name) or None
