from decimal import Decimal, InvalidOperation
from typing import Any


def get_field(obj: Any, name: str, default: Any = None) -> Any:
    """Read `name` from an ORM object, a pydantic model or a plain dict."""
    if obj is None:
        return default
    if isinstance(obj, dict):
        value = obj.get(name, default)
    else:
        value = getattr(obj, name, default)
    return default if value is None else value


def to_decimal(value: Any) -> Decimal:
    """Coerce JSON/ORM numbers to Decimal; anything unparsable counts as zero."""
    if value is None or isinstance(value, bool):
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    try:
        # str() first so 0.1 stays 0.1 instead of its binary expansion
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        return Decimal("0")


def to_int(value: Any, default: int = 0) -> int:
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
