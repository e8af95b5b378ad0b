"""Reusable SQLAlchemy validators for the proposals admin models."""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any

JsonType = dict[str, "JsonType"] | list["JsonType"] | str | int | float | bool | None


def to_jsonable(value: Any) -> JsonType:
    """Convert complex types to JSON-serializable format.

    Handles enums, datetime, date, Decimal, dict, and list types.

    Args:
        value: The value to convert

    Returns:
        JSON-serializable value
    """
    if value is None:
        return None

    if isinstance(value, Enum):
        return to_jsonable(value.value)

    if isinstance(value, (str, int, float, bool)):
        return value

    if isinstance(value, (datetime, date)):
        return value.isoformat()

    if isinstance(value, Decimal):
        return str(value)

    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}

    if isinstance(value, (list, tuple, set)):
        return [to_jsonable(v) for v in value]

    return str(value)


def validate_json_payload(_key: str, value: Any) -> Any:
    """Convert complex types to JSON-serializable format.

    Used with SQLAlchemy's @validates decorator on JSON columns so that
    datetimes and enums in changesets are stored as strings.

    Args:
        _key: The field name being validated (unused, required by SQLAlchemy)
        value: The value to validate

    Returns:
        JSON-serializable value
    """
    return to_jsonable(value)


def validate_coordinate(key: str, value: float | None) -> float | None:
    """Reject latitudes/longitudes outside of the WGS84 range."""
    if value is None:
        return None

    limit = 90.0 if key == "latitude" else 180.0
    value = float(value)
    if not -limit <= value <= limit:
        raise ValueError(f"{key} must be between -{limit:g} and {limit:g}, got {value}")
    return value
