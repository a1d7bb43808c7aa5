"""Value flattening for header and query transports.

Turns an argument value of any shape into a mapping of field name to an
ordered list of values. A mapping-valued argument expands into one field per
key, which is why a single header or query argument can produce several
independent header names or query keys.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sized
from datetime import date, datetime, time, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel


def to_epoch_millis(value: date) -> int:
    """Milliseconds since the Unix epoch. Naive datetimes and plain dates are taken as UTC."""
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    delta = value - datetime(1970, 1, 1, tzinfo=timezone.utc)
    return (delta.days * 86_400 + delta.seconds) * 1000 + delta.microseconds // 1000


def stringify(value: Any) -> str:
    """Render a scalar the way it appears on the wire.

    Booleans are lowercase, integral floats drop the fractional part
    (``1.0`` -> ``"1"``), None renders as ``"null"``.
    """
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return stringify(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, date):
        return str(to_epoch_millis(value))
    return str(value)


def _is_array_like(value: Any) -> bool:
    return (
        isinstance(value, Sized)
        and isinstance(value, Iterable)
        and not isinstance(value, (str, bytes, bytearray, Mapping))
    )


def flatten_value(name: str, value: Any) -> dict[str, list[Any]]:
    """Flatten an argument value into ``{field: [values...]}``.

    Rules, most specific first:
        number / bool / enum -> {name: [stringified]}
        date / datetime -> {name: [epoch millis]}
        str             -> {name: [value]}
        list / tuple    -> {name: elements as-is}
        other sized iterable (set, range, deque, ...) -> converted to a list
        mapping / pydantic model -> one key per property; list values pass
                                    through, scalars are stringified
        anything else   -> {name: [stringified]}

    Args:
        name: Field name used for every non-mapping shape. Ignored for mappings.
        value: The argument value.

    Returns:
        Field name to ordered list of values.
    """
    if isinstance(value, (bool, int, float, Enum)):
        return {name: [stringify(value)]}

    if isinstance(value, date):
        return {name: [str(to_epoch_millis(value))]}

    if isinstance(value, str):
        return {name: [value]}

    if isinstance(value, (list, tuple)):
        return {name: list(value)}

    if _is_array_like(value):
        return flatten_value(name, list(value))

    if isinstance(value, BaseModel):
        value = value.model_dump(exclude_none=True)

    if isinstance(value, Mapping):
        output: dict[str, list[Any]] = {}
        for key, inner_value in value.items():
            if isinstance(inner_value, (list, tuple)):
                output[str(key)] = list(inner_value)
                continue
            output[str(key)] = [stringify(inner_value)]
        return output

    return {name: [stringify(value)]}
