"""JSON encoding of span payloads.

Payloads handed to a span are arbitrary Python values. They are converted to
JSON-ready values with orjson before they are placed on a Run so that a value
the sink could not serialize is caught here, inside the tracing layer.
"""

from collections.abc import Mapping
from typing import Any

import orjson
from pydantic import BaseModel

from span_linker.tracing.types import PayloadEncodingError


def _default(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=repr)
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"
    raise TypeError(f"Type is not JSON serializable: {type(value).__name__}")


def encode_payload(value: Any) -> bytes:
    """Serialize a payload to JSON bytes.

    Args:
        value: Any value; pydantic models, dataclasses, sets, datetimes and
            enums are supported.

    Returns:
        UTF-8 JSON bytes.

    Raises:
        PayloadEncodingError: If the value cannot be serialized.
    """
    try:
        return orjson.dumps(value, default=_default, option=orjson.OPT_NON_STR_KEYS)
    except (orjson.JSONEncodeError, TypeError) as e:
        raise PayloadEncodingError(str(e)) from e


def to_jsonable(value: Any) -> Any:
    """Convert a payload to plain JSON types (dict, list, str, numbers, None).

    Raises:
        PayloadEncodingError: If the value cannot be serialized.
    """
    return orjson.loads(encode_payload(value))
