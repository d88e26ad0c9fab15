"""Encode/decode record metadata to/from the JSON sidecar format.

Values are tagged with their type so datetimes and bytes survive the trip
through JSON unchanged.
"""

import base64
import json
from datetime import datetime
from typing import Any


def _encode_value(v: Any) -> dict:
    if v is None:
        return {"nullValue": None}
    if isinstance(v, bool):
        return {"booleanValue": v}
    if isinstance(v, int):
        return {"integerValue": str(v)}
    if isinstance(v, float):
        return {"doubleValue": v}
    if isinstance(v, datetime):
        return {"timestampValue": v.isoformat()}
    if isinstance(v, str):
        return {"stringValue": v}
    if isinstance(v, bytes | bytearray):
        return {"bytesValue": base64.standard_b64encode(bytes(v)).decode("ascii")}
    if isinstance(v, list | tuple):
        return {"arrayValue": {"values": [_encode_value(x) for x in v]}}
    if isinstance(v, dict):
        return {"mapValue": {"fields": {str(k): _encode_value(x) for k, x in v.items()}}}
    raise TypeError(f"Unsupported metadata value type: {type(v).__name__}")


def _decode_value(obj: Any) -> Any:
    if not isinstance(obj, dict):
        raise ValueError(f"Metadata value must be an object, got {type(obj).__name__}")
    if "nullValue" in obj:
        return None
    if "booleanValue" in obj:
        return obj["booleanValue"]
    if "integerValue" in obj:
        return int(obj["integerValue"])
    if "doubleValue" in obj:
        return obj["doubleValue"]
    if "timestampValue" in obj:
        return datetime.fromisoformat(obj["timestampValue"])
    if "stringValue" in obj:
        return obj["stringValue"]
    if "bytesValue" in obj:
        return base64.standard_b64decode(obj["bytesValue"])
    if "arrayValue" in obj:
        vals = obj.get("arrayValue", {}).get("values") or []
        return [_decode_value(x) for x in vals]
    if "mapValue" in obj:
        fields = obj["mapValue"].get("fields") or {}
        return {k: _decode_value(x) for k, x in fields.items()}
    raise ValueError(f"Unknown metadata value encoding: {sorted(obj)}")


def check_encodable(value: Any) -> None:
    """Raise TypeError when value has no sidecar encoding (e.g. a set or Decimal)."""
    _encode_value(value)


def encode_metadata(document: dict[str, Any]) -> str:
    """Serialize a metadata document to the sidecar JSON text.

    Raises:
        TypeError: A value has no encoding (e.g. an arbitrary object).
    """
    encoded = {"fields": {k: _encode_value(v) for k, v in document.items()}}
    return json.dumps(encoded, indent=2)


def decode_metadata(text: str | bytes) -> dict[str, Any]:
    """Parse sidecar JSON text back into a metadata document.

    Raises:
        ValueError: Text is not a valid sidecar document.
    """
    raw = json.loads(text)
    if not isinstance(raw, dict) or not isinstance(raw.get("fields"), dict):
        raise ValueError("Metadata document must be an object with 'fields'")
    try:
        return {k: _decode_value(v) for k, v in raw["fields"].items()}
    except (TypeError, AttributeError) as e:
        raise ValueError(f"Malformed metadata value: {e}") from e
