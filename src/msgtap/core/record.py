"""Persistent message record: schema, construction, and (de)serialization."""

from __future__ import annotations

import base64
import binascii
import copy
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Mapping

from msgtap.core.message import ZERO_TIMESTAMP, BrokerMessage

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

# (attribute, JSON key) in serialized order.  Downstream tools diff the
# output, so this order is part of the file format.
FIELD_ORDER: tuple[tuple[str, str], ...] = (
    ("headers", "Headers"),
    ("content_type", "ContentType"),
    ("content_encoding", "ContentEncoding"),
    ("delivery_mode", "DeliveryMode"),
    ("priority", "Priority"),
    ("correlation_id", "CorrelationID"),
    ("reply_to", "ReplyTo"),
    ("expiration", "Expiration"),
    ("message_id", "MessageID"),
    ("timestamp", "Timestamp"),
    ("type", "Type"),
    ("user_id", "UserID"),
    ("app_id", "AppID"),
    ("delivery_tag", "DeliveryTag"),
    ("redelivered", "Redelivered"),
    ("exchange", "Exchange"),
    ("routing_key", "RoutingKey"),
    ("body", "Body"),
)

JSON_FIELDS: tuple[str, ...] = tuple(key for _, key in FIELD_ORDER)

_STRING_FIELDS = frozenset(
    {
        "content_type",
        "content_encoding",
        "correlation_id",
        "reply_to",
        "expiration",
        "message_id",
        "type",
        "user_id",
        "app_id",
        "exchange",
        "routing_key",
    }
)
_INT_FIELDS = frozenset({"delivery_mode", "priority", "delivery_tag"})


class RecordEncodingError(ValueError):
    """Raised when a record holds a value that cannot be written as JSON."""


class RecordDecodeError(ValueError):
    """Raised when a saved record cannot be read back."""


@dataclass(frozen=True)
class PersistentMessageRecord:
    """Serializable form of one delivery.

    Field declaration order matches ``FIELD_ORDER``.  Header tables are
    read-only mappings and header arrays are tuples, at every depth.
    Records compare by value but are not hashable.
    """

    __hash__ = None  # type: ignore[assignment]

    headers: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    content_type: str = ""
    content_encoding: str = ""
    delivery_mode: int = 0
    priority: int = 0
    correlation_id: str = ""
    reply_to: str = ""
    expiration: str = ""
    message_id: str = ""
    timestamp: datetime = ZERO_TIMESTAMP
    type: str = ""
    user_id: str = ""
    app_id: str = ""
    delivery_tag: int = 0
    redelivered: bool = False
    exchange: str = ""
    routing_key: str = ""
    body: bytes = b""


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------


def _freeze_header_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return MappingProxyType({key: _freeze_header_value(item) for key, item in value.items()})
    if isinstance(value, (list, tuple)):
        return tuple(_freeze_header_value(item) for item in value)
    if isinstance(value, (bytearray, memoryview)):
        return bytes(value)
    return copy.deepcopy(value)


def _thaw_header_value(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {key: _thaw_header_value(item) for key, item in value.items()}
    if isinstance(value, tuple):
        return [_thaw_header_value(item) for item in value]
    return value


def record_from_message(message: BrokerMessage) -> PersistentMessageRecord:
    """Build a record from *message*.

    Headers are copied into read-only mappings and tuples all the way down,
    so later changes to the message's headers do not reach the record.
    """
    return PersistentMessageRecord(
        headers=_freeze_header_value(message.headers),
        content_type=message.content_type,
        content_encoding=message.content_encoding,
        delivery_mode=message.delivery_mode,
        priority=message.priority,
        correlation_id=message.correlation_id,
        reply_to=message.reply_to,
        expiration=message.expiration,
        message_id=message.message_id,
        timestamp=message.timestamp,
        type=message.type,
        user_id=message.user_id,
        app_id=message.app_id,
        delivery_tag=message.delivery_tag,
        redelivered=message.redelivered,
        exchange=message.exchange,
        routing_key=message.routing_key,
        body=bytes(message.body),
    )


def message_from_record(record: PersistentMessageRecord) -> BrokerMessage:
    """Rebuild a ``BrokerMessage`` from a decoded record."""
    return BrokerMessage(
        exchange=record.exchange,
        routing_key=record.routing_key,
        delivery_tag=record.delivery_tag,
        redelivered=record.redelivered,
        content_type=record.content_type,
        content_encoding=record.content_encoding,
        delivery_mode=record.delivery_mode,
        priority=record.priority,
        message_id=record.message_id,
        correlation_id=record.correlation_id,
        app_id=record.app_id,
        user_id=record.user_id,
        type=record.type,
        reply_to=record.reply_to,
        expiration=record.expiration,
        headers=_thaw_header_value(record.headers),
        timestamp=record.timestamp,
        body=record.body,
    )


# ---------------------------------------------------------------------------
# Timestamps
# ---------------------------------------------------------------------------


def format_rfc3339(dt: datetime) -> str:
    """Format *dt* as RFC 3339 in UTC with a ``Z`` suffix.

    Whole seconds are written without a fraction; otherwise the fraction is
    kept with trailing zeros trimmed.  Naive datetimes are taken as UTC.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    text = (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
        f"T{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}"
    )
    if dt.microsecond:
        text += f".{dt.microsecond:06d}".rstrip("0")
    return text + "Z"


def parse_rfc3339(text: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware UTC ``datetime``.

    Fractions longer than microseconds are truncated.
    """
    if not isinstance(text, str) or "T" not in text.upper():
        raise RecordDecodeError(f"Invalid timestamp: {text!r}")
    value = text.strip()
    if len(value) > 10 and value[10] == "t":
        value = value[:10] + "T" + value[11:]
    if value[-1:] in ("Z", "z"):
        value = value[:-1] + "+00:00"
    date_part, _, time_part = value.partition("T")
    if "." in time_part:
        seconds, _, rest = time_part.partition(".")
        digits = ""
        while rest and rest[0].isdigit():
            digits, rest = digits + rest[0], rest[1:]
        time_part = f"{seconds}.{(digits + '000000')[:6]}{rest}"
    try:
        dt = datetime.fromisoformat(f"{date_part}T{time_part}")
    except ValueError as e:
        raise RecordDecodeError(f"Invalid timestamp: {text!r}") from e
    if dt.tzinfo is None:
        raise RecordDecodeError(f"Timestamp has no UTC offset: {text!r}")
    return dt.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Header values
# ---------------------------------------------------------------------------


def _encode_decimal(value: Decimal) -> dict:
    if not value.is_finite():
        raise RecordEncodingError(f"Unsupported decimal header value: {value}")
    exponent = value.as_tuple().exponent
    scale = -exponent if exponent < 0 else 0
    return {"Scale": scale, "Value": int(value.scaleb(scale))}


def encode_header_value(value: Any) -> Any:
    """Convert one header value into its JSON representation.

    Header tables mix value types, so each type is encoded by its own rule:
    bytes become base64 text, datetimes RFC 3339 text, decimals a
    ``{"Scale", "Value"}`` object, and tables/arrays are encoded recursively.
    """
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        if value != value or value in (float("inf"), float("-inf")):
            raise RecordEncodingError(f"Non-finite float header value: {value}")
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        return base64.b64encode(bytes(value)).decode("ascii")
    if isinstance(value, datetime):
        return format_rfc3339(value)
    if isinstance(value, Decimal):
        return _encode_decimal(value)
    if isinstance(value, Mapping):
        encoded = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise RecordEncodingError(f"Header table key must be a string, got {key!r}")
            encoded[key] = encode_header_value(item)
        return encoded
    if isinstance(value, (list, tuple)):
        return [encode_header_value(item) for item in value]
    raise RecordEncodingError(f"Unsupported header value type: {type(value).__name__}")


# ---------------------------------------------------------------------------
# Serialization
# ---------------------------------------------------------------------------


def record_to_dict(record: PersistentMessageRecord, *, include_body: bool = True) -> dict:
    """Return the JSON-ready dict for *record*, keys in ``FIELD_ORDER``.

    ``Body`` is always present: base64 of the payload, or ``""`` when
    *include_body* is false.
    """
    result: dict = {}
    for attr, key in FIELD_ORDER:
        value = getattr(record, attr)
        if attr == "headers":
            value = encode_header_value(value)
        elif attr == "timestamp":
            value = format_rfc3339(value)
        elif attr == "body":
            value = base64.b64encode(value).decode("ascii") if include_body else ""
        result[key] = value
    return result


def serialize_record(record: PersistentMessageRecord, *, include_body: bool = True) -> str:
    """Serialize *record* as 2-space indented JSON with trailing newline."""
    data = record_to_dict(record, include_body=include_body)
    try:
        return json.dumps(data, indent=2, ensure_ascii=False, allow_nan=False) + "\n"
    except (TypeError, ValueError) as e:
        raise RecordEncodingError(str(e)) from e


# ---------------------------------------------------------------------------
# Deserialization
# ---------------------------------------------------------------------------


def _decode_body(value: Any) -> bytes:
    if not isinstance(value, str):
        raise RecordDecodeError(f"Body must be a string, got {type(value).__name__}")
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise RecordDecodeError(f"Body is not valid base64: {e}") from e


def record_from_dict(data: Mapping[str, Any]) -> PersistentMessageRecord:
    """Build a record from a decoded JSON object.

    Reads the metadata of both unified documents and split sidecars.  Missing
    keys take their zero value; unknown keys are ignored.
    """
    if not isinstance(data, Mapping):
        raise RecordDecodeError("Record must be a JSON object")

    values: dict[str, Any] = {}
    for attr, key in FIELD_ORDER:
        if key not in data or data[key] is None:
            continue
        value = data[key]
        if attr == "headers":
            if not isinstance(value, Mapping):
                raise RecordDecodeError("Headers must be a JSON object")
            value = _freeze_header_value(value)
        elif attr == "timestamp":
            value = parse_rfc3339(value)
        elif attr == "body":
            value = _decode_body(value)
        elif attr == "redelivered":
            if not isinstance(value, bool):
                raise RecordDecodeError(f"{key} must be a boolean")
        elif attr in _INT_FIELDS:
            if isinstance(value, bool) or not isinstance(value, int):
                raise RecordDecodeError(f"{key} must be an integer")
        elif attr in _STRING_FIELDS:
            if not isinstance(value, str):
                raise RecordDecodeError(f"{key} must be a string")
        values[attr] = value
    return PersistentMessageRecord(**values)


def deserialize_record(text: str | bytes) -> PersistentMessageRecord:
    """Parse a serialized record."""
    try:
        data = json.loads(text)
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise RecordDecodeError(f"Invalid JSON: {e}") from e
    return record_from_dict(data)
