"""Received broker message shape consumed by the persistence encoder."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping

# Timestamp of a delivery whose publisher did not set one.
ZERO_TIMESTAMP = datetime(1, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class BrokerMessage:
    """A single delivery with its envelope attributes and payload.

    Identity attributes are free-form strings; an absent value is ``""``.
    """

    # routing
    exchange: str = ""
    routing_key: str = ""
    delivery_tag: int = 0
    redelivered: bool = False

    # content
    content_type: str = ""
    content_encoding: str = ""
    delivery_mode: int = 0
    priority: int = 0

    # identity
    message_id: str = ""
    correlation_id: str = ""
    app_id: str = ""
    user_id: str = ""
    type: str = ""
    reply_to: str = ""
    expiration: str = ""

    headers: Mapping[str, Any] = field(default_factory=dict)
    timestamp: datetime = ZERO_TIMESTAMP
    body: bytes = b""


def _str_or_empty(value: object) -> str:
    return "" if value is None else str(value)


def _int_or_zero(value: object) -> int:
    # pika may hand out its DeliveryMode enum instead of a plain int
    value = getattr(value, "value", value)
    return int(value) if value is not None else 0


def _timestamp_from_epoch(value: int | float | datetime | None) -> datetime:
    if value is None:
        return ZERO_TIMESTAMP
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    return datetime.fromtimestamp(value, tz=timezone.utc)


def message_from_pika(method: Any, properties: Any, body: bytes) -> BrokerMessage:
    """Adapt a pika ``(Basic.Deliver, BasicProperties, body)`` triple.

    Only attribute access is used, so any objects with the same attribute
    names work.  Unset properties (``None``) map to zero values, and the AMQP
    epoch-seconds timestamp becomes an aware UTC ``datetime``.
    """
    return BrokerMessage(
        exchange=_str_or_empty(getattr(method, "exchange", None)),
        routing_key=_str_or_empty(getattr(method, "routing_key", None)),
        delivery_tag=getattr(method, "delivery_tag", None) or 0,
        redelivered=bool(getattr(method, "redelivered", False)),
        content_type=_str_or_empty(properties.content_type),
        content_encoding=_str_or_empty(properties.content_encoding),
        delivery_mode=_int_or_zero(properties.delivery_mode),
        priority=properties.priority or 0,
        message_id=_str_or_empty(properties.message_id),
        correlation_id=_str_or_empty(properties.correlation_id),
        app_id=_str_or_empty(properties.app_id),
        user_id=_str_or_empty(properties.user_id),
        type=_str_or_empty(properties.type),
        reply_to=_str_or_empty(properties.reply_to),
        expiration=_str_or_empty(properties.expiration),
        headers=dict(properties.headers or {}),
        timestamp=_timestamp_from_epoch(properties.timestamp),
        body=bytes(body),
    )
