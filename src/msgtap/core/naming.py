"""Filesystem-safe, time-sortable names for saved messages."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

_NS_PER_SECOND = 1_000_000_000
_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _split_epoch_ns(value: int) -> tuple[datetime, int]:
    seconds, nanos = divmod(value, _NS_PER_SECOND)
    return _EPOCH + timedelta(seconds=seconds), nanos


def create_timestamp_filename(when: datetime | int, *, nanosecond: int | None = None) -> str:
    """Render a point in time as ``YYYY-MM-DDTHH_MM_SS.nnnnnnnnnZ``.

    *when* is either a ``datetime`` or an integer count of nanoseconds since
    the Unix epoch (``time.time_ns()``).  Naive datetimes are taken as UTC,
    aware ones are normalized to UTC.  Because ``datetime`` stops at
    microseconds, *nanosecond* may be passed to supply the full sub-second
    part explicitly.

    The fraction is always nine digits wide, so plain string comparison of
    two names orders them by time.  Colons are replaced with underscores.
    """
    if isinstance(when, int):
        if nanosecond is not None:
            raise ValueError("nanosecond cannot be combined with an epoch-nanosecond value")
        dt, nanos = _split_epoch_ns(when)
    else:
        dt = when.astimezone(timezone.utc) if when.tzinfo is not None else when
        if nanosecond is None:
            nanos = dt.microsecond * 1000
        elif 0 <= nanosecond < _NS_PER_SECOND:
            nanos = nanosecond
        else:
            raise ValueError(f"nanosecond out of range: {nanosecond}")

    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
        f"T{dt.hour:02d}_{dt.minute:02d}_{dt.second:02d}"
        f".{nanos:09d}Z"
    )
