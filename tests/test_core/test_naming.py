"""Tests for msgtap.core.naming."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from msgtap.core.naming import create_timestamp_filename

_UTC = timezone.utc


class TestCreateTimestampFilename:
    def test_nanosecond_example(self) -> None:
        tm = datetime(2009, 11, 10, 23, 1, 2, tzinfo=_UTC)
        assert create_timestamp_filename(tm, nanosecond=3) == "2009-11-10T23_01_02.000000003Z"

    def test_epoch_nanoseconds(self) -> None:
        tm = datetime(2009, 11, 10, 23, 1, 2, tzinfo=_UTC)
        ns = int(tm.timestamp()) * 1_000_000_000 + 3
        assert create_timestamp_filename(ns) == "2009-11-10T23_01_02.000000003Z"

    def test_microseconds_from_datetime(self) -> None:
        tm = datetime(2020, 1, 2, 3, 4, 5, 123456, tzinfo=_UTC)
        assert create_timestamp_filename(tm) == "2020-01-02T03_04_05.123456000Z"

    def test_aware_datetime_normalized_to_utc(self) -> None:
        cet = timezone(timedelta(hours=1))
        tm = datetime(2009, 11, 11, 0, 1, 2, tzinfo=cet)
        assert create_timestamp_filename(tm) == "2009-11-10T23_01_02.000000000Z"

    def test_naive_datetime_taken_as_utc(self) -> None:
        tm = datetime(2009, 11, 10, 23, 1, 2)
        assert create_timestamp_filename(tm) == "2009-11-10T23_01_02.000000000Z"

    def test_no_colons(self) -> None:
        name = create_timestamp_filename(datetime(2021, 6, 7, 8, 9, 10, tzinfo=_UTC))
        assert ":" not in name

    def test_fixed_width_for_early_years(self) -> None:
        name = create_timestamp_filename(datetime(1, 1, 1, tzinfo=_UTC))
        assert name == "0001-01-01T00_00_00.000000000Z"

    def test_sub_second_ordering(self) -> None:
        base = datetime(2009, 11, 10, 23, 1, 2, tzinfo=_UTC)
        earlier = create_timestamp_filename(base, nanosecond=999)
        later = create_timestamp_filename(base, nanosecond=1000)
        assert earlier < later

    def test_nanosecond_out_of_range(self) -> None:
        tm = datetime(2009, 11, 10, tzinfo=_UTC)
        with pytest.raises(ValueError, match="out of range"):
            create_timestamp_filename(tm, nanosecond=1_000_000_000)

    def test_nanosecond_rejected_with_epoch_int(self) -> None:
        with pytest.raises(ValueError):
            create_timestamp_filename(0, nanosecond=1)

    def test_deterministic(self) -> None:
        ns = 1_600_000_000_123_456_789
        assert create_timestamp_filename(ns) == create_timestamp_filename(ns)
        assert create_timestamp_filename(ns) == "2020-09-13T12_26_40.123456789Z"
