"""Tests for atomic file writes."""

from __future__ import annotations

import os
import stat
from pathlib import Path
from unittest.mock import patch

import pytest

from msgtap.storage.fs import TEMP_PREFIX, _fsync_directory, atomic_write


class TestAtomicWrite:
    """atomic_write() writes content safely via temp + fsync + rename."""

    def test_writes_text_as_utf8(self, tmp_path: Path) -> None:
        target = tmp_path / "meta.json"
        atomic_write(target, '{"RoutingKey": "grüße"}\n')

        assert target.read_bytes() == '{"RoutingKey": "grüße"}\n'.encode("utf-8")

    def test_writes_bytes_unchanged(self, tmp_path: Path) -> None:
        target = tmp_path / "body.dat"
        data = b"\x00\xff\r\n\x80"
        atomic_write(target, data)

        assert target.read_bytes() == data

    def test_accepts_str_path(self, tmp_path: Path) -> None:
        target = tmp_path / "body.dat"
        atomic_write(str(target), b"x")
        assert target.read_bytes() == b"x"

    def test_no_temp_file_left_after_success(self, tmp_path: Path) -> None:
        target = tmp_path / "body.dat"
        atomic_write(target, b"content")

        assert list(tmp_path.iterdir()) == [target]

    def test_truncates_existing_file(self, tmp_path: Path) -> None:
        target = tmp_path / "body.dat"
        target.write_bytes(b"old and much longer content")

        atomic_write(target, b"new")
        assert target.read_bytes() == b"new"

    def test_parent_directory_must_exist(self, tmp_path: Path) -> None:
        target = tmp_path / "nonexistent" / "body.dat"

        with pytest.raises(FileNotFoundError, match="Parent directory does not exist"):
            atomic_write(target, b"content")
        assert not (tmp_path / "nonexistent").exists()

    def test_handles_short_writes(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """os.write() can return fewer bytes than requested; atomic_write must loop."""
        target = tmp_path / "body.dat"
        payload = b"ABCDEFGHIJ"

        real_write = os.write
        call_count = 0

        def short_write(fd: int, data: bytes | memoryview) -> int:
            nonlocal call_count
            call_count += 1
            if call_count == 1:
                n = max(1, len(data) // 2)
                return real_write(fd, bytes(data[:n]))
            return real_write(fd, bytes(data))

        monkeypatch.setattr(os, "write", short_write)
        atomic_write(target, payload)

        assert target.read_bytes() == payload
        assert call_count >= 2

    def test_temp_file_removed_on_failure(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        target = tmp_path / "body.dat"
        target.write_bytes(b"previous")

        def failing_replace(src, dst) -> None:
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", failing_replace)
        with pytest.raises(OSError, match="disk full"):
            atomic_write(target, b"new")

        assert target.read_bytes() == b"previous"
        assert not [p for p in tmp_path.iterdir() if p.name.startswith(TEMP_PREFIX)]


@pytest.fixture()
def umask_022():
    previous = os.umask(0o022)
    try:
        yield
    finally:
        os.umask(previous)


class TestFileMode:
    """Saved files are readable by others, like a plain open-for-write."""

    def test_new_file_follows_umask(self, tmp_path: Path, umask_022) -> None:
        target = tmp_path / "body.dat"
        atomic_write(target, b"content")

        assert stat.S_IMODE(target.stat().st_mode) == 0o644

    def test_replaced_file_keeps_mode(self, tmp_path: Path, umask_022) -> None:
        target = tmp_path / "meta.json"
        target.write_text("old\n")
        target.chmod(0o640)

        atomic_write(target, "new\n")

        assert target.read_text() == "new\n"
        assert stat.S_IMODE(target.stat().st_mode) == 0o640


class TestFsyncDirectory:
    """_fsync_directory() syncs directory metadata after the rename."""

    def test_called_during_atomic_write(self, tmp_path: Path) -> None:
        target = tmp_path / "body.dat"
        with patch("msgtap.storage.fs._fsync_directory") as mock_fsync:
            atomic_write(target, b"content")
        mock_fsync.assert_called_once_with(tmp_path)

    def test_does_not_raise_on_oserror(self, tmp_path: Path) -> None:
        with patch("msgtap.storage.fs.os.open", side_effect=OSError("not supported")):
            _fsync_directory(tmp_path)
