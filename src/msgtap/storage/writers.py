"""Write and read saved messages.

Two on-disk layouts are supported:

* **split**: ``<base>.dat`` holds the payload bytes unchanged and
  ``<base>.json`` holds the record (body included, base64-encoded).
* **unified**: a single JSON document holding the record, written to a path
  or to an open text stream such as stdout.

The two files of a split save are written one after the other.  If writing
``.json`` fails, the ``.dat`` file stays on disk; a ``.dat`` without a
matching ``.json`` is an incomplete save.

Nothing here logs or retries: every ``OSError`` reaches the caller as raised.
"""

from __future__ import annotations

import io
import os
from dataclasses import replace
from pathlib import Path
from typing import BinaryIO, TextIO

from msgtap.core.message import BrokerMessage
from msgtap.core.record import (
    PersistentMessageRecord,
    deserialize_record,
    record_from_message,
    serialize_record,
)
from msgtap.storage.fs import atomic_write

BODY_SUFFIX = ".dat"
META_SUFFIX = ".json"


def split_paths(base_path: str | os.PathLike[str]) -> tuple[Path, Path]:
    """Return the ``(.dat, .json)`` pair for *base_path*.

    Suffixes are appended to the full base name, which may already contain
    dots (timestamp names do).
    """
    base = os.fspath(base_path)
    return Path(base + BODY_SUFFIX), Path(base + META_SUFFIX)


# ---------------------------------------------------------------------------
# Stream writers
# ---------------------------------------------------------------------------


def write_body(stream: BinaryIO, message: BrokerMessage) -> None:
    """Write exactly the payload bytes of *message* to *stream*."""
    stream.write(message.body)


def write_message_json(
    stream: TextIO | BinaryIO, message: BrokerMessage, *, include_body: bool
) -> None:
    """Write *message* as a JSON record to *stream*.

    Binary streams (``sys.stdout.buffer``, files opened ``"wb"``) receive the
    document encoded as UTF-8.
    """
    text = serialize_record(record_from_message(message), include_body=include_body)
    if isinstance(stream, (io.RawIOBase, io.BufferedIOBase)):
        stream.write(text.encode("utf-8"))
    else:
        stream.write(text)


# ---------------------------------------------------------------------------
# File writers
# ---------------------------------------------------------------------------


def save_split(base_path: str | os.PathLike[str], message: BrokerMessage) -> None:
    """Save *message* as ``<base_path>.dat`` plus ``<base_path>.json``."""
    dat_path, json_path = split_paths(base_path)
    # Encode before touching the filesystem so encoding errors leave no files.
    metadata = serialize_record(record_from_message(message), include_body=True)
    atomic_write(dat_path, message.body)
    atomic_write(json_path, metadata)


def save_unified(
    destination: str | os.PathLike[str] | TextIO | BinaryIO,
    message: BrokerMessage,
    *,
    include_body: bool = True,
) -> None:
    """Save *message* as one JSON document.

    *destination* is a filesystem path or a writable text or binary stream.
    """
    if hasattr(destination, "write"):
        write_message_json(destination, message, include_body=include_body)  # type: ignore[arg-type]
        return
    text = serialize_record(record_from_message(message), include_body=include_body)
    atomic_write(destination, text)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Readers
# ---------------------------------------------------------------------------


def read_unified(path: str | os.PathLike[str]) -> PersistentMessageRecord:
    """Read a unified JSON save, or the ``.json`` sidecar of a split save."""
    return deserialize_record(Path(path).read_text(encoding="utf-8"))


def read_split(base_path: str | os.PathLike[str]) -> PersistentMessageRecord:
    """Read a split save; the body comes from the ``.dat`` file.

    Raises ``FileNotFoundError`` if either file is missing.
    """
    dat_path, json_path = split_paths(base_path)
    body = dat_path.read_bytes()
    return replace(read_unified(json_path), body=body)


def read_saved(path: str | os.PathLike[str]) -> PersistentMessageRecord:
    """Read a saved message given any of its paths.

    Accepts a unified ``.json`` file, either member of a split pair, or the
    split base path.
    """
    name = os.fspath(path)
    if name.endswith(BODY_SUFFIX):
        return read_split(name[: -len(BODY_SUFFIX)])
    if name.endswith(META_SUFFIX):
        base = name[: -len(META_SUFFIX)]
        if Path(base + BODY_SUFFIX).exists():
            return read_split(base)
        return read_unified(name)
    return read_split(name)
