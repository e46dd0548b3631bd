"""Save tapped messages into a directory under timestamp-derived names."""

from __future__ import annotations

import logging
import os
import time
from datetime import datetime
from pathlib import Path

from msgtap.core.config import SAVE_FORMATS
from msgtap.core.message import BrokerMessage
from msgtap.core.naming import create_timestamp_filename
from msgtap.storage.writers import BODY_SUFFIX, META_SUFFIX, save_split, save_unified

logger = logging.getLogger(__name__)


def save_message(
    directory: str | os.PathLike[str],
    message: BrokerMessage,
    *,
    fmt: str = "raw",
    received_at: datetime | int | None = None,
) -> Path:
    """Save *message* under *directory* and return what was written.

    The name is derived from *received_at* (a ``datetime`` or epoch
    nanoseconds; defaults to now).  ``raw`` writes a split pair and returns
    the base path; ``json`` writes ``<name>.json`` and returns that path.
    """
    if fmt not in SAVE_FORMATS:
        raise ValueError(f"Unknown save format: '{fmt}'")
    if received_at is None:
        received_at = time.time_ns()

    base = Path(directory) / create_timestamp_filename(received_at)
    if fmt == "json":
        target = Path(f"{base}{META_SUFFIX}")
        save_unified(target, message, include_body=True)
    else:
        target = base
        save_split(base, message)

    logger.debug("Saved message (%d bytes) to %s", len(message.body), target)
    return target


def find_incomplete_saves(directory: str | os.PathLike[str]) -> list[Path]:
    """Return ``.dat`` files in *directory* with no ``.json`` sidecar.

    Results are sorted by name, which for timestamp names is time order.
    """
    incomplete = []
    for dat_path in Path(directory).glob(f"*{BODY_SUFFIX}"):
        sidecar = Path(str(dat_path)[: -len(BODY_SUFFIX)] + META_SUFFIX)
        if not sidecar.exists():
            incomplete.append(dat_path)
    return sorted(incomplete)
