"""Shared CLI helpers and output utilities."""

from __future__ import annotations

import json
from typing import NoReturn

import click

from msgtap.core.config import MsgtapConfig, default_config
from msgtap.core.record import PersistentMessageRecord, RecordDecodeError
from msgtap.storage.writers import read_saved


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def json_envelope(ok: bool, *, data: object = None, error: object = None) -> str:
    """Build a structured JSON output envelope."""
    result: dict = {"ok": ok}
    if data is not None:
        result["data"] = data
    if error is not None:
        result["error"] = error
    return json.dumps(result, sort_keys=True, indent=2) + "\n"


def json_error_obj(code: str, message: str) -> dict:
    """Build an error object for the JSON envelope."""
    return {"code": code, "message": message}


def output_error(message: str, code: str, is_json: bool, exit_code: int = 1) -> NoReturn:
    """Print error and exit. JSON errors go to stdout; human errors to stderr."""
    if is_json:
        click.echo(json_envelope(False, error=json_error_obj(code, message)))
    else:
        click.echo(f"Error: {message}", err=True)
    raise SystemExit(exit_code)


def output_result(*, data: object, human_message: str, is_json: bool) -> None:
    """Print success result in the appropriate format."""
    if is_json:
        click.echo(json_envelope(True, data=data))
    else:
        click.echo(human_message)


# ---------------------------------------------------------------------------
# Context
# ---------------------------------------------------------------------------


def get_config(ctx: click.Context) -> MsgtapConfig:
    """Return the config loaded by the ``cli`` group callback."""
    obj = ctx.find_object(dict)
    if obj is None or "config" not in obj:
        return default_config()
    return obj["config"]


# ---------------------------------------------------------------------------
# Saved messages
# ---------------------------------------------------------------------------


def read_saved_or_exit(path: str, is_json: bool) -> PersistentMessageRecord:
    """Read a saved message or exit with a user-facing error."""
    try:
        return read_saved(path)
    except FileNotFoundError as e:
        missing = e.filename or path
        output_error(f"Saved message not found: {missing}", "NOT_FOUND", is_json)
    except RecordDecodeError as e:
        output_error(f"Cannot decode {path}: {e}", "DECODE_ERROR", is_json)
    except (OSError, UnicodeDecodeError) as e:
        output_error(f"Cannot read {path}: {e}", "IO_ERROR", is_json)
