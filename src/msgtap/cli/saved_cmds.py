"""Commands over saved messages: show, convert, check, name."""

from __future__ import annotations

import re
import time
from pathlib import Path

import click

from msgtap.cli.helpers import (
    get_config,
    json_envelope,
    output_error,
    output_result,
    read_saved_or_exit,
)
from msgtap.cli.main import cli
from msgtap.core.config import OUTPUT_FORMATS, SAVE_FORMATS
from msgtap.core.message import ZERO_TIMESTAMP
from msgtap.core.naming import create_timestamp_filename
from msgtap.core.record import (
    RecordDecodeError,
    RecordEncodingError,
    message_from_record,
    parse_rfc3339,
)
from msgtap.storage.saver import find_incomplete_saves, save_message
from msgtap.storage.writers import write_body, write_message_json

_FRACTION_RE = re.compile(r"T[^.]*\.(\d+)", re.IGNORECASE)


# ---------------------------------------------------------------------------
# msgtap show
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("path")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(sorted(OUTPUT_FORMATS)),
    default=None,
    help="json, json-nobody, or raw body bytes. Defaults from include_body in config.",
)
@click.pass_context
def show(ctx: click.Context, path: str, output_format: str | None) -> None:
    """Print a saved message to stdout.

    PATH may be a unified .json file, either file of a .dat/.json pair, or
    the pair's base path.
    """
    if output_format is None:
        output_format = "json" if get_config(ctx)["include_body"] else "json-nobody"

    message = message_from_record(read_saved_or_exit(path, False))

    if output_format == "raw":
        stream = click.get_binary_stream("stdout")
        write_body(stream, message)
    else:
        stream = click.get_text_stream("stdout")
        try:
            write_message_json(stream, message, include_body=output_format == "json")
        except RecordEncodingError as e:
            output_error(str(e), "ENCODING_ERROR", False)
    stream.flush()


# ---------------------------------------------------------------------------
# msgtap convert
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("path")
@click.argument("dest_dir", required=False, default=None)
@click.option(
    "--format",
    "save_format",
    type=click.Choice(sorted(SAVE_FORMATS)),
    default=None,
    help="raw (.dat + .json pair) or json (single file). Defaults from config.",
)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def convert(
    ctx: click.Context,
    path: str,
    dest_dir: str | None,
    save_format: str | None,
    output_json: bool,
) -> None:
    """Re-save a saved message into DEST_DIR in another format.

    The new name comes from the message timestamp, or the current time when
    the message has none.
    """
    is_json = output_json
    config = get_config(ctx)
    dest_dir = dest_dir or config["save_dir"]
    save_format = save_format or config["format"]

    record = read_saved_or_exit(path, is_json)
    received_at = record.timestamp if record.timestamp != ZERO_TIMESTAMP else None

    try:
        target = save_message(
            dest_dir,
            message_from_record(record),
            fmt=save_format,
            received_at=received_at,
        )
    except RecordEncodingError as e:
        output_error(str(e), "ENCODING_ERROR", is_json)
    except OSError as e:
        output_error(f"Cannot save to {dest_dir}: {e}", "IO_ERROR", is_json)

    output_result(
        data={"path": str(target), "format": save_format},
        human_message=f"Saved {target}",
        is_json=is_json,
    )


# ---------------------------------------------------------------------------
# msgtap check
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("directory", required=False, default=None)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def check(ctx: click.Context, directory: str | None, output_json: bool) -> None:
    """List split saves whose .json sidecar is missing.

    Exits with status 1 when any are found.
    """
    is_json = output_json
    directory = directory or get_config(ctx)["save_dir"]
    if not Path(directory).is_dir():
        output_error(f"Not a directory: {directory}", "NOT_FOUND", is_json)

    incomplete = [str(p) for p in find_incomplete_saves(directory)]

    if is_json:
        click.echo(json_envelope(not incomplete, data={"incomplete": incomplete}))
    elif incomplete:
        click.echo(f"{len(incomplete)} incomplete save(s):")
        for entry in incomplete:
            click.echo(f"  {entry}")
    else:
        click.echo("No incomplete saves.")

    if incomplete:
        raise SystemExit(1)


# ---------------------------------------------------------------------------
# msgtap name
# ---------------------------------------------------------------------------


@cli.command()
@click.argument("timestamp", required=False, default=None)
def name(timestamp: str | None) -> None:
    """Print the file name fragment for TIMESTAMP (RFC 3339), or for now."""
    if timestamp is None:
        click.echo(create_timestamp_filename(time.time_ns()))
        return

    try:
        dt = parse_rfc3339(timestamp)
    except RecordDecodeError as e:
        output_error(str(e), "VALIDATION_ERROR", False)

    nanosecond = None
    match = _FRACTION_RE.search(timestamp)
    if match:
        nanosecond = int((match.group(1) + "0" * 9)[:9])
    click.echo(create_timestamp_filename(dt, nanosecond=nanosecond))
