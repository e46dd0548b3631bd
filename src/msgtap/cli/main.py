"""CLI entry point."""

from __future__ import annotations

import click

from msgtap.core.config import (
    CONFIG_ENV,
    LOG_LEVELS,
    ConfigError,
    configure_logging,
    load_config,
)


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    envvar=CONFIG_ENV,
    default=None,
    help=f"JSON config file (or set {CONFIG_ENV}).",
)
@click.option(
    "--log-level",
    type=click.Choice(sorted(LOG_LEVELS), case_sensitive=False),
    default=None,
    help="Override the configured log level.",
)
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str | None) -> None:
    """msgtap: inspect and convert saved broker messages."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from None
    if log_level is not None:
        config["log_level"] = log_level.upper()
    configure_logging(config["log_level"])
    ctx.ensure_object(dict)["config"] = config


# ---------------------------------------------------------------------------
# Register command modules (must be after cli group is defined)
# ---------------------------------------------------------------------------
from msgtap.cli import saved_cmds as _saved_cmds  # noqa: E402, F401

if __name__ == "__main__":
    cli()
