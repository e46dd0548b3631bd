"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from click.testing import CliRunner

from msgtap.core.message import BrokerMessage


@pytest.fixture()
def sample_message() -> BrokerMessage:
    """Return a delivery with every attribute set to a recognizable value."""
    return BrokerMessage(
        exchange="exchange",
        routing_key="routingkey",
        priority=99,
        expiration="2017-05-22 17:00:00",
        content_type="plain/text",
        content_encoding="utf-8",
        message_id="4711",
        timestamp=datetime(2009, 11, 10, 23, 0, 0, tzinfo=timezone.utc),
        type="some type",
        correlation_id="4712",
        headers={"header": "value"},
        app_id="123",
        user_id="456",
        body=b"simple test message.",
    )


@pytest.fixture()
def cli_runner() -> CliRunner:
    """Return a Click CliRunner for invoking CLI commands."""
    return CliRunner()


@pytest.fixture()
def invoke(cli_runner: CliRunner):
    """Return a helper that invokes CLI commands with no config file set.

    Usage::

        result = invoke("show", "saved.json")
    """
    from msgtap.cli.main import cli

    def _invoke(*args: str, **kwargs):
        env = kwargs.pop("env", {})
        env.setdefault("MSGTAP_CONFIG", None)
        return cli_runner.invoke(cli, list(args), env=env, **kwargs)

    return _invoke
