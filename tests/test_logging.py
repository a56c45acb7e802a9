"""Tests for logging setup."""

import io
import sys

import structlog
from typer.testing import CliRunner

from planboard.cli import app
from planboard.config.logging import configure_logging


def test_writes_to_current_stderr(monkeypatch):
    stream = io.StringIO()
    monkeypatch.setattr(sys, "stderr", stream)
    configure_logging("INFO")

    structlog.get_logger("planboard.test").info("Push channel connected", url="ws://x")
    structlog.get_logger("planboard.test").debug("hidden")

    output = stream.getvalue()
    assert "Push channel connected" in output
    assert "ws://x" in output
    assert "hidden" not in output


def test_closed_stream_does_not_raise(monkeypatch):
    stream = io.StringIO()
    monkeypatch.setattr(sys, "stderr", stream)
    configure_logging("INFO")
    stream.close()
    monkeypatch.setattr(sys, "stderr", io.StringIO())

    structlog.get_logger("planboard.test").warning("Push connect failed")


def test_logging_after_cli_run():
    CliRunner().invoke(app, ["version"])

    structlog.get_logger("planboard.session").warning("Unreadable session file")
    structlog.get_logger("planboard.adapters.push").bind(adapter="push").warning("retry")
