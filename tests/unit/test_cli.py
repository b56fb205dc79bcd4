"""Tests for CLI commands using Click's CliRunner."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

from click.testing import CliRunner

from elab.catalog import Target
from elab.cli import main
from elab.session.models import LoggingSession


def test_main_help():
    runner = CliRunner()
    result = runner.invoke(main, ["--help"])
    assert result.exit_code == 0
    assert "eLab" in result.output
    for command in ("list", "install", "tags", "watch", "set", "sessions"):
        assert command in result.output


def test_main_version():
    runner = CliRunner()
    result = runner.invoke(main, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_watch_help():
    runner = CliRunner()
    result = runner.invoke(main, ["watch", "--help"])
    assert result.exit_code == 0
    assert "DEVICE" in result.output
    assert "--period" in result.output


def test_set_help():
    runner = CliRunner()
    result = runner.invoke(main, ["set", "--help"])
    assert result.exit_code == 0
    assert "TAG=VALUE" in result.output


@patch("elab.session.manager.Catalog.list_targets")
def test_list_prints_targets(mock_list):
    mock_list.return_value = [Target("pct23", "Process control trainer", "pct23.zip")]
    runner = CliRunner()
    result = runner.invoke(main, ["list"])
    assert result.exit_code == 0
    assert "pct23" in result.output


def test_set_rejects_bad_assignment():
    runner = CliRunner()
    result = runner.invoke(main, ["set", "pct23", "novalue"])
    assert result.exit_code != 0
    assert "TAG=VALUE" in result.output


def test_sessions_local(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    monkeypatch.setenv("COLUMNS", "200")
    from elab.historian.store import SessionStore

    store = SessionStore(tmp_path / "elab" / "sessions")
    store.save(LoggingSession(session_key="k" * 32, target="pct23", sampling_ms=1000))

    runner = CliRunner()
    result = runner.invoke(main, ["sessions", "--local"])
    assert result.exit_code == 0
    assert "pct23" in result.output
