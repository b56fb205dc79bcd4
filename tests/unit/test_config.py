"""Tests for environment-driven configuration."""

from __future__ import annotations

from pathlib import Path

from elab.config import DEFAULT_ADDRESS, DEFAULT_TIMEOUT, ElabConfig


def test_defaults(monkeypatch):
    monkeypatch.delenv("ELAB_ADDRESS", raising=False)
    monkeypatch.delenv("ELAB_TIMEOUT", raising=False)
    monkeypatch.delenv("XDG_DATA_HOME", raising=False)
    config = ElabConfig.load()
    assert config.address == DEFAULT_ADDRESS
    assert config.timeout == DEFAULT_TIMEOUT
    assert config.data_dir == Path.home() / ".local" / "share" / "elab"


def test_env_overrides(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("ELAB_ADDRESS", "http://elab.example:3030/")
    monkeypatch.setenv("ELAB_TIMEOUT", "12.5")
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path))
    config = ElabConfig.load()
    assert config.address == "http://elab.example:3030"
    assert config.timeout == 12.5
    assert config.sessions_dir == tmp_path / "elab" / "sessions"
    assert config.targets_dir == tmp_path / "elab" / "targets"
