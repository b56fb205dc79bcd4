"""Global configuration — XDG paths, env vars, defaults."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_ADDRESS = "http://localhost:3030"
DEFAULT_TIMEOUT = 30.0


def _default_data_dir() -> Path:
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg) / "elab"
    return Path.home() / ".local" / "share" / "elab"


@dataclass
class ElabConfig:
    """Application-wide configuration."""

    data_dir: Path = field(default_factory=_default_data_dir)
    address: str = DEFAULT_ADDRESS
    timeout: float = DEFAULT_TIMEOUT
    verbose: bool = False

    @property
    def sessions_dir(self) -> Path:
        """Where logging-session descriptors are written."""
        return self.data_dir / "sessions"

    @property
    def targets_dir(self) -> Path:
        """Where installed target libraries are extracted."""
        return self.data_dir / "targets"

    @classmethod
    def load(cls) -> ElabConfig:
        """Load config from environment variables with XDG defaults."""
        config = cls()

        env_address = os.environ.get("ELAB_ADDRESS")
        if env_address:
            config.address = env_address.rstrip("/")

        env_timeout = os.environ.get("ELAB_TIMEOUT")
        if env_timeout:
            config.timeout = float(env_timeout)

        return config
