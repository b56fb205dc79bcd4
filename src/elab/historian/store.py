"""On-disk descriptors for logging sessions started by this client."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from pathlib import Path

import yaml

from elab.session.models import LoggingSession

logger = logging.getLogger(__name__)

_PREFIX = "elab_session_"


class SessionStore:
    """Writes one human-readable YAML file per logging session.

    Files are informational: they let a user find the session key later to
    pull the recorded data from the master's historian.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)

    def save(self, session: LoggingSession) -> Path:
        created = datetime.fromtimestamp(session.created_at)
        # Random suffix keeps names unique for sessions started in the same second.
        name = f"{_PREFIX}{created:%Y%m%d_%H%M%S}_{uuid.uuid4().hex[:6]}.yaml"
        path = self._directory / name

        self._directory.mkdir(parents=True, exist_ok=True)
        header = (
            f"# Session data measured on {created:%d.%m.%Y %H:%M:%S}\n"
            f"# Device: {session.target}\n"
            "# The session key gives access to the data measured during the session.\n"
        )
        body = yaml.safe_dump(
            {
                "session_key": session.session_key,
                "target": session.target,
                "created_at": created.isoformat(timespec="seconds"),
                "sampling_ms": session.sampling_ms,
            },
            sort_keys=False,
        )
        path.write_text(header + body, encoding="utf-8")
        logger.debug("Session descriptor written to %s", path)
        return path

    def paths(self) -> list[Path]:
        """Descriptor files, oldest first."""
        if not self._directory.is_dir():
            return []
        return sorted(self._directory.glob(f"{_PREFIX}*.yaml"))

    def load(self, path: Path) -> dict:
        data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError(f"Session descriptor {path} must be a mapping")
        return data
