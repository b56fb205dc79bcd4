"""Logging session manager — server-side data logging and historian lookups."""

from __future__ import annotations

import logging
from typing import Any

from elab.api.gateway import ApiGateway
from elab.errors import StorageFailure
from elab.historian.store import SessionStore
from elab.session.models import LoggingSession, validate_binary

logger = logging.getLogger(__name__)

SESSION_KEY_LENGTH = 32


class LoggingSessionManager:
    """Starts and stops the master's logging session for one target.

    The master is the source of truth: starting a new session while one is
    active simply replaces the local record.
    """

    def __init__(
        self,
        gateway: ApiGateway,
        target: str,
        logging_period: float,
        store: SessionStore,
    ) -> None:
        self._gateway = gateway
        self._target = target
        self._sampling_ms = round(logging_period * 1000)
        self._store = store
        self._active: LoggingSession | None = None

    @property
    def active(self) -> LoggingSession | None:
        return self._active

    @property
    def sampling_ms(self) -> int:
        return self._sampling_ms

    def start(self, enabled: bool | int = True) -> LoggingSession | None:
        """Enable (or disable) logging on the master.

        Returns the new LoggingSession, or None when logging was disabled or
        the master declined to issue a valid session key.
        """
        enabled = validate_binary(enabled, "logging")
        response = self._set_logging(enabled)
        if not enabled:
            self._active = None
            return None

        key = response.get("session_key") if isinstance(response, dict) else None
        if not isinstance(key, str) or len(key) != SESSION_KEY_LENGTH:
            logger.info("Logging session is not running.")
            self._active = None
            return None

        session = LoggingSession(
            session_key=key,
            target=self._target,
            sampling_ms=self._sampling_ms,
        )
        try:
            session.descriptor_path = self._store.save(session)
        except OSError as exc:
            self._active = None
            raise StorageFailure(
                f"Could not write the descriptor for logging session {key}: {exc}",
                details={"session_key": key},
                cause=exc,
            ) from exc
        self._active = session
        logger.info(
            "Logging session was set successfully with key %s. Session file: %s",
            key,
            session.descriptor_path,
        )
        return session

    def stop(self) -> None:
        """Disable logging on the master and forget the local session."""
        self._set_logging(False)
        if self._active is not None:
            logger.info("Logging session %s stopped", self._active.session_key)
        self._active = None

    def discard(self) -> None:
        """Forget the local record; the master keeps logging until told otherwise."""
        self._active = None

    def get_session(self, session_key: str) -> Any:
        return self._gateway.get("get_session", session_key=session_key)

    def list_sessions(self, lastn: int | None = None) -> Any:
        return self._gateway.get("get_sessions", lastn=lastn)

    def get_session_data(self, session_key: str, convert_units: bool | None = None) -> Any:
        return self._gateway.get(
            "get_session_data", session_key=session_key, convert_units=convert_units
        )

    def session_qr_url(self, session_key: str) -> str:
        return self._gateway.url("get_session_qr", session_key=session_key)

    def _set_logging(self, enabled: bool) -> Any:
        return self._gateway.get(
            "set_logging",
            id=self._target,
            db=enabled,
            bc=0,
            sg=0,
            sampling_ms=self._sampling_ms,
        )
