"""Polling engine — periodic fetch → decode → publish on a background thread."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from elab.api.gateway import ApiGateway
from elab.crypto.channel import CryptoChannel, merge_sections
from elab.errors import ElabError
from elab.session.models import validate_period

logger = logging.getLogger(__name__)

DATA_ROUTE = "get_data_json_encrypted"


@dataclass(frozen=True)
class Snapshot:
    """One published view of the device's tags.

    Replaced wholesale on every successful tick; readers holding a reference
    keep a consistent view.
    """

    raw: Any = None
    tags: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    fetched_at: float = 0.0
    sequence: int = 0


class PollingEngine:
    """Fixed-rate background refresh of a session's tag mapping.

    Ticks run on a single thread and never overlap. If a tick overruns its
    period, the missed slots are skipped rather than queued.
    """

    def __init__(
        self,
        gateway: ApiGateway,
        target: str,
        channel: CryptoChannel,
        period: float = 1.0,
        on_update: Callable[[Snapshot], None] | None = None,
        on_error: Callable[[ElabError], None] | None = None,
    ) -> None:
        self._gateway = gateway
        self._target = target
        self._channel = channel
        self._period = validate_period(period, "polling period")
        self._on_update = on_update
        self._on_error = on_error
        self._stop_event = threading.Event()
        self._tick_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._snapshot = Snapshot()
        self._current_raw: Any = None
        self._failed_ticks = 0
        self._last_error: ElabError | None = None

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def tags(self) -> Mapping[str, Any]:
        return self._snapshot.tags

    @property
    def current_raw(self) -> Any:
        """Last fetched payload, even if it failed to decode."""
        return self._current_raw

    @property
    def period(self) -> float:
        return self._period

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def failed_ticks(self) -> int:
        return self._failed_ticks

    @property
    def last_error(self) -> ElabError | None:
        return self._last_error

    def set_period(self, seconds: float) -> None:
        """Change the polling period; applies from the next tick."""
        self._period = validate_period(seconds, "polling period")
        logger.debug("Polling period for '%s' set to %.3fs", self._target, self._period)

    def start(self) -> None:
        if self.is_running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._run,
            name=f"elab-poll-{self._target}",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            "Polling '%s' every %.3fs", self._target, self._period
        )

    def stop(self) -> None:
        """Stop polling; no tick runs after this returns."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join()
        if thread is not None:
            logger.info("Polling of '%s' stopped", self._target)
        self._thread = None

    def tick(self) -> bool:
        """Fetch, decode and publish once. Returns False if the tick failed."""
        with self._tick_lock:
            try:
                raw = self._gateway.get(DATA_ROUTE, id=self._target)
                self._current_raw = raw
                decoded = self._channel.decode_snapshot(raw)
                tags = merge_sections(decoded, self._channel.shift)
            except ElabError as exc:
                self._failed_ticks += 1
                self._last_error = exc
                logger.warning(
                    "Polling tick for '%s' failed, keeping previous tags: %s",
                    self._target,
                    exc.message,
                )
                if self._on_error:
                    self._on_error(exc)
                return False

            snapshot = Snapshot(
                raw=raw,
                tags=MappingProxyType(tags),
                fetched_at=time.time(),
                sequence=self._snapshot.sequence + 1,
            )
            self._snapshot = snapshot

        if self._on_update:
            self._on_update(snapshot)
        return True

    def _run(self) -> None:
        next_tick = time.monotonic()
        while not self._stop_event.is_set():
            try:
                self.tick()
            except Exception:
                logger.exception("Unexpected error in polling tick for '%s'", self._target)

            period = self._period
            next_tick += period
            now = time.monotonic()
            if next_tick <= now:
                missed = int((now - next_tick) // period) + 1
                next_tick += missed * period
                logger.debug(
                    "Polling tick for '%s' overran, skipping %d slot(s)",
                    self._target,
                    missed,
                )
            self._stop_event.wait(timeout=next_tick - now)
