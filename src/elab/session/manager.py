"""Session manager — one target device's mode, crypto, polling, and logging state."""

from __future__ import annotations

import logging
import math
from collections.abc import Callable, Iterable, Mapping
from typing import Any

from elab.api.gateway import ApiGateway
from elab.catalog import Catalog, Target
from elab.config import ElabConfig
from elab.crypto.base import Cryptosystem
from elab.crypto.channel import CryptoChannel
from elab.crypto.paillier import PaillierCryptosystem
from elab.errors import (
    ConfigurationError,
    ElabError,
    ValidationError,
    WrongModeError,
)
from elab.historian.manager import LoggingSessionManager
from elab.historian.store import SessionStore
from elab.polling.engine import PollingEngine, Snapshot
from elab.session.models import (
    Algorithm,
    EncryptionConfig,
    EncryptionScheme,
    LoggingSession,
    Mode,
    SessionSettings,
    validate_binary,
)

logger = logging.getLogger(__name__)

MIN_STREAM_FREQ = 1
MAX_STREAM_FREQ = 50
FRAME_ID_MODULUS = 256


def next_frame_id(frame_id: int) -> int:
    return (frame_id + 1) % FRAME_ID_MODULUS


def make_cryptosystem(config: EncryptionConfig) -> Cryptosystem:
    if config.algorithm is Algorithm.PAILLIER:
        return PaillierCryptosystem(config.key_length)
    raise ConfigurationError(
        f"Encryption '{config.algorithm.value}' is recognised but not supported"
    )


class ElabSession:
    """Client session for one eLab target.

    Without a target the session runs in MANAGER mode and can only browse
    and install targets. MONITOR mode is read-only. CONTROL mode resets the
    device, configures streaming, starts polling and (optionally) a logging
    session during construction.

    Privileged operations called outside CONTROL mode log a warning and
    return False without touching the network.
    """

    def __init__(
        self,
        target: str = "",
        mode: str | Mode = Mode.CONTROL,
        address: str | None = None,
        logging: bool | int = False,
        logging_period: float = 1.0,
        internal_sampling_period: float = 1.0,
        polling_period: float = 1.0,
        encryption: str | Algorithm = Algorithm.NONE,
        encryption_length: int = 512,
        encryption_depth: str = "full",
        *,
        config: ElabConfig | None = None,
        gateway: ApiGateway | None = None,
        cryptosystem: Cryptosystem | None = None,
        on_update: Callable[[Snapshot], None] | None = None,
        on_error: Callable[[ElabError], None] | None = None,
    ) -> None:
        self._config = config or ElabConfig.load()
        self._settings = SessionSettings.create(
            target=target,
            mode=mode,
            address=address or self._config.address,
            logging=logging,
            logging_period=logging_period,
            internal_sampling_period=internal_sampling_period,
            polling_period=polling_period,
            encryption=encryption,
            encryption_length=encryption_length,
            encryption_depth=encryption_depth,
        )
        settings = self._settings
        is_device_mode = settings.mode is not Mode.MANAGER

        scheme = settings.encryption.scheme if is_device_mode else EncryptionScheme.NONE
        if scheme is not EncryptionScheme.NONE and cryptosystem is None:
            cryptosystem = make_cryptosystem(settings.encryption)

        self._owns_gateway = gateway is None
        self._gateway = gateway or ApiGateway(
            settings.address, timeout=self._config.timeout
        )
        self._channel = CryptoChannel(scheme, cryptosystem)
        self._historian = LoggingSessionManager(
            self._gateway,
            settings.target,
            settings.logging_period,
            SessionStore(self._config.sessions_dir),
        )
        self._catalog = Catalog(self._gateway, self._config.targets_dir)
        self._engine: PollingEngine | None = None
        if is_device_mode:
            self._engine = PollingEngine(
                self._gateway,
                settings.target,
                self._channel,
                period=settings.polling_period,
                on_update=on_update,
                on_error=on_error,
            )
        self._frame_id = 0
        self._target_update_freq: int | None = None
        self._verbose = False
        self._closed = False

        try:
            self._initialize()
        except BaseException:
            self.shutdown()
            raise

    # -- properties -------------------------------------------------------

    @property
    def settings(self) -> SessionSettings:
        return self._settings

    @property
    def mode(self) -> Mode:
        return self._settings.mode

    @property
    def target(self) -> str:
        return self._settings.target

    @property
    def channel(self) -> CryptoChannel:
        return self._channel

    @property
    def polling(self) -> PollingEngine | None:
        return self._engine

    @property
    def historian(self) -> LoggingSessionManager:
        return self._historian

    @property
    def logging_session(self) -> LoggingSession | None:
        return self._historian.active

    @property
    def frame_id(self) -> int:
        return self._frame_id

    @property
    def target_update_freq(self) -> int | None:
        return self._target_update_freq

    @property
    def verbose_mode(self) -> bool:
        return self._verbose

    @property
    def closed(self) -> bool:
        return self._closed

    # -- tag reads --------------------------------------------------------

    def get_all_tags(self) -> Mapping[str, Any]:
        """The most recently published tag mapping (read-only)."""
        if self._engine is None:
            return Snapshot().tags
        return self._engine.tags

    def get_tag(self, name: str) -> Any:
        tags = self.get_all_tags()
        try:
            return tags[name]
        except KeyError:
            raise KeyError(f"Unknown tag '{name}'") from None

    def get_tag_value(self, name: str) -> Any:
        tag = self.get_tag(name)
        if isinstance(tag, Mapping):
            return tag.get("value")
        return tag

    # -- tag writes -------------------------------------------------------

    def set_tag(self, name: str, value: Any) -> bool:
        if not self._require_control("set_tag"):
            return False
        write = self._channel.encrypt_tag(name, value)
        route = "set_data_encrypted" if self._channel.encrypted else "set_data"
        ack = self._gateway.post(route, write.to_body(), id=self.target)
        logger.debug("set_tag '%s' acknowledged: %s", name, ack)
        return True

    def set_tags(self, batch: Mapping[str, Any] | Iterable[tuple[str, Any]]) -> bool:
        """Write several tags in one frame."""
        if not self._require_control("set_tags"):
            return False
        pairs = list(batch.items()) if isinstance(batch, Mapping) else list(batch)
        if not pairs:
            raise ValidationError("A batch must contain at least one tag")

        writes = [self._channel.encrypt_tag(name, value) for name, value in pairs]
        self._frame_id = next_frame_id(self._frame_id)
        route = "set_batch_encrypted" if self._channel.encrypted else "set_batch"
        body = {
            "frame_id": self._frame_id,
            "batch": [w.to_body() for w in writes],
        }
        ack = self._gateway.post(route, body, id=self.target)
        logger.debug("Batch frame %d acknowledged: %s", self._frame_id, ack)
        return True

    # -- device commands --------------------------------------------------

    def set_target_stream(self, enabled: bool | int) -> bool:
        """Turn the target's data stream to the master on or off."""
        if self.mode is Mode.MANAGER:
            self._warn_wrong_mode("set_target_stream")
            return False
        if not self._require_open("set_target_stream"):
            return False
        enabled = validate_binary(enabled, "stream")
        self._gateway.get("set_verbose", id=self.target, state=enabled)
        return True

    def set_target_stream_frequency(self, freq: int) -> bool:
        """Set the target's streaming frequency; integers from 1 to 50 Hz."""
        if not self._require_control("set_target_stream_frequency"):
            return False
        if isinstance(freq, float) and freq.is_integer():
            freq = int(freq)
        if (
            isinstance(freq, bool)
            or not isinstance(freq, int)
            or not MIN_STREAM_FREQ <= freq <= MAX_STREAM_FREQ
        ):
            raise ValidationError(
                f"Stream frequency accepts only integers in range "
                f"{MIN_STREAM_FREQ} to {MAX_STREAM_FREQ} [Hz], got {freq!r}"
            )
        self._gateway.get("set_frequency", id=self.target, freq=freq)
        self._target_update_freq = freq
        return True

    def set_polling_period(self, seconds: float) -> bool:
        if not self._require_control("set_polling_period"):
            return False
        if self._engine is None:
            raise RuntimeError("CONTROL session has no polling engine")
        self._engine.set_period(seconds)
        return True

    def set_logging_session(self, enabled: bool | int) -> bool:
        """Start or stop server-side logging; see ``logging_session``."""
        if not self._require_control("set_logging_session"):
            return False
        self._historian.start(enabled)
        return True

    def start_polling(self) -> bool:
        """Start background polling (CONTROL starts it on its own)."""
        if self._engine is None:
            self._warn_wrong_mode("start_polling")
            return False
        if not self._require_open("start_polling"):
            return False
        self._engine.start()
        return True

    def off(self) -> bool:
        """Reset the target to its default values."""
        if not self._require_control("off"):
            return False
        self._gateway.get("set_defaults", id=self.target)
        return True

    def stop(self) -> bool:
        """Stop polling and logging. Safe to call more than once."""
        if not self._require_control("stop", allow_closed=True):
            return False
        if self._engine is not None:
            self._engine.stop()
        if not self._closed:
            self._historian.stop()
        return True

    def close(self) -> bool:
        """Stop streaming, reset the target and release the connection."""
        if not self._require_control("close", allow_closed=True):
            return False
        if self._closed:
            return True
        try:
            self.set_target_stream(False)
            self.set_target_stream_frequency(1)
            self.off()
            self.stop()
        finally:
            self.shutdown()
        return True

    def shutdown(self) -> None:
        """Release local resources without sending device commands."""
        if self._engine is not None:
            self._engine.stop()
        self._historian.discard()
        if self._owns_gateway and not self._closed:
            self._gateway.close()
        self._closed = True

    def set_verbose_mode(self, enabled: bool | int) -> None:
        """Turn debug logging of the client on or off."""
        self._verbose = validate_binary(enabled, "verbose")
        level = logging.DEBUG if self._verbose else logging.NOTSET
        logging.getLogger("elab").setLevel(level)

    # -- catalog and historian --------------------------------------------

    def list_targets(self) -> list[Target]:
        return self._catalog.list_targets()

    def install(self, name: str) -> bool:
        return self._catalog.install(name) is not None

    def get_historian_data(self, session_key: str | None = None) -> Any:
        key = session_key
        if key is None and self._historian.active is not None:
            key = self._historian.active.session_key
        if key is None:
            raise ValidationError("No session key given and no logging session active")
        return self._historian.get_session_data(key)

    def __enter__(self) -> ElabSession:
        return self

    def __exit__(self, *exc: object) -> None:
        self.shutdown()

    # -- internals --------------------------------------------------------

    def _initialize(self) -> None:
        settings = self._settings
        if settings.mode is Mode.MANAGER:
            logger.info(
                "eLab started in MANAGER mode. Control and measurement "
                "functions will not work."
            )
            return

        self._channel.negotiate(self._gateway, settings.target)

        if settings.mode is Mode.CONTROL:
            logger.info(
                "eLab started in CONTROL mode. You have full control over '%s'.",
                settings.target,
            )
            self._gateway.get("set_defaults", id=settings.target)
            self.set_target_stream_frequency(
                math.ceil(1 / settings.internal_sampling_period)
            )
            self.set_target_stream(True)
            self.start_polling()
            self._historian.start(settings.logging)
        else:
            logger.info(
                "eLab started in MONITOR mode. You can observe '%s' but have "
                "no control over it.",
                settings.target,
            )
            self.set_target_stream(True)

    def _require_control(self, operation: str, allow_closed: bool = False) -> bool:
        if self.mode is not Mode.CONTROL:
            self._warn_wrong_mode(operation)
            return False
        return allow_closed or self._require_open(operation)

    def _require_open(self, operation: str) -> bool:
        if not self._closed:
            return True
        logger.warning("'%s' is not available: the session is closed.", operation)
        return False

    def _warn_wrong_mode(self, operation: str) -> None:
        logger.warning("%s", WrongModeError(operation, self.mode.value).message)
