"""Session data models — mode, encryption settings, and logging sessions."""

from __future__ import annotations

import enum
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from elab.config import DEFAULT_ADDRESS
from elab.errors import ValidationError

MIN_PERIOD = 0.05
MAX_PERIOD = 10.0


class Mode(enum.Enum):
    """Operating mode of a session."""

    MANAGER = "manager"
    CONTROL = "control"
    MONITOR = "monitor"


class Algorithm(enum.Enum):
    """Recognised homomorphic encryption algorithms."""

    NONE = "none"
    PAILLIER = "paillier"
    BENALOH = "benaloh"


class EncryptionDepth(enum.Enum):
    """How much of a snapshot the master encrypts."""

    FULL = "full"
    VALUES = "values"


class EncryptionScheme(enum.Enum):
    """Effective payload handling, selected once from the settings."""

    NONE = "none"
    FULL = "full"
    VALUES_ONLY = "values_only"


@dataclass(frozen=True)
class EncryptionConfig:
    algorithm: Algorithm = Algorithm.NONE
    key_length: int = 512
    depth: EncryptionDepth = EncryptionDepth.FULL

    @property
    def scheme(self) -> EncryptionScheme:
        if self.algorithm is Algorithm.NONE:
            return EncryptionScheme.NONE
        if self.depth is EncryptionDepth.FULL:
            return EncryptionScheme.FULL
        return EncryptionScheme.VALUES_ONLY

    @property
    def enabled(self) -> bool:
        return self.algorithm is not Algorithm.NONE

    @classmethod
    def create(
        cls,
        algorithm: str | Algorithm = Algorithm.NONE,
        key_length: int = 512,
        depth: str | EncryptionDepth = EncryptionDepth.FULL,
    ) -> EncryptionConfig:
        return cls(
            algorithm=_parse_enum(Algorithm, algorithm, "encryption"),
            key_length=validate_key_length(key_length),
            depth=_parse_enum(EncryptionDepth, depth, "encryption depth"),
        )


@dataclass(frozen=True)
class SessionSettings:
    """Validated, immutable construction parameters of one session."""

    target: str = ""
    mode: Mode = Mode.CONTROL
    address: str = DEFAULT_ADDRESS
    logging: bool = False
    logging_period: float = 1.0
    internal_sampling_period: float = 1.0
    polling_period: float = 1.0
    encryption: EncryptionConfig = field(default_factory=EncryptionConfig)

    @classmethod
    def create(
        cls,
        target: str = "",
        mode: str | Mode = Mode.CONTROL,
        address: str = DEFAULT_ADDRESS,
        logging: bool | int = False,
        logging_period: float = 1.0,
        internal_sampling_period: float = 1.0,
        polling_period: float = 1.0,
        encryption: str | Algorithm = Algorithm.NONE,
        encryption_length: int = 512,
        encryption_depth: str | EncryptionDepth = EncryptionDepth.FULL,
    ) -> SessionSettings:
        """Validate raw arguments; raises ValidationError on the first bad one."""
        if not isinstance(target, str):
            raise ValidationError(f"Target name must be a string, got {target!r}")
        if not isinstance(address, str) or not address:
            raise ValidationError(f"Address must be a non-empty string, got {address!r}")

        requested = _parse_enum(Mode, mode, "mode")
        # No target means nothing to control or monitor.
        effective = Mode.MANAGER if not target else requested

        return cls(
            target=target,
            mode=effective,
            address=address.rstrip("/"),
            logging=validate_binary(logging, "logging"),
            logging_period=validate_period(logging_period, "logging period"),
            internal_sampling_period=validate_period(
                internal_sampling_period, "internal sampling period"
            ),
            polling_period=validate_period(polling_period, "polling period"),
            encryption=EncryptionConfig.create(
                encryption, encryption_length, encryption_depth
            ),
        )


@dataclass
class LoggingSession:
    """A server-side logging session this client started."""

    session_key: str
    target: str
    sampling_ms: int
    created_at: float = field(default_factory=time.time)
    descriptor_path: Path | None = None


def validate_period(value: Any, name: str = "period") -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"The {name} must be a number, got {value!r}")
    if not MIN_PERIOD <= value <= MAX_PERIOD:
        raise ValidationError(
            f"The {name} must be within [{MIN_PERIOD}, {MAX_PERIOD}] seconds, "
            f"got {value}"
        )
    return float(value)


def validate_binary(value: Any, name: str = "option") -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise ValidationError(f"The {name} option accepts only values [0, 1], got {value!r}")


def validate_key_length(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError(f"Encryption length must be a positive integer, got {value!r}")
    if value & (value - 1):
        raise ValidationError(f"Encryption length must be a power of two, got {value}")
    return value


def _parse_enum(enum_cls: type[enum.Enum], value: Any, name: str) -> Any:
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, str):
        try:
            return enum_cls(value.strip().lower())
        except ValueError:
            pass
    choices = ", ".join(m.value for m in enum_cls)
    raise ValidationError(f"Invalid {name} {value!r}; expected one of: {choices}")
