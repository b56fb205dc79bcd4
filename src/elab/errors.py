"""Exception hierarchy for the eLab client.

ElabError (base)
├── ValidationError      bad constructor or call arguments
├── ConfigurationError   unsupported combination of valid settings
├── WrongModeError       privileged operation outside CONTROL mode
├── TransportFailure     network error, timeout, non-2xx, undecodable body
├── HandshakeFailure     public key exchange failed or was malformed
├── NotNegotiated        encryption requested before a handshake
├── DecryptionFailure    cryptosystem could not decrypt a chunk or value
├── MalformedPayload     decoded snapshot is not a valid JSON document
├── DownloadFailure      catalog archive could not be downloaded
├── UnzipFailure         catalog archive could not be extracted
└── StorageFailure       session descriptor could not be written
"""

from __future__ import annotations

from typing import Any


class ElabError(Exception):
    """Base exception for all eLab client errors."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class ValidationError(ElabError, ValueError):
    """Invalid constructor or call argument."""


class ConfigurationError(ElabError):
    """Settings are individually valid but cannot be served."""


class WrongModeError(ElabError):
    """Operation is forbidden in the session's current mode."""

    def __init__(self, operation: str, mode: str) -> None:
        super().__init__(
            f"'{operation}' is forbidden in {mode.upper()} mode.",
            details={"operation": operation, "mode": mode},
        )


class TransportFailure(ElabError):
    """The master could not be reached or answered with an error."""


class HandshakeFailure(ElabError):
    """The public key exchange with the master failed."""


class NotNegotiated(ElabError):
    """Encryption was requested before the key exchange completed."""


class DecryptionFailure(ElabError):
    """A ciphertext could not be decrypted with the local key pair."""


class MalformedPayload(ElabError):
    """A snapshot could not be interpreted as structured data."""


class DownloadFailure(ElabError):
    """A target library archive could not be downloaded."""


class UnzipFailure(ElabError):
    """A target library archive could not be extracted."""


class StorageFailure(ElabError):
    """A local session descriptor could not be written."""
