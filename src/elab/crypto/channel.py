"""Crypto channel — key exchange and the encrypted snapshot/write boundary.

The payload policy is chosen once from the session's EncryptionScheme:

- NONE: snapshots are plaintext, writes go out as plaintext.
- FULL: snapshots arrive as ``{"encrypted": [chunk, ...]}``; chunks are
  decrypted in order and concatenated into one JSON document.
- VALUES_ONLY: snapshots keep their plaintext structure, but every tag
  record's ``value`` is a ciphertext decrypted in place.

Writes are encrypted (tag name and value independently) whenever a scheme
other than NONE is active.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from elab.api.gateway import ApiGateway
from elab.api.routes import format_value
from elab.crypto.base import Cryptosystem
from elab.errors import (
    DecryptionFailure,
    HandshakeFailure,
    MalformedPayload,
    NotNegotiated,
    TransportFailure,
)
from elab.session.models import EncryptionScheme

logger = logging.getLogger(__name__)

# Trailing metadata sections of a plaintext snapshot that hold no tags.
PLAINTEXT_METADATA_SECTIONS = 2


@dataclass(frozen=True)
class RemotePublicKey:
    """The master's public key components."""

    n: int
    g: int


@dataclass(frozen=True)
class TagWrite:
    """One outbound tag write, possibly encrypted."""

    tag: str
    value: str

    def to_body(self) -> dict[str, str]:
        return {"tag": self.tag, "value": self.value}


class CryptoChannel:
    """Owns all encryption state for one session."""

    def __init__(
        self,
        scheme: EncryptionScheme,
        cryptosystem: Cryptosystem | None = None,
    ) -> None:
        if scheme is not EncryptionScheme.NONE and cryptosystem is None:
            raise ValueError(f"Scheme {scheme.value} requires a cryptosystem")
        self._scheme = scheme
        self._crypto = cryptosystem
        self._remote_key: RemotePublicKey | None = None

        decoders: dict[EncryptionScheme, Callable[[Any], dict[str, Any]]] = {
            EncryptionScheme.NONE: self._decode_plain,
            EncryptionScheme.FULL: self._decode_full,
            EncryptionScheme.VALUES_ONLY: self._decode_values,
        }
        self._decode = decoders[scheme]

    @property
    def scheme(self) -> EncryptionScheme:
        return self._scheme

    @property
    def encrypted(self) -> bool:
        return self._scheme is not EncryptionScheme.NONE

    @property
    def remote_key(self) -> RemotePublicKey | None:
        return self._remote_key

    @property
    def negotiated(self) -> bool:
        return self._remote_key is not None

    @property
    def shift(self) -> int:
        """Number of trailing snapshot sections that are not tag sections."""
        if self._scheme is EncryptionScheme.FULL:
            return 0
        return PLAINTEXT_METADATA_SECTIONS

    def negotiate(self, gateway: ApiGateway, target: str) -> RemotePublicKey | None:
        """Exchange public keys with the master.

        Returns None when encryption is disabled. Any failure is fatal to
        session start-up and raised as HandshakeFailure.
        """
        if not self.encrypted:
            return None
        crypto = self._require_crypto()

        logger.info("Generating cryptographic keys")
        crypto.generate_key_pair()
        public_key = crypto.public_key_representation()

        logger.info("Performing public key exchange with '%s'", target)
        try:
            result = gateway.post(
                "paillier_pub_key_exchange", {"public_key": public_key}, id=target
            )
        except TransportFailure as exc:
            raise HandshakeFailure(
                f"Public key exchange with '{target}' failed: {exc.message}",
                cause=exc,
            ) from exc

        if not isinstance(result, Mapping):
            raise HandshakeFailure(
                "Public key exchange returned a non-object response",
                details={"response": result},
            )
        try:
            n = crypto.parse_bigint(result["n"])
            g = crypto.parse_bigint(result["g"])
        except KeyError as exc:
            raise HandshakeFailure(
                f"Public key exchange response is missing component {exc}",
                details={"response": dict(result)},
            ) from exc
        except (TypeError, ValueError) as exc:
            raise HandshakeFailure(
                "Public key exchange response has non-numeric components",
                details={"response": dict(result)},
                cause=exc,
            ) from exc

        crypto.set_remote_public_key(n, g)
        self._remote_key = RemotePublicKey(n=n, g=g)
        logger.info("Public key exchange with '%s' done", target)
        return self._remote_key

    def encrypt_tag(self, name: str, value: Any) -> TagWrite:
        """Prepare a tag write; names and values are encrypted independently."""
        text = format_value(value)
        if not self.encrypted:
            return TagWrite(tag=name, value=text)
        if self._remote_key is None:
            raise NotNegotiated("Cannot encrypt tag writes before the key exchange")
        crypto = self._require_crypto()
        return TagWrite(
            tag=crypto.encrypt(name),
            value=crypto.encrypt(text),
        )

    def decode_snapshot(self, raw: Any) -> dict[str, Any]:
        """Turn a fetched payload into a plaintext section mapping."""
        return self._decode(raw)

    def _decode_plain(self, raw: Any) -> dict[str, Any]:
        if not isinstance(raw, Mapping):
            raise MalformedPayload(
                f"Snapshot must be an object, got {type(raw).__name__}"
            )
        return dict(raw)

    def _decode_full(self, raw: Any) -> dict[str, Any]:
        chunks = raw.get("encrypted") if isinstance(raw, Mapping) else None
        if not isinstance(chunks, list):
            raise MalformedPayload("Encrypted snapshot has no 'encrypted' chunk list")

        # Order matters: fragments only form valid JSON when joined as received.
        message = "".join(self._decrypt(chunk, i) for i, chunk in enumerate(chunks))
        try:
            data = json.loads(message)
        except ValueError as exc:
            raise MalformedPayload(
                f"Decrypted snapshot is not valid JSON: {exc}", cause=exc
            ) from exc
        if not isinstance(data, dict):
            raise MalformedPayload(
                f"Decrypted snapshot must be an object, got {type(data).__name__}"
            )
        return data

    def _decode_values(self, raw: Any) -> dict[str, Any]:
        data = self._decode_plain(raw)
        sections = list(data.items())
        tag_sections = sections[: max(len(sections) - self.shift, 0)]
        decoded: dict[str, Any] = {}
        for name, section in tag_sections:
            if not isinstance(section, Mapping):
                raise MalformedPayload(f"Section '{name}' is not an object")
            decoded[name] = {
                tag: self._decrypt_record(tag, record)
                for tag, record in section.items()
            }
        for name, section in sections[len(tag_sections) :]:
            decoded[name] = section
        return decoded

    def _decrypt_record(self, tag: str, record: Any) -> Any:
        if not isinstance(record, Mapping) or "value" not in record:
            return record
        text = self._decrypt(record["value"], tag)
        try:
            value = json.loads(text)
        except ValueError:
            value = text
        return {**record, "value": value}

    def _require_crypto(self) -> Cryptosystem:
        if self._crypto is None:
            raise RuntimeError("No cryptosystem configured for this channel")
        return self._crypto

    def _decrypt(self, ciphertext: Any, where: object) -> str:
        crypto = self._require_crypto()
        try:
            return crypto.decrypt(str(ciphertext))
        except (ValueError, TypeError, ArithmeticError, RuntimeError) as exc:
            raise DecryptionFailure(
                f"Could not decrypt ciphertext at {where!r}: {exc}",
                cause=exc,
            ) from exc


def merge_sections(data: Mapping[str, Any], shift: int) -> dict[str, Any]:
    """Flatten all but the last ``shift`` sections into one tag mapping.

    Sections merge in declaration order; a tag name seen again in a later
    section replaces the earlier record.
    """
    sections = list(data.items())
    keep = max(len(sections) - shift, 0)
    tags: dict[str, Any] = {}
    for name, section in sections[:keep]:
        if not isinstance(section, Mapping):
            raise MalformedPayload(f"Section '{name}' is not an object")
        tags.update(section)
    return tags
