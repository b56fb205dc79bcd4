"""Cryptosystem protocol — all homomorphic backends must satisfy this."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class Cryptosystem(Protocol):
    """Capability consumed by the crypto channel.

    Holds the local key pair and, after a handshake, the master's public key.
    Strings cross the boundary as big-endian UTF-8 integers; ciphertexts as
    decimal strings.
    """

    def generate_key_pair(self) -> None:
        """Create the local key pair."""
        ...

    def public_key_representation(self) -> str:
        """Serialised local public key, sent to the master."""
        ...

    def set_remote_public_key(self, n: int, g: int) -> None:
        """Install the master's public key for outbound encryption."""
        ...

    def encrypt(self, plaintext: str) -> str:
        """Encrypt with the remote public key."""
        ...

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt with the local key pair."""
        ...

    def parse_bigint(self, text: str) -> int:
        """Parse a decimal big integer as sent by the master."""
        ...


def text_to_int(text: str) -> int:
    return int.from_bytes(text.encode("utf-8"), "big")


def int_to_text(value: int) -> str:
    length = max(1, (value.bit_length() + 7) // 8)
    return value.to_bytes(length, "big").decode("utf-8")
