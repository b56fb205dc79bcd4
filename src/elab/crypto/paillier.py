"""Paillier cryptosystem backed by python-paillier (``phe``)."""

from __future__ import annotations

import json
import logging

from phe import paillier
from phe.util import powmod

from elab.crypto.base import int_to_text, text_to_int

logger = logging.getLogger(__name__)


class PaillierCryptosystem:
    """Local Paillier key pair plus the master's public key.

    The master may publish a generator other than ``n + 1``; in that case
    encryption falls back to the textbook ``g^m * r^n mod n^2`` form.
    """

    def __init__(self, key_length: int = 512) -> None:
        self._key_length = key_length
        self._public_key: paillier.PaillierPublicKey | None = None
        self._private_key: paillier.PaillierPrivateKey | None = None
        self._remote_key: paillier.PaillierPublicKey | None = None
        self._remote_g = 0

    def generate_key_pair(self) -> None:
        logger.debug("Generating %d-bit Paillier key pair", self._key_length)
        self._public_key, self._private_key = paillier.generate_paillier_keypair(
            n_length=self._key_length
        )

    def public_key_representation(self) -> str:
        if self._public_key is None:
            raise RuntimeError("No key pair; call generate_key_pair() first")
        return json.dumps(
            {"n": str(self._public_key.n), "g": str(self._public_key.g)}
        )

    def set_remote_public_key(self, n: int, g: int) -> None:
        self._remote_key = paillier.PaillierPublicKey(n)
        self._remote_g = g

    def encrypt(self, plaintext: str) -> str:
        key = self._remote_key
        if key is None:
            raise RuntimeError("No remote public key; perform a handshake first")
        message = text_to_int(plaintext)
        if message >= key.n:
            raise ValueError(
                f"Plaintext of {len(plaintext)} characters does not fit the key"
            )
        if self._remote_g == key.g:
            return str(key.raw_encrypt(message))
        r = key.get_random_lt_n()
        ciphertext = (
            powmod(self._remote_g, message, key.nsquare)
            * powmod(r, key.n, key.nsquare)
        ) % key.nsquare
        return str(ciphertext)

    def decrypt(self, ciphertext: str) -> str:
        if self._private_key is None:
            raise RuntimeError("No key pair; call generate_key_pair() first")
        return int_to_text(self._private_key.raw_decrypt(self.parse_bigint(ciphertext)))

    def parse_bigint(self, text: str) -> int:
        value = int(str(text).strip())
        if value < 0:
            raise ValueError(f"Negative big integer: {text}")
        return value
