"""Shared test fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from elab.api.gateway import ApiGateway
from elab.config import ElabConfig
from elab.crypto.base import int_to_text, text_to_int


class FakeCryptosystem:
    """Reversible stand-in: ciphertext is the plaintext's integer plus a key offset."""

    def __init__(self, offset: int = 1000) -> None:
        self.offset = offset
        self.generated = 0
        self.remote: tuple[int, int] | None = None

    def generate_key_pair(self) -> None:
        self.generated += 1

    def public_key_representation(self) -> str:
        return json.dumps({"n": "99", "g": "100"})

    def set_remote_public_key(self, n: int, g: int) -> None:
        self.remote = (n, g)

    def encrypt(self, plaintext: str) -> str:
        return str(text_to_int(plaintext) + self.offset)

    def decrypt(self, ciphertext: str) -> str:
        return int_to_text(int(ciphertext) - self.offset)

    def parse_bigint(self, text: str) -> int:
        return int(str(text))


class FakeMaster:
    """Routes httpx requests by path; records every request it sees."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.responses: dict[str, Any] = {}
        self.data: Any = {}

    def on(self, path: str, response: Any) -> None:
        """Register a JSON response, an httpx.Response, or a callable."""
        self.responses[path] = response

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def bodies(self, path: str) -> list[Any]:
        return [json.loads(r.content) for r in self.requests if r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if "/data/json/all/" in path:
            return httpx.Response(200, json=self.data)
        for prefix, response in self.responses.items():
            if path == prefix or path.startswith(prefix + "/"):
                if callable(response):
                    response = response(request)
                if isinstance(response, httpx.Response):
                    return response
                return httpx.Response(200, json=response)
        return httpx.Response(200, json={"ok": True})


@pytest.fixture
def fake_crypto() -> FakeCryptosystem:
    return FakeCryptosystem()


@pytest.fixture
def master() -> FakeMaster:
    return FakeMaster()


@pytest.fixture
def gateway(master: FakeMaster) -> ApiGateway:
    gw = ApiGateway("http://master.test", transport=httpx.MockTransport(master.handler))
    yield gw
    gw.close()


@pytest.fixture
def config(tmp_path: Path) -> ElabConfig:
    return ElabConfig(data_dir=tmp_path / "elab", address="http://master.test")


@pytest.fixture
def encrypt_snapshot(fake_crypto: FakeCryptosystem) -> Callable[[str, int], dict]:
    """Split a JSON text into chunks and encrypt each with the fake key."""

    def _encrypt(text: str, chunk_size: int = 8) -> dict:
        chunks = [text[i : i + chunk_size] for i in range(0, len(text), chunk_size)]
        return {"encrypted": [fake_crypto.encrypt(c) for c in chunks]}

    return _encrypt


@pytest.fixture
def plain_snapshot() -> dict:
    return {
        "inputs": {"u1": {"value": 5, "unit": "%"}},
        "outputs": {"y1": {"value": 6, "unit": "C"}},
        "status": {"online": True},
        "meta": {"ts": 1700000000},
    }
