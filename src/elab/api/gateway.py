"""HTTP gateway to the eLab master — builds routes, issues GET/POST calls."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import httpx

from elab.api.routes import API_ROUTES, Route
from elab.config import DEFAULT_TIMEOUT
from elab.errors import TransportFailure, ValidationError

logger = logging.getLogger(__name__)


class ApiGateway:
    """Thin synchronous client for the master's REST API.

    Every failure mode of a call (connection error, timeout, non-2xx status,
    body that is not JSON) surfaces as TransportFailure.
    """

    def __init__(
        self,
        address: str,
        timeout: float = DEFAULT_TIMEOUT,
        routes: Mapping[str, Route] = API_ROUTES,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._address = address.rstrip("/")
        self._routes = routes
        self._client = httpx.Client(
            base_url=self._address,
            timeout=timeout,
            transport=transport,
        )

    @property
    def address(self) -> str:
        return self._address

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    def path(self, route: str, **params: Any) -> str:
        try:
            template = self._routes[route]
        except KeyError:
            raise ValidationError(f"Unknown API route: {route}") from None
        return template.build(**params)

    def url(self, route: str, **params: Any) -> str:
        """Absolute URL for a route, e.g. for download links."""
        return self._address + self.path(route, **params)

    def get(self, route: str, **params: Any) -> Any:
        """GET a route and return the decoded JSON body."""
        path = self.path(route, **params)
        logger.debug("GET %s", path)
        return self._decode(self._send("GET", path))

    def post(self, route: str, body: Any, **params: Any) -> Any:
        """POST a JSON body to a route and return the decoded JSON ack."""
        path = self.path(route, **params)
        logger.debug("POST %s", path)
        return self._decode(self._send("POST", path, json=body))

    def download(self, route: str, dest: Path, **params: Any) -> Path:
        """Stream a route's raw body into ``dest``."""
        path = self.path(route, **params)
        logger.debug("GET %s -> %s", path, dest)
        self._ensure_open("GET", path)
        dest.parent.mkdir(parents=True, exist_ok=True)
        try:
            with self._client.stream("GET", path) as response:
                response.raise_for_status()
                with dest.open("wb") as fh:
                    for chunk in response.iter_bytes():
                        fh.write(chunk)
        except httpx.HTTPError as exc:
            raise TransportFailure(
                f"Download of {path} failed: {exc}", cause=exc
            ) from exc
        return dest

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> ApiGateway:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _send(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        self._ensure_open(method, path)
        try:
            response = self._client.request(method, path, **kwargs)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise TransportFailure(
                f"{method} {path} timed out", details={"path": path}, cause=exc
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise TransportFailure(
                f"{method} {path} returned HTTP {exc.response.status_code}",
                details={"path": path, "status": exc.response.status_code},
                cause=exc,
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportFailure(
                f"{method} {path} failed: {exc}", details={"path": path}, cause=exc
            ) from exc
        return response

    def _ensure_open(self, method: str, path: str) -> None:
        if self._client.is_closed:
            raise TransportFailure(
                f"{method} {path} failed: the gateway is closed",
                details={"path": path},
            )

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as exc:
            raise TransportFailure(
                f"Response from {response.request.url.path} is not JSON",
                cause=exc,
            ) from exc
