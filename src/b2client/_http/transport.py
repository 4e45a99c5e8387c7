"""HTTP transport implementations for sync and async clients."""

from __future__ import annotations

import abc
from collections.abc import AsyncIterable, AsyncIterator, Iterable
from dataclasses import dataclass
from typing import Any

import httpx

from ..errors import TransportFault


@dataclass(frozen=True, slots=True)
class JSONBody:
    """JSON request body - automatically sets Content-Type to application/json."""

    data: Any


@dataclass(frozen=True, slots=True)
class BytesBody:
    """Raw bytes request body with explicit content type."""

    data: bytes
    content_type: str = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class RawBody:
    """Streamed request body, passed to httpx unchanged.

    Sync transports expect an ``Iterable[bytes]``, async transports an
    ``AsyncIterable[bytes]``.
    """

    content: Iterable[bytes] | AsyncIterable[bytes]


RequestBody = JSONBody | BytesBody | RawBody | None


def _request_kwargs(
    body: RequestBody,
    headers: dict[str, str] | None,
    params: dict[str, Any] | None,
    timeout: float | None,
) -> dict[str, Any]:
    request_headers = dict(headers or {})
    kwargs: dict[str, Any] = {"params": params or None}
    if isinstance(body, JSONBody):
        kwargs["json"] = body.data
    elif isinstance(body, BytesBody):
        kwargs["content"] = body.data
        request_headers.setdefault("content-type", body.content_type)
    elif isinstance(body, RawBody):
        kwargs["content"] = body.content
    kwargs["headers"] = request_headers
    if timeout is not None:
        kwargs["timeout"] = httpx.Timeout(timeout)
    return kwargs


class BaseTransport(abc.ABC):
    """Abstract base class for HTTP transports.

    Every ``httpx.TransportError`` is re-raised as ``TransportFault``.
    """

    @abc.abstractmethod
    async def send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        body: RequestBody = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        stream: bool = False,
    ) -> httpx.Response:
        """Send an HTTP request and return the response."""
        ...

    @abc.abstractmethod
    def iter_bytes(self, response: httpx.Response) -> AsyncIterator[bytes]:
        """Iterate over the body of a response sent with ``stream=True``."""
        ...

    @abc.abstractmethod
    async def read(self, response: httpx.Response) -> bytes:
        """Read the remaining body of a streamed response."""
        ...

    @abc.abstractmethod
    async def close_response(self, response: httpx.Response) -> None: ...

    @abc.abstractmethod
    def close(self) -> None: ...

    async def aclose(self) -> None:
        self.close()


class BlockingTransport(BaseTransport):
    """
    Synchronous HTTP transport using httpx.Client.

    Methods are declared async but don't actually await anything,
    allowing them to be executed via iter_coroutine().
    """

    def __init__(self, client: httpx.Client) -> None:
        self._client = client

    async def send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        body: RequestBody = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        stream: bool = False,
    ) -> httpx.Response:
        request = self._client.build_request(
            method, url, **_request_kwargs(body, headers, params, timeout)
        )
        try:
            return self._client.send(request, stream=stream)
        except httpx.TransportError as exc:
            raise TransportFault(f"{method} {url} failed", exc) from exc

    async def iter_bytes(self, response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            for chunk in response.iter_bytes():
                yield chunk
        except httpx.TransportError as exc:
            raise TransportFault("reading response body failed", exc) from exc

    async def read(self, response: httpx.Response) -> bytes:
        try:
            return response.read()
        except httpx.TransportError as exc:
            raise TransportFault("reading response body failed", exc) from exc

    async def close_response(self, response: httpx.Response) -> None:
        response.close()

    def close(self) -> None:
        self._client.close()


class AsyncTransport(BaseTransport):
    """Asynchronous HTTP transport using httpx.AsyncClient."""

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    async def send(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        body: RequestBody = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
        stream: bool = False,
    ) -> httpx.Response:
        request = self._client.build_request(
            method, url, **_request_kwargs(body, headers, params, timeout)
        )
        try:
            return await self._client.send(request, stream=stream)
        except httpx.TransportError as exc:
            raise TransportFault(f"{method} {url} failed", exc) from exc

    async def iter_bytes(self, response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for chunk in response.aiter_bytes():
                yield chunk
        except httpx.TransportError as exc:
            raise TransportFault("reading response body failed", exc) from exc

    async def read(self, response: httpx.Response) -> bytes:
        try:
            return await response.aread()
        except httpx.TransportError as exc:
            raise TransportFault("reading response body failed", exc) from exc

    async def close_response(self, response: httpx.Response) -> None:
        await response.aclose()

    def close(self) -> None:
        """No-op; use aclose() to release the async client."""

    async def aclose(self) -> None:
        await self._client.aclose()


__all__ = [
    "BaseTransport",
    "BlockingTransport",
    "AsyncTransport",
    "JSONBody",
    "BytesBody",
    "RawBody",
    "RequestBody",
]
