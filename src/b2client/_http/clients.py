"""Client factory functions for creating pre-configured httpx clients."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence

import httpx

from .config import DEFAULT_TIMEOUT, default_headers


def _create_static_headers_hook(
    headers: Mapping[str, str],
) -> Callable[[httpx.Request], httpx.Request]:
    """Create a request hook that adds static headers to every request.

    Uses setdefault so per-request headers take precedence.
    """

    def hook(request: httpx.Request) -> httpx.Request:
        for key, value in headers.items():
            request.headers.setdefault(key, value)
        return request

    return hook


def _create_async_static_headers_hook(
    headers: Mapping[str, str],
) -> Callable[[httpx.Request], object]:
    sync_hook = _create_static_headers_hook(headers)

    async def hook(request: httpx.Request) -> None:
        sync_hook(request)

    return hook


def _prepend_request_hooks(
    client: httpx.Client | httpx.AsyncClient,
    hooks: Sequence[Callable[[httpx.Request], object]],
) -> None:
    """Prepend request hooks to an existing client's event hooks.

    Prepending ensures our default hooks run first, allowing user-configured
    hooks to override or intercept the defaults.
    """
    existing_hooks = list(client.event_hooks.get("request", []))
    client.event_hooks["request"] = list(hooks) + existing_hooks


def create_base_client(
    timeout: float | None = None,
    *,
    test_mode: str | None = None,
    client: httpx.Client | None = None,
) -> httpx.Client:
    """Create or configure a sync httpx client for the B2 API.

    Args:
        timeout: Request timeout in seconds. Defaults to DEFAULT_TIMEOUT.
            Ignored if client is provided.
        test_mode: Value for the X-Bz-Test-Mode header, if any.
        client: Optional existing client to configure. If provided, header hooks
            are prepended to existing hooks, allowing user hooks to override.

    Returns:
        An httpx.Client that sends the b2client user agent on every request.
    """
    headers_hook = _create_static_headers_hook(default_headers(test_mode=test_mode))

    if client is not None:
        _prepend_request_hooks(client, [headers_hook])
        return client

    effective_timeout = timeout if timeout is not None else DEFAULT_TIMEOUT
    return httpx.Client(
        timeout=httpx.Timeout(effective_timeout),
        event_hooks={"request": [headers_hook]},
    )


def create_base_async_client(
    timeout: float | None = None,
    *,
    test_mode: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> httpx.AsyncClient:
    """Create or configure an async httpx client for the B2 API.

    Args:
        timeout: Request timeout in seconds. Defaults to DEFAULT_TIMEOUT.
            Ignored if client is provided.
        test_mode: Value for the X-Bz-Test-Mode header, if any.
        client: Optional existing client to configure.

    Returns:
        An httpx.AsyncClient that sends the b2client user agent on every request.
    """
    headers_hook = _create_async_static_headers_hook(default_headers(test_mode=test_mode))

    if client is not None:
        _prepend_request_hooks(client, [headers_hook])
        return client

    effective_timeout = timeout if timeout is not None else DEFAULT_TIMEOUT
    return httpx.AsyncClient(
        timeout=httpx.Timeout(effective_timeout),
        event_hooks={"request": [headers_hook]},
    )


__all__ = [
    "create_base_client",
    "create_base_async_client",
]
