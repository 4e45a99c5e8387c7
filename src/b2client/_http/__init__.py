"""Shared HTTP infrastructure for B2 API clients."""

from .clients import create_base_async_client, create_base_client
from .config import (
    API_VERSION_PATH,
    DEFAULT_AUTH_URL,
    DEFAULT_TIMEOUT,
    USER_AGENT,
    VERSION,
)
from .iter_coroutine import iter_coroutine
from .transport import (
    AsyncTransport,
    BaseTransport,
    BlockingTransport,
    BytesBody,
    JSONBody,
    RawBody,
    RequestBody,
)

__all__ = [
    "API_VERSION_PATH",
    "DEFAULT_AUTH_URL",
    "DEFAULT_TIMEOUT",
    "USER_AGENT",
    "VERSION",
    "iter_coroutine",
    "BaseTransport",
    "BlockingTransport",
    "AsyncTransport",
    "JSONBody",
    "BytesBody",
    "RawBody",
    "RequestBody",
    "create_base_client",
    "create_base_async_client",
]
