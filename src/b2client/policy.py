"""Retry and admission control wrapped around every network operation.

Each policy is three layers, innermost first: a bulkhead semaphore that
bounds concurrent attempts, a retry loop for ``IntegrityCheckFailure``, and
a retry loop for ``AuthenticationFailure`` that reconnects before trying
again. Every other exception passes straight through.
"""

from __future__ import annotations

import logging
import random
import threading
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, TypeVar

import anyio

from .cancellation import CancellationToken, check_cancelled
from .errors import AuthenticationFailure, IntegrityCheckFailure
from .utils import SleepFn, _await_if_necessary

if TYPE_CHECKING:
    from .options import ClientOptions

logger = logging.getLogger(__name__)

T = TypeVar("T")
ReconnectFn = Callable[[], Awaitable[Any]]


def get_sleep_duration(attempt: int) -> float:
    """Exponential backoff with 10-1000 ms of jitter; ``attempt`` starts at 1."""
    return 2**attempt + random.randint(10, 1000) / 1000


class BlockingBulkhead:
    """Bulkhead for the blocking client; acquiring never suspends a coroutine."""

    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._semaphore = threading.BoundedSemaphore(limit)

    @property
    def limit(self) -> int:
        return self._limit

    async def __aenter__(self) -> None:
        self._semaphore.acquire()

    async def __aexit__(self, *exc_info: object) -> None:
        self._semaphore.release()


class AsyncBulkhead:
    def __init__(self, limit: int) -> None:
        self._limit = limit
        self._semaphore = anyio.Semaphore(limit)

    @property
    def limit(self) -> int:
        return self._limit

    @property
    def available(self) -> int:
        return self._semaphore.value

    async def __aenter__(self) -> None:
        await self._semaphore.acquire()

    async def __aexit__(self, *exc_info: object) -> None:
        self._semaphore.release()


Bulkhead = BlockingBulkhead | AsyncBulkhead


class ResiliencePolicy:
    def __init__(
        self,
        name: str,
        *,
        bulkhead: Bulkhead,
        retry_count: int,
        reconnect: ReconnectFn,
        sleep_fn: SleepFn,
    ) -> None:
        self.name = name
        self.bulkhead = bulkhead
        self.retry_count = retry_count
        self._reconnect = reconnect
        self._sleep_fn = sleep_fn

    async def execute(
        self,
        operation: Callable[[], Awaitable[T]],
        *,
        cancel: CancellationToken | None = None,
    ) -> T:
        """Run ``operation`` under this policy.

        ``operation`` is called once per physical attempt, so it must rebuild
        any request state (rewound streams, fresh bodies) each time.
        """
        attempt = 0
        while True:
            try:
                return await self._execute_with_integrity_retry(operation, cancel)
            except AuthenticationFailure as exc:
                if attempt >= self.retry_count:
                    raise
                attempt += 1
                logger.warning(
                    "%s: authentication failed (%s); reconnecting, retry %d of %d",
                    self.name,
                    exc,
                    attempt,
                    self.retry_count,
                )
                await self._reconnect()
                await self._backoff(attempt)

    async def _execute_with_integrity_retry(
        self,
        operation: Callable[[], Awaitable[T]],
        cancel: CancellationToken | None,
    ) -> T:
        attempt = 0
        while True:
            check_cancelled(cancel)
            try:
                async with self.bulkhead:
                    return await operation()
            except IntegrityCheckFailure as exc:
                if attempt >= self.retry_count:
                    raise
                attempt += 1
                logger.warning(
                    "%s: %s; retry %d of %d", self.name, exc, attempt, self.retry_count
                )
                await self._backoff(attempt)

    async def _backoff(self, attempt: int) -> None:
        delay = get_sleep_duration(attempt)
        logger.debug("%s: waiting %.3fs before retry %d", self.name, delay, attempt)
        await _await_if_necessary(self._sleep_fn(delay))


class PolicyManager:
    """The invoke, upload and download policies of one client.

    ``reconnect`` is supplied by the owner (normally ``AuthSession.reconnect``)
    and awaited before each authentication retry.
    """

    def __init__(
        self,
        options: ClientOptions,
        reconnect: ReconnectFn,
        *,
        blocking: bool,
        sleep_fn: SleepFn,
    ) -> None:
        bulkhead_type = BlockingBulkhead if blocking else AsyncBulkhead

        def make(name: str, limit: int) -> ResiliencePolicy:
            return ResiliencePolicy(
                name,
                bulkhead=bulkhead_type(limit),
                retry_count=options.retry_count,
                reconnect=reconnect,
                sleep_fn=sleep_fn,
            )

        self.invoke = make("invoke", options.request_max_parallel)
        self.upload = make("upload", options.upload_max_parallel)
        self.download = make("download", options.download_max_parallel)


__all__ = [
    "AsyncBulkhead",
    "BlockingBulkhead",
    "PolicyManager",
    "ReconnectFn",
    "ResiliencePolicy",
    "get_sleep_duration",
]
