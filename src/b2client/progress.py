from __future__ import annotations

import inspect
import io
import time
from collections import deque
from collections.abc import AsyncIterator, Awaitable, Callable, Iterator
from typing import IO, cast

from ._http.iter_coroutine import iter_coroutine
from .streams import BUFFER_SIZE
from .types import CopyProgress

ProgressCallback = Callable[[CopyProgress], None] | Callable[[CopyProgress], Awaitable[None]]
Clock = Callable[[], float]

WINDOW_SECONDS = 10.0
MINIMUM_SPAN = 0.01


class SpeedCalculator:
    """Rolling transfer speed over the last ``window`` seconds.

    Samples are positions; if a sample moves backwards (a retried transfer)
    later samples are discarded so positions stay monotonic.
    """

    def __init__(self, *, window: float = WINDOW_SECONDS, clock: Clock = time.monotonic) -> None:
        self._window = window
        self._clock = clock
        self._samples: deque[tuple[float, int]] = deque()

    def add_sample(self, position: int) -> None:
        while self._samples and self._samples[-1][1] > position:
            self._samples.pop()
        self._samples.append((self._clock(), position))

    def bytes_per_second(self) -> float:
        cutoff = self._clock() - self._window
        while self._samples and self._samples[0][0] < cutoff:
            self._samples.popleft()
        if len(self._samples) < 2:
            return 0.0
        first_time, first_position = self._samples[0]
        last_time, last_position = self._samples[-1]
        seconds = max(last_time - first_time, MINIMUM_SPAN)
        return round((last_position - first_position) / seconds)


class ProgressReporter:
    """Turns byte counts into throttled ``CopyProgress`` samples.

    At most one sample is emitted per ``interval`` seconds, and the sample
    that reaches ``expected_bytes`` is always emitted, exactly once.
    """

    def __init__(
        self,
        callback: ProgressCallback | None,
        expected_bytes: int,
        *,
        interval: float = 0.1,
        await_callback: bool = True,
        clock: Clock = time.monotonic,
    ) -> None:
        self._callback = callback
        self._expected = expected_bytes
        self._interval = interval
        self._await_callback = await_callback
        self._clock = clock
        self._speed = SpeedCalculator(clock=clock)
        self._started = clock()
        self._last_emit: float | None = None
        self._transferred = 0
        self._completed = False
        self._speed.add_sample(0)

    @property
    def bytes_transferred(self) -> int:
        return self._transferred

    def rewind(self, position: int) -> None:
        """Move the counter back, e.g. before a retried attempt resends data."""
        self._transferred = min(self._transferred, position)
        self._speed.add_sample(self._transferred)

    async def advance(self, count: int) -> None:
        if count <= 0:
            return
        self._transferred += count
        self._speed.add_sample(self._transferred)
        await self._maybe_emit()

    async def _maybe_emit(self) -> None:
        if self._callback is None or self._completed:
            return
        now = self._clock()
        done = self._expected > 0 and self._transferred >= self._expected
        if not done and self._last_emit is not None and now - self._last_emit < self._interval:
            return
        self._last_emit = now
        self._completed = done
        await self._emit(self._sample(now))

    async def complete(self) -> None:
        """Emit the closing sample of a finished transfer.

        Nothing is emitted when a sample already reached ``expected_bytes``.
        Empty transfers never advance, so this is their only sample.
        """
        if self._callback is None or self._completed:
            return
        now = self._clock()
        self._last_emit = now
        self._completed = True
        await self._emit(self._sample(now))

    def _sample(self, now: float) -> CopyProgress:
        return CopyProgress(
            elapsed=now - self._started,
            bytes_per_second=self._speed.bytes_per_second(),
            bytes_transferred=self._transferred,
            expected_bytes=self._expected,
        )

    async def _emit(self, sample: CopyProgress) -> None:
        assert self._callback is not None
        result = self._callback(sample)
        if self._await_callback and inspect.isawaitable(result):
            await cast(Awaitable[None], result)


class ProgressBody:
    """Stream ``length`` bytes of a readable source as a request body.

    Chunks are read from the source's current position as the transport
    asks for them and each one is reported once sent. Iterate synchronously
    for blocking transports and asynchronously for async ones. The sync
    path drives the reporter with ``iter_coroutine``, which only works
    while its callback is not awaited.
    """

    def __init__(
        self,
        source: IO[bytes] | io.RawIOBase,
        length: int,
        reporter: ProgressReporter | None,
        chunk_size: int = BUFFER_SIZE,
    ) -> None:
        self._source = source
        self._length = length
        self._reporter = reporter
        self._chunk_size = max(1024, chunk_size)

    def __len__(self) -> int:
        return self._length

    def _chunks(self) -> Iterator[bytes]:
        remaining = self._length
        while remaining > 0:
            chunk = self._source.read(min(self._chunk_size, remaining))
            if not chunk:
                raise ValueError(
                    f"source ended after {self._length - remaining} of {self._length} bytes"
                )
            remaining -= len(chunk)
            yield chunk

    def __iter__(self) -> Iterator[bytes]:
        for chunk in self._chunks():
            if self._reporter is not None:
                iter_coroutine(self._reporter.advance(len(chunk)))
            yield chunk

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self._chunks():
            if self._reporter is not None:
                await self._reporter.advance(len(chunk))
            yield chunk


__all__ = ["ProgressBody", "ProgressCallback", "ProgressReporter", "SpeedCalculator"]
