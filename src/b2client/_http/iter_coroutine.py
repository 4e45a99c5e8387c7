"""Drive never-suspending coroutines to completion without an event loop."""

from __future__ import annotations

import typing

_T = typing.TypeVar("_T")


def iter_coroutine(coro: typing.Coroutine[None, None, _T]) -> _T:
    """
    Run ``coro`` synchronously and return its result.

    The blocking client executes the shared async engine through this
    function. Every awaitable the engine touches in blocking mode (transport
    calls, sleeps, bulkhead admission) completes without yielding, so one
    ``send(None)`` is enough to reach ``StopIteration``.

    Raises:
        RuntimeError: If the coroutine yields, i.e. it awaited something
            that needs a real event loop.
    """
    try:
        yielded = coro.send(None)
    except StopIteration as stop:
        return typing.cast(_T, stop.value)
    finally:
        coro.close()
    raise RuntimeError(
        f"coroutine {coro!r} suspended on {yielded!r}; blocking mode requires "
        "non-suspending primitives"
    )


__all__ = ["iter_coroutine"]
