import pytest

from b2client._http.iter_coroutine import iter_coroutine


class _SuspendingAwaitable:
    def __await__(self):
        yield None
        return None


def test_iter_coroutine_returns_result_and_closes_coroutine() -> None:
    closed = False

    async def coro() -> str:
        nonlocal closed
        try:
            return "ok"
        finally:
            closed = True

    assert iter_coroutine(coro()) == "ok"
    assert closed


def test_iter_coroutine_propagates_exceptions() -> None:
    async def coro() -> None:
        raise KeyError("boom")

    with pytest.raises(KeyError):
        iter_coroutine(coro())


def test_iter_coroutine_raises_on_suspending_coroutine_and_closes_coroutine() -> None:
    closed = False

    async def coro() -> None:
        nonlocal closed
        try:
            await _SuspendingAwaitable()
        finally:
            closed = True

    with pytest.raises(RuntimeError, match="non-suspending primitives"):
        iter_coroutine(coro())

    assert closed
