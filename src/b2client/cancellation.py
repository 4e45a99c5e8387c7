"""Cooperative cancellation for long-running transfers.

Transfers check the token between physical attempts and between parts; a
request that is already on the wire is allowed to finish.
"""

from __future__ import annotations

import threading

from .errors import TransferCanceled


class CancellationToken:
    """Thread-safe flag that a caller sets to stop a transfer.

    Examples:
        >>> token = CancellationToken()
        >>> client.upload(request, source, cancel=token)  # in a worker
        >>> token.cancel()  # from another thread
    """

    def __init__(self) -> None:
        self._is_cancelled = threading.Event()

    def cancel(self) -> None:
        self._is_cancelled.set()

    def is_cancelled(self) -> bool:
        return self._is_cancelled.is_set()

    def raise_if_cancelled(self) -> None:
        if self._is_cancelled.is_set():
            raise TransferCanceled("transfer was canceled")

    def reset(self) -> None:
        """Clear the flag so the token can be reused. Intended for tests."""
        self._is_cancelled.clear()


def check_cancelled(token: CancellationToken | None) -> None:
    if token is not None:
        token.raise_if_cancelled()


__all__ = ["CancellationToken", "check_cancelled"]
