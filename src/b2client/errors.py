"""Exceptions raised by b2client."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ErrorResponse


class B2Error(Exception):
    """Base class for every error raised by the B2 client."""


class AuthenticationFailure(B2Error):
    """The service rejected the authorization token (HTTP 401).

    Retried after reconnecting; surfaces once the retry budget is spent.
    """

    def __init__(self, message: str = "Authentication failed", *, status_code: int = 401):
        super().__init__(message)
        self.status_code = status_code


class CapExceeded(B2Error):
    """A usage cap was exceeded (HTTP 403). Never retried."""

    def __init__(self, message: str = "Usage cap exceeded", *, status_code: int = 403):
        super().__init__(message)
        self.status_code = status_code


class IntegrityCheckFailure(B2Error):
    def __init__(self, expected: str | None, actual: str, *, subject: str = "content"):
        super().__init__(
            f"SHA-1 mismatch for {subject}: expected {expected!r}, computed {actual!r}"
        )
        self.expected = expected
        self.actual = actual
        self.subject = subject


class ApiError(B2Error):
    """A structured error returned by the service.

    Endpoints normally hand these back inside a failed ``ApiResult``; the
    exception form is only raised where there is no result to return.
    """

    def __init__(self, error: ErrorResponse):
        super().__init__(f"{error.status} {error.code}: {error.message}")
        self.error = error

    @property
    def status_code(self) -> int:
        return self.error.status

    @property
    def code(self) -> str:
        return self.error.code


class TransportFault(B2Error):
    """A network-level failure (connection, timeout, protocol)."""

    def __init__(self, message: str, cause: Exception | None = None):
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)
        self.cause = cause


class DecodeError(B2Error):
    """The response body could not be decoded into the expected shape."""

    def __init__(self, message: str, *, content_type: str | None = None):
        super().__init__(message)
        self.content_type = content_type


class ConfigurationError(B2Error):
    """Invalid options or missing credentials."""


class TransferCanceled(Exception):
    """The caller's cancellation token was triggered. Not a ``B2Error``."""


__all__ = [
    "ApiError",
    "AuthenticationFailure",
    "B2Error",
    "CapExceeded",
    "ConfigurationError",
    "DecodeError",
    "IntegrityCheckFailure",
    "TransferCanceled",
    "TransportFault",
]
