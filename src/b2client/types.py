from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Generic, TypeVar

from .errors import ApiError
from .models import Allowed, ErrorResponse

T = TypeVar("T")

DEFAULT_TOKEN_LIFETIME = 86400


def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


@dataclass(frozen=True, slots=True)
class AccountInfo:
    """Account endpoints and part-size hints obtained from authorize.

    Replaced as a whole on every (re)connect.
    """

    account_id: str = ""
    auth_url: str = ""
    api_url: str = ""
    download_url: str = ""
    recommended_part_size: int = 0
    absolute_minimum_part_size: int = 0


@dataclass(frozen=True, slots=True)
class AuthToken:
    authorization: str
    allowed: Allowed = field(default_factory=Allowed)
    issued_at: datetime = field(default_factory=_utcnow)
    expires_in: int = DEFAULT_TOKEN_LIFETIME

    @property
    def expires_at(self) -> datetime:
        return self.issued_at + timedelta(seconds=self.expires_in)

    def is_expiring(self, now: datetime | None = None) -> bool:
        """True once the token has used up 1/90th of its lifetime."""
        elapsed = ((now or _utcnow()) - self.issued_at).total_seconds()
        return elapsed >= self.expires_in / 90

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or _utcnow()) >= self.expires_at


@dataclass(frozen=True, slots=True)
class FilePart:
    """One contiguous byte range of a multipart transfer."""

    part_number: int
    position: int
    length: int

    @property
    def end(self) -> int:
        return self.position + self.length

    @property
    def range_header(self) -> str:
        return f"bytes={self.position}-{self.end - 1}"


@dataclass
class ApiResult(Generic[T]):
    """Outcome of an endpoint call: a parsed response or a structured error."""

    response: T | None = None
    error: ErrorResponse | None = None
    status_code: int = 200
    headers: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if (self.response is None) == (self.error is None):
            raise ValueError("ApiResult needs exactly one of response or error")

    @classmethod
    def success(
        cls, response: T, *, status_code: int = 200, headers: dict[str, str] | None = None
    ) -> ApiResult[T]:
        return cls(response=response, status_code=status_code, headers=headers or {})

    @classmethod
    def failure(
        cls, error: ErrorResponse, *, headers: dict[str, str] | None = None
    ) -> ApiResult[T]:
        return cls(error=error, status_code=error.status, headers=headers or {})

    @property
    def is_success(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the response or raise the error as ``ApiError``."""
        if self.error is not None:
            raise ApiError(self.error)
        assert self.response is not None
        return self.response

    def cast_failure(self) -> ApiResult:
        """Re-type a failed result so it can be returned from another operation."""
        assert self.error is not None
        return ApiResult.failure(self.error, headers=self.headers)


@dataclass(frozen=True, slots=True)
class CopyProgress:
    """A progress sample for an upload or download."""

    elapsed: float
    bytes_per_second: float
    bytes_transferred: int
    expected_bytes: int

    @property
    def percentage(self) -> float:
        if self.expected_bytes <= 0:
            return 100.0
        return round(self.bytes_transferred / self.expected_bytes * 100, 2)


@dataclass(slots=True)
class UploadRequest:
    bucket_id: str
    file_name: str
    content_type: str = "b2/x-auto"
    file_info: dict[str, str] = field(default_factory=dict)
    last_modified: datetime | None = None
    large_file: bool = False


@dataclass(slots=True)
class DownloadRequest:
    """Identifies a file by bucket name and file name, or by file id."""

    bucket_name: str | None = None
    file_name: str | None = None
    file_id: str | None = None

    def __post_init__(self) -> None:
        if self.file_id is None and (self.bucket_name is None or self.file_name is None):
            raise ValueError("DownloadRequest needs file_id or bucket_name and file_name")


__all__ = [
    "AccountInfo",
    "ApiResult",
    "AuthToken",
    "CopyProgress",
    "DownloadRequest",
    "FilePart",
    "UploadRequest",
]
