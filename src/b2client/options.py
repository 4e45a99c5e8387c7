"""Client configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from ._http.config import DEFAULT_AUTH_URL, DEFAULT_TIMEOUT
from .errors import ConfigurationError

MEGABYTE = 1000 * 1000
GIGABYTE = 1000 * MEGABYTE
TERABYTE = 1000 * GIGABYTE

DEFAULT_RETRY_COUNT = 5
DEFAULT_REQUEST_MAX_PARALLEL = 10
DEFAULT_DOWNLOAD_MAX_PARALLEL = 5
DEFAULT_UPLOAD_MAX_PARALLEL = 3

DEFAULT_CUTOFF_SIZE = 100 * MEGABYTE
DEFAULT_PART_SIZE = 100 * MEGABYTE
MINIMUM_CUTOFF_SIZE = 5 * MEGABYTE
MAXIMUM_FILE_SIZE = 10 * TERABYTE
MINIMUM_PART_SIZE = 5 * MEGABYTE
MAXIMUM_PART_SIZE = 5 * GIGABYTE

DEFAULT_CACHE_TTL = 3600.0
DEFAULT_PROGRESS_INTERVAL = 0.1

ENV_KEY_ID = "B2_APPLICATION_KEY_ID"
ENV_APPLICATION_KEY = "B2_APPLICATION_KEY"


def clamp_cutoff_size(value: int) -> int:
    if value < MINIMUM_CUTOFF_SIZE:
        return DEFAULT_CUTOFF_SIZE
    return min(value, MAXIMUM_FILE_SIZE)


def clamp_part_size(value: int) -> int:
    if value < MINIMUM_PART_SIZE:
        return DEFAULT_PART_SIZE
    return min(value, MAXIMUM_PART_SIZE)


def _positive_or(value: int, default: int) -> int:
    return value if value > 0 else default


def _env_int(name: str) -> int | None:
    raw = os.getenv(name)
    if raw is None or raw == "":
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass
class ClientOptions:
    """Client configuration.

    Out-of-range values never raise: counts that are not positive and sizes
    below their minimum fall back to the default, and sizes above their
    maximum are clamped. Use ``validate()`` for the checks that do raise.
    """

    key_id: str | None = None
    application_key: str | None = None
    auth_url: str = DEFAULT_AUTH_URL
    timeout: float = DEFAULT_TIMEOUT
    retry_count: int = DEFAULT_RETRY_COUNT
    request_max_parallel: int = DEFAULT_REQUEST_MAX_PARALLEL
    download_max_parallel: int = DEFAULT_DOWNLOAD_MAX_PARALLEL
    upload_max_parallel: int = DEFAULT_UPLOAD_MAX_PARALLEL
    download_cutoff_size: int = DEFAULT_CUTOFF_SIZE
    download_part_size: int = DEFAULT_PART_SIZE
    upload_cutoff_size: int = DEFAULT_CUTOFF_SIZE
    upload_part_size: int = DEFAULT_PART_SIZE
    auto_set_part_size: bool = False
    checksum_disabled: bool = False
    test_mode: str | None = None
    upload_url_cache_ttl: float = DEFAULT_CACHE_TTL
    list_cache_ttl: float = 0.0
    progress_interval: float = DEFAULT_PROGRESS_INTERVAL

    def __post_init__(self) -> None:
        self.timeout = self.timeout if self.timeout > 0 else DEFAULT_TIMEOUT
        self.retry_count = _positive_or(self.retry_count, DEFAULT_RETRY_COUNT)
        self.request_max_parallel = _positive_or(
            self.request_max_parallel, DEFAULT_REQUEST_MAX_PARALLEL
        )
        self.download_max_parallel = _positive_or(
            self.download_max_parallel, DEFAULT_DOWNLOAD_MAX_PARALLEL
        )
        self.upload_max_parallel = _positive_or(
            self.upload_max_parallel, DEFAULT_UPLOAD_MAX_PARALLEL
        )
        self.download_cutoff_size = clamp_cutoff_size(self.download_cutoff_size)
        self.upload_cutoff_size = clamp_cutoff_size(self.upload_cutoff_size)
        self.download_part_size = clamp_part_size(self.download_part_size)
        self.upload_part_size = clamp_part_size(self.upload_part_size)

    def resolve_credentials(
        self, key_id: str | None = None, application_key: str | None = None
    ) -> tuple[str, str]:
        """Explicit arguments win over the configured values, then the environment."""
        key_id = key_id or self.key_id or os.getenv(ENV_KEY_ID)
        application_key = application_key or self.application_key or os.getenv(ENV_APPLICATION_KEY)
        if not key_id:
            raise ConfigurationError(
                f"Missing application key id. Pass key_id=... or set {ENV_KEY_ID}."
            )
        if not application_key:
            raise ConfigurationError(
                f"Missing application key. Pass application_key=... or set {ENV_APPLICATION_KEY}."
            )
        return key_id, application_key

    def validate(self, key_id: str | None = None, application_key: str | None = None) -> None:
        """Raise ``ConfigurationError`` for options that cannot work together."""
        self.resolve_credentials(key_id, application_key)
        if self.upload_cutoff_size < self.upload_part_size:
            raise ConfigurationError(
                f"upload_cutoff_size ({self.upload_cutoff_size}) must be at least "
                f"upload_part_size ({self.upload_part_size})"
            )
        if self.download_cutoff_size < self.download_part_size:
            raise ConfigurationError(
                f"download_cutoff_size ({self.download_cutoff_size}) must be at least "
                f"download_part_size ({self.download_part_size})"
            )

    def apply_recommended_part_size(self, recommended_part_size: int) -> None:
        """Use the server-recommended part size for every cutoff and part size."""
        if recommended_part_size <= 0:
            return
        self.upload_cutoff_size = clamp_cutoff_size(recommended_part_size)
        self.upload_part_size = clamp_part_size(recommended_part_size)
        self.download_cutoff_size = clamp_cutoff_size(recommended_part_size)
        self.download_part_size = clamp_part_size(recommended_part_size)

    @classmethod
    def from_env(cls, *, dotenv: bool = True, **overrides: object) -> ClientOptions:
        """Build options from ``B2_*`` environment variables.

        When ``dotenv`` is true the nearest ``.env`` file above the working
        directory is loaded first; variables already present in the
        environment win.
        """
        if dotenv:
            load_dotenv(find_dotenv(usecwd=True))
        values: dict[str, object] = {
            "key_id": os.getenv(ENV_KEY_ID),
            "application_key": os.getenv(ENV_APPLICATION_KEY),
            "test_mode": os.getenv("B2_TEST_MODE") or None,
        }
        auth_url = os.getenv("B2_AUTH_URL")
        if auth_url:
            values["auth_url"] = auth_url
        retry_count = _env_int("B2_RETRY_COUNT")
        if retry_count is not None:
            values["retry_count"] = retry_count
        timeout = _env_int("B2_TIMEOUT")
        if timeout is not None:
            values["timeout"] = float(timeout)
        values.update(overrides)
        return cls(**values)  # type: ignore[arg-type]


__all__ = [
    "ClientOptions",
    "DEFAULT_CACHE_TTL",
    "DEFAULT_CUTOFF_SIZE",
    "DEFAULT_PART_SIZE",
    "GIGABYTE",
    "MAXIMUM_FILE_SIZE",
    "MAXIMUM_PART_SIZE",
    "MEGABYTE",
    "MINIMUM_CUTOFF_SIZE",
    "MINIMUM_PART_SIZE",
    "clamp_cutoff_size",
    "clamp_part_size",
]
