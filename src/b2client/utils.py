from __future__ import annotations

import inspect
import logging
import os
import sys
import time
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime
from typing import Any, cast
from urllib.parse import quote, unquote

import httpx

from .models import DownloadFileResponse

SleepFn = Callable[[float], Awaitable[None] | None]

FILE_INFO_HEADER_PREFIX = "X-Bz-Info-"
FILE_INFO_HEADER_PREFIX_LOWER = FILE_INFO_HEADER_PREFIX.lower()
CONTENT_SHA1_HEADER = "X-Bz-Content-Sha1"
FILE_NAME_HEADER = "X-Bz-File-Name"
FILE_ID_HEADER = "X-Bz-File-Id"
PART_NUMBER_HEADER = "X-Bz-Part-Number"
UPLOAD_TIMESTAMP_HEADER = "X-Bz-Upload-Timestamp"

LARGE_FILE_SHA1 = "large_file_sha1"
SRC_LAST_MODIFIED_MILLIS = "src_last_modified_millis"
SHA1_NONE = "none"
DO_NOT_VERIFY = "do_not_verify"
MAX_FILE_INFO_ENTRIES = 10

_LOGGER_NAME = "b2client"


def configure_debug_logging() -> None:
    """Send b2client logs to stderr when ``DEBUG`` mentions ``b2``."""
    debug_env = os.getenv("DEBUG", "")
    if "b2" not in debug_env:
        return
    logger = logging.getLogger(_LOGGER_NAME)
    if any(getattr(h, "_b2client_debug", False) for h in logger.handlers):
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("b2client: %(levelname)s %(name)s: %(message)s"))
    handler._b2client_debug = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(logging.DEBUG)


def _sync_sleep(seconds: float) -> None:
    time.sleep(seconds)


async def _await_if_necessary(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await cast(Awaitable[Any], value)
    return value


def encode_header_value(value: str) -> str:
    """Percent-encode a file name or file info value for a B2 header."""
    return quote(value, safe="/")


def validate_file_info(file_info: Mapping[str, str]) -> None:
    if len(file_info) > MAX_FILE_INFO_ENTRIES:
        raise ValueError(
            f"file_info supports at most {MAX_FILE_INFO_ENTRIES} entries, got {len(file_info)}"
        )
    for key in file_info:
        if not key or not all(ch.isalnum() or ch in "-_." for ch in key):
            raise ValueError(f"invalid file_info key: {key!r}")


def file_info_headers(file_info: Mapping[str, str]) -> dict[str, str]:
    return {
        f"{FILE_INFO_HEADER_PREFIX}{key}": encode_header_value(str(value))
        for key, value in file_info.items()
    }


def millis(value: datetime) -> str:
    return str(int(value.timestamp() * 1000))


def resolve_content_sha1(content_sha1: str | None, file_info: Mapping[str, str]) -> str | None:
    """The effective SHA-1 of a stored file.

    Large files report ``none`` and carry their hash in ``large_file_sha1``.
    """
    if content_sha1 and content_sha1 != SHA1_NONE:
        return content_sha1.removeprefix("unverified:")
    return file_info.get(LARGE_FILE_SHA1)


def parse_download_headers(headers: httpx.Headers) -> DownloadFileResponse:
    file_info = {
        key[len(FILE_INFO_HEADER_PREFIX_LOWER) :]: unquote(value)
        for key, value in headers.items()
        if key.lower().startswith(FILE_INFO_HEADER_PREFIX_LOWER)
    }
    timestamp = headers.get(UPLOAD_TIMESTAMP_HEADER)
    file_name = headers.get(FILE_NAME_HEADER)
    return DownloadFileResponse(
        file_id=headers.get(FILE_ID_HEADER),
        file_name=unquote(file_name) if file_name is not None else None,
        content_length=int(headers.get("content-length", "0") or 0),
        content_type=headers.get("content-type"),
        content_sha1=headers.get(CONTENT_SHA1_HEADER),
        file_info=file_info,
        upload_timestamp=int(timestamp) if timestamp else None,
    )


__all__ = [
    "CONTENT_SHA1_HEADER",
    "DO_NOT_VERIFY",
    "FILE_ID_HEADER",
    "FILE_INFO_HEADER_PREFIX",
    "FILE_NAME_HEADER",
    "LARGE_FILE_SHA1",
    "PART_NUMBER_HEADER",
    "SHA1_NONE",
    "SRC_LAST_MODIFIED_MILLIS",
    "SleepFn",
    "configure_debug_logging",
    "encode_header_value",
    "file_info_headers",
    "millis",
    "parse_download_headers",
    "resolve_content_sha1",
    "validate_file_info",
]
