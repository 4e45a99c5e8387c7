"""Client library for B2-style cloud object storage."""

from ._http import VERSION as __version__
from .cache import CacheClass, ResponseCache
from .cancellation import CancellationToken
from .client import AsyncB2Client, B2Client
from .errors import (
    ApiError,
    AuthenticationFailure,
    B2Error,
    CapExceeded,
    ConfigurationError,
    DecodeError,
    IntegrityCheckFailure,
    TransferCanceled,
    TransportFault,
)
from .models import DownloadFileResponse, ErrorResponse, FileItem
from .options import ClientOptions
from .types import (
    AccountInfo,
    ApiResult,
    AuthToken,
    CopyProgress,
    DownloadRequest,
    FilePart,
    UploadRequest,
)
from .utils import configure_debug_logging

configure_debug_logging()

__all__ = [
    "__version__",
    # clients
    "B2Client",
    "AsyncB2Client",
    "ClientOptions",
    # errors
    "B2Error",
    "ApiError",
    "AuthenticationFailure",
    "CapExceeded",
    "ConfigurationError",
    "DecodeError",
    "IntegrityCheckFailure",
    "TransportFault",
    "TransferCanceled",
    # types
    "AccountInfo",
    "ApiResult",
    "AuthToken",
    "CopyProgress",
    "DownloadRequest",
    "FilePart",
    "UploadRequest",
    "DownloadFileResponse",
    "ErrorResponse",
    "FileItem",
    # helpers
    "CacheClass",
    "CancellationToken",
    "ResponseCache",
]
