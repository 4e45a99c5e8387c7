"""B2 client classes."""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Iterator
from typing import IO, Any, TypeVar

import anyio
import httpx

from ._core import _BaseB2Client
from ._http import (
    AsyncTransport,
    BlockingTransport,
    create_base_async_client,
    create_base_client,
    iter_coroutine,
)
from .cancellation import CancellationToken
from .models import (
    BucketItem,
    BucketType,
    CancelLargeFileResponse,
    DeleteFileVersionResponse,
    DownloadFileResponse,
    FileItem,
    GetDownloadAuthorizationResponse,
    KeyItem,
    ListBucketsResponse,
    ListFileNamesResponse,
    ListFileVersionsResponse,
    ListKeysResponse,
    ListPartsResponse,
    ListUnfinishedLargeFilesResponse,
    UploadPartResponse,
    UploadPartUrlResponse,
    UploadUrlResponse,
)
from .options import ClientOptions
from .paging import Pager
from .progress import ProgressCallback
from .types import AccountInfo, ApiResult, DownloadRequest, UploadRequest
from .utils import _sync_sleep

T = TypeVar("T")


def _resolve_options(
    options: ClientOptions | None, key_id: str | None, application_key: str | None
) -> ClientOptions:
    effective = options or ClientOptions()
    if key_id is not None:
        effective.key_id = key_id
    if application_key is not None:
        effective.application_key = application_key
    return effective


class B2Client(_BaseB2Client):
    """Synchronous client for the B2 API.

    Example::

        with B2Client(key_id, application_key) as b2:
            b2.connect()
            with open("photo.jpg", "rb") as source:
                b2.upload(UploadRequest(bucket_id, "photo.jpg"), source).unwrap()
    """

    def __init__(
        self,
        key_id: str | None = None,
        application_key: str | None = None,
        *,
        options: ClientOptions | None = None,
        client: httpx.Client | None = None,
    ):
        effective = _resolve_options(options, key_id, application_key)
        http_client = create_base_client(
            effective.timeout, test_mode=effective.test_mode, client=client
        )
        self._setup(effective, BlockingTransport(http_client), blocking=True, sleep_fn=_sync_sleep)

    def __enter__(self) -> B2Client:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._transport.close()

    def connect(
        self, key_id: str | None = None, application_key: str | None = None
    ) -> AccountInfo:
        """Authorize the account; credentials default to the configured ones."""
        return iter_coroutine(self._connect(key_id, application_key))

    # -- transfers --------------------------------------------------------

    def upload(
        self,
        request: UploadRequest,
        source: IO[bytes],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[FileItem]:
        """Upload ``source``, as a large file when it reaches the upload cutoff."""
        return iter_coroutine(self._upload(request, source, progress=progress, cancel=cancel))

    def upload_file(
        self,
        bucket_id: str,
        file_name: str,
        local_path: str | os.PathLike[str],
        *,
        content_type: str = "b2/x-auto",
        file_info: dict[str, str] | None = None,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[FileItem]:
        return iter_coroutine(
            self._upload_file(
                bucket_id,
                file_name,
                local_path,
                content_type=content_type,
                file_info=file_info,
                progress=progress,
                cancel=cancel,
            )
        )

    def upload_directory(
        self,
        bucket_id: str,
        local_dir: str | os.PathLike[str],
        *,
        pattern: str = "*",
        recursive: bool = False,
        prefix: str = "",
        content_type: str = "b2/x-auto",
        cancel: CancellationToken | None = None,
    ) -> list[ApiResult[FileItem]]:
        """Upload the files in ``local_dir`` matching ``pattern``, one result per file."""
        return iter_coroutine(
            self._upload_directory(
                bucket_id,
                local_dir,
                pattern=pattern,
                recursive=recursive,
                prefix=prefix,
                content_type=content_type,
                cancel=cancel,
            )
        )

    def download(
        self,
        request: DownloadRequest,
        destination: IO[bytes],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        """Download into ``destination``, in ranged parts at or above the download cutoff."""
        return iter_coroutine(
            self._download(request, destination, progress=progress, cancel=cancel)
        )

    def download_file(
        self,
        bucket_name: str,
        file_name: str,
        local_path: str | os.PathLike[str],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        return iter_coroutine(
            self._download_file(
                bucket_name, file_name, local_path, progress=progress, cancel=cancel
            )
        )

    def download_file_by_id(
        self,
        file_id: str,
        local_path: str | os.PathLike[str],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        return iter_coroutine(
            self._download_file_by_id(file_id, local_path, progress=progress, cancel=cancel)
        )

    # -- buckets ----------------------------------------------------------

    def list_buckets(
        self,
        *,
        bucket_id: str | None = None,
        bucket_name: str | None = None,
        bucket_types: list[str] | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListBucketsResponse]:
        return iter_coroutine(
            self._api.list_buckets(
                bucket_id=bucket_id,
                bucket_name=bucket_name,
                bucket_types=bucket_types,
                cache_ttl=cache_ttl,
            )
        )

    def create_bucket(
        self,
        bucket_name: str,
        bucket_type: BucketType = "allPrivate",
        *,
        bucket_info: dict[str, str] | None = None,
        cors_rules: list[dict[str, Any]] | None = None,
        lifecycle_rules: list[dict[str, Any]] | None = None,
    ) -> ApiResult[BucketItem]:
        return iter_coroutine(
            self._api.create_bucket(
                bucket_name,
                bucket_type,
                bucket_info=bucket_info,
                cors_rules=cors_rules,
                lifecycle_rules=lifecycle_rules,
            )
        )

    def update_bucket(
        self,
        bucket_id: str,
        *,
        bucket_type: BucketType | None = None,
        bucket_info: dict[str, str] | None = None,
        cors_rules: list[dict[str, Any]] | None = None,
        lifecycle_rules: list[dict[str, Any]] | None = None,
        if_revision_is: int | None = None,
    ) -> ApiResult[BucketItem]:
        return iter_coroutine(
            self._api.update_bucket(
                bucket_id,
                bucket_type=bucket_type,
                bucket_info=bucket_info,
                cors_rules=cors_rules,
                lifecycle_rules=lifecycle_rules,
                if_revision_is=if_revision_is,
            )
        )

    def delete_bucket(self, bucket_id: str) -> ApiResult[BucketItem]:
        return iter_coroutine(self._api.delete_bucket(bucket_id))

    # -- files ------------------------------------------------------------

    def list_file_names(
        self,
        bucket_id: str,
        *,
        start_file_name: str | None = None,
        max_file_count: int | None = None,
        prefix: str | None = None,
        delimiter: str | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListFileNamesResponse]:
        return iter_coroutine(
            self._api.list_file_names(
                bucket_id,
                start_file_name=start_file_name,
                max_file_count=max_file_count,
                prefix=prefix,
                delimiter=delimiter,
                cache_ttl=cache_ttl,
            )
        )

    def list_file_versions(
        self,
        bucket_id: str,
        *,
        start_file_name: str | None = None,
        start_file_id: str | None = None,
        max_file_count: int | None = None,
        prefix: str | None = None,
        delimiter: str | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListFileVersionsResponse]:
        return iter_coroutine(
            self._api.list_file_versions(
                bucket_id,
                start_file_name=start_file_name,
                start_file_id=start_file_id,
                max_file_count=max_file_count,
                prefix=prefix,
                delimiter=delimiter,
                cache_ttl=cache_ttl,
            )
        )

    def get_file_info(self, file_id: str) -> ApiResult[FileItem]:
        return iter_coroutine(self._api.get_file_info(file_id))

    def hide_file(self, bucket_id: str, file_name: str) -> ApiResult[FileItem]:
        return iter_coroutine(self._api.hide_file(bucket_id, file_name))

    def delete_file_version(
        self, file_name: str, file_id: str
    ) -> ApiResult[DeleteFileVersionResponse]:
        return iter_coroutine(self._api.delete_file_version(file_name, file_id))

    def copy_file(
        self,
        source_file_id: str,
        file_name: str,
        *,
        destination_bucket_id: str | None = None,
        byte_range: str | None = None,
        metadata_directive: str | None = None,
        content_type: str | None = None,
        file_info: dict[str, str] | None = None,
    ) -> ApiResult[FileItem]:
        return iter_coroutine(
            self._api.copy_file(
                source_file_id,
                file_name,
                destination_bucket_id=destination_bucket_id,
                byte_range=byte_range,
                metadata_directive=metadata_directive,
                content_type=content_type,
                file_info=file_info,
            )
        )

    def get_download_authorization(
        self,
        bucket_id: str,
        file_name_prefix: str,
        valid_duration_in_seconds: int,
        *,
        content_disposition: str | None = None,
    ) -> ApiResult[GetDownloadAuthorizationResponse]:
        return iter_coroutine(
            self._api.get_download_authorization(
                bucket_id,
                file_name_prefix,
                valid_duration_in_seconds,
                content_disposition=content_disposition,
            )
        )

    # -- large files ------------------------------------------------------

    def get_upload_url(self, bucket_id: str) -> ApiResult[UploadUrlResponse]:
        return iter_coroutine(self._api.get_upload_url(bucket_id))

    def get_upload_part_url(self, file_id: str) -> ApiResult[UploadPartUrlResponse]:
        return iter_coroutine(self._api.get_upload_part_url(file_id))

    def start_large_file(
        self,
        bucket_id: str,
        file_name: str,
        *,
        content_type: str = "b2/x-auto",
        file_info: dict[str, str] | None = None,
    ) -> ApiResult[FileItem]:
        return iter_coroutine(
            self._api.start_large_file(
                bucket_id, file_name, content_type=content_type, file_info=file_info
            )
        )

    def finish_large_file(self, file_id: str, part_sha1_array: list[str]) -> ApiResult[FileItem]:
        return iter_coroutine(self._api.finish_large_file(file_id, part_sha1_array))

    def cancel_large_file(self, file_id: str) -> ApiResult[CancelLargeFileResponse]:
        return iter_coroutine(self._api.cancel_large_file(file_id))

    def list_parts(
        self,
        file_id: str,
        *,
        start_part_number: int | None = None,
        max_part_count: int | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListPartsResponse]:
        return iter_coroutine(
            self._api.list_parts(
                file_id,
                start_part_number=start_part_number,
                max_part_count=max_part_count,
                cache_ttl=cache_ttl,
            )
        )

    def list_unfinished_large_files(
        self,
        bucket_id: str,
        *,
        name_prefix: str | None = None,
        start_file_id: str | None = None,
        max_file_count: int | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListUnfinishedLargeFilesResponse]:
        return iter_coroutine(
            self._api.list_unfinished_large_files(
                bucket_id,
                name_prefix=name_prefix,
                start_file_id=start_file_id,
                max_file_count=max_file_count,
                cache_ttl=cache_ttl,
            )
        )

    # -- keys -------------------------------------------------------------

    def create_key(
        self,
        key_name: str,
        capabilities: list[str],
        *,
        valid_duration_in_seconds: int | None = None,
        bucket_id: str | None = None,
        name_prefix: str | None = None,
    ) -> ApiResult[KeyItem]:
        return iter_coroutine(
            self._api.create_key(
                key_name,
                capabilities,
                valid_duration_in_seconds=valid_duration_in_seconds,
                bucket_id=bucket_id,
                name_prefix=name_prefix,
            )
        )

    def delete_key(self, application_key_id: str) -> ApiResult[KeyItem]:
        return iter_coroutine(self._api.delete_key(application_key_id))

    def list_keys(
        self,
        *,
        max_key_count: int | None = None,
        start_application_key_id: str | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListKeysResponse]:
        return iter_coroutine(
            self._api.list_keys(
                max_key_count=max_key_count,
                start_application_key_id=start_application_key_id,
                cache_ttl=cache_ttl,
            )
        )

    # -- paging -----------------------------------------------------------

    def _iterate(self, pager: Pager[T]) -> Iterator[T]:
        while True:
            request = pager.next_request()
            if request is None:
                return
            yield from pager.accept(iter_coroutine(request))

    def iter_file_names(
        self,
        bucket_id: str,
        *,
        prefix: str | None = None,
        delimiter: str | None = None,
        start_file_name: str | None = None,
        batch_size: int | None = None,
        limit: int | None = None,
    ) -> Iterator[FileItem]:
        """Yield the latest version of each file name, one page at a time.

        Pages are requested lazily; a failed page raises ``ApiError``.
        """
        yield from self._iterate(
            self._file_names_pager(
                bucket_id,
                prefix=prefix,
                delimiter=delimiter,
                start_file_name=start_file_name,
                batch_size=batch_size,
                limit=limit,
            )
        )

    def iter_file_versions(
        self,
        bucket_id: str,
        *,
        prefix: str | None = None,
        delimiter: str | None = None,
        batch_size: int | None = None,
        limit: int | None = None,
    ) -> Iterator[FileItem]:
        yield from self._iterate(
            self._file_versions_pager(
                bucket_id, prefix=prefix, delimiter=delimiter, batch_size=batch_size, limit=limit
            )
        )

    def iter_parts(
        self, file_id: str, *, batch_size: int | None = None, limit: int | None = None
    ) -> Iterator[UploadPartResponse]:
        yield from self._iterate(self._parts_pager(file_id, batch_size=batch_size, limit=limit))

    def iter_unfinished_large_files(
        self,
        bucket_id: str,
        *,
        name_prefix: str | None = None,
        batch_size: int | None = None,
        limit: int | None = None,
    ) -> Iterator[FileItem]:
        yield from self._iterate(
            self._unfinished_pager(
                bucket_id, name_prefix=name_prefix, batch_size=batch_size, limit=limit
            )
        )

    def iter_keys(
        self, *, batch_size: int | None = None, limit: int | None = None
    ) -> Iterator[KeyItem]:
        yield from self._iterate(self._keys_pager(batch_size=batch_size, limit=limit))


class AsyncB2Client(_BaseB2Client):
    """Asynchronous client for the B2 API."""

    def __init__(
        self,
        key_id: str | None = None,
        application_key: str | None = None,
        *,
        options: ClientOptions | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        effective = _resolve_options(options, key_id, application_key)
        http_client = create_base_async_client(
            effective.timeout, test_mode=effective.test_mode, client=client
        )
        self._setup(
            effective, AsyncTransport(http_client), blocking=False, sleep_fn=anyio.sleep
        )

    async def __aenter__(self) -> AsyncB2Client:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._transport.aclose()

    async def connect(
        self, key_id: str | None = None, application_key: str | None = None
    ) -> AccountInfo:
        """Authorize the account; credentials default to the configured ones."""
        return await self._connect(key_id, application_key)

    # -- transfers --------------------------------------------------------

    async def upload(
        self,
        request: UploadRequest,
        source: IO[bytes],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[FileItem]:
        """Upload ``source``, as a large file when it reaches the upload cutoff."""
        return await self._upload(request, source, progress=progress, cancel=cancel)

    async def upload_file(
        self,
        bucket_id: str,
        file_name: str,
        local_path: str | os.PathLike[str],
        *,
        content_type: str = "b2/x-auto",
        file_info: dict[str, str] | None = None,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[FileItem]:
        return await self._upload_file(
            bucket_id,
            file_name,
            local_path,
            content_type=content_type,
            file_info=file_info,
            progress=progress,
            cancel=cancel,
        )

    async def upload_directory(
        self,
        bucket_id: str,
        local_dir: str | os.PathLike[str],
        *,
        pattern: str = "*",
        recursive: bool = False,
        prefix: str = "",
        content_type: str = "b2/x-auto",
        cancel: CancellationToken | None = None,
    ) -> list[ApiResult[FileItem]]:
        """Upload the files in ``local_dir`` matching ``pattern``, one result per file."""
        return await self._upload_directory(
            bucket_id,
            local_dir,
            pattern=pattern,
            recursive=recursive,
            prefix=prefix,
            content_type=content_type,
            cancel=cancel,
        )

    async def download(
        self,
        request: DownloadRequest,
        destination: IO[bytes],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        """Download into ``destination``, in ranged parts at or above the download cutoff."""
        return await self._download(request, destination, progress=progress, cancel=cancel)

    async def download_file(
        self,
        bucket_name: str,
        file_name: str,
        local_path: str | os.PathLike[str],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        return await self._download_file(
            bucket_name, file_name, local_path, progress=progress, cancel=cancel
        )

    async def download_file_by_id(
        self,
        file_id: str,
        local_path: str | os.PathLike[str],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        return await self._download_file_by_id(
            file_id, local_path, progress=progress, cancel=cancel
        )

    # -- buckets ----------------------------------------------------------

    async def list_buckets(
        self,
        *,
        bucket_id: str | None = None,
        bucket_name: str | None = None,
        bucket_types: list[str] | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListBucketsResponse]:
        return await self._api.list_buckets(
            bucket_id=bucket_id,
            bucket_name=bucket_name,
            bucket_types=bucket_types,
            cache_ttl=cache_ttl,
        )

    async def create_bucket(
        self,
        bucket_name: str,
        bucket_type: BucketType = "allPrivate",
        *,
        bucket_info: dict[str, str] | None = None,
        cors_rules: list[dict[str, Any]] | None = None,
        lifecycle_rules: list[dict[str, Any]] | None = None,
    ) -> ApiResult[BucketItem]:
        return await self._api.create_bucket(
            bucket_name,
            bucket_type,
            bucket_info=bucket_info,
            cors_rules=cors_rules,
            lifecycle_rules=lifecycle_rules,
        )

    async def update_bucket(
        self,
        bucket_id: str,
        *,
        bucket_type: BucketType | None = None,
        bucket_info: dict[str, str] | None = None,
        cors_rules: list[dict[str, Any]] | None = None,
        lifecycle_rules: list[dict[str, Any]] | None = None,
        if_revision_is: int | None = None,
    ) -> ApiResult[BucketItem]:
        return await self._api.update_bucket(
            bucket_id,
            bucket_type=bucket_type,
            bucket_info=bucket_info,
            cors_rules=cors_rules,
            lifecycle_rules=lifecycle_rules,
            if_revision_is=if_revision_is,
        )

    async def delete_bucket(self, bucket_id: str) -> ApiResult[BucketItem]:
        return await self._api.delete_bucket(bucket_id)

    # -- files ------------------------------------------------------------

    async def list_file_names(
        self,
        bucket_id: str,
        *,
        start_file_name: str | None = None,
        max_file_count: int | None = None,
        prefix: str | None = None,
        delimiter: str | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListFileNamesResponse]:
        return await self._api.list_file_names(
            bucket_id,
            start_file_name=start_file_name,
            max_file_count=max_file_count,
            prefix=prefix,
            delimiter=delimiter,
            cache_ttl=cache_ttl,
        )

    async def list_file_versions(
        self,
        bucket_id: str,
        *,
        start_file_name: str | None = None,
        start_file_id: str | None = None,
        max_file_count: int | None = None,
        prefix: str | None = None,
        delimiter: str | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListFileVersionsResponse]:
        return await self._api.list_file_versions(
            bucket_id,
            start_file_name=start_file_name,
            start_file_id=start_file_id,
            max_file_count=max_file_count,
            prefix=prefix,
            delimiter=delimiter,
            cache_ttl=cache_ttl,
        )

    async def get_file_info(self, file_id: str) -> ApiResult[FileItem]:
        return await self._api.get_file_info(file_id)

    async def hide_file(self, bucket_id: str, file_name: str) -> ApiResult[FileItem]:
        return await self._api.hide_file(bucket_id, file_name)

    async def delete_file_version(
        self, file_name: str, file_id: str
    ) -> ApiResult[DeleteFileVersionResponse]:
        return await self._api.delete_file_version(file_name, file_id)

    async def copy_file(
        self,
        source_file_id: str,
        file_name: str,
        *,
        destination_bucket_id: str | None = None,
        byte_range: str | None = None,
        metadata_directive: str | None = None,
        content_type: str | None = None,
        file_info: dict[str, str] | None = None,
    ) -> ApiResult[FileItem]:
        return await self._api.copy_file(
            source_file_id,
            file_name,
            destination_bucket_id=destination_bucket_id,
            byte_range=byte_range,
            metadata_directive=metadata_directive,
            content_type=content_type,
            file_info=file_info,
        )

    async def get_download_authorization(
        self,
        bucket_id: str,
        file_name_prefix: str,
        valid_duration_in_seconds: int,
        *,
        content_disposition: str | None = None,
    ) -> ApiResult[GetDownloadAuthorizationResponse]:
        return await self._api.get_download_authorization(
            bucket_id,
            file_name_prefix,
            valid_duration_in_seconds,
            content_disposition=content_disposition,
        )

    # -- large files ------------------------------------------------------

    async def get_upload_url(self, bucket_id: str) -> ApiResult[UploadUrlResponse]:
        return await self._api.get_upload_url(bucket_id)

    async def get_upload_part_url(self, file_id: str) -> ApiResult[UploadPartUrlResponse]:
        return await self._api.get_upload_part_url(file_id)

    async def start_large_file(
        self,
        bucket_id: str,
        file_name: str,
        *,
        content_type: str = "b2/x-auto",
        file_info: dict[str, str] | None = None,
    ) -> ApiResult[FileItem]:
        return await self._api.start_large_file(
            bucket_id, file_name, content_type=content_type, file_info=file_info
        )

    async def finish_large_file(
        self, file_id: str, part_sha1_array: list[str]
    ) -> ApiResult[FileItem]:
        return await self._api.finish_large_file(file_id, part_sha1_array)

    async def cancel_large_file(self, file_id: str) -> ApiResult[CancelLargeFileResponse]:
        return await self._api.cancel_large_file(file_id)

    async def list_parts(
        self,
        file_id: str,
        *,
        start_part_number: int | None = None,
        max_part_count: int | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListPartsResponse]:
        return await self._api.list_parts(
            file_id,
            start_part_number=start_part_number,
            max_part_count=max_part_count,
            cache_ttl=cache_ttl,
        )

    async def list_unfinished_large_files(
        self,
        bucket_id: str,
        *,
        name_prefix: str | None = None,
        start_file_id: str | None = None,
        max_file_count: int | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListUnfinishedLargeFilesResponse]:
        return await self._api.list_unfinished_large_files(
            bucket_id,
            name_prefix=name_prefix,
            start_file_id=start_file_id,
            max_file_count=max_file_count,
            cache_ttl=cache_ttl,
        )

    # -- keys -------------------------------------------------------------

    async def create_key(
        self,
        key_name: str,
        capabilities: list[str],
        *,
        valid_duration_in_seconds: int | None = None,
        bucket_id: str | None = None,
        name_prefix: str | None = None,
    ) -> ApiResult[KeyItem]:
        return await self._api.create_key(
            key_name,
            capabilities,
            valid_duration_in_seconds=valid_duration_in_seconds,
            bucket_id=bucket_id,
            name_prefix=name_prefix,
        )

    async def delete_key(self, application_key_id: str) -> ApiResult[KeyItem]:
        return await self._api.delete_key(application_key_id)

    async def list_keys(
        self,
        *,
        max_key_count: int | None = None,
        start_application_key_id: str | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListKeysResponse]:
        return await self._api.list_keys(
            max_key_count=max_key_count,
            start_application_key_id=start_application_key_id,
            cache_ttl=cache_ttl,
        )

    # -- paging -----------------------------------------------------------

    async def _iterate(self, pager: Pager[T]) -> AsyncIterator[T]:
        while True:
            request = pager.next_request()
            if request is None:
                return
            for item in pager.accept(await request):
                yield item

    async def iter_file_names(
        self,
        bucket_id: str,
        *,
        prefix: str | None = None,
        delimiter: str | None = None,
        start_file_name: str | None = None,
        batch_size: int | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[FileItem]:
        """Yield the latest version of each file name, one page at a time.

        Pages are requested lazily; a failed page raises ``ApiError``.
        """
        async for item in self._iterate(
            self._file_names_pager(
                bucket_id,
                prefix=prefix,
                delimiter=delimiter,
                start_file_name=start_file_name,
                batch_size=batch_size,
                limit=limit,
            )
        ):
            yield item

    async def iter_file_versions(
        self,
        bucket_id: str,
        *,
        prefix: str | None = None,
        delimiter: str | None = None,
        batch_size: int | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[FileItem]:
        async for item in self._iterate(
            self._file_versions_pager(
                bucket_id, prefix=prefix, delimiter=delimiter, batch_size=batch_size, limit=limit
            )
        ):
            yield item

    async def iter_parts(
        self, file_id: str, *, batch_size: int | None = None, limit: int | None = None
    ) -> AsyncIterator[UploadPartResponse]:
        pager = self._parts_pager(file_id, batch_size=batch_size, limit=limit)
        async for item in self._iterate(pager):
            yield item

    async def iter_unfinished_large_files(
        self,
        bucket_id: str,
        *,
        name_prefix: str | None = None,
        batch_size: int | None = None,
        limit: int | None = None,
    ) -> AsyncIterator[FileItem]:
        async for item in self._iterate(
            self._unfinished_pager(
                bucket_id, name_prefix=name_prefix, batch_size=batch_size, limit=limit
            )
        ):
            yield item

    async def iter_keys(
        self, *, batch_size: int | None = None, limit: int | None = None
    ) -> AsyncIterator[KeyItem]:
        async for item in self._iterate(self._keys_pager(batch_size=batch_size, limit=limit)):
            yield item


__all__ = [
    "B2Client",
    "AsyncB2Client",
]
