"""Shared async implementation behind ``B2Client`` and ``AsyncB2Client``."""

from __future__ import annotations

import functools
import os
from typing import IO

from ._http import BaseTransport
from .api import ApiClient
from .cache import ResponseCache
from .cancellation import CancellationToken
from .models import DownloadFileResponse, FileItem, KeyItem, UploadPartResponse
from .options import ClientOptions
from .paging import (
    Pager,
    split_file_names,
    split_file_versions,
    split_keys,
    split_parts,
    split_unfinished,
)
from .policy import PolicyManager
from .progress import ProgressCallback
from .session import AuthSession
from .transfer import DownloadEngine, UploadEngine
from .types import AccountInfo, ApiResult, DownloadRequest, UploadRequest
from .utils import SleepFn


class _BaseB2Client:
    """Wires transport, session, cache, policies and engines together.

    ``blocking`` selects the admission-control primitive; in blocking mode
    progress callbacks are called but never awaited and request bodies are
    plain iterators, so the coroutines below never suspend.
    """

    _options: ClientOptions
    _transport: BaseTransport
    _cache: ResponseCache
    _session: AuthSession
    _policies: PolicyManager
    _api: ApiClient
    _uploads: UploadEngine
    _downloads: DownloadEngine

    def _setup(
        self,
        options: ClientOptions,
        transport: BaseTransport,
        *,
        blocking: bool,
        sleep_fn: SleepFn,
    ) -> None:
        self._options = options
        self._transport = transport
        self._cache = ResponseCache()
        self._session = AuthSession(options, transport, self._cache)
        self._policies = PolicyManager(
            options, self._session.reconnect, blocking=blocking, sleep_fn=sleep_fn
        )
        self._api = ApiClient(
            transport=transport,
            session=self._session,
            cache=self._cache,
            policies=self._policies,
            options=options,
        )
        self._uploads = UploadEngine(
            self._api, await_progress_callback=not blocking, async_content=not blocking
        )
        self._downloads = DownloadEngine(self._api, await_progress_callback=not blocking)

    @property
    def options(self) -> ClientOptions:
        return self._options

    @property
    def account_info(self) -> AccountInfo:
        return self._session.account_info

    @property
    def is_connected(self) -> bool:
        return self._session.is_connected

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def policies(self) -> PolicyManager:
        return self._policies

    async def _connect(
        self, key_id: str | None = None, application_key: str | None = None
    ) -> AccountInfo:
        return await self._session.connect(key_id, application_key)

    async def _upload(
        self,
        request: UploadRequest,
        source: IO[bytes],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[FileItem]:
        return await self._uploads.upload(request, source, progress=progress, cancel=cancel)

    async def _upload_file(
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
        return await self._uploads.upload_path(
            bucket_id,
            file_name,
            local_path,
            content_type=content_type,
            file_info=file_info,
            progress=progress,
            cancel=cancel,
        )

    async def _upload_directory(
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
        return await self._uploads.upload_directory(
            bucket_id,
            local_dir,
            pattern=pattern,
            recursive=recursive,
            prefix=prefix,
            content_type=content_type,
            cancel=cancel,
        )

    async def _download(
        self,
        request: DownloadRequest,
        destination: IO[bytes],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        return await self._downloads.download(
            request, destination, progress=progress, cancel=cancel
        )

    async def _download_file(
        self,
        bucket_name: str,
        file_name: str,
        local_path: str | os.PathLike[str],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        request = DownloadRequest(bucket_name=bucket_name, file_name=file_name)
        return await self._downloads.download_path(
            request, local_path, progress=progress, cancel=cancel
        )

    async def _download_file_by_id(
        self,
        file_id: str,
        local_path: str | os.PathLike[str],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        return await self._downloads.download_path(
            DownloadRequest(file_id=file_id), local_path, progress=progress, cancel=cancel
        )

    # -- paging -----------------------------------------------------------

    def _file_names_pager(
        self,
        bucket_id: str,
        *,
        prefix: str | None,
        delimiter: str | None,
        start_file_name: str | None,
        batch_size: int | None,
        limit: int | None,
    ) -> Pager[FileItem]:
        return Pager(
            functools.partial(
                self._api.list_file_names, bucket_id, prefix=prefix, delimiter=delimiter
            ),
            split_file_names,
            size_arg="max_file_count",
            batch_size=batch_size,
            limit=limit,
            cursor={"start_file_name": start_file_name},
        )

    def _file_versions_pager(
        self,
        bucket_id: str,
        *,
        prefix: str | None,
        delimiter: str | None,
        batch_size: int | None,
        limit: int | None,
    ) -> Pager[FileItem]:
        return Pager(
            functools.partial(
                self._api.list_file_versions, bucket_id, prefix=prefix, delimiter=delimiter
            ),
            split_file_versions,
            size_arg="max_file_count",
            batch_size=batch_size,
            limit=limit,
        )

    def _parts_pager(
        self, file_id: str, *, batch_size: int | None, limit: int | None
    ) -> Pager[UploadPartResponse]:
        return Pager(
            functools.partial(self._api.list_parts, file_id),
            split_parts,
            size_arg="max_part_count",
            batch_size=batch_size,
            limit=limit,
        )

    def _unfinished_pager(
        self,
        bucket_id: str,
        *,
        name_prefix: str | None,
        batch_size: int | None,
        limit: int | None,
    ) -> Pager[FileItem]:
        return Pager(
            functools.partial(
                self._api.list_unfinished_large_files, bucket_id, name_prefix=name_prefix
            ),
            split_unfinished,
            size_arg="max_file_count",
            batch_size=batch_size,
            limit=limit,
        )

    def _keys_pager(self, *, batch_size: int | None, limit: int | None) -> Pager[KeyItem]:
        return Pager(
            self._api.list_keys,
            split_keys,
            size_arg="max_key_count",
            batch_size=batch_size,
            limit=limit,
        )


__all__ = ["_BaseB2Client"]
