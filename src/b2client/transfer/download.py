"""Probe-then-download, single-shot or as sequential ranged parts."""

from __future__ import annotations

import contextlib
import hashlib
import io
import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import IO, TYPE_CHECKING

import httpx

from .._chunking import plan_parts
from ..api import ApiClient
from ..cancellation import CancellationToken, check_cancelled
from ..errors import IntegrityCheckFailure
from ..models import DownloadFileResponse
from ..progress import ProgressCallback, ProgressReporter
from ..streams import BUFFER_SIZE, PartialStream
from ..types import ApiResult, DownloadRequest, FilePart
from ..utils import SRC_LAST_MODIFIED_MILLIS, resolve_content_sha1

if TYPE_CHECKING:
    from ..options import ClientOptions

logger = logging.getLogger(__name__)


def _is_success(response: httpx.Response) -> bool:
    return 200 <= response.status_code < 300


def _rewind(destination: IO[bytes], position: int) -> None:
    destination.seek(position, io.SEEK_SET)
    try:
        destination.truncate()
    except (OSError, io.UnsupportedOperation):
        pass


class DownloadEngine:
    def __init__(self, api: ApiClient, *, await_progress_callback: bool = True) -> None:
        self._api = api
        self._await_progress_callback = await_progress_callback

    @property
    def _options(self) -> ClientOptions:
        return self._api.options

    def _target(self, request: DownloadRequest) -> tuple[str, dict[str, str] | None]:
        if request.file_id is not None:
            return self._api.download_url_by_id(request.file_id)
        assert request.bucket_name is not None and request.file_name is not None
        return self._api.download_url_by_name(request.bucket_name, request.file_name), None

    async def download(
        self,
        request: DownloadRequest,
        destination: IO[bytes],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        """Download a file into ``destination``.

        Files below the download cutoff arrive in one GET and are verified
        against the declared SHA-1; a destination that cannot seek receives
        them only after verification. Larger files are fetched as ranged parts
        written in place, which requires a seekable destination and skips
        whole-file verification.
        """
        url, params = self._target(request)
        probe = await self.probe(url, params, cancel=cancel)
        if probe.error is not None:
            return probe
        metadata = probe.unwrap()

        reporter = ProgressReporter(
            progress,
            metadata.content_length,
            interval=self._options.progress_interval,
            await_callback=self._await_progress_callback,
        )
        parts: list[FilePart] = []
        if metadata.content_length >= self._options.download_cutoff_size:
            parts = plan_parts(metadata.content_length, self._options.download_part_size)
        if not parts:
            result = await self.download_single(
                url, params, metadata, destination, reporter=reporter, cancel=cancel
            )
            if result.error is None:
                await reporter.complete()
            return result

        logger.debug(
            "downloading %s as %d ranged parts", metadata.file_name or url, len(parts)
        )
        start = destination.tell()
        for part in parts:
            check_cancelled(cancel)
            result = await self.download_part(
                url, params, part, destination, start, reporter=reporter, cancel=cancel
            )
            if result.error is not None:
                return result
        await reporter.complete()
        return probe

    async def probe(
        self,
        url: str,
        params: dict[str, str] | None,
        *,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        async def attempt() -> ApiResult[DownloadFileResponse]:
            response = await self._api.open_download(url, params=params, method="HEAD")
            if not _is_success(response):
                return await self._api.download_failure(response)
            await self._api.transport.close_response(response)
            return ApiResult.success(
                self._api.download_metadata(response),
                status_code=response.status_code,
                headers=dict(response.headers),
            )

        return await self._api.policies.download.execute(attempt, cancel=cancel)

    async def download_single(
        self,
        url: str,
        params: dict[str, str] | None,
        probed: DownloadFileResponse,
        destination: IO[bytes],
        *,
        reporter: ProgressReporter,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        seekable = destination.seekable()
        start = destination.tell() if seekable else 0
        declared = resolve_content_sha1(probed.content_sha1, probed.file_info)
        verify = not self._options.checksum_disabled
        transport = self._api.transport
        attempts = 0

        async def attempt() -> ApiResult[DownloadFileResponse]:
            nonlocal attempts
            if attempts and seekable:
                _rewind(destination, start)
            attempts += 1
            reporter.rewind(0)

            response = await self._api.open_download(url, params=params)
            if not _is_success(response):
                return await self._api.download_failure(response)
            digest = hashlib.sha1()
            # A destination that cannot be rewound only ever receives verified bytes.
            spool = (
                contextlib.nullcontext(destination)
                if seekable
                else tempfile.SpooledTemporaryFile(max_size=self._options.download_cutoff_size)
            )
            with spool as sink:
                try:
                    async for chunk in transport.iter_bytes(response):
                        sink.write(chunk)
                        digest.update(chunk)
                        await reporter.advance(len(chunk))
                finally:
                    await transport.close_response(response)

                metadata = self._api.download_metadata(response)
                expected = declared or resolve_content_sha1(
                    metadata.content_sha1, metadata.file_info
                )
                if verify and expected:
                    actual = digest.hexdigest()
                    if actual != expected:
                        raise IntegrityCheckFailure(
                            expected, actual, subject=metadata.file_name or url
                        )
                elif verify:
                    logger.debug("no declared SHA-1 for %s; skipping verification", url)
                if sink is not destination:
                    sink.seek(0)
                    shutil.copyfileobj(sink, destination, BUFFER_SIZE)
            return ApiResult.success(
                metadata, status_code=response.status_code, headers=dict(response.headers)
            )

        return await self._api.policies.download.execute(attempt, cancel=cancel)

    async def download_part(
        self,
        url: str,
        params: dict[str, str] | None,
        part: FilePart,
        destination: IO[bytes],
        start: int,
        *,
        reporter: ProgressReporter,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        transport = self._api.transport

        async def attempt() -> ApiResult[DownloadFileResponse]:
            reporter.rewind(part.position)
            view = PartialStream(destination, start + part.position, part.length, writable=True)
            response = await self._api.open_download(
                url, params=params, byte_range=part.range_header
            )
            if not _is_success(response):
                return await self._api.download_failure(response)
            try:
                async for chunk in transport.iter_bytes(response):
                    written = view.write(chunk)
                    await reporter.advance(written)
            finally:
                await transport.close_response(response)
            if view.tell() != part.length:
                raise IntegrityCheckFailure(
                    str(part.length), str(view.tell()), subject=f"range {part.range_header}"
                )
            return ApiResult.success(
                self._api.download_metadata(response),
                status_code=response.status_code,
                headers=dict(response.headers),
            )

        return await self._api.policies.download.execute(attempt, cancel=cancel)

    async def download_path(
        self,
        request: DownloadRequest,
        local_path: str | os.PathLike[str],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[DownloadFileResponse]:
        """Download into a local file, restoring its recorded modification time."""
        path = Path(local_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w+b") as destination:
            result = await self.download(request, destination, progress=progress, cancel=cancel)
        if result.error is not None:
            logger.error("download to %s failed: %s", path, result.error.message)
            return result

        modified = result.unwrap().file_info.get(SRC_LAST_MODIFIED_MILLIS)
        if modified and modified.isdigit():
            seconds = int(modified) / 1000
            os.utime(path, (seconds, seconds))
        logger.info("downloaded %s", path)
        return result


__all__ = ["DownloadEngine"]
