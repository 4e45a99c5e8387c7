"""Single-shot and multipart uploads with SHA-1 verification."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import IO, TYPE_CHECKING

from .._chunking import UNKNOWN_LENGTH, effective_part_size, plan_parts, should_chunk, stream_length
from .._http import RawBody
from ..api import ApiClient
from ..cancellation import CancellationToken, check_cancelled
from ..errors import ConfigurationError, DecodeError, IntegrityCheckFailure
from ..models import FileItem, UploadPartResponse
from ..options import MAXIMUM_FILE_SIZE, MINIMUM_PART_SIZE
from ..progress import ProgressBody, ProgressCallback, ProgressReporter
from ..streams import PartialStream, sha1_hexdigest
from ..types import ApiResult, FilePart, UploadRequest
from ..utils import (
    DO_NOT_VERIFY,
    LARGE_FILE_SHA1,
    SRC_LAST_MODIFIED_MILLIS,
    millis,
    resolve_content_sha1,
    validate_file_info,
)

if TYPE_CHECKING:
    from ..options import ClientOptions

logger = logging.getLogger(__name__)


class UploadEngine:
    """Drives uploads through the upload policy of an ``ApiClient``.

    Small sources go up in one ``b2_upload_file`` call. Sources at or above
    the upload cutoff are split into parts and sent as a large file:
    start, one ``b2_upload_part`` per part in ascending order, finish, and
    a final ``b2_get_file_info`` to confirm.
    """

    def __init__(
        self,
        api: ApiClient,
        *,
        await_progress_callback: bool = True,
        async_content: bool = True,
    ) -> None:
        self._api = api
        self._await_progress_callback = await_progress_callback
        self._async_content = async_content

    @property
    def _options(self) -> ClientOptions:
        return self._api.options

    def _part_size(self) -> int:
        account = self._api.session.account_info
        return effective_part_size(
            self._options.upload_part_size,
            account.recommended_part_size,
            account.absolute_minimum_part_size,
        )

    def _body(self, view: PartialStream, reporter: ProgressReporter) -> RawBody:
        body = ProgressBody(view, view.length, reporter)
        return RawBody(body.__aiter__() if self._async_content else iter(body))

    async def upload(
        self,
        request: UploadRequest,
        source: IO[bytes],
        *,
        progress: ProgressCallback | None = None,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[FileItem]:
        validate_file_info(request.file_info)
        length = stream_length(source)
        if length == UNKNOWN_LENGTH:
            raise ConfigurationError("upload source must be seekable so its length is known")
        if length > MAXIMUM_FILE_SIZE:
            raise ValueError(f"content length {length} exceeds maximum file size {MAXIMUM_FILE_SIZE}")

        file_info = dict(request.file_info)
        if request.last_modified is not None:
            file_info.setdefault(SRC_LAST_MODIFIED_MILLIS, millis(request.last_modified))

        reporter = ProgressReporter(
            progress,
            length,
            interval=self._options.progress_interval,
            await_callback=self._await_progress_callback,
        )
        check_cancelled(cancel)
        # A source that does not split into at least two parts goes up in one piece
        # unless the caller asked for a large file.
        if request.large_file or (
            should_chunk(length, self._options.upload_cutoff_size)
            and plan_parts(length, self._part_size())
        ):
            result = await self.upload_large_file(
                request, source, length, file_info, reporter=reporter, cancel=cancel
            )
        else:
            result = await self.upload_single(
                request, source, length, file_info, reporter=reporter, cancel=cancel
            )
        if result.error is None:
            await reporter.complete()
        return result

    async def upload_single(
        self,
        request: UploadRequest,
        source: IO[bytes],
        length: int,
        file_info: dict[str, str],
        *,
        reporter: ProgressReporter,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[FileItem]:
        start = source.tell()
        verify = not self._options.checksum_disabled

        async def attempt() -> ApiResult[FileItem]:
            reporter.rewind(0)
            view = PartialStream(source, start, length)
            sha1 = sha1_hexdigest(view, length) if verify else DO_NOT_VERIFY

            url_result = await self._api.get_upload_url(request.bucket_id)
            if url_result.error is not None:
                return url_result.cast_failure()
            result = await self._api.send_upload_file(
                url_result.unwrap(),
                file_name=request.file_name,
                content_type=request.content_type,
                content_length=length,
                content_sha1=sha1,
                file_info=file_info,
                body=self._body(view, reporter),
            )
            if result.error is not None:
                self._api.discard_upload_url(request.bucket_id)
                return result
            if verify:
                item = result.unwrap()
                returned = resolve_content_sha1(item.content_sha1, item.file_info)
                if returned != sha1:
                    raise IntegrityCheckFailure(sha1, returned or "", subject=request.file_name)
            return result

        return await self._api.policies.upload.execute(attempt, cancel=cancel)

    async def upload_large_file(
        self,
        request: UploadRequest,
        source: IO[bytes],
        length: int,
        file_info: dict[str, str],
        *,
        reporter: ProgressReporter,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[FileItem]:
        if length < MINIMUM_PART_SIZE:
            raise ValueError(
                f"large files must be at least {MINIMUM_PART_SIZE} bytes, got {length}"
            )
        part_size = self._part_size()
        parts = plan_parts(length, part_size)
        if not parts:
            raise ValueError(
                f"content of {length} bytes does not split into parts of {part_size} bytes"
            )
        logger.debug(
            "uploading %s as %d parts of up to %d bytes", request.file_name, len(parts), part_size
        )

        start = source.tell()
        large_info = dict(file_info)
        if not self._options.checksum_disabled:
            large_info[LARGE_FILE_SHA1] = sha1_hexdigest(source, length)

        check_cancelled(cancel)
        started = await self._api.start_large_file(
            request.bucket_id,
            request.file_name,
            content_type=request.content_type,
            file_info=large_info,
        )
        if started.error is not None:
            return started
        file_id = started.unwrap().file_id
        if file_id is None:
            raise DecodeError("b2_start_large_file response has no fileId")

        part_hashes: list[str] = []
        for part in parts:
            check_cancelled(cancel)
            part_result = await self.upload_part(
                source, start, part, file_id, reporter=reporter, cancel=cancel
            )
            if part_result.error is not None:
                logger.error(
                    "part %d of %s failed; large file %s left unfinished",
                    part.part_number,
                    request.file_name,
                    file_id,
                )
                return part_result.cast_failure()
            part_hashes.append(part_result.unwrap().content_sha1)

        check_cancelled(cancel)
        finished = await self._api.finish_large_file(file_id, part_hashes)
        if finished.error is not None:
            return finished
        return await self._api.get_file_info(file_id)

    async def upload_part(
        self,
        source: IO[bytes],
        start: int,
        part: FilePart,
        file_id: str,
        *,
        reporter: ProgressReporter,
        cancel: CancellationToken | None = None,
    ) -> ApiResult[UploadPartResponse]:
        verify = not self._options.checksum_disabled

        async def attempt() -> ApiResult[UploadPartResponse]:
            reporter.rewind(part.position)
            view = PartialStream(source, start + part.position, part.length)
            sha1 = sha1_hexdigest(view, part.length) if verify else DO_NOT_VERIFY

            url_result = await self._api.get_upload_part_url(file_id)
            if url_result.error is not None:
                return url_result.cast_failure()
            result = await self._api.send_upload_part(
                url_result.unwrap(),
                part_number=part.part_number,
                content_length=part.length,
                content_sha1=sha1,
                body=self._body(view, reporter),
            )
            if result.error is not None:
                self._api.discard_upload_part_url(file_id)
                return result
            returned = result.unwrap().content_sha1
            if verify and returned != sha1:
                raise IntegrityCheckFailure(sha1, returned, subject=f"part {part.part_number}")
            return result

        return await self._api.policies.upload.execute(attempt, cancel=cancel)

    async def upload_path(
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
        """Upload a local file, recording its modification time in file info."""
        modified = datetime.fromtimestamp(os.stat(local_path).st_mtime, tz=timezone.utc)
        request = UploadRequest(
            bucket_id=bucket_id,
            file_name=file_name,
            content_type=content_type,
            file_info=dict(file_info or {}),
            last_modified=modified,
        )
        with open(local_path, "rb") as source:
            result = await self.upload(request, source, progress=progress, cancel=cancel)
        if result.error is not None:
            logger.error(
                "upload of %s to %s failed: %s", local_path, file_name, result.error.message
            )
        else:
            logger.info("uploaded %s to %s", local_path, file_name)
        return result

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
        """Upload every file in ``local_dir`` whose name matches ``pattern``.

        Files go up one at a time in path order. Each is named ``prefix``
        plus its path relative to ``local_dir``, with ``/`` separators.
        ``recursive`` also searches subdirectories. A failed file does not
        stop the rest; every result is returned, in upload order.
        """
        root = Path(local_dir)
        if not root.is_dir():
            raise NotADirectoryError(f"not a directory: {root}")
        matches = root.rglob(pattern) if recursive else root.glob(pattern)
        paths = sorted(path for path in matches if path.is_file())

        results: list[ApiResult[FileItem]] = []
        for path in paths:
            check_cancelled(cancel)
            name = prefix + path.relative_to(root).as_posix()
            results.append(
                await self.upload_path(
                    bucket_id, name, path, content_type=content_type, cancel=cancel
                )
            )
        failed = sum(1 for result in results if result.error is not None)
        logger.info(
            "uploaded %d of %d files from %s", len(results) - failed, len(results), root
        )
        return results


__all__ = ["UploadEngine"]
