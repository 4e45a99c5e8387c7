"""Cursor paging over the list endpoints.

Every B2 listing returns one page plus the cursor of the next page
(``nextFileName``, ``nextPartNumber`` and so on). A ``Pager`` keeps that
cursor between requests; the clients drive it with a plain loop, blocking
or async, until the listing ends or ``limit`` items have been yielded.
"""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from typing import Any, Generic, TypeVar

from .models import (
    FileItem,
    KeyItem,
    ListFileNamesResponse,
    ListFileVersionsResponse,
    ListKeysResponse,
    ListPartsResponse,
    ListUnfinishedLargeFilesResponse,
    UploadPartResponse,
)
from .types import ApiResult

T = TypeVar("T")
Cursor = dict[str, Any]
FetchPage = Callable[..., Coroutine[Any, Any, ApiResult[Any]]]
SplitPage = Callable[[Any], tuple[list[T], Cursor | None]]


def resolve_page_limit(
    *,
    batch_size: int | None,
    limit: int | None,
    yielded_count: int,
) -> tuple[bool, int | None]:
    page_limit = batch_size
    if limit is None:
        return False, page_limit

    remaining = limit - yielded_count
    if remaining <= 0:
        return True, None
    if page_limit is None or page_limit > remaining:
        page_limit = remaining
    return False, page_limit


def split_file_names(page: ListFileNamesResponse) -> tuple[list[FileItem], Cursor | None]:
    if not page.next_file_name:
        return page.files, None
    return page.files, {"start_file_name": page.next_file_name}


def split_file_versions(page: ListFileVersionsResponse) -> tuple[list[FileItem], Cursor | None]:
    if not page.next_file_name:
        return page.files, None
    return page.files, {"start_file_name": page.next_file_name, "start_file_id": page.next_file_id}


def split_parts(page: ListPartsResponse) -> tuple[list[UploadPartResponse], Cursor | None]:
    if page.next_part_number is None:
        return page.parts, None
    return page.parts, {"start_part_number": page.next_part_number}


def split_unfinished(
    page: ListUnfinishedLargeFilesResponse,
) -> tuple[list[FileItem], Cursor | None]:
    if not page.next_file_id:
        return page.files, None
    return page.files, {"start_file_id": page.next_file_id}


def split_keys(page: ListKeysResponse) -> tuple[list[KeyItem], Cursor | None]:
    if not page.next_application_key_id:
        return page.keys, None
    return page.keys, {"start_application_key_id": page.next_application_key_id}


class Pager(Generic[T]):
    """One listing, walked page by page.

    ``fetch`` is a list call with its fixed arguments bound; each request
    adds the page size under ``size_arg`` and the current cursor. A failed
    page raises ``ApiError``.
    """

    def __init__(
        self,
        fetch: FetchPage,
        split: SplitPage[T],
        *,
        size_arg: str,
        batch_size: int | None = None,
        limit: int | None = None,
        cursor: Cursor | None = None,
    ) -> None:
        self._fetch = fetch
        self._split = split
        self._size_arg = size_arg
        self._batch_size = batch_size
        self._limit = limit
        self._cursor: Cursor | None = {k: v for k, v in (cursor or {}).items() if v is not None}
        self._yielded = 0

    @property
    def yielded_count(self) -> int:
        return self._yielded

    def next_request(self) -> Coroutine[Any, Any, ApiResult[Any]] | None:
        """The request for the next page, or None once the listing is done."""
        if self._cursor is None:
            return None
        done, page_limit = resolve_page_limit(
            batch_size=self._batch_size, limit=self._limit, yielded_count=self._yielded
        )
        if done:
            return None
        return self._fetch(**{self._size_arg: page_limit}, **self._cursor)

    def accept(self, result: ApiResult[Any]) -> list[T]:
        items, self._cursor = self._split(result.unwrap())
        if self._limit is not None:
            items = items[: self._limit - self._yielded]
        self._yielded += len(items)
        return items


__all__ = [
    "Cursor",
    "Pager",
    "resolve_page_limit",
    "split_file_names",
    "split_file_versions",
    "split_keys",
    "split_parts",
    "split_unfinished",
]
