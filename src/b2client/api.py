"""Endpoint layer: one method per B2 API call.

Every method returns an ``ApiResult``. 401 and 403 responses raise
``AuthenticationFailure`` and ``CapExceeded`` so the resilience policy can act
on them; any other non-2xx response becomes a failed result.
"""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from ._http import API_VERSION_PATH, BaseTransport, JSONBody, RequestBody
from .cache import CacheClass, CacheKey, ResponseCache
from .cancellation import CancellationToken
from .errors import AuthenticationFailure, CapExceeded, ConfigurationError, DecodeError
from .models import (
    AuthorizeAccountResponse,
    BucketItem,
    BucketType,
    CancelLargeFileResponse,
    DeleteFileVersionResponse,
    DownloadFileResponse,
    ErrorResponse,
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
from .types import ApiResult
from .utils import (
    CONTENT_SHA1_HEADER,
    FILE_NAME_HEADER,
    PART_NUMBER_HEADER,
    encode_header_value,
    file_info_headers,
    parse_download_headers,
)

if TYPE_CHECKING:
    from .options import ClientOptions
    from .policy import PolicyManager
    from .session import AuthSession

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


def _is_json_content_type(content_type: str) -> bool:
    media_type = content_type.split(";", 1)[0].strip().lower()
    return media_type == "application/json" or media_type.endswith("+json")


def decode_response_json(response: httpx.Response) -> Any:
    content_type = response.headers.get("content-type", "")
    if not _is_json_content_type(content_type):
        raise DecodeError(
            f"unexpected response content type {content_type or 'none'!r}",
            content_type=content_type or None,
        )
    try:
        return response.json()
    except ValueError as exc:
        raise DecodeError("response body is not valid JSON") from exc


def decode_model(response: httpx.Response, model: type[M]) -> M:
    data = decode_response_json(response)
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise DecodeError(f"response does not match {model.__name__}: {exc}") from exc


def parse_error(response: httpx.Response) -> ErrorResponse:
    """Structured error from a non-2xx response, with a fallback for odd bodies."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict):
        return ErrorResponse(
            status=int(data.get("status") or response.status_code),
            code=str(data.get("code") or "unknown"),
            message=str(data.get("message") or response.reason_phrase),
        )
    return ErrorResponse(
        status=response.status_code, code="unknown", message=response.reason_phrase
    )


def raise_for_auth(response: httpx.Response) -> None:
    """Raise for the status codes the resilience policy reacts to."""
    if response.status_code == 401:
        error = parse_error(response)
        raise AuthenticationFailure(f"{error.code}: {error.message}")
    if response.status_code == 403:
        error = parse_error(response)
        raise CapExceeded(f"{error.code}: {error.message}")


def to_result(response: httpx.Response, model: type[M]) -> ApiResult[M]:
    raise_for_auth(response)
    headers = dict(response.headers)
    if 200 <= response.status_code < 300:
        return ApiResult.success(
            decode_model(response, model), status_code=response.status_code, headers=headers
        )
    error = parse_error(response)
    logger.error(
        "%s %s failed: %s %s %s",
        response.request.method,
        response.request.url.path,
        error.status,
        error.code,
        error.message,
    )
    return ApiResult.failure(error, headers=headers)


def basic_auth_header(key_id: str, application_key: str) -> str:
    token = base64.b64encode(f"{key_id}:{application_key}".encode()).decode("ascii")
    return f"Basic {token}"


def api_base_url(api_url: str) -> str:
    return api_url.rstrip("/") + "/" + API_VERSION_PATH


async def authorize_account(
    transport: BaseTransport,
    auth_url: str,
    key_id: str,
    application_key: str,
    *,
    timeout: float | None = None,
) -> ApiResult[AuthorizeAccountResponse]:
    url = auth_url.rstrip("/") + "/b2_authorize_account"
    response = await transport.send(
        "GET",
        url,
        headers={"authorization": basic_auth_header(key_id, application_key)},
        timeout=timeout,
    )
    return to_result(response, AuthorizeAccountResponse)


def _cache_identity(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, sort_keys=True, default=str)


def _compact(payload: Mapping[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in payload.items() if value is not None}


class ApiClient:
    """Async endpoint wrappers shared by the blocking and async clients."""

    def __init__(
        self,
        *,
        transport: BaseTransport,
        session: AuthSession,
        cache: ResponseCache,
        policies: PolicyManager,
        options: ClientOptions,
    ) -> None:
        self._transport = transport
        self._session = session
        self._cache = cache
        self._policies = policies
        self._options = options

    @property
    def transport(self) -> BaseTransport:
        return self._transport

    @property
    def session(self) -> AuthSession:
        return self._session

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def policies(self) -> PolicyManager:
        return self._policies

    @property
    def options(self) -> ClientOptions:
        return self._options

    # -- plumbing ---------------------------------------------------------

    def _require_connection(self) -> None:
        if not self._session.is_connected:
            raise ConfigurationError("client is not connected; call connect() first")

    def _account_id(self) -> str:
        self._require_connection()
        return self._session.account_info.account_id

    def auth_headers(self) -> dict[str, str]:
        self._require_connection()
        token = self._session.auth_token
        assert token is not None
        return {"authorization": token.authorization}

    def api_url(self, endpoint: str) -> str:
        self._require_connection()
        return self._session.account_info.api_url + endpoint

    def download_base_url(self) -> str:
        self._require_connection()
        return self._session.account_info.download_url.rstrip("/")

    async def _send_json(self, endpoint: str, payload: Mapping[str, Any], model: type[M]) -> ApiResult[M]:
        response = await self._transport.send(
            "POST",
            self.api_url(endpoint),
            body=JSONBody(dict(payload)),
            headers=self.auth_headers(),
            timeout=self._options.timeout,
        )
        return to_result(response, model)

    async def invoke(
        self,
        endpoint: str,
        payload: Mapping[str, Any],
        model: type[M],
        *,
        cache_class: CacheClass | None = None,
        cache_ttl: float = 0.0,
        invalidates: Iterable[CacheClass] = (),
        cancel: CancellationToken | None = None,
    ) -> ApiResult[M]:
        """POST ``payload`` to ``endpoint`` under the invoke policy."""

        async def attempt() -> ApiResult[M]:
            return await self._send_json(endpoint, payload, model)

        async def run() -> ApiResult[M]:
            return await self._policies.invoke.execute(attempt, cancel=cancel)

        if cache_class is not None:
            key = CacheKey(cache_class, _cache_identity(payload))
            result = await self._cache.get_or_create(key, run, cache_ttl)
        else:
            result = await run()

        stale = tuple(invalidates)
        if stale:
            self._cache.invalidate(*stale)
        return result

    def _list_ttl(self, cache_ttl: float | None) -> float:
        return self._options.list_cache_ttl if cache_ttl is None else cache_ttl

    # -- buckets ----------------------------------------------------------

    async def list_buckets(
        self,
        *,
        bucket_id: str | None = None,
        bucket_name: str | None = None,
        bucket_types: list[str] | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListBucketsResponse]:
        payload = _compact(
            {
                "accountId": self._account_id(),
                "bucketId": bucket_id,
                "bucketName": bucket_name,
                "bucketTypes": bucket_types,
            }
        )
        return await self.invoke(
            "b2_list_buckets",
            payload,
            ListBucketsResponse,
            cache_class=CacheClass.LIST_BUCKETS,
            cache_ttl=self._list_ttl(cache_ttl),
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
        payload = _compact(
            {
                "accountId": self._account_id(),
                "bucketName": bucket_name,
                "bucketType": bucket_type,
                "bucketInfo": bucket_info,
                "corsRules": cors_rules,
                "lifecycleRules": lifecycle_rules,
            }
        )
        return await self.invoke(
            "b2_create_bucket", payload, BucketItem, invalidates=[CacheClass.LIST_BUCKETS]
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
        payload = _compact(
            {
                "accountId": self._account_id(),
                "bucketId": bucket_id,
                "bucketType": bucket_type,
                "bucketInfo": bucket_info,
                "corsRules": cors_rules,
                "lifecycleRules": lifecycle_rules,
                "ifRevisionIs": if_revision_is,
            }
        )
        return await self.invoke(
            "b2_update_bucket", payload, BucketItem, invalidates=[CacheClass.LIST_BUCKETS]
        )

    async def delete_bucket(self, bucket_id: str) -> ApiResult[BucketItem]:
        payload = {"accountId": self._account_id(), "bucketId": bucket_id}
        return await self.invoke(
            "b2_delete_bucket", payload, BucketItem, invalidates=[CacheClass.LIST_BUCKETS]
        )

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
        payload = _compact(
            {
                "bucketId": bucket_id,
                "startFileName": start_file_name,
                "maxFileCount": max_file_count,
                "prefix": prefix,
                "delimiter": delimiter,
            }
        )
        return await self.invoke(
            "b2_list_file_names",
            payload,
            ListFileNamesResponse,
            cache_class=CacheClass.LIST_FILE_NAMES,
            cache_ttl=self._list_ttl(cache_ttl),
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
        payload = _compact(
            {
                "bucketId": bucket_id,
                "startFileName": start_file_name,
                "startFileId": start_file_id,
                "maxFileCount": max_file_count,
                "prefix": prefix,
                "delimiter": delimiter,
            }
        )
        return await self.invoke(
            "b2_list_file_versions",
            payload,
            ListFileVersionsResponse,
            cache_class=CacheClass.LIST_FILE_VERSIONS,
            cache_ttl=self._list_ttl(cache_ttl),
        )

    async def get_file_info(self, file_id: str) -> ApiResult[FileItem]:
        return await self.invoke("b2_get_file_info", {"fileId": file_id}, FileItem)

    async def hide_file(self, bucket_id: str, file_name: str) -> ApiResult[FileItem]:
        return await self.invoke(
            "b2_hide_file",
            {"bucketId": bucket_id, "fileName": file_name},
            FileItem,
            invalidates=[CacheClass.LIST_FILE_NAMES],
        )

    async def delete_file_version(
        self, file_name: str, file_id: str
    ) -> ApiResult[DeleteFileVersionResponse]:
        return await self.invoke(
            "b2_delete_file_version",
            {"fileName": file_name, "fileId": file_id},
            DeleteFileVersionResponse,
            invalidates=[CacheClass.LIST_FILE_VERSIONS],
        )

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
        payload = _compact(
            {
                "sourceFileId": source_file_id,
                "fileName": file_name,
                "destinationBucketId": destination_bucket_id,
                "range": byte_range,
                "metadataDirective": metadata_directive,
                "contentType": content_type,
                "fileInfo": file_info,
            }
        )
        return await self.invoke(
            "b2_copy_file",
            payload,
            FileItem,
            invalidates=[CacheClass.LIST_FILE_NAMES, CacheClass.LIST_FILE_VERSIONS],
        )

    async def get_download_authorization(
        self,
        bucket_id: str,
        file_name_prefix: str,
        valid_duration_in_seconds: int,
        *,
        content_disposition: str | None = None,
    ) -> ApiResult[GetDownloadAuthorizationResponse]:
        payload = _compact(
            {
                "bucketId": bucket_id,
                "fileNamePrefix": file_name_prefix,
                "validDurationInSeconds": valid_duration_in_seconds,
                "b2ContentDisposition": content_disposition,
            }
        )
        return await self.invoke(
            "b2_get_download_authorization", payload, GetDownloadAuthorizationResponse
        )

    # -- uploads ----------------------------------------------------------

    async def get_upload_url(self, bucket_id: str) -> ApiResult[UploadUrlResponse]:
        """Upload URL for ``bucket_id``; cached until reconnect or TTL expiry."""
        return await self.invoke(
            "b2_get_upload_url",
            {"bucketId": bucket_id},
            UploadUrlResponse,
            cache_class=CacheClass.UPLOAD_URL,
            cache_ttl=self._options.upload_url_cache_ttl,
        )

    async def get_upload_part_url(self, file_id: str) -> ApiResult[UploadPartUrlResponse]:
        return await self.invoke(
            "b2_get_upload_part_url",
            {"fileId": file_id},
            UploadPartUrlResponse,
            cache_class=CacheClass.UPLOAD_PART_URL,
            cache_ttl=self._options.upload_url_cache_ttl,
        )

    def discard_upload_url(self, bucket_id: str) -> None:
        self._cache.remove(CacheKey(CacheClass.UPLOAD_URL, _cache_identity({"bucketId": bucket_id})))

    def discard_upload_part_url(self, file_id: str) -> None:
        self._cache.remove(
            CacheKey(CacheClass.UPLOAD_PART_URL, _cache_identity({"fileId": file_id}))
        )

    async def start_large_file(
        self,
        bucket_id: str,
        file_name: str,
        *,
        content_type: str = "b2/x-auto",
        file_info: dict[str, str] | None = None,
    ) -> ApiResult[FileItem]:
        payload = {
            "bucketId": bucket_id,
            "fileName": file_name,
            "contentType": content_type,
            "fileInfo": file_info or {},
        }
        return await self.invoke(
            "b2_start_large_file",
            payload,
            FileItem,
            invalidates=[CacheClass.LIST_UNFINISHED],
        )

    async def finish_large_file(
        self, file_id: str, part_sha1_array: list[str]
    ) -> ApiResult[FileItem]:
        return await self.invoke(
            "b2_finish_large_file",
            {"fileId": file_id, "partSha1Array": part_sha1_array},
            FileItem,
            invalidates=[
                CacheClass.LIST_FILE_NAMES,
                CacheClass.LIST_FILE_VERSIONS,
                CacheClass.LIST_UNFINISHED,
            ],
        )

    async def cancel_large_file(self, file_id: str) -> ApiResult[CancelLargeFileResponse]:
        result = await self.invoke(
            "b2_cancel_large_file",
            {"fileId": file_id},
            CancelLargeFileResponse,
            invalidates=[CacheClass.LIST_UNFINISHED, CacheClass.LIST_PARTS],
        )
        self.discard_upload_part_url(file_id)
        return result

    async def list_parts(
        self,
        file_id: str,
        *,
        start_part_number: int | None = None,
        max_part_count: int | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListPartsResponse]:
        payload = _compact(
            {
                "fileId": file_id,
                "startPartNumber": start_part_number,
                "maxPartCount": max_part_count,
            }
        )
        return await self.invoke(
            "b2_list_parts",
            payload,
            ListPartsResponse,
            cache_class=CacheClass.LIST_PARTS,
            cache_ttl=self._list_ttl(cache_ttl),
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
        payload = _compact(
            {
                "bucketId": bucket_id,
                "namePrefix": name_prefix,
                "startFileId": start_file_id,
                "maxFileCount": max_file_count,
            }
        )
        return await self.invoke(
            "b2_list_unfinished_large_files",
            payload,
            ListUnfinishedLargeFilesResponse,
            cache_class=CacheClass.LIST_UNFINISHED,
            cache_ttl=self._list_ttl(cache_ttl),
        )

    async def send_upload_file(
        self,
        upload_url: UploadUrlResponse,
        *,
        file_name: str,
        content_type: str,
        content_length: int,
        content_sha1: str,
        file_info: Mapping[str, str],
        body: RequestBody,
    ) -> ApiResult[FileItem]:
        """One physical b2_upload_file request; the caller supplies the policy."""
        headers = {
            "authorization": upload_url.authorization_token,
            FILE_NAME_HEADER: encode_header_value(file_name),
            "content-type": content_type,
            "content-length": str(content_length),
            CONTENT_SHA1_HEADER: content_sha1,
            **file_info_headers(file_info),
        }
        response = await self._transport.send(
            "POST", upload_url.upload_url, body=body, headers=headers, timeout=self._options.timeout
        )
        result = to_result(response, FileItem)
        self._cache.invalidate(CacheClass.LIST_FILE_NAMES, CacheClass.LIST_FILE_VERSIONS)
        return result

    async def send_upload_part(
        self,
        upload_url: UploadPartUrlResponse,
        *,
        part_number: int,
        content_length: int,
        content_sha1: str,
        body: RequestBody,
    ) -> ApiResult[UploadPartResponse]:
        """One physical b2_upload_part request; the caller supplies the policy."""
        headers = {
            "authorization": upload_url.authorization_token,
            PART_NUMBER_HEADER: str(part_number),
            "content-length": str(content_length),
            CONTENT_SHA1_HEADER: content_sha1,
        }
        response = await self._transport.send(
            "POST", upload_url.upload_url, body=body, headers=headers, timeout=self._options.timeout
        )
        result = to_result(response, UploadPartResponse)
        self._cache.invalidate(CacheClass.LIST_PARTS)
        return result

    # -- downloads --------------------------------------------------------

    def download_url_by_name(self, bucket_name: str, file_name: str) -> str:
        return f"{self.download_base_url()}/file/{bucket_name}/{encode_header_value(file_name)}"

    def download_url_by_id(self, file_id: str) -> tuple[str, dict[str, str]]:
        url = api_base_url(self.download_base_url()) + "b2_download_file_by_id"
        return url, {"fileId": file_id}

    async def open_download(
        self,
        url: str,
        *,
        params: dict[str, str] | None = None,
        method: str = "GET",
        byte_range: str | None = None,
    ) -> httpx.Response:
        """Send a download request and return the streamed response.

        401/403 raise; other non-2xx responses are returned for the caller to
        turn into a failed result (see ``download_failure``).
        """
        headers = self.auth_headers()
        if byte_range is not None:
            headers["range"] = byte_range
        response = await self._transport.send(
            method,
            url,
            params=params,
            headers=headers,
            timeout=self._options.timeout,
            stream=True,
        )
        if response.status_code in (401, 403):
            try:
                await self._transport.read(response)
            finally:
                await self._transport.close_response(response)
            raise_for_auth(response)
        return response

    async def download_failure(self, response: httpx.Response) -> ApiResult[DownloadFileResponse]:
        try:
            await self._transport.read(response)
        finally:
            await self._transport.close_response(response)
        error = parse_error(response)
        logger.error(
            "download %s failed: %s %s %s",
            response.request.url.path,
            error.status,
            error.code,
            error.message,
        )
        return ApiResult.failure(error, headers=dict(response.headers))

    @staticmethod
    def download_metadata(response: httpx.Response) -> DownloadFileResponse:
        return parse_download_headers(response.headers)

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
        payload = _compact(
            {
                "accountId": self._account_id(),
                "keyName": key_name,
                "capabilities": capabilities,
                "validDurationInSeconds": valid_duration_in_seconds,
                "bucketId": bucket_id,
                "namePrefix": name_prefix,
            }
        )
        return await self.invoke(
            "b2_create_key", payload, KeyItem, invalidates=[CacheClass.LIST_KEYS]
        )

    async def delete_key(self, application_key_id: str) -> ApiResult[KeyItem]:
        return await self.invoke(
            "b2_delete_key",
            {"applicationKeyId": application_key_id},
            KeyItem,
            invalidates=[CacheClass.LIST_KEYS],
        )

    async def list_keys(
        self,
        *,
        max_key_count: int | None = None,
        start_application_key_id: str | None = None,
        cache_ttl: float | None = None,
    ) -> ApiResult[ListKeysResponse]:
        payload = _compact(
            {
                "accountId": self._account_id(),
                "maxKeyCount": max_key_count,
                "startApplicationKeyId": start_application_key_id,
            }
        )
        return await self.invoke(
            "b2_list_keys",
            payload,
            ListKeysResponse,
            cache_class=CacheClass.LIST_KEYS,
            cache_ttl=self._list_ttl(cache_ttl),
        )


__all__ = [
    "ApiClient",
    "authorize_account",
    "basic_auth_header",
    "decode_model",
    "decode_response_json",
    "parse_error",
    "raise_for_auth",
    "to_result",
]
