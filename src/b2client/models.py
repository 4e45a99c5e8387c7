from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

BucketType = Literal["allPublic", "allPrivate", "snapshot", "shared", "restricted"]


class _Model(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ErrorResponse(_Model):
    """Error body returned by the service for non-2xx responses."""

    status: int
    code: str = "unknown"
    message: str = ""


# Accounts


class Allowed(_Model):
    """Capabilities and restrictions attached to an authorization token."""

    capabilities: list[str] = Field(default_factory=list)
    bucket_id: str | None = Field(default=None, alias="bucketId")
    bucket_name: str | None = Field(default=None, alias="bucketName")
    name_prefix: str | None = Field(default=None, alias="namePrefix")


class AuthorizeAccountResponse(_Model):
    account_id: str = Field(alias="accountId")
    authorization_token: str = Field(alias="authorizationToken")
    allowed: Allowed = Field(default_factory=Allowed)
    api_url: str = Field(alias="apiUrl")
    download_url: str = Field(alias="downloadUrl")
    recommended_part_size: int = Field(alias="recommendedPartSize")
    absolute_minimum_part_size: int = Field(alias="absoluteMinimumPartSize")
    s3_api_url: str | None = Field(default=None, alias="s3ApiUrl")


# Buckets


class BucketItem(_Model):
    account_id: str = Field(alias="accountId")
    bucket_id: str = Field(alias="bucketId")
    bucket_name: str = Field(alias="bucketName")
    bucket_type: str = Field(alias="bucketType")
    bucket_info: dict[str, str] = Field(default_factory=dict, alias="bucketInfo")
    cors_rules: list[dict[str, Any]] = Field(default_factory=list, alias="corsRules")
    lifecycle_rules: list[dict[str, Any]] = Field(default_factory=list, alias="lifecycleRules")
    revision: int = 0


class ListBucketsResponse(_Model):
    buckets: list[BucketItem] = Field(default_factory=list)


# Files


class FileItem(_Model):
    """File metadata as returned by the file and large-file endpoints."""

    account_id: str | None = Field(default=None, alias="accountId")
    action: str = "upload"
    bucket_id: str | None = Field(default=None, alias="bucketId")
    content_length: int = Field(default=0, alias="contentLength")
    content_sha1: str | None = Field(default=None, alias="contentSha1")
    content_md5: str | None = Field(default=None, alias="contentMd5")
    content_type: str | None = Field(default=None, alias="contentType")
    file_id: str | None = Field(default=None, alias="fileId")
    file_info: dict[str, str] = Field(default_factory=dict, alias="fileInfo")
    file_name: str = Field(alias="fileName")
    upload_timestamp: int = Field(default=0, alias="uploadTimestamp")


class ListFileNamesResponse(_Model):
    files: list[FileItem] = Field(default_factory=list)
    next_file_name: str | None = Field(default=None, alias="nextFileName")


class ListFileVersionsResponse(_Model):
    files: list[FileItem] = Field(default_factory=list)
    next_file_name: str | None = Field(default=None, alias="nextFileName")
    next_file_id: str | None = Field(default=None, alias="nextFileId")


class DeleteFileVersionResponse(_Model):
    file_id: str = Field(alias="fileId")
    file_name: str = Field(alias="fileName")


class GetDownloadAuthorizationResponse(_Model):
    bucket_id: str = Field(alias="bucketId")
    file_name_prefix: str = Field(alias="fileNamePrefix")
    authorization_token: str = Field(alias="authorizationToken")


# Uploads


class UploadUrlResponse(_Model):
    bucket_id: str = Field(alias="bucketId")
    upload_url: str = Field(alias="uploadUrl")
    authorization_token: str = Field(alias="authorizationToken")


class UploadPartUrlResponse(_Model):
    file_id: str = Field(alias="fileId")
    upload_url: str = Field(alias="uploadUrl")
    authorization_token: str = Field(alias="authorizationToken")


class UploadPartResponse(_Model):
    file_id: str = Field(alias="fileId")
    part_number: int = Field(alias="partNumber")
    content_length: int = Field(alias="contentLength")
    content_sha1: str = Field(alias="contentSha1")
    upload_timestamp: int = Field(default=0, alias="uploadTimestamp")


class CancelLargeFileResponse(_Model):
    file_id: str = Field(alias="fileId")
    account_id: str | None = Field(default=None, alias="accountId")
    bucket_id: str = Field(alias="bucketId")
    file_name: str = Field(alias="fileName")


class ListPartsResponse(_Model):
    parts: list[UploadPartResponse] = Field(default_factory=list)
    next_part_number: int | None = Field(default=None, alias="nextPartNumber")


class ListUnfinishedLargeFilesResponse(_Model):
    files: list[FileItem] = Field(default_factory=list)
    next_file_id: str | None = Field(default=None, alias="nextFileId")


# Keys


class KeyItem(_Model):
    account_id: str | None = Field(default=None, alias="accountId")
    application_key_id: str = Field(alias="applicationKeyId")
    key_name: str = Field(alias="keyName")
    capabilities: list[str] = Field(default_factory=list)
    bucket_id: str | None = Field(default=None, alias="bucketId")
    name_prefix: str | None = Field(default=None, alias="namePrefix")
    expiration_timestamp: int | None = Field(default=None, alias="expirationTimestamp")
    application_key: str | None = Field(default=None, alias="applicationKey")


class ListKeysResponse(_Model):
    keys: list[KeyItem] = Field(default_factory=list)
    next_application_key_id: str | None = Field(default=None, alias="nextApplicationKeyId")


# Downloads


class DownloadFileResponse(_Model):
    """Metadata of a downloaded file, read from the response headers."""

    file_id: str | None = None
    file_name: str | None = None
    content_length: int = 0
    content_type: str | None = None
    content_sha1: str | None = None
    file_info: dict[str, str] = Field(default_factory=dict)
    upload_timestamp: int | None = None


__all__ = [
    "Allowed",
    "AuthorizeAccountResponse",
    "BucketItem",
    "BucketType",
    "CancelLargeFileResponse",
    "DeleteFileVersionResponse",
    "DownloadFileResponse",
    "ErrorResponse",
    "FileItem",
    "GetDownloadAuthorizationResponse",
    "KeyItem",
    "ListBucketsResponse",
    "ListFileNamesResponse",
    "ListFileVersionsResponse",
    "ListKeysResponse",
    "ListPartsResponse",
    "ListUnfinishedLargeFilesResponse",
    "UploadPartResponse",
    "UploadPartUrlResponse",
    "UploadUrlResponse",
]
