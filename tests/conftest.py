"""Shared fixtures for all tests.

``FakeB2`` is a small in-memory B2 service routed through respx. It keeps
enough state (files, large files, parts, tokens) for uploads and downloads
to round-trip, and exposes knobs for injecting failures.
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import itertools
import json
from collections.abc import Generator
from dataclasses import dataclass, field
from urllib.parse import quote, unquote

import httpx
import pytest
import respx

from b2client import ClientOptions
from b2client.options import MEGABYTE

AUTH_URL = "https://auth.b2.test/b2api/v2"
API_URL = "https://api.b2.test"
DOWNLOAD_URL = "https://f001.b2.test"
UPLOAD_URL = "https://pod-000.b2.test"

KEY_ID = "key-id-123"
APPLICATION_KEY = "application-key-456"
ACCOUNT_ID = "account-789"
BUCKET_ID = "bucket-1"
BUCKET_NAME = "test-bucket"


def sha1(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def _json(status: int, payload: object) -> httpx.Response:
    return httpx.Response(status, json=payload)


def _error(status: int, code: str, message: str = "") -> httpx.Response:
    return _json(status, {"status": status, "code": code, "message": message or code})


@dataclass
class StoredFile:
    file_id: str
    file_name: str
    bucket_id: str
    content_type: str
    data: bytes
    content_sha1: str
    file_info: dict[str, str] = field(default_factory=dict)
    upload_timestamp: int = 0
    action: str = "upload"

    def to_json(self) -> dict:
        return {
            "accountId": ACCOUNT_ID,
            "action": self.action,
            "bucketId": self.bucket_id,
            "contentLength": len(self.data),
            "contentSha1": self.content_sha1,
            "contentType": self.content_type,
            "fileId": self.file_id,
            "fileInfo": dict(self.file_info),
            "fileName": self.file_name,
            "uploadTimestamp": self.upload_timestamp,
        }


@dataclass
class LargeFile:
    file_id: str
    file_name: str
    bucket_id: str
    content_type: str
    file_info: dict[str, str]
    parts: dict[int, bytes] = field(default_factory=dict)

    def to_json(self) -> dict:
        return {
            "accountId": ACCOUNT_ID,
            "action": "start",
            "bucketId": self.bucket_id,
            "contentLength": 0,
            "contentSha1": "none",
            "contentType": self.content_type,
            "fileId": self.file_id,
            "fileInfo": dict(self.file_info),
            "fileName": self.file_name,
            "uploadTimestamp": 0,
        }


class FakeB2:
    """In-memory stand-in for the authorize, API, upload and download hosts."""

    BUCKET_ID = BUCKET_ID
    BUCKET_NAME = BUCKET_NAME

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._clock = itertools.count(1_700_000_000_000, 1000)
        self.files: dict[str, StoredFile] = {}
        self.large_files: dict[str, LargeFile] = {}
        self.account_token = ""
        self.upload_tokens: set[str] = set()
        self.authorize_count = 0
        self.calls: list[tuple[str, str]] = []
        # Responses returned, in order, before the real handler for an endpoint.
        self.queued: dict[str, list[httpx.Response]] = {}
        # Number of upload/part responses that report a wrong contentSha1.
        self.bad_upload_sha1 = 0
        # Number of full downloads whose first byte is flipped.
        self.corrupt_downloads = 0
        # x-bz-content-sha1 header of every upload and part request, in order.
        self.sha1_headers: list[tuple[str, str]] = []
        self.on_part_uploaded = None
        self.keys: list[dict] = [
            {
                "accountId": ACCOUNT_ID,
                "applicationKeyId": KEY_ID,
                "keyName": "test-key",
                "capabilities": ["listBuckets"],
            }
        ]

    # -- knobs ------------------------------------------------------------

    def queue(self, endpoint: str, *responses: httpx.Response) -> None:
        self.queued.setdefault(endpoint, []).extend(responses)

    def expire_tokens(self) -> None:
        """Invalidate every token issued so far, as an expired session would."""
        self.account_token = "expired"
        self.upload_tokens.clear()

    def count(self, endpoint: str) -> int:
        return sum(1 for _, name in self.calls if name == endpoint)

    def put(
        self,
        file_name: str,
        data: bytes,
        *,
        file_info: dict[str, str] | None = None,
        large: bool = False,
    ) -> StoredFile:
        """Store a file directly, as if it had been uploaded earlier."""
        info = dict(file_info or {})
        if large:
            info["large_file_sha1"] = sha1(data)
        stored = StoredFile(
            file_id=self._next_id("4_z"),
            file_name=file_name,
            bucket_id=BUCKET_ID,
            content_type="application/octet-stream",
            data=data,
            content_sha1="none" if large else sha1(data),
            file_info=info,
            upload_timestamp=next(self._clock),
        )
        self.files[stored.file_id] = stored
        return stored

    def latest(self, file_name: str) -> StoredFile | None:
        matches = [f for f in self.files.values() if f.file_name == file_name and f.action == "upload"]
        return max(matches, key=lambda f: f.upload_timestamp) if matches else None

    # -- entry points -----------------------------------------------------

    def handle(self, request: httpx.Request) -> httpx.Response:
        body = b"".join(request.stream)
        return self._dispatch(request, body)

    async def ahandle(self, request: httpx.Request) -> httpx.Response:
        body = b""
        async for chunk in request.stream:
            body += chunk
        return self._dispatch(request, body)

    def _dispatch(self, request: httpx.Request, body: bytes) -> httpx.Response:
        host = request.url.host
        path = request.url.path
        if host == "auth.b2.test":
            return self._record(request, "b2_authorize_account", lambda: self._authorize(request))
        if host == "api.b2.test":
            endpoint = path.rsplit("/", 1)[-1]
            return self._record(request, endpoint, lambda: self._api(request, endpoint, body))
        if host == "pod-000.b2.test":
            endpoint = path.split("/")[3]
            return self._record(request, endpoint, lambda: self._upload(request, endpoint, body))
        if host == "f001.b2.test":
            return self._record(request, "download", lambda: self._download(request))
        return _error(404, "not_found", f"unknown host {host}")

    def _record(self, request: httpx.Request, endpoint: str, handler) -> httpx.Response:
        self.calls.append((request.method, endpoint))
        queued = self.queued.get(endpoint)
        if queued:
            return queued.pop(0)
        return handler()

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}_{next(self._ids):06d}"

    # -- authorize --------------------------------------------------------

    def _authorize(self, request: httpx.Request) -> httpx.Response:
        auth = request.headers.get("authorization", "")
        scheme, _, token = auth.partition(" ")
        try:
            key_id, _, key = base64.b64decode(token).decode().partition(":")
        except (binascii.Error, UnicodeDecodeError):
            return _error(401, "bad_auth_token")
        if scheme != "Basic" or key_id != KEY_ID or key != APPLICATION_KEY:
            return _error(401, "unauthorized", "invalid application key")
        self.authorize_count += 1
        self.account_token = f"account-token-{self.authorize_count}"
        return _json(
            200,
            {
                "accountId": ACCOUNT_ID,
                "authorizationToken": self.account_token,
                "allowed": {"capabilities": ["listBuckets", "writeFiles", "readFiles"]},
                "apiUrl": API_URL,
                "downloadUrl": DOWNLOAD_URL,
                "recommendedPartSize": 100 * MEGABYTE,
                "absoluteMinimumPartSize": 5 * MEGABYTE,
            },
        )

    # -- JSON API ---------------------------------------------------------

    def _api(self, request: httpx.Request, endpoint: str, body: bytes) -> httpx.Response:
        if request.headers.get("authorization") != self.account_token:
            return _error(401, "expired_auth_token", "Authorization token has expired")
        payload = json.loads(body or b"{}")
        handler = getattr(self, f"_api_{endpoint.removeprefix('b2_')}", None)
        if handler is None:
            return _error(400, "bad_request", f"unsupported endpoint {endpoint}")
        return handler(payload)

    def _bucket_json(self, name: str = BUCKET_NAME, bucket_id: str = BUCKET_ID) -> dict:
        return {
            "accountId": ACCOUNT_ID,
            "bucketId": bucket_id,
            "bucketName": name,
            "bucketType": "allPrivate",
            "bucketInfo": {},
            "corsRules": [],
            "lifecycleRules": [],
            "revision": 1,
        }

    def _api_list_buckets(self, payload: dict) -> httpx.Response:
        return _json(200, {"buckets": [self._bucket_json()]})

    def _api_create_bucket(self, payload: dict) -> httpx.Response:
        return _json(200, self._bucket_json(payload["bucketName"], self._next_id("bucket")))

    def _api_delete_bucket(self, payload: dict) -> httpx.Response:
        if payload["bucketId"] != BUCKET_ID:
            return _error(400, "bad_bucket_id")
        return _json(200, self._bucket_json())

    def _api_get_upload_url(self, payload: dict) -> httpx.Response:
        token = self._next_id("upload-token")
        self.upload_tokens.add(token)
        return _json(
            200,
            {
                "bucketId": payload["bucketId"],
                "uploadUrl": f"{UPLOAD_URL}/b2api/v2/b2_upload_file/{payload['bucketId']}",
                "authorizationToken": token,
            },
        )

    def _api_get_upload_part_url(self, payload: dict) -> httpx.Response:
        if payload["fileId"] not in self.large_files:
            return _error(400, "bad_request", "no such large file")
        token = self._next_id("part-token")
        self.upload_tokens.add(token)
        return _json(
            200,
            {
                "fileId": payload["fileId"],
                "uploadUrl": f"{UPLOAD_URL}/b2api/v2/b2_upload_part/{payload['fileId']}",
                "authorizationToken": token,
            },
        )

    def _api_start_large_file(self, payload: dict) -> httpx.Response:
        large = LargeFile(
            file_id=self._next_id("4_z"),
            file_name=payload["fileName"],
            bucket_id=payload["bucketId"],
            content_type=payload.get("contentType", "b2/x-auto"),
            file_info=dict(payload.get("fileInfo") or {}),
        )
        self.large_files[large.file_id] = large
        return _json(200, large.to_json())

    def _api_finish_large_file(self, payload: dict) -> httpx.Response:
        large = self.large_files.get(payload["fileId"])
        if large is None:
            return _error(400, "bad_request", "no such large file")
        numbers = sorted(large.parts)
        if numbers != list(range(1, len(numbers) + 1)):
            return _error(400, "bad_request", "missing parts")
        expected = [sha1(large.parts[n]) for n in numbers]
        if payload["partSha1Array"] != expected:
            return _error(400, "bad_request", "part sha1 array does not match")
        del self.large_files[large.file_id]
        stored = StoredFile(
            file_id=large.file_id,
            file_name=large.file_name,
            bucket_id=large.bucket_id,
            content_type=self._content_type(large.content_type),
            data=b"".join(large.parts[n] for n in numbers),
            content_sha1="none",
            file_info=large.file_info,
            upload_timestamp=next(self._clock),
        )
        self.files[stored.file_id] = stored
        return _json(200, stored.to_json())

    def _api_cancel_large_file(self, payload: dict) -> httpx.Response:
        large = self.large_files.pop(payload["fileId"], None)
        if large is None:
            return _error(400, "bad_request", "no such large file")
        return _json(
            200,
            {
                "fileId": large.file_id,
                "accountId": ACCOUNT_ID,
                "bucketId": large.bucket_id,
                "fileName": large.file_name,
            },
        )

    def _api_list_parts(self, payload: dict) -> httpx.Response:
        large = self.large_files.get(payload["fileId"])
        if large is None:
            return _error(400, "bad_request", "no such large file")
        start = payload.get("startPartNumber") or 1
        count = payload.get("maxPartCount") or 1000
        numbers = [n for n in sorted(large.parts) if n >= start]
        parts = [
            {
                "fileId": large.file_id,
                "partNumber": number,
                "contentLength": len(large.parts[number]),
                "contentSha1": sha1(large.parts[number]),
                "uploadTimestamp": 0,
            }
            for number in numbers[:count]
        ]
        rest = numbers[count:]
        return _json(200, {"parts": parts, "nextPartNumber": rest[0] if rest else None})

    def _api_list_unfinished_large_files(self, payload: dict) -> httpx.Response:
        start = payload.get("startFileId") or ""
        prefix = payload.get("namePrefix") or ""
        count = payload.get("maxFileCount") or 100
        files = sorted(
            (
                f
                for f in self.large_files.values()
                if f.bucket_id == payload["bucketId"]
                and f.file_name.startswith(prefix)
                and f.file_id >= start
            ),
            key=lambda f: f.file_id,
        )
        rest = files[count:]
        return _json(
            200,
            {
                "files": [f.to_json() for f in files[:count]],
                "nextFileId": rest[0].file_id if rest else None,
            },
        )

    def _api_get_file_info(self, payload: dict) -> httpx.Response:
        stored = self.files.get(payload["fileId"])
        if stored is None:
            return _error(404, "not_found", f"file not present: {payload['fileId']}")
        return _json(200, stored.to_json())

    def _api_list_file_names(self, payload: dict) -> httpx.Response:
        prefix = payload.get("prefix") or ""
        start = payload.get("startFileName") or ""
        count = payload.get("maxFileCount") or 100
        names = sorted(
            {
                f.file_name
                for f in self.files.values()
                if f.file_name.startswith(prefix) and f.file_name >= start
            }
        )
        files = [f for f in (self.latest(name) for name in names) if f is not None]
        rest = files[count:]
        return _json(
            200,
            {
                "files": [f.to_json() for f in files[:count]],
                "nextFileName": rest[0].file_name if rest else None,
            },
        )

    def _api_list_file_versions(self, payload: dict) -> httpx.Response:
        prefix = payload.get("prefix") or ""
        start_name = payload.get("startFileName")
        start_id = payload.get("startFileId")
        count = payload.get("maxFileCount") or 100
        files = sorted(
            (f for f in self.files.values() if f.file_name.startswith(prefix)),
            key=lambda f: (f.file_name, -f.upload_timestamp),
        )
        if start_name is not None:
            index = next(
                (
                    i
                    for i, f in enumerate(files)
                    if f.file_name > start_name
                    or (f.file_name == start_name and start_id in (None, f.file_id))
                ),
                len(files),
            )
            files = files[index:]
        rest = files[count:]
        return _json(
            200,
            {
                "files": [f.to_json() for f in files[:count]],
                "nextFileName": rest[0].file_name if rest else None,
                "nextFileId": rest[0].file_id if rest else None,
            },
        )

    def _api_hide_file(self, payload: dict) -> httpx.Response:
        hidden = StoredFile(
            file_id=self._next_id("4_h"),
            file_name=payload["fileName"],
            bucket_id=payload["bucketId"],
            content_type="application/x-bz-hide-marker",
            data=b"",
            content_sha1="none",
            upload_timestamp=next(self._clock),
            action="hide",
        )
        self.files[hidden.file_id] = hidden
        return _json(200, hidden.to_json())

    def _api_delete_file_version(self, payload: dict) -> httpx.Response:
        stored = self.files.pop(payload["fileId"], None)
        if stored is None:
            return _error(400, "file_not_present")
        return _json(200, {"fileId": stored.file_id, "fileName": stored.file_name})

    def _api_create_key(self, payload: dict) -> httpx.Response:
        key = {
            "accountId": ACCOUNT_ID,
            "applicationKeyId": self._next_id("key"),
            "keyName": payload["keyName"],
            "capabilities": list(payload["capabilities"]),
        }
        self.keys.append(key)
        return _json(200, {**key, "applicationKey": "secret"})

    def _api_list_keys(self, payload: dict) -> httpx.Response:
        start = payload.get("startApplicationKeyId") or ""
        count = payload.get("maxKeyCount") or 100
        keys = sorted(
            (k for k in self.keys if k["applicationKeyId"] >= start),
            key=lambda k: k["applicationKeyId"],
        )
        rest = keys[count:]
        return _json(
            200,
            {
                "keys": keys[:count],
                "nextApplicationKeyId": rest[0]["applicationKeyId"] if rest else None,
            },
        )

    # -- uploads ----------------------------------------------------------

    @staticmethod
    def _content_type(content_type: str) -> str:
        return "application/octet-stream" if content_type == "b2/x-auto" else content_type

    def _upload(self, request: httpx.Request, endpoint: str, body: bytes) -> httpx.Response:
        if request.headers.get("authorization") not in self.upload_tokens:
            return _error(401, "expired_auth_token", "upload token is not valid")
        declared_length = int(request.headers.get("content-length", "-1"))
        if declared_length != len(body):
            return _error(400, "bad_request", "content length mismatch")
        declared_sha1 = request.headers.get("x-bz-content-sha1", "")
        self.sha1_headers.append((endpoint, declared_sha1))
        if declared_sha1 != "do_not_verify" and declared_sha1 != sha1(body):
            return _error(400, "bad_request", "Checksum did not match data received")
        reported = sha1(body)
        if self.bad_upload_sha1 > 0:
            self.bad_upload_sha1 -= 1
            reported = "0" * 40

        if endpoint == "b2_upload_part":
            file_id = request.url.path.rsplit("/", 1)[-1]
            large = self.large_files.get(file_id)
            if large is None:
                return _error(400, "bad_request", "no such large file")
            number = int(request.headers["x-bz-part-number"])
            large.parts[number] = body
            if self.on_part_uploaded is not None:
                self.on_part_uploaded(number)
            return _json(
                200,
                {
                    "fileId": file_id,
                    "partNumber": number,
                    "contentLength": len(body),
                    "contentSha1": reported,
                    "uploadTimestamp": next(self._clock),
                },
            )

        bucket_id = request.url.path.rsplit("/", 1)[-1]
        file_info = {
            key[len("x-bz-info-") :]: unquote(value)
            for key, value in request.headers.items()
            if key.lower().startswith("x-bz-info-")
        }
        stored = StoredFile(
            file_id=self._next_id("4_z"),
            file_name=unquote(request.headers["x-bz-file-name"]),
            bucket_id=bucket_id,
            content_type=self._content_type(request.headers.get("content-type", "b2/x-auto")),
            data=body,
            content_sha1=sha1(body),
            file_info=file_info,
            upload_timestamp=next(self._clock),
        )
        self.files[stored.file_id] = stored
        response = stored.to_json()
        response["contentSha1"] = reported
        return _json(200, response)

    # -- downloads --------------------------------------------------------

    def _download(self, request: httpx.Request) -> httpx.Response:
        if request.headers.get("authorization") != self.account_token:
            return _error(401, "expired_auth_token", "Authorization token has expired")
        path = request.url.path
        if path.startswith("/file/"):
            _, _, bucket_name, name = path.split("/", 3)
            stored = self.latest(unquote(name)) if bucket_name == BUCKET_NAME else None
        else:
            stored = self.files.get(request.url.params.get("fileId", ""))
        if stored is None:
            return _error(404, "not_found", f"file not present: {path}")

        headers = {
            "content-type": stored.content_type,
            "x-bz-file-id": stored.file_id,
            "x-bz-file-name": quote(stored.file_name, safe="/"),
            "x-bz-content-sha1": stored.content_sha1,
            "x-bz-upload-timestamp": str(stored.upload_timestamp),
        }
        for key, value in stored.file_info.items():
            headers[f"x-bz-info-{key}"] = quote(value, safe="/")

        data = stored.data
        status = 200
        byte_range = request.headers.get("range")
        if byte_range:
            start, _, end = byte_range.removeprefix("bytes=").partition("-")
            data = data[int(start) : int(end) + 1]
            status = 206
            headers["content-range"] = f"bytes {start}-{end}/{len(stored.data)}"
        elif request.method == "GET" and self.corrupt_downloads > 0 and data:
            self.corrupt_downloads -= 1
            data = bytes([data[0] ^ 0xFF]) + data[1:]

        headers["content-length"] = str(len(data))
        if request.method == "HEAD":
            return httpx.Response(status, headers=headers)
        return httpx.Response(status, headers=headers, content=data)


@pytest.fixture
def mock_env_clear(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Clear all B2-related environment variables for testing.

    This ensures tests don't accidentally use real credentials from the environment.
    """
    env_vars_to_clear = [
        "B2_APPLICATION_KEY_ID",
        "B2_APPLICATION_KEY",
        "B2_AUTH_URL",
        "B2_TEST_MODE",
        "B2_RETRY_COUNT",
        "B2_TIMEOUT",
    ]
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(autouse=True)
def no_backoff(monkeypatch: pytest.MonkeyPatch) -> None:
    """Retry immediately instead of sleeping for seconds."""
    monkeypatch.setattr("b2client.policy.get_sleep_duration", lambda attempt: 0)


@pytest.fixture
def fake_b2() -> FakeB2:
    return FakeB2()


@pytest.fixture
def b2_router(fake_b2: FakeB2) -> Generator[respx.MockRouter, None, None]:
    """Route every request made by a blocking client to ``fake_b2``."""
    with respx.mock(assert_all_called=False) as router:
        router.route().mock(side_effect=fake_b2.handle)
        yield router


@pytest.fixture
def async_b2_router(fake_b2: FakeB2) -> Generator[respx.MockRouter, None, None]:
    """Route every request made by an async client to ``fake_b2``."""
    with respx.mock(assert_all_called=False) as router:
        router.route().mock(side_effect=fake_b2.ahandle)
        yield router


@pytest.fixture
def client_options(mock_env_clear) -> ClientOptions:
    """Options with the smallest sizes the service allows, so tests stay light."""
    return ClientOptions(
        key_id=KEY_ID,
        application_key=APPLICATION_KEY,
        auth_url=AUTH_URL,
        upload_cutoff_size=5 * MEGABYTE,
        upload_part_size=5 * MEGABYTE,
        download_cutoff_size=5 * MEGABYTE,
        download_part_size=5 * MEGABYTE,
        retry_count=3,
    )
