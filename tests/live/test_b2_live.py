"""Live tests against a real B2 account.

These tests make real API calls and require B2_APPLICATION_KEY_ID,
B2_APPLICATION_KEY, B2_TEST_BUCKET_ID and B2_TEST_BUCKET_NAME.
Run with: pytest tests/live -v -m live
"""

import io
import os
import uuid

import pytest

from b2client import B2Client, ClientOptions, DownloadRequest, UploadRequest


def has_b2_credentials() -> bool:
    return all(
        os.getenv(name)
        for name in (
            "B2_APPLICATION_KEY_ID",
            "B2_APPLICATION_KEY",
            "B2_TEST_BUCKET_ID",
            "B2_TEST_BUCKET_NAME",
        )
    )


requires_b2_credentials = pytest.mark.skipif(
    not has_b2_credentials(),
    reason="Requires B2_APPLICATION_KEY_ID, B2_APPLICATION_KEY, B2_TEST_BUCKET_ID "
    "and B2_TEST_BUCKET_NAME environment variables",
)


@pytest.fixture
def live_client():
    with B2Client(options=ClientOptions.from_env(dotenv=False)) as client:
        client.connect()
        yield client


@pytest.fixture
def unique_name() -> str:
    return f"b2client-live/{uuid.uuid4().hex}.txt"


@requires_b2_credentials
@pytest.mark.live
class TestB2Live:
    def test_upload_download_delete(self, live_client, unique_name):
        bucket_id = os.environ["B2_TEST_BUCKET_ID"]
        bucket_name = os.environ["B2_TEST_BUCKET_NAME"]
        data = b"Hello from b2client live tests."

        item = live_client.upload(UploadRequest(bucket_id, unique_name), io.BytesIO(data)).unwrap()
        try:
            destination = io.BytesIO()
            metadata = live_client.download(
                DownloadRequest(bucket_name=bucket_name, file_name=unique_name), destination
            ).unwrap()

            assert destination.getvalue() == data
            assert metadata.file_id == item.file_id
        finally:
            live_client.delete_file_version(unique_name, item.file_id).unwrap()

    def test_list_buckets_includes_test_bucket(self, live_client):
        buckets = live_client.list_buckets().unwrap().buckets

        assert os.environ["B2_TEST_BUCKET_ID"] in {b.bucket_id for b in buckets}
