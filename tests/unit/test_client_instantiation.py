"""
Unit tests for client class instantiation.

These tests verify that client classes can be instantiated without network
access and pick up their configuration the way callers expect.
"""

import os
from unittest.mock import patch

import httpx
import pytest

from b2client import AsyncB2Client, B2Client, ClientOptions


class TestClientInstantiation:
    """Test that both client classes can be instantiated."""

    @pytest.fixture
    def mock_env_credentials(self):
        """Provide mock credentials via environment variables."""
        with patch.dict(
            os.environ,
            {"B2_APPLICATION_KEY_ID": "env-key-id", "B2_APPLICATION_KEY": "env-key"},
        ):
            yield

    def test_sync_client_with_credentials(self, mock_env_clear):
        client = B2Client("key-id", "application-key")
        try:
            assert client.options.key_id == "key-id"
            assert client.options.application_key == "application-key"
            assert not client.is_connected
        finally:
            client.close()

    def test_credentials_override_options(self, mock_env_clear):
        options = ClientOptions(key_id="from-options", retry_count=2)
        client = B2Client(key_id="explicit", options=options)
        try:
            assert client.options is options
            assert client.options.key_id == "explicit"
            assert client.policies.upload.retry_count == 2
        finally:
            client.close()

    def test_env_credentials_resolved_at_connect(self, mock_env_credentials):
        client = B2Client()
        try:
            assert client.options.key_id is None
            assert client.options.resolve_credentials() == ("env-key-id", "env-key")
        finally:
            client.close()

    def test_policy_limits_follow_options(self, mock_env_clear):
        options = ClientOptions(
            request_max_parallel=4, upload_max_parallel=2, download_max_parallel=3
        )
        with B2Client(options=options) as client:
            assert client.policies.invoke.bulkhead.limit == 4
            assert client.policies.upload.bulkhead.limit == 2
            assert client.policies.download.bulkhead.limit == 3

    def test_user_supplied_http_client_is_used(self, mock_env_clear):
        http_client = httpx.Client()
        with B2Client("key-id", "application-key", client=http_client) as client:
            assert client._transport._client is http_client
            assert client.cache is not None
        assert http_client.is_closed

    @pytest.mark.asyncio
    async def test_async_client_instantiation(self, mock_env_clear):
        async with AsyncB2Client("key-id", "application-key") as client:
            assert client.options.key_id == "key-id"
            assert client.policies.download.bulkhead.available == 5
