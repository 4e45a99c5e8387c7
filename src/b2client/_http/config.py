"""HTTP configuration constants for B2 API clients."""

from __future__ import annotations

import sys

DEFAULT_AUTH_URL = "https://api.backblazeb2.com/b2api/v2/"
DEFAULT_TIMEOUT = 600.0
API_VERSION_PATH = "b2api/v2/"

VERSION = "0.1.0"
USER_AGENT = f"b2client/{VERSION} (Python/{sys.version.split()[0]}; {sys.platform})"

# Values understood by the service: fail_some_uploads,
# expire_some_account_authorization_tokens, force_cap_exceeded.
TEST_MODE_HEADER = "X-Bz-Test-Mode"


def default_headers(*, test_mode: str | None = None) -> dict[str, str]:
    """Headers added to every request made by a b2client transport."""
    headers = {"user-agent": USER_AGENT}
    if test_mode:
        headers[TEST_MODE_HEADER] = test_mode
    return headers


__all__ = [
    "API_VERSION_PATH",
    "DEFAULT_AUTH_URL",
    "DEFAULT_TIMEOUT",
    "TEST_MODE_HEADER",
    "USER_AGENT",
    "VERSION",
    "default_headers",
]
