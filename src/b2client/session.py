from __future__ import annotations

import logging
import threading

from ._http import BaseTransport
from .api import api_base_url, authorize_account
from .cache import ResponseCache
from .errors import ApiError, ConfigurationError
from .options import ClientOptions
from .types import AccountInfo, AuthToken

logger = logging.getLogger(__name__)


class AuthSession:
    """Holds the credentials, account info and authorization token of a client.

    ``AccountInfo`` and ``AuthToken`` are replaced together, under a lock, so
    readers never observe a token from one authorization paired with URLs
    from another.
    """

    def __init__(
        self,
        options: ClientOptions,
        transport: BaseTransport,
        cache: ResponseCache,
    ) -> None:
        self._options = options
        self._transport = transport
        self._cache = cache
        self._lock = threading.Lock()
        self._state: tuple[AccountInfo, AuthToken | None] = (AccountInfo(), None)
        self._credentials: tuple[str, str] | None = None

    @property
    def account_info(self) -> AccountInfo:
        return self._state[0]

    @property
    def auth_token(self) -> AuthToken | None:
        return self._state[1]

    @property
    def is_connected(self) -> bool:
        return self._state[1] is not None

    async def connect(
        self, key_id: str | None = None, application_key: str | None = None
    ) -> AccountInfo:
        """Authorize the account and install fresh account info and token.

        Options are validated first, so bad configuration fails before any
        network I/O. Explicit credentials are saved into the options only
        once the service accepts them. The response cache is cleared on
        success.
        """
        self._options.validate(key_id, application_key)
        resolved_key_id, resolved_key = self._options.resolve_credentials(key_id, application_key)

        result = await authorize_account(
            self._transport,
            self._options.auth_url,
            resolved_key_id,
            resolved_key,
            timeout=self._options.timeout,
        )
        if result.error is not None:
            raise ApiError(result.error)
        response = result.unwrap()

        info = AccountInfo(
            account_id=response.account_id,
            auth_url=self._options.auth_url,
            api_url=api_base_url(response.api_url),
            download_url=response.download_url,
            recommended_part_size=response.recommended_part_size,
            absolute_minimum_part_size=response.absolute_minimum_part_size,
        )
        token = AuthToken(authorization=response.authorization_token, allowed=response.allowed)
        with self._lock:
            self._state = (info, token)
            self._credentials = (resolved_key_id, resolved_key)
        if key_id is not None:
            self._options.key_id = key_id
        if application_key is not None:
            self._options.application_key = application_key
        self._cache.clear()

        if self._options.auto_set_part_size:
            self._options.apply_recommended_part_size(response.recommended_part_size)
        logger.info("authorized account %s against %s", info.account_id, response.api_url)
        return info

    async def reconnect(self) -> AccountInfo:
        """Authorize again with the credentials of the last successful connect."""
        with self._lock:
            credentials = self._credentials
        if credentials is None:
            raise ConfigurationError("cannot reconnect before a successful connect()")
        logger.info("reconnecting account %s", self.account_info.account_id)
        return await self.connect(*credentials)


__all__ = ["AuthSession"]
