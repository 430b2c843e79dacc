"""
Access/refresh token auth backed by PersistStorage.
"""
import asyncio
import logging
from typing import Dict, Optional

import httpx

from ..storage import PersistStorage
from ..trace import mask_value
from ..types import RequestConfig, TokenPair
from .base import AuthStrategy

logger = logging.getLogger("endpoint_builder.auth.refresh")

REFRESH_STATUS_CODES = (401, 403)


class RefreshTokenAuthStrategy(AuthStrategy):
    """Bearer auth whose tokens live in storage and are refreshed on 401/403.

    No token is cached in memory: every ``enrich`` reads the current pair, so
    a refresh performed for one request is visible to all of them.

    Concurrent failures share one refresh call. The refresh endpoint receives
    ``POST {"token": <refresh>}`` and must answer
    ``{"access": "...", "refresh": "..."}``; the refresh token is optional in
    the answer and the previous one is kept when it is missing.

    Example:
        storage = FileStoragePersist("~/.myapp/tokens.json")
        auth = RefreshTokenAuthStrategy(storage, "https://api.example.com/auth/refresh")
        await auth.set_tokens(TokenPair(access="a1", refresh="r1"))
        client = create_client(base_url="https://api.example.com", auth=auth)
    """

    def __init__(
        self,
        storage: PersistStorage,
        refresh_endpoint: str,
        header_name: str = "Authorization",
        storage_key: str = "tokens",
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._storage = storage
        self._refresh_endpoint = refresh_endpoint
        self._header_name = header_name
        self._storage_key = storage_key
        self._http_client = http_client
        self._refresh_task: Optional["asyncio.Future[bool]"] = None

    @property
    def refreshing(self) -> bool:
        return self._refresh_task is not None

    async def get_tokens(self) -> Optional[TokenPair]:
        return TokenPair.from_dict(await self._storage.get(self._storage_key))

    async def set_tokens(self, tokens: TokenPair) -> None:
        """Persist a full token pair, e.g. after login."""
        await self._storage.set(self._storage_key, tokens.to_dict())

    async def clear_tokens(self) -> None:
        await self._storage.delete(self._storage_key)

    async def enrich(self, request: RequestConfig) -> Dict[str, str]:
        tokens = await self.get_tokens()
        if tokens is None:
            return {}
        return {self._header_name: f"Bearer {tokens.access}"}

    async def handle_error(self, request: RequestConfig, response: httpx.Response) -> bool:
        if response.status_code not in REFRESH_STATUS_CODES:
            return False

        task = self._refresh_task
        if task is None:
            task = asyncio.ensure_future(self._refresh())
            self._refresh_task = task

            def _clear(done: "asyncio.Future[bool]") -> None:
                if self._refresh_task is done:
                    self._refresh_task = None

            task.add_done_callback(_clear)
        else:
            logger.debug("RefreshTokenAuthStrategy.handle_error: joining in-flight refresh")

        # one caller giving up must not abort the refresh for the others
        return await asyncio.shield(task)

    async def _refresh(self) -> bool:
        tokens = await self.get_tokens()
        if tokens is None or not tokens.refresh:
            logger.debug("RefreshTokenAuthStrategy._refresh: no refresh token stored")
            return False

        logger.debug(
            f"RefreshTokenAuthStrategy._refresh: POST {self._refresh_endpoint} "
            f"refresh={mask_value(tokens.refresh)}"
        )
        try:
            response = await self._post_refresh(tokens.refresh)
        except httpx.HTTPError as e:
            logger.warning(f"RefreshTokenAuthStrategy._refresh: request failed: {e!r}")
            return False

        if not response.is_success:
            logger.warning(
                f"RefreshTokenAuthStrategy._refresh: endpoint answered {response.status_code}"
            )
            return False

        try:
            payload = response.json()
        except ValueError:
            logger.warning("RefreshTokenAuthStrategy._refresh: response is not JSON")
            return False

        new_tokens = TokenPair.from_dict(payload)
        if new_tokens is None:
            logger.warning("RefreshTokenAuthStrategy._refresh: response has no access token")
            return False
        if new_tokens.refresh is None:
            new_tokens = TokenPair(access=new_tokens.access, refresh=tokens.refresh)

        await self.set_tokens(new_tokens)
        logger.debug(
            f"RefreshTokenAuthStrategy._refresh: stored access={mask_value(new_tokens.access)}"
        )
        return True

    async def _post_refresh(self, refresh_token: str) -> httpx.Response:
        body = {"token": refresh_token}
        if self._http_client is not None:
            return await self._http_client.post(self._refresh_endpoint, json=body)
        async with httpx.AsyncClient() as client:
            return await client.post(self._refresh_endpoint, json=body)
