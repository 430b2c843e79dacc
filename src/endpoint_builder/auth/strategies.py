"""
Static credential strategies.
"""
import base64
import logging
from typing import Awaitable, Callable, Dict, Optional, Union

import httpx

from ..trace import mask_value
from ..types import RequestConfig
from ..utils import maybe_await
from .base import AuthStrategy

logger = logging.getLogger("endpoint_builder.auth")

TokenProvider = Callable[[RequestConfig], Union[Optional[str], Awaitable[Optional[str]]]]
HeadersProvider = Callable[[RequestConfig], Union[Dict[str, str], Awaitable[Dict[str, str]]]]


async def _resolve_key(
    request: RequestConfig,
    static_key: Optional[str],
    provider: Optional[TokenProvider],
) -> Optional[str]:
    key = None
    if provider is not None:
        key = await maybe_await(provider(request))
    if not key:
        key = static_key
    if not key or not key.strip():
        return None
    return key


class NoAuthStrategy(AuthStrategy):
    """Adds nothing."""

    async def enrich(self, request: RequestConfig) -> Dict[str, str]:
        return {}


class BearerAuthStrategy(AuthStrategy):
    """Bearer token auth.

    The provider callback is tried first, the static token is the fallback.
    Empty tokens add no header.
    """

    def __init__(
        self,
        token: Optional[str] = None,
        get_token: Optional[TokenProvider] = None,
        header_name: str = "Authorization",
    ) -> None:
        self._token = token
        self._get_token = get_token
        self._header_name = header_name

    async def enrich(self, request: RequestConfig) -> Dict[str, str]:
        key = await _resolve_key(request, self._token, self._get_token)
        if key is None:
            return {}
        if key.startswith("Bearer "):
            value = key
        else:
            value = f"Bearer {key}"
        logger.debug(f"BearerAuthStrategy.enrich: {self._header_name}={mask_value(value)}")
        return {self._header_name: value}


class ApiKeyAuthStrategy(AuthStrategy):
    """API key in a header, or as a query parameter."""

    def __init__(
        self,
        key: Optional[str] = None,
        header_name: str = "X-API-Key",
        as_query_param: bool = False,
        get_key: Optional[TokenProvider] = None,
    ) -> None:
        self._key = key
        self._header_name = header_name
        self._as_query_param = as_query_param
        self._get_key = get_key

    async def enrich(self, request: RequestConfig) -> Dict[str, str]:
        key = await _resolve_key(request, self._key, self._get_key)
        if key is None:
            return {}
        if self._as_query_param:
            request.url = str(httpx.URL(request.url).copy_set_param(self._header_name, key))
            logger.debug(f"ApiKeyAuthStrategy.enrich: query param {self._header_name}={mask_value(key)}")
            return {}
        logger.debug(f"ApiKeyAuthStrategy.enrich: {self._header_name}={mask_value(key)}")
        return {self._header_name: key}


class BasicAuthStrategy(AuthStrategy):
    """HTTP Basic auth: Authorization: Basic <base64(username:password)>."""

    def __init__(self, username: str, password: str) -> None:
        self._username = username
        self._password = password

    async def enrich(self, request: RequestConfig) -> Dict[str, str]:
        if not self._username or not self._password:
            return {}
        encoded = base64.b64encode(f"{self._username}:{self._password}".encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {encoded}"}


class CustomAuthStrategy(AuthStrategy):
    """Headers computed by a user callback."""

    def __init__(self, get_headers: HeadersProvider) -> None:
        self._get_headers = get_headers

    async def enrich(self, request: RequestConfig) -> Dict[str, str]:
        headers = await maybe_await(self._get_headers(request))
        if not isinstance(headers, dict):
            return {}
        return {str(k): str(v) for k, v in headers.items() if v is not None}
