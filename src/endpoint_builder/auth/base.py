"""
Auth strategy interface.
"""
from abc import ABC, abstractmethod
from typing import Dict

import httpx

from ..types import RequestConfig


class AuthStrategy(ABC):
    """Enriches outgoing requests with credentials.

    ``enrich`` must be idempotent: it is called before every attempt,
    including the replay after a credential refresh. Strategies that carry
    credentials in the URL may rewrite ``request.url`` and return no headers.
    """

    @abstractmethod
    async def enrich(self, request: RequestConfig) -> Dict[str, str]:
        """Return headers to merge into the request."""
        ...

    async def handle_error(self, request: RequestConfig, response: httpx.Response) -> bool:
        """React to a response, e.g. refresh credentials after a 401.

        Return True to replay the request with fresh credentials. The replay
        does not count as a retry attempt.
        """
        return False
