"""
Shared fixtures for endpoint_builder tests.
"""
import asyncio
import json
from typing import Any, Callable, List, Optional

import httpx
import pytest
import pytest_asyncio

from endpoint_builder import ClientConfig, HttpClient, MemoryStoragePersist, NoRetryStrategy

BASE_URL = "https://api.example.com"


def json_response(status: int, data: Any = None, headers: Optional[dict] = None) -> httpx.Response:
    """Build an httpx.Response carrying a JSON body."""
    return httpx.Response(status, json=data, headers=headers)


class RecordingTransport:
    """httpx.MockTransport handler that records requests.

    ``responses`` is consumed in order; the last entry repeats. Entries may be
    httpx.Response objects, exceptions to raise, or callables taking the
    request.
    """

    def __init__(self, responses: Optional[List[Any]] = None) -> None:
        self.responses = list(responses or [json_response(200, {"ok": True})])
        self.requests: List[httpx.Request] = []

    @property
    def calls(self) -> int:
        return len(self.requests)

    def body_of(self, index: int) -> Any:
        return json.loads(self.requests[index].content)

    def _respond(self, request: httpx.Request) -> httpx.Response:
        item = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(item, Exception):
            raise item
        if callable(item):
            return item(request)
        # fresh copy, a Response object is single-use
        return httpx.Response(item.status_code, headers=item.headers, content=item.content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._respond(request)


class AsyncRecordingTransport(RecordingTransport):
    """Async variant; lets tests interleave requests with the event loop."""

    def __init__(self, responses: Optional[List[Any]] = None, delay: float = 0.0) -> None:
        super().__init__(responses)
        self.delay = delay

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        return self._respond(request)


@pytest.fixture
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def storage() -> MemoryStoragePersist:
    return MemoryStoragePersist()


@pytest_asyncio.fixture
async def make_client():
    """Factory building HttpClients on top of a recording transport."""
    clients: List[HttpClient] = []
    httpx_clients: List[httpx.AsyncClient] = []

    def _make(handler: Callable[[httpx.Request], Any], **options: Any) -> HttpClient:
        httpx_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        options.setdefault("base_url", BASE_URL)
        options.setdefault("retry_strategy", NoRetryStrategy())
        client = HttpClient(ClientConfig(httpx_client=httpx_client, **options))
        clients.append(client)
        httpx_clients.append(httpx_client)
        return client

    yield _make

    for client in clients:
        await client.close()
    for httpx_client in httpx_clients:
        await httpx_client.aclose()
