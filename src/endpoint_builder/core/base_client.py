"""
HTTP execution engine built on httpx.

``HttpClient`` turns a RequestBuilder into a running task: it resolves auth,
sends the request, replays it after a credential refresh, retries failures
according to the retry strategy, shares in-flight duplicates and decodes the
response.
"""
import asyncio
import logging
from dataclasses import replace
from typing import Any, Callable, List, Optional, Tuple

import httpx

from .. import trace
from ..auth import AuthStrategy
from ..cancellation import CancellationToken, cancelled_error, run_cancellable, sleep
from ..config import ClientConfig, ResolvedConfig, resolve_config
from ..errors import (
    DECODE_ERROR,
    HTTP_ERROR,
    NETWORK_ERROR,
    HttpError,
    MockNotConfiguredError,
)
from ..retry import RetryStrategy
from ..storage import PersistStorage
from ..types import (
    HttpResponse,
    RequestConfig,
    RequestInterceptor,
    ResponseInterceptor,
    ResponseType,
    RetryContext,
)
from ..utils import maybe_await
from .encoding import (
    build_body,
    build_url,
    decode_error_body,
    decode_response,
    merge_headers,
    request_fingerprint,
    to_wire_headers,
)
from .inflight import InFlightRegistry
from .request_builder import RequestBuilder, RequestOptions

logger = logging.getLogger("endpoint_builder.base_client")


class HttpClient:
    """Asynchronous request execution engine.

    Example:
        async with create_client(base_url="https://api.example.com", dedupe=True) as client:
            user = await client.get("/users/1").data()
            created = await client.post("/users").json({"name": "Ada"}).send()
    """

    def __init__(self, config: Optional[ClientConfig] = None, **options: Any) -> None:
        if config is None:
            config = ClientConfig(**options)
        elif options:
            config = replace(config, **options)
        self._source_config = config
        self._config: ResolvedConfig = resolve_config(config)

        if self._config.httpx_client is not None:
            self._client = self._config.httpx_client
            self._owns_client = False
        else:
            self._client = httpx.AsyncClient(
                timeout=self._config.transport_timeout.to_httpx(),
                verify=self._config.verify_ssl,
            )
            self._owns_client = True

        self._inflight = InFlightRegistry()
        self._request_interceptors: List[RequestInterceptor] = list(self._config.request_interceptors)
        self._response_interceptors: List[ResponseInterceptor] = list(self._config.response_interceptors)
        self._closed = False

    # -- properties ----------------------------------------------------

    @property
    def config(self) -> ResolvedConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._config.base_url

    @property
    def storage(self) -> PersistStorage:
        return self._config.storage

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def inflight_count(self) -> int:
        return self._inflight.size()

    # -- interceptors --------------------------------------------------

    def add_request_interceptor(self, interceptor: RequestInterceptor) -> Callable[[], None]:
        """Register an interceptor; returns a function that removes it."""
        self._request_interceptors.append(interceptor)

        def remove() -> None:
            if interceptor in self._request_interceptors:
                self._request_interceptors.remove(interceptor)

        return remove

    def add_response_interceptor(self, interceptor: ResponseInterceptor) -> Callable[[], None]:
        """Register an interceptor; returns a function that removes it."""
        self._response_interceptors.append(interceptor)

        def remove() -> None:
            if interceptor in self._response_interceptors:
                self._response_interceptors.remove(interceptor)

        return remove

    # -- method facade -------------------------------------------------

    def request(self, method: str, path: str) -> RequestBuilder[Any]:
        return RequestBuilder(self, path, method)

    def get(self, path: str) -> RequestBuilder[Any]:
        return RequestBuilder(self, path, "GET")

    def post(self, path: str) -> RequestBuilder[Any]:
        return RequestBuilder(self, path, "POST")

    def put(self, path: str) -> RequestBuilder[Any]:
        return RequestBuilder(self, path, "PUT")

    def patch(self, path: str) -> RequestBuilder[Any]:
        return RequestBuilder(self, path, "PATCH")

    def delete(self, path: str) -> RequestBuilder[Any]:
        return RequestBuilder(self, path, "DELETE")

    def head(self, path: str) -> RequestBuilder[Any]:
        return RequestBuilder(self, path, "HEAD")

    def options(self, path: str) -> RequestBuilder[Any]:
        return RequestBuilder(self, path, "OPTIONS")

    # -- execution -----------------------------------------------------

    def execute(self, builder: RequestBuilder[Any]) -> "asyncio.Task[HttpResponse[Any]]":
        """Start executing ``builder`` and return its task.

        Not a coroutine: configuration errors are raised right here, and a
        deduplicated request hands back the very task already in flight.
        """
        if self._closed:
            raise RuntimeError("Client has been closed")

        opts = builder.clone().options

        if opts.mock is None and (opts.mock_only or self._config.mock_only):
            raise MockNotConfiguredError(
                f"Mock-only mode is enabled but no mock is configured for {opts.method} {opts.path}"
            )

        dedupe = opts.dedupe if opts.dedupe is not None else self._config.dedupe
        key = None
        if dedupe:
            url = build_url(self._config.base_url, opts.path, opts.query)
            auth = None if opts.mock is not None else opts.auth.resolve(self._config.auth)
            key = request_fingerprint(
                opts.method,
                url,
                opts.body,
                headers=merge_headers(self._config.headers, opts.headers),
                response_type=opts.response_type or self._config.response_type,
                auth_id=f"{type(auth).__name__}:{id(auth)}" if auth is not None else None,
            )
            existing = self._inflight.get(key)
            if existing is not None:
                logger.debug(f"HttpClient.execute: joining in-flight {opts.method} {url}")
                return existing

        loop = asyncio.get_running_loop()
        if opts.mock is not None:
            task = loop.create_task(self._serve_mock(opts))
        else:
            task = loop.create_task(self._run_attempts(opts))
        if key is not None:
            self._inflight.register(key, task)
        return task

    async def _build_config(
        self,
        opts: RequestOptions,
        auth: Optional[AuthStrategy],
        timeout: Optional[float],
        response_type: Optional[ResponseType],
    ) -> RequestConfig:
        config = RequestConfig(
            url=build_url(self._config.base_url, opts.path, opts.query),
            method=opts.method,
            headers=merge_headers(self._config.headers, opts.headers),
            body=opts.body,
            timeout=timeout,
            signal=opts.signal,
            response_type=response_type,
        )
        if auth is not None:
            auth_headers = await auth.enrich(config)
            if auth_headers:
                config.headers = merge_headers(config.headers, auth_headers)
        for interceptor in list(self._request_interceptors):
            config = await maybe_await(interceptor.on_request(config))
        return config

    async def _run_attempts(self, opts: RequestOptions) -> HttpResponse[Any]:
        auth = opts.auth.resolve(self._config.auth)
        retry: Optional[RetryStrategy] = opts.retry.resolve(self._config.retry_strategy)
        timeout = opts.timeout if opts.timeout is not None else self._config.timeout
        response_type = opts.response_type or self._config.response_type
        signal = opts.signal

        attempt = 1
        replays = 0
        while True:
            if signal is not None and signal.cancelled:
                raise cancelled_error(signal)

            config = await self._build_config(opts, auth, timeout, response_type)
            logger.debug(f"HttpClient: attempt {attempt} {config.method} {config.url}")

            response, error = await self._send(config)

            if response is not None and auth is not None and replays < self._config.max_auth_replays:
                should_replay = await run_cancellable(auth.handle_error(config, response), signal, config)
                if should_replay:
                    replays += 1
                    logger.debug(
                        f"HttpClient: replaying {config.method} {config.url} with refreshed credentials "
                        f"(replay {replays}, attempt {attempt})"
                    )
                    continue

            if response is not None and response.is_success:
                return await self._build_response(response, config)

            ctx = RetryContext(attempt=attempt, config=config, response=response, error=error)
            if retry is not None and await maybe_await(retry.should_retry(ctx)):
                delay = float(await maybe_await(retry.next_delay(ctx)))
                logger.debug(
                    f"HttpClient: attempt {attempt} failed "
                    f"({response.status_code if response is not None else repr(error)}), "
                    f"retrying in {delay:.3f}s"
                )
                await sleep(delay, signal)
                if signal is not None and signal.cancelled:
                    raise cancelled_error(signal, config)
                attempt += 1
                replays = 0
                continue

            raise await self._failure(config, response, error)

    async def _send(
        self, config: RequestConfig
    ) -> Tuple[Optional[httpx.Response], Optional[Exception]]:
        """Perform one network call.

        Returns ``(response, None)``, or ``(None, error)`` when httpx fails
        without a usable response (transport failures, undecodable content
        encodings, redirect loops, invalid URLs). Cancellation is raised,
        never returned.
        """
        kwargs, headers = build_body(config.body, dict(config.headers))
        if self._config.trace:
            trace.print_request(
                config.method, config.url, headers, config.body.value if config.body else None
            )

        token = config.signal
        internal: Optional[CancellationToken] = None
        if token is None and config.timeout is not None:
            internal = CancellationToken.with_timeout(config.timeout)
            token = internal

        try:
            response = await run_cancellable(
                self._client.request(
                    config.method, config.url, headers=to_wire_headers(headers), **kwargs
                ),
                token,
                config,
            )
        except (httpx.RequestError, httpx.InvalidURL) as e:
            logger.debug(f"HttpClient._send: request error for {config.method} {config.url}: {e!r}")
            return None, e
        finally:
            if internal is not None:
                internal.dispose()
        return response, None

    async def _build_response(self, response: httpx.Response, config: RequestConfig) -> HttpResponse[Any]:
        try:
            data = decode_response(response, config.response_type, config.method)
        except ValueError as e:
            error = HttpError(
                f"Failed to decode response: {e}",
                config,
                status=response.status_code,
                status_text=response.reason_phrase,
                code=DECODE_ERROR,
            )
            raise await self._intercept_error(error) from e

        if self._config.trace:
            trace.print_response(
                config.url, response.status_code, response.reason_phrase, response.headers, data
            )

        result: HttpResponse[Any] = HttpResponse(
            data=data,
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            config=config,
        )
        return await self._intercept_response(result)

    async def _failure(
        self,
        config: RequestConfig,
        response: Optional[httpx.Response],
        cause: Optional[Exception],
    ) -> HttpError:
        if response is None:
            if isinstance(cause, httpx.DecodingError):
                message, code = f"Failed to decode response: {cause!r}", DECODE_ERROR
            else:
                message = f"Network error: {cause!r}" if cause is not None else "Network error"
                code = NETWORK_ERROR
            error = HttpError(message, config, code=code)
            error.__cause__ = cause
            return await self._intercept_error(error)

        data = decode_error_body(response, config.method)
        if self._config.trace:
            trace.print_response(
                config.url, response.status_code, response.reason_phrase, response.headers, data
            )
        error = HttpError(
            f"HTTP {response.status_code}",
            config,
            status=response.status_code,
            status_text=response.reason_phrase,
            response=HttpResponse(
                data=data,
                status=response.status_code,
                status_text=response.reason_phrase,
                headers=dict(response.headers),
                config=config,
            ),
            code=HTTP_ERROR,
        )
        return await self._intercept_error(error)

    async def _intercept_response(self, response: HttpResponse[Any]) -> HttpResponse[Any]:
        for interceptor in list(self._response_interceptors):
            on_response = getattr(interceptor, "on_response", None)
            if on_response is not None:
                response = await maybe_await(on_response(response))
        return response

    async def _intercept_error(self, error: HttpError) -> HttpError:
        for interceptor in list(self._response_interceptors):
            on_error = getattr(interceptor, "on_error", None)
            if on_error is not None:
                error = await maybe_await(on_error(error))
        return error

    async def _serve_mock(self, opts: RequestOptions) -> HttpResponse[Any]:
        mock = opts.mock
        timeout = opts.timeout if opts.timeout is not None else self._config.timeout
        response_type = opts.response_type or self._config.response_type
        config = await self._build_config(opts, None, timeout, response_type)

        if mock.delay > 0:
            await sleep(mock.delay, opts.signal)
        if opts.signal is not None and opts.signal.cancelled:
            raise cancelled_error(opts.signal, config)

        logger.debug(f"HttpClient: serving mock {mock.status} for {config.method} {config.url}")
        result: HttpResponse[Any] = HttpResponse(
            data=mock.data,
            status=mock.status,
            status_text=mock.status_text,
            headers=dict(mock.headers),
            config=config,
        )
        if not result.ok:
            raise await self._intercept_error(
                HttpError(
                    f"HTTP {mock.status}",
                    config,
                    status=mock.status,
                    status_text=mock.status_text,
                    response=result,
                    code=HTTP_ERROR,
                )
            )
        return await self._intercept_response(result)

    # -- lifecycle -----------------------------------------------------

    def with_options(self, **changes: Any) -> "HttpClient":
        """Copy this client with different defaults.

        The copy shares the underlying httpx client (which stays owned by
        this instance) and gets its own dedupe registry.
        """
        changes.setdefault("request_interceptors", list(self._request_interceptors))
        changes.setdefault("response_interceptors", list(self._response_interceptors))
        changes.setdefault("httpx_client", self._client)
        changes.setdefault("storage", self._config.storage)
        return HttpClient(replace(self._source_config, **changes))

    async def close(self) -> None:
        """Close the client. An injected httpx client is left open."""
        if self._closed:
            return
        self._closed = True
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def __repr__(self) -> str:
        return f"HttpClient(base_url={self._config.base_url!r}, dedupe={self._config.dedupe})"


def create_client(base_url: str = "", **options: Any) -> HttpClient:
    """Create an HttpClient; ``options`` are ClientConfig fields."""
    return HttpClient(ClientConfig(base_url=base_url, **options))
