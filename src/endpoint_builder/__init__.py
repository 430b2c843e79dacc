"""
Declarative HTTP request execution for asyncio.

Fluent request builders on top of httpx with pluggable auth (including
refresh-and-replay), retry/backoff, in-flight deduplication, cancellation
and response decoding.
"""
from .types import (
    BodyKind,
    HttpHeaders,
    HttpMethod,
    HttpResponse,
    MockResponse,
    Override,
    OverrideState,
    RequestBody,
    RequestConfig,
    RequestInterceptor,
    ResponseInterceptor,
    ErrorInterceptor,
    ResponseType,
    RetryContext,
    TokenPair,
)
from .errors import (
    EndpointBuilderError,
    HttpError,
    RequestCancelledError,
    RequestTimeoutError,
    ConfigurationError,
    MockNotConfiguredError,
)
from .cancellation import CancellationToken
from .config import (
    TimeoutConfig,
    ClientConfig,
    ResolvedConfig,
    resolve_config,
    load_config_file,
    config_from_env,
)
from .auth import (
    AuthStrategy,
    NoAuthStrategy,
    BearerAuthStrategy,
    ApiKeyAuthStrategy,
    BasicAuthStrategy,
    CustomAuthStrategy,
    RefreshTokenAuthStrategy,
)
from .retry import (
    RetryStrategy,
    NoRetryStrategy,
    FixedDelayRetryStrategy,
    LinearBackoffRetryStrategy,
    JitteredExponentialBackoffRetryStrategy,
    ExponentialRetryStrategy,
    CustomRetryStrategy,
)
from .storage import (
    PersistStorage,
    MemoryStoragePersist,
    FileStoragePersist,
    RedisStoragePersist,
    create_default_storage,
)
from .core.base_client import HttpClient, create_client
from .core.request_builder import RequestBuilder

__version__ = "0.1.0"

__all__ = [
    # Types
    "BodyKind",
    "HttpHeaders",
    "HttpMethod",
    "HttpResponse",
    "MockResponse",
    "Override",
    "OverrideState",
    "RequestBody",
    "RequestConfig",
    "RequestInterceptor",
    "ResponseInterceptor",
    "ErrorInterceptor",
    "ResponseType",
    "RetryContext",
    "TokenPair",
    # Errors
    "EndpointBuilderError",
    "HttpError",
    "RequestCancelledError",
    "RequestTimeoutError",
    "ConfigurationError",
    "MockNotConfiguredError",
    # Cancellation
    "CancellationToken",
    # Config
    "TimeoutConfig",
    "ClientConfig",
    "ResolvedConfig",
    "resolve_config",
    "load_config_file",
    "config_from_env",
    # Auth
    "AuthStrategy",
    "NoAuthStrategy",
    "BearerAuthStrategy",
    "ApiKeyAuthStrategy",
    "BasicAuthStrategy",
    "CustomAuthStrategy",
    "RefreshTokenAuthStrategy",
    # Retry
    "RetryStrategy",
    "NoRetryStrategy",
    "FixedDelayRetryStrategy",
    "LinearBackoffRetryStrategy",
    "JitteredExponentialBackoffRetryStrategy",
    "ExponentialRetryStrategy",
    "CustomRetryStrategy",
    # Storage
    "PersistStorage",
    "MemoryStoragePersist",
    "FileStoragePersist",
    "RedisStoragePersist",
    "create_default_storage",
    # Client
    "HttpClient",
    "RequestBuilder",
    "create_client",
]
