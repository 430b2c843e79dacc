"""
Exceptions raised by endpoint_builder.
"""
from typing import Any, Optional

from .types import HttpResponse, RequestConfig

NETWORK_ERROR = "NETWORK_ERROR"
HTTP_ERROR = "HTTP_ERROR"
DECODE_ERROR = "DECODE_ERROR"


class EndpointBuilderError(Exception):
    """Base exception for all endpoint_builder failures."""


class HttpError(EndpointBuilderError):
    """Network or HTTP status failure.

    Always carries the config that produced it so callers (and retry/auth
    strategies) can inspect or replay the request.
    """

    def __init__(
        self,
        message: str,
        config: RequestConfig,
        *,
        status: Optional[int] = None,
        status_text: Optional[str] = None,
        response: Optional[HttpResponse[Any]] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.config = config
        self.status = status
        self.status_text = status_text
        self.response = response
        self.code = code

    @property
    def is_network_error(self) -> bool:
        return self.status is None

    def __str__(self) -> str:
        if self.status is None:
            return f"{self.message} ({self.config.method} {self.config.url})"
        if self.status_text:
            return f"{self.status} {self.status_text}: {self.message}"
        return f"{self.status}: {self.message}"


class RequestCancelledError(EndpointBuilderError):
    """Raised when a request is aborted by its cancellation token.

    Never retried and never routed through auth error handling.
    """

    def __init__(
        self,
        message: str = "Request was cancelled",
        config: Optional[RequestConfig] = None,
        reason: Any = None,
    ) -> None:
        super().__init__(message)
        self.config = config
        self.reason = reason


class RequestTimeoutError(RequestCancelledError):
    """Raised when the configured timeout elapses before a response arrives."""


class ConfigurationError(EndpointBuilderError, ValueError):
    """Programmer error in the request or client configuration."""


class MockNotConfiguredError(ConfigurationError):
    """Mock-only mode was requested but no mock response is registered."""
