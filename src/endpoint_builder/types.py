"""
Type definitions for endpoint_builder.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Dict,
    Generic,
    List,
    Literal,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    Union,
)

if TYPE_CHECKING:
    import httpx

    from .cancellation import CancellationToken
    from .errors import HttpError

T = TypeVar("T")

# HTTP methods
HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]

HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS")

# Explicit response decoding
ResponseType = Literal["json", "text", "bytes"]

RESPONSE_TYPES = ("json", "text", "bytes")

HeaderValue = Union[str, List[str]]
HttpHeaders = Dict[str, HeaderValue]


class OverrideState(str, Enum):
    """State of a per-request override."""

    UNSET = "unset"
    DISABLED = "disabled"
    VALUE = "value"


@dataclass(frozen=True)
class Override(Generic[T]):
    """Tri-state per-request override: inherit, explicitly disabled, or a value.

    Example:
        Override.unset().resolve(default)      # -> default
        Override.disabled().resolve(default)   # -> None
        Override.of(strategy).resolve(default) # -> strategy
    """

    state: OverrideState = OverrideState.UNSET
    value: Optional[T] = None

    @classmethod
    def unset(cls) -> "Override[T]":
        return cls(OverrideState.UNSET)

    @classmethod
    def disabled(cls) -> "Override[T]":
        return cls(OverrideState.DISABLED)

    @classmethod
    def of(cls, value: T) -> "Override[T]":
        return cls(OverrideState.VALUE, value)

    @classmethod
    def from_optional(cls, value: Optional[T]) -> "Override[T]":
        """None disables, anything else sets the value."""
        return cls.disabled() if value is None else cls.of(value)

    @property
    def is_unset(self) -> bool:
        return self.state is OverrideState.UNSET

    @property
    def is_disabled(self) -> bool:
        return self.state is OverrideState.DISABLED

    def resolve(self, default: Optional[T]) -> Optional[T]:
        if self.state is OverrideState.VALUE:
            return self.value
        if self.state is OverrideState.DISABLED:
            return None
        return default


class BodyKind(str, Enum):
    """How a request body is put on the wire."""

    JSON = "json"
    TEXT = "text"
    BINARY = "binary"
    FORM = "form"
    RAW = "raw"


@dataclass(frozen=True)
class RequestBody:
    """Request payload tagged with its kind at builder-call time."""

    kind: BodyKind
    value: Any = None
    fields: Tuple[Tuple[str, str], ...] = ()
    urlencoded: bool = True

    @classmethod
    def from_value(cls, value: Any) -> Optional["RequestBody"]:
        """Classify an arbitrary payload passed to ``body()``."""
        if value is None:
            return None
        if isinstance(value, RequestBody):
            return value
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls(BodyKind.BINARY, bytes(value))
        if isinstance(value, str):
            return cls(BodyKind.TEXT, value)
        if isinstance(value, (dict, list, tuple)):
            return cls(BodyKind.JSON, value)
        return cls(BodyKind.RAW, value)


@dataclass
class RequestConfig:
    """Wire-level request configuration, built fresh for every attempt."""

    url: str
    method: HttpMethod = "GET"
    headers: HttpHeaders = field(default_factory=dict)
    body: Optional[RequestBody] = None
    timeout: Optional[float] = None
    signal: Optional["CancellationToken"] = None
    response_type: Optional[ResponseType] = None


@dataclass
class HttpResponse(Generic[T]):
    """Decoded HTTP response."""

    data: T
    status: int
    status_text: str
    headers: Dict[str, str]
    config: RequestConfig

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


@dataclass
class RetryContext:
    """Passed to the retry strategy on every failed attempt."""

    attempt: int
    config: RequestConfig
    response: Optional["httpx.Response"] = None
    error: Optional[BaseException] = None


@dataclass
class TokenPair:
    """Access/refresh token pair persisted by refreshing auth strategies."""

    access: str
    refresh: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"access": self.access}
        if self.refresh is not None:
            data["refresh"] = self.refresh
        return data

    @classmethod
    def from_dict(cls, data: Any) -> Optional["TokenPair"]:
        if not isinstance(data, dict):
            return None
        access = data.get("access")
        if not isinstance(access, str) or not access:
            return None
        refresh = data.get("refresh")
        return cls(access=access, refresh=refresh if isinstance(refresh, str) else None)


@dataclass
class MockResponse(Generic[T]):
    """Canned response served instead of a network call."""

    data: T
    status: int = 200
    status_text: str = "OK"
    headers: Dict[str, str] = field(default_factory=dict)
    delay: float = 0.0


class RequestInterceptor(Protocol):
    """Called with the wire config before each attempt."""

    def on_request(
        self, config: RequestConfig
    ) -> Union[RequestConfig, Awaitable[RequestConfig]]:
        ...


class ResponseInterceptor(Protocol):
    """Called with each successful response.

    May also define ``on_error(error)`` returning the error to raise.
    """

    def on_response(
        self, response: HttpResponse
    ) -> Union[HttpResponse, Awaitable[HttpResponse]]:
        ...


class ErrorInterceptor(Protocol):
    def on_error(
        self, error: "HttpError"
    ) -> Union["HttpError", Awaitable["HttpError"]]:
        ...
