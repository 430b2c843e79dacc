"""
Fluent request builder.

Builder methods only record configuration; nothing touches the network
until ``send()`` or ``data()`` hands the builder to its client.
"""
import copy
import json
import logging
from dataclasses import dataclass, field, replace
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Dict,
    Generic,
    Iterable,
    Mapping,
    Optional,
    Tuple,
    TypeVar,
    Union,
)

from ..auth import AuthStrategy
from ..cancellation import CancellationToken
from ..errors import ConfigurationError
from ..retry import RetryStrategy
from ..types import (
    HTTP_METHODS,
    RESPONSE_TYPES,
    BodyKind,
    HttpHeaders,
    HttpMethod,
    HttpResponse,
    MockResponse,
    Override,
    RequestBody,
    ResponseType,
)
from .encoding import merge_headers

if TYPE_CHECKING:
    from .base_client import HttpClient

logger = logging.getLogger("endpoint_builder.request_builder")

T = TypeVar("T")

FORM_URLENCODED = "application/x-www-form-urlencoded"
FORM_MULTIPART = "multipart/form-data"
APPLICATION_JSON = "application/json"

FormData = Union[Mapping[str, Any], Iterable[Tuple[str, Any]]]


@dataclass
class RequestOptions:
    """Everything a builder has accumulated for one request."""

    path: str
    method: HttpMethod = "GET"
    query: Optional[Dict[str, Any]] = None
    headers: HttpHeaders = field(default_factory=dict)
    body: Optional[RequestBody] = None
    timeout: Optional[float] = None
    signal: Optional[CancellationToken] = None
    response_type: Optional[ResponseType] = None
    dedupe: Optional[bool] = None
    auth: Override[AuthStrategy] = field(default_factory=Override.unset)
    retry: Override[RetryStrategy] = field(default_factory=Override.unset)
    mock: Optional[MockResponse] = None
    mock_only: bool = False


def validate_method(method: str) -> HttpMethod:
    normalized = str(method).upper()
    if normalized not in HTTP_METHODS:
        raise ConfigurationError(
            f"Unsupported HTTP method {method!r}; expected one of {', '.join(HTTP_METHODS)}"
        )
    return normalized  # type: ignore[return-value]


def validate_timeout(seconds: Optional[float]) -> Optional[float]:
    if seconds is None:
        return None
    if isinstance(seconds, bool) or not isinstance(seconds, (int, float)) or seconds <= 0:
        raise ConfigurationError(f"timeout must be a positive number of seconds, got {seconds!r}")
    return float(seconds)


def validate_response_type(response_type: Optional[str]) -> Optional[ResponseType]:
    if response_type is None:
        return None
    if response_type not in RESPONSE_TYPES:
        raise ConfigurationError(
            f"Unknown response type {response_type!r}; expected one of {', '.join(RESPONSE_TYPES)}"
        )
    return response_type  # type: ignore[return-value]


def _form_fields(data: FormData) -> Tuple[Tuple[str, str], ...]:
    items = data.items() if isinstance(data, Mapping) else data
    fields = []
    for name, value in items:
        if value is None:
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        fields.append((str(name), str(value)))
    return tuple(fields)


def parse_json_string(payload: Any) -> Any:
    """Decode a payload that is itself a JSON document inside a string.

    Anything that is not a ``{...}``/``[...]`` string, or fails to parse,
    is returned unchanged.
    """
    if not isinstance(payload, str):
        return payload
    text = payload.strip()
    if not text:
        return payload
    if (text[0], text[-1]) not in (("{", "}"), ("[", "]")):
        return payload
    try:
        return json.loads(text)
    except ValueError:
        return payload


class RequestBuilder(Generic[T]):
    """Chainable request configuration bound to an HttpClient.

    Example:
        user = await (
            client.get("/users/1")
            .query({"expand": ["roles", "teams"]})
            .header("X-Trace", "abc")
            .timeout(5)
            .data()
        )
    """

    def __init__(self, client: "HttpClient", path: str, method: str = "GET") -> None:
        self._client = client
        self.options = RequestOptions(path=path, method=validate_method(method))

    # -- request shape -------------------------------------------------

    def method(self, method: str) -> "RequestBuilder[T]":
        self.options.method = validate_method(method)
        return self

    def query(self, params: Optional[Mapping[str, Any]]) -> "RequestBuilder[T]":
        self.options.query = dict(params) if params else None
        return self

    def headers(self, headers: Mapping[str, Any]) -> "RequestBuilder[T]":
        self.options.headers = merge_headers(self.options.headers, headers)
        return self

    def header(self, name: str, value: Any) -> "RequestBuilder[T]":
        return self.headers({name: value})

    def body(self, data: Any) -> "RequestBuilder[T]":
        self.options.body = RequestBody.from_value(data)
        return self

    def json(self, data: Any) -> "RequestBuilder[T]":
        """Send ``data`` as JSON and set ``Content-Type: application/json``."""
        self.options.body = RequestBody(BodyKind.JSON, data)
        return self.header("Content-Type", APPLICATION_JSON)

    def form(self, data: FormData, urlencoded: bool = True) -> "RequestBuilder[T]":
        """Send form fields, url-encoded or as multipart. None values are skipped."""
        self.options.body = RequestBody(
            BodyKind.FORM, fields=_form_fields(data), urlencoded=urlencoded
        )
        return self.header("Content-Type", FORM_URLENCODED if urlencoded else FORM_MULTIPART)

    # -- execution options ---------------------------------------------

    def timeout(self, seconds: float) -> "RequestBuilder[T]":
        self.options.timeout = validate_timeout(seconds)
        return self

    def signal(self, token: Optional[CancellationToken]) -> "RequestBuilder[T]":
        self.options.signal = token
        return self

    def response_type(self, response_type: ResponseType) -> "RequestBuilder[T]":
        self.options.response_type = validate_response_type(response_type)
        return self

    def auth(self, strategy: Optional[AuthStrategy]) -> "RequestBuilder[T]":
        """Override the client's auth for this request; None disables auth."""
        self.options.auth = Override.from_optional(strategy)
        return self

    def no_auth(self) -> "RequestBuilder[T]":
        return self.auth(None)

    def retry(self, strategy: Optional[RetryStrategy]) -> "RequestBuilder[T]":
        """Override the client's retry policy; None disables retries."""
        self.options.retry = Override.from_optional(strategy)
        return self

    def dedupe(self, enable: bool = True) -> "RequestBuilder[T]":
        self.options.dedupe = bool(enable)
        return self

    def mock(self, response: Any) -> "RequestBuilder[T]":
        """Serve ``response`` instead of calling the network.

        Accepts a MockResponse or plain data wrapped in a 200 response.
        """
        if not isinstance(response, MockResponse):
            response = MockResponse(data=response)
        self.options.mock = response
        return self

    def mock_only(self, enabled: bool = True) -> "RequestBuilder[T]":
        """Fail instead of calling the network when no mock is attached."""
        self.options.mock_only = bool(enabled)
        return self

    def clone(self) -> "RequestBuilder[T]":
        other: RequestBuilder[T] = RequestBuilder(self._client, self.options.path, self.options.method)
        other.options = replace(
            self.options,
            query=copy.deepcopy(self.options.query),
            headers=copy.deepcopy(self.options.headers),
        )
        return other

    # -- terminal ------------------------------------------------------

    def send(self) -> "Awaitable[HttpResponse[T]]":
        """Execute the request.

        Returns the client's task; deduplicated calls return the same object.
        """
        return self._client.execute(self)

    async def data(self) -> T:
        response = await self.send()
        return parse_json_string(response.data)

    def __repr__(self) -> str:
        return f"RequestBuilder({self.options.method} {self.options.path})"
