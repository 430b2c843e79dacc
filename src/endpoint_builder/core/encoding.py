"""
Wire encoding helpers: URLs, query strings, headers, bodies and responses.
"""
import hashlib
import json
import logging
import re
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import parse_qsl, quote, urlencode

import httpx

from ..types import BodyKind, HttpHeaders, RequestBody, ResponseType

logger = logging.getLogger("endpoint_builder.encoding")

DEFAULT_BASE_URL = "http://localhost"

_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z\d+\-.]*://")


def is_absolute_url(path: str) -> bool:
    """True for scheme-qualified URLs such as ``https://host/x``."""
    return bool(path) and _SCHEME_RE.match(path) is not None


def _query_scalar(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def to_query_pairs(query: Optional[Mapping[str, Any]]) -> List[Tuple[str, str]]:
    """Flatten a query mapping into ordered ``(key, value)`` pairs.

    Sequences repeat the key, mappings are sent as JSON, booleans as
    ``true``/``false``, and None entries are dropped.
    """
    pairs: List[Tuple[str, str]] = []
    if not query:
        return pairs
    for key, value in query.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            for item in value:
                text = _query_scalar(item)
                if text is not None:
                    pairs.append((str(key), text))
            continue
        pairs.append((str(key), _query_scalar(value)))
    return pairs


def to_query(query: Optional[Mapping[str, Any]]) -> str:
    """Encode a query mapping; spaces become ``%20``."""
    return urlencode(to_query_pairs(query), quote_via=quote)


def build_url(
    base_url: Optional[str],
    path: str,
    query: Optional[Mapping[str, Any]] = None,
) -> str:
    """Build the full request URL.

    Scheme-qualified paths bypass the base URL. Otherwise the base's
    trailing slash and the path's leading slash collapse into one, so
    ``/users`` is joined under the base path rather than replacing it.
    """
    if is_absolute_url(path):
        url = path
    else:
        base = base_url or DEFAULT_BASE_URL
        trimmed = path.lstrip("/") if path else ""
        url = f"{base.rstrip('/')}/{trimmed}" if trimmed else base

    query_str = to_query(query)
    if query_str:
        separator = "&" if "?" in url else "?"
        url = f"{url}{separator}{query_str}"
    return url


def find_header(headers: Mapping[str, Any], name: str) -> Optional[str]:
    """Case-insensitive lookup returning the matching key."""
    lower = name.lower()
    for key in headers:
        if key.lower() == lower:
            return key
    return None


def get_header(headers: Mapping[str, Any], name: str) -> Any:
    key = find_header(headers, name)
    return headers[key] if key is not None else None


def merge_headers(*layers: Optional[Mapping[str, Any]]) -> HttpHeaders:
    """Merge header layers left to right.

    A later layer replaces an earlier value regardless of key casing.
    None values are skipped.
    """
    result: HttpHeaders = {}
    for layer in layers:
        if not layer:
            continue
        for key, value in layer.items():
            if value is None:
                continue
            existing = find_header(result, key)
            if existing is not None:
                del result[existing]
            result[key] = list(value) if isinstance(value, (list, tuple)) else str(value)
    return result


def to_wire_headers(headers: Mapping[str, Any]) -> List[Tuple[str, str]]:
    """Expand list-valued headers into repeated header lines."""
    items: List[Tuple[str, str]] = []
    for key, value in headers.items():
        if isinstance(value, list):
            items.extend((key, str(v)) for v in value)
        else:
            items.append((key, str(value)))
    return items


def _is_json_content_type(value: Any) -> bool:
    return isinstance(value, str) and "application/json" in value.lower()


def build_body(
    body: Optional[RequestBody], headers: HttpHeaders
) -> Tuple[Dict[str, Any], HttpHeaders]:
    """Turn a tagged body into httpx request kwargs.

    Returns ``(kwargs, headers)``; headers may be adjusted, e.g. a
    multipart Content-Type without boundary is dropped so httpx can set
    the real one.
    """
    if body is None:
        return {}, headers

    content_type = get_header(headers, "content-type")

    if body.kind is BodyKind.JSON:
        return {"content": json.dumps(body.value, default=str).encode("utf-8")}, headers
    if body.kind is BodyKind.TEXT:
        return {"content": body.value.encode("utf-8")}, headers
    if body.kind is BodyKind.BINARY:
        return {"content": body.value}, headers
    if body.kind is BodyKind.FORM:
        if body.urlencoded:
            return {"content": urlencode(list(body.fields)).encode("utf-8")}, headers
        key = find_header(headers, "content-type")
        if key is not None and "boundary=" not in str(headers[key]):
            headers = {k: v for k, v in headers.items() if k != key}
        files = [(name, (None, value)) for name, value in body.fields]
        return {"files": files}, headers

    # RAW: serialize as JSON only when asked to
    if _is_json_content_type(content_type):
        return {"content": json.dumps(body.value, default=str).encode("utf-8")}, headers
    return {"content": str(body.value).encode("utf-8")}, headers


def _body_fingerprint(body: Optional[RequestBody]) -> str:
    if body is None:
        return ""
    if body.kind is BodyKind.BINARY:
        return "binary:" + hashlib.sha256(body.value).hexdigest()
    if body.kind is BodyKind.FORM:
        return f"form:{body.urlencoded}:" + "&".join(f"{k}={v}" for k, v in sorted(body.fields))
    if body.kind is BodyKind.TEXT:
        return "text:" + body.value
    try:
        return f"{body.kind.value}:" + json.dumps(body.value, sort_keys=True, default=str)
    except (TypeError, ValueError):
        return f"{body.kind.value}:" + repr(body.value)


def _url_fingerprint(url: str) -> str:
    base, sep, query = url.partition("?")
    if not sep:
        return base
    # stable on key only: repeated keys keep their value order
    pairs = sorted(parse_qsl(query, keep_blank_values=True), key=lambda pair: pair[0])
    return base + "?" + "&".join(f"{k}={v}" for k, v in pairs)


def _headers_fingerprint(headers: Optional[Mapping[str, Any]]) -> str:
    if not headers:
        return ""
    items = []
    for key, value in headers.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            value = ",".join(str(v) for v in value)
        items.append((key.lower(), str(value)))
    return "\n".join(f"{k}:{v}" for k, v in sorted(items))


def request_fingerprint(
    method: str,
    url: str,
    body: Optional[RequestBody] = None,
    headers: Optional[Mapping[str, Any]] = None,
    response_type: Optional[ResponseType] = None,
    auth_id: Optional[str] = None,
) -> str:
    """Dedupe key of a request.

    Covers the method, the URL with its query pairs sorted, the body,
    the headers (names lowercased, sorted), the response type and the
    identity of the auth strategy that will sign the request.
    """
    hasher = hashlib.sha256()
    for part in (
        method.upper(),
        _url_fingerprint(url),
        _body_fingerprint(body),
        _headers_fingerprint(headers),
        response_type or "",
        auth_id or "",
    ):
        hasher.update(part.encode())
        hasher.update(b"|")
    return hasher.hexdigest()


def is_empty_response(response: httpx.Response, method: str) -> bool:
    if method.upper() == "HEAD" or response.status_code == 204:
        return True
    if response.headers.get("content-length") == "0":
        return True
    return not response.content


def decode_response(
    response: httpx.Response,
    response_type: Optional[ResponseType] = None,
    method: str = "GET",
) -> Any:
    """Decode a response body.

    An explicit ``response_type`` wins; otherwise the Content-Type decides
    (JSON, ``text/*`` as str, anything else as bytes). Empty bodies decode
    to None. Raises ValueError for malformed JSON.
    """
    if is_empty_response(response, method):
        return None
    if response_type == "text":
        return response.text
    if response_type == "bytes":
        return response.content
    if response_type == "json":
        return response.json()

    content_type = response.headers.get("content-type", "").lower()
    if "application/json" in content_type or "+json" in content_type:
        return response.json()
    if content_type.startswith("text/"):
        return response.text
    return response.content


def decode_error_body(response: httpx.Response, method: str = "GET") -> Any:
    """Best-effort decode of a failed response; malformed JSON becomes text."""
    try:
        return decode_response(response, None, method)
    except ValueError:
        return response.text
