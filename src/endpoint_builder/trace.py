"""
Request/response tracing and secret masking.

Tracing is off by default; enable it with ``ClientConfig(trace=True)`` or
``ENDPOINT_BUILDER_TRACE=1``. Output goes to stderr through rich panels.
"""
import json
from typing import Any, Dict, Mapping, Optional

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax

console = Console(stderr=True)

SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "proxy-authorization",
        "x-api-key",
        "api-key",
        "cookie",
        "set-cookie",
    }
)


def mask_value(value: Optional[str], visible_chars: int = 10) -> str:
    """Mask a secret for logging, keeping the first ``visible_chars``."""
    if not value:
        return "<empty>"
    if len(value) <= visible_chars:
        return "*" * len(value)
    return value[:visible_chars] + "*" * (len(value) - visible_chars)


def mask_headers(headers: Mapping[str, Any]) -> Dict[str, Any]:
    masked: Dict[str, Any] = {}
    for key, value in headers.items():
        if key.lower() in SENSITIVE_HEADERS:
            if isinstance(value, list):
                masked[key] = [mask_value(str(v)) for v in value]
            else:
                masked[key] = mask_value(str(value))
        else:
            masked[key] = value
    return masked


def _format_body(body: Any) -> Optional[str]:
    if body is None:
        return None
    if isinstance(body, (bytes, bytearray)):
        return f"<{len(body)} bytes>"
    if isinstance(body, str):
        return body
    try:
        return json.dumps(body, indent=2, default=str)
    except (TypeError, ValueError):
        return repr(body)


def print_request(method: str, url: str, headers: Mapping[str, Any], body: Any = None) -> None:
    """Pretty print an outgoing request."""
    console.print(
        Panel(f"[bold cyan]{method}[/bold cyan] {url}", title="[bold blue]Request[/bold blue]")
    )
    console.print("[bold]Headers:[/bold]", mask_headers(headers))
    text = _format_body(body)
    if text:
        console.print(
            Panel(Syntax(text, "json", word_wrap=True), title="[bold]Request Body[/bold]")
        )


def print_response(
    url: str,
    status: int,
    status_text: str,
    headers: Mapping[str, Any],
    data: Any = None,
) -> None:
    """Pretty print a received response."""
    color = "green" if 200 <= status < 300 else "red"
    console.print(
        Panel(
            f"[bold {color}]{status}[/bold {color}] {status_text}",
            title=f"[bold blue]Response[/bold blue] ({url})",
        )
    )
    console.print("[bold]Headers:[/bold]", mask_headers(headers))
    text = _format_body(data)
    if text:
        console.print(
            Panel(Syntax(text, "json", word_wrap=True), title=f"[bold]Response Body[/bold] ({url})")
        )
