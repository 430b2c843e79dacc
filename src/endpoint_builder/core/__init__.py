"""
Core request building and execution.
"""
from .base_client import HttpClient, create_client
from .inflight import InFlightRegistry
from .request_builder import RequestBuilder, RequestOptions

__all__ = [
    "HttpClient",
    "create_client",
    "InFlightRegistry",
    "RequestBuilder",
    "RequestOptions",
]
