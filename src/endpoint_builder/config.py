"""
Configuration for endpoint_builder.
"""
import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import urlparse

import httpx
import yaml

from .auth import AuthStrategy
from .errors import ConfigurationError
from .retry import ExponentialRetryStrategy, RetryStrategy, create_default_retry_strategy
from .storage import PersistStorage, create_default_storage
from .types import RESPONSE_TYPES, RequestInterceptor, ResponseInterceptor, ResponseType

logger = logging.getLogger("endpoint_builder.config")

ENV_PREFIX = "ENDPOINT_BUILDER_"
DEFAULT_MAX_AUTH_REPLAYS = 3

_TRUE_VALUES = ("1", "true", "yes", "on")


@dataclass
class TimeoutConfig:
    """Transport timeouts in seconds for the default httpx client."""

    connect: float = 5.0
    read: float = 30.0
    write: float = 10.0

    def to_httpx(self) -> httpx.Timeout:
        return httpx.Timeout(connect=self.connect, read=self.read, write=self.write, pool=self.connect)


@dataclass
class ClientConfig:
    """Client configuration.

    ``timeout`` bounds a whole request attempt through a cancellation token;
    ``transport_timeout`` only configures the owned httpx client.
    ``retry_strategy=None`` disables retries.
    """

    base_url: str = ""
    auth: Optional[AuthStrategy] = None
    retry_strategy: Optional[RetryStrategy] = field(default_factory=create_default_retry_strategy)
    storage: Optional[PersistStorage] = None
    default_headers: Dict[str, str] = field(default_factory=dict)
    dedupe: bool = False
    response_type: Optional[ResponseType] = None
    timeout: Optional[float] = None
    transport_timeout: Union[TimeoutConfig, float, None] = None
    mock_only: bool = False
    max_auth_replays: int = DEFAULT_MAX_AUTH_REPLAYS
    trace: bool = False
    request_interceptors: List[RequestInterceptor] = field(default_factory=list)
    response_interceptors: List[ResponseInterceptor] = field(default_factory=list)
    httpx_client: Optional[httpx.AsyncClient] = None
    verify_ssl: Optional[bool] = None


@dataclass
class ResolvedConfig:
    """Client configuration with defaults applied."""

    base_url: str
    auth: Optional[AuthStrategy]
    retry_strategy: Optional[RetryStrategy]
    storage: PersistStorage
    headers: Dict[str, str]
    dedupe: bool
    response_type: Optional[ResponseType]
    timeout: Optional[float]
    transport_timeout: TimeoutConfig
    mock_only: bool
    max_auth_replays: int
    trace: bool
    request_interceptors: List[RequestInterceptor]
    response_interceptors: List[ResponseInterceptor]
    httpx_client: Optional[httpx.AsyncClient]
    verify_ssl: bool


def normalize_timeout(timeout: Union[TimeoutConfig, float, None]) -> TimeoutConfig:
    if timeout is None:
        return TimeoutConfig()
    if isinstance(timeout, (int, float)):
        return TimeoutConfig(connect=timeout, read=timeout, write=timeout)
    return timeout


def _env_flag(value: Optional[str]) -> Optional[bool]:
    if value is None or value.strip() == "":
        return None
    return value.strip().lower() in _TRUE_VALUES


def ssl_verify_from_env(environ: Optional[Mapping[str, str]] = None) -> bool:
    """SSL_CERT_VERIFY=0 disables certificate verification."""
    env = os.environ if environ is None else environ
    return env.get("SSL_CERT_VERIFY", "1").strip() != "0"


def validate_config(config: ClientConfig) -> None:
    if config.base_url:
        parsed = urlparse(config.base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ConfigurationError(f"Invalid base_url: {config.base_url}")
    if config.timeout is not None and config.timeout <= 0:
        raise ConfigurationError(f"timeout must be positive, got {config.timeout!r}")
    if config.response_type is not None and config.response_type not in RESPONSE_TYPES:
        raise ConfigurationError(f"Unknown response type {config.response_type!r}")
    if config.max_auth_replays < 0:
        raise ConfigurationError("max_auth_replays must be >= 0")


def resolve_config(config: ClientConfig) -> ResolvedConfig:
    """Validate ``config`` and fill in defaults."""
    validate_config(config)

    verify_ssl = config.verify_ssl if config.verify_ssl is not None else ssl_verify_from_env()

    return ResolvedConfig(
        base_url=config.base_url,
        auth=config.auth,
        retry_strategy=config.retry_strategy,
        storage=config.storage if config.storage is not None else create_default_storage(),
        headers=dict(config.default_headers),
        dedupe=config.dedupe,
        response_type=config.response_type,
        timeout=config.timeout,
        transport_timeout=normalize_timeout(config.transport_timeout),
        mock_only=config.mock_only,
        max_auth_replays=config.max_auth_replays,
        trace=config.trace,
        request_interceptors=list(config.request_interceptors),
        response_interceptors=list(config.response_interceptors),
        httpx_client=config.httpx_client,
        verify_ssl=verify_ssl,
    )


def _retry_from_mapping(data: Any) -> Optional[RetryStrategy]:
    if data is False:
        return None
    if not isinstance(data, dict):
        raise ConfigurationError("'retry' must be a mapping or false")
    return ExponentialRetryStrategy(
        max_attempts=int(data.get("max_attempts", 3)),
        base_delay_seconds=float(data.get("base_delay_seconds", 0.3)),
        max_delay_seconds=float(data.get("max_delay_seconds", 10.0)),
    )


def config_from_mapping(data: Mapping[str, Any], **overrides: Any) -> ClientConfig:
    """Build a ClientConfig from plain data, e.g. a parsed YAML document."""
    kwargs: Dict[str, Any] = {}
    if "base_url" in data:
        kwargs["base_url"] = str(data["base_url"] or "")
    if "headers" in data:
        headers = data["headers"] or {}
        if not isinstance(headers, dict):
            raise ConfigurationError("'headers' must be a mapping")
        kwargs["default_headers"] = {str(k): str(v) for k, v in headers.items()}
    if data.get("timeout") is not None:
        kwargs["timeout"] = float(data["timeout"])
    for key in ("dedupe", "mock_only", "trace"):
        if key in data:
            kwargs[key] = bool(data[key])
    if data.get("response_type") is not None:
        kwargs["response_type"] = data["response_type"]
    if data.get("max_auth_replays") is not None:
        kwargs["max_auth_replays"] = int(data["max_auth_replays"])
    if "retry" in data and data["retry"] is not None:
        kwargs["retry_strategy"] = _retry_from_mapping(data["retry"])
    kwargs.update(overrides)

    config = ClientConfig(**kwargs)
    validate_config(config)
    return config


def load_config_file(path: Union[str, Path], **overrides: Any) -> ClientConfig:
    """Load a ClientConfig from a YAML file.

    Example file:
        base_url: https://api.example.com
        timeout: 10
        dedupe: true
        headers:
          Accept: application/json
        retry:
          max_attempts: 5
          base_delay_seconds: 0.5
    """
    file_path = Path(path).expanduser()
    logger.debug(f"load_config_file: parsing {file_path}")
    data = yaml.safe_load(file_path.read_text()) or {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {file_path} must contain a mapping")
    return config_from_mapping(data, **overrides)


def config_from_env(
    config: Optional[ClientConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> ClientConfig:
    """Overlay ENDPOINT_BUILDER_* environment variables on ``config``."""
    env = os.environ if environ is None else environ
    base = config if config is not None else ClientConfig()
    changes: Dict[str, Any] = {}

    base_url = env.get(f"{ENV_PREFIX}BASE_URL")
    if base_url:
        changes["base_url"] = base_url

    timeout = env.get(f"{ENV_PREFIX}TIMEOUT")
    if timeout:
        try:
            changes["timeout"] = float(timeout)
        except ValueError as e:
            raise ConfigurationError(f"{ENV_PREFIX}TIMEOUT must be a number, got {timeout!r}") from e

    for name in ("dedupe", "trace", "mock_only"):
        flag = _env_flag(env.get(f"{ENV_PREFIX}{name.upper()}"))
        if flag is not None:
            changes[name] = flag

    if changes:
        logger.debug(f"config_from_env: applying {sorted(changes)}")
    result = replace(base, **changes)
    validate_config(result)
    return result
