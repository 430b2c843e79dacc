"""
Authentication strategies.
"""
from .base import AuthStrategy
from .refresh import RefreshTokenAuthStrategy
from .strategies import (
    ApiKeyAuthStrategy,
    BasicAuthStrategy,
    BearerAuthStrategy,
    CustomAuthStrategy,
    NoAuthStrategy,
)

__all__ = [
    "AuthStrategy",
    "NoAuthStrategy",
    "BearerAuthStrategy",
    "ApiKeyAuthStrategy",
    "BasicAuthStrategy",
    "CustomAuthStrategy",
    "RefreshTokenAuthStrategy",
]
