"""Core functionality for the MCP auth server."""

from .constants import (
    CODE_TTL_SECONDS_DEFAULT,
    GRANT_TYPE_AUTHORIZATION_CODE,
    RESPONSE_TYPE_CODE,
    TOKEN_TTL_SECONDS_DEFAULT,
    TOKEN_TYPE_BEARER,
)
from .decorators import track_request
from .exceptions import AuthServerError, MCPToolError, OAuthError, UnauthorizedError
from .logging import configure_logging, logger

__all__ = [
    # Core
    "AuthServerError",
    "MCPToolError",
    "OAuthError",
    "UnauthorizedError",
    "configure_logging",
    "logger",
    "track_request",
    # Constants - most commonly used
    "CODE_TTL_SECONDS_DEFAULT",
    "GRANT_TYPE_AUTHORIZATION_CODE",
    "RESPONSE_TYPE_CODE",
    "TOKEN_TTL_SECONDS_DEFAULT",
    "TOKEN_TYPE_BEARER",
]
