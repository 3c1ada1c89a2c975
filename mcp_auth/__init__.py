"""
MCP Auth Server - OAuth 2.0 authorization server with Dynamic Client
Registration, protecting MCP tools behind bearer tokens.
"""

__version__ = "1.0.0"

# Re-export commonly used utilities for easier imports in tests
from mcp_auth.config.settings import Settings, get_settings, reset_settings
from mcp_auth.core.decorators import track_request
from mcp_auth.core.exceptions import (
    AuthServerError,
    MCPToolError,
    OAuthError,
    UnauthorizedError,
)

__all__ = [
    "AuthServerError",
    "MCPToolError",
    "OAuthError",
    "Settings",
    "UnauthorizedError",
    "__version__",
    "get_settings",
    "reset_settings",
    "track_request",
]
