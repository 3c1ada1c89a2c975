"""OAuth authorization server with Dynamic Client Registration.

This module provides the client registry, code and token stores, the
authorization server that drives them, and the gate protecting MCP tools.
"""

from mcp_auth.auth.gate import ToolGate, extract_bearer, resolve_token
from mcp_auth.auth.oauth2_server import AuthorizationServer, create_authorization_server
from mcp_auth.auth.persistence import FileDurabilityHook, NullDurabilityHook
from mcp_auth.auth.stores import ClientRegistry, CodeStore, TokenStore

__all__ = [
    "AuthorizationServer",
    "ClientRegistry",
    "CodeStore",
    "FileDurabilityHook",
    "NullDurabilityHook",
    "TokenStore",
    "ToolGate",
    "create_authorization_server",
    "extract_bearer",
    "resolve_token",
]
