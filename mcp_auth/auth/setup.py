"""
OAuth2 route registration for FastMCP server.

This module provides a clean interface to register OAuth2 endpoints
with FastMCP, using the route handlers from auth.routes module.

Architecture:
- Separates route registration (this module) from route handlers (routes.py)
- Routes are bound to the authorization server in routes.build_routes
- Starlette adds HEAD to GET routes; FastMCP gets the explicit methods only
"""

from typing import TYPE_CHECKING

from mcp_auth.auth.routes import build_routes
from mcp_auth.core import logger

if TYPE_CHECKING:
    from fastmcp import FastMCP

    from mcp_auth.auth.oauth2_server import AuthorizationServer
    from mcp_auth.config import Settings


def setup_oauth2_routes(
    mcp: "FastMCP",
    oauth2_server: "AuthorizationServer",
    settings: "Settings",
) -> None:
    """
    Register OAuth2 endpoints with FastMCP server.

    Registers:
    - /.well-known/oauth-authorization-server (RFC 8414)
    - /.well-known/oauth-protected-resource (RFC 9728)
    - /oauth/register (RFC 7591 - Dynamic Client Registration)
    - /oauth/authorize (GET - auto-approved authorization)
    - /oauth/token (Token exchange)
    - /health

    Args:
        mcp: FastMCP server instance
        oauth2_server: AuthorizationServer instance
        settings: Application settings (DCR switch)

    Example:
        >>> from fastmcp import FastMCP
        >>> from mcp_auth.auth import create_authorization_server
        >>> from mcp_auth.auth.setup import setup_oauth2_routes
        >>>
        >>> mcp = FastMCP("My Server")
        >>> oauth2_server = create_authorization_server(settings)
        >>> setup_oauth2_routes(mcp, oauth2_server, settings)
    """
    routes = build_routes(oauth2_server, allow_dcr=settings.allow_dcr)

    for route in routes:
        methods = sorted((route.methods or set()) - {"HEAD"})
        mcp.custom_route(route.path, methods=methods)(route.endpoint)

    logger.info("✓ OAuth2 endpoints registered (%d routes)", len(routes))
