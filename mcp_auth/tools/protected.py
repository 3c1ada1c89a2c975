"""
Auth-protected tools for MCP server.

This module contains the tools that require a valid bearer token:
- echo: Echo back a message
- whoami: Describe the principal behind the presented token

The token is taken from the ``access_token`` argument, or else from the
``Authorization: Bearer`` header of the HTTP request carrying the call.
Gate failures come back as a JSON error result, never as an exception.
"""

import json
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from fastmcp.server.dependencies import get_http_headers

from mcp_auth.auth.gate import ToolGate, resolve_token
from mcp_auth.core import MCPToolError, track_request
from mcp_auth.core.exceptions import UnauthorizedError

if TYPE_CHECKING:
    from fastmcp import FastMCP

logger = logging.getLogger(__name__)


def unauthorized_result(error: UnauthorizedError) -> str:
    return json.dumps({"success": False, **error.to_dict()}, indent=2)


def request_headers() -> dict[str, str]:
    """Headers of the current HTTP request; empty under stdio."""
    return get_http_headers(include_all=True)


async def echo_impl(
    gate: ToolGate,
    message: str,
    access_token: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> str:
    """Echo ``message`` for an authorized caller."""
    try:
        principal = gate.check("echo", resolve_token(access_token, headers))
    except UnauthorizedError as e:
        return unauthorized_result(e)

    if not isinstance(message, str) or not message:
        msg = "Invalid arguments: message is required"
        raise MCPToolError(msg)

    logger.info("Echo tool executed for %s", principal.subject if principal else "anonymous")
    return json.dumps({"success": True, "result": f"Echo: {message}"}, indent=2)


async def whoami_impl(
    gate: ToolGate,
    access_token: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> str:
    try:
        principal = gate.check("whoami", resolve_token(access_token, headers))
    except UnauthorizedError as e:
        return unauthorized_result(e)

    if principal is None:
        return json.dumps({"success": True, "authenticated": False}, indent=2)

    return json.dumps(
        {
            "success": True,
            "authenticated": True,
            "subject": principal.subject,
            "client_id": principal.client_id,
            "scope": principal.scope,
            "expires_at": int(principal.expires_at),
        },
        indent=2,
    )


def register_protected_tools(mcp: "FastMCP", gate: ToolGate) -> None:
    """
    Register auth-protected MCP tools.

    Args:
        mcp: FastMCP instance to register tools with
        gate: Gate every call passes through
    """

    @mcp.tool()
    @track_request("echo")
    async def echo(message: str, access_token: str | None = None) -> str:
        """Echo back a message (requires authentication).

        Args:
            message: The message to echo back
            access_token: Bearer token; defaults to the Authorization header

        Returns:
            JSON string with the echoed message or an authorization error
        """
        return await echo_impl(gate, message, access_token, request_headers())

    @mcp.tool()
    @track_request("whoami")
    async def whoami(access_token: str | None = None) -> str:
        """Describe the subject, client and scope of the presented token.

        Args:
            access_token: Bearer token; defaults to the Authorization header

        Returns:
            JSON string with principal details or an authorization error
        """
        return await whoami_impl(gate, access_token, request_headers())
