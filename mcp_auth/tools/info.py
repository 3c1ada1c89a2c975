"""
Public tools for MCP server.

- server_info: Name, version and the tool catalogue with the auth
  requirement of each tool. Public unless removed from PUBLIC_TOOLS.
"""

import json
import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from mcp_auth.auth.gate import ToolGate, resolve_token
from mcp_auth.config import get_settings
from mcp_auth.core import track_request
from mcp_auth.core.exceptions import UnauthorizedError
from mcp_auth.tools.protected import request_headers, unauthorized_result

if TYPE_CHECKING:
    from fastmcp import FastMCP

logger = logging.getLogger(__name__)

TOOL_CATALOGUE = {
    "echo": "Echo back a message",
    "whoami": "Describe the principal behind the presented token",
    "server_info": "Server name, version and tool catalogue",
}


async def server_info_impl(
    gate: ToolGate,
    access_token: str | None = None,
    headers: Mapping[str, str] | None = None,
) -> str:
    try:
        gate.check("server_info", resolve_token(access_token, headers))
    except UnauthorizedError as e:
        return unauthorized_result(e)

    settings = get_settings()
    return json.dumps(
        {
            "success": True,
            "name": settings.mcp_server_name,
            "version": settings.mcp_server_version,
            "issuer": gate.oauth2_server.issuer,
            "tools": [
                {
                    "name": name,
                    "description": description,
                    "requires_auth": not gate.is_public(name),
                }
                for name, description in TOOL_CATALOGUE.items()
            ],
        },
        indent=2,
    )


def register_info_tools(mcp: "FastMCP", gate: ToolGate) -> None:
    """
    Register public MCP tools.

    Args:
        mcp: FastMCP instance to register tools with
        gate: Gate holding the public tool list
    """

    @mcp.tool()
    @track_request("server_info")
    async def server_info(access_token: str | None = None) -> str:
        """Describe this server and which tools require authentication.

        Args:
            access_token: Bearer token, only needed if server_info is not public

        Returns:
            JSON string with server name, version and tool list
        """
        return await server_info_impl(gate, access_token, request_headers())
