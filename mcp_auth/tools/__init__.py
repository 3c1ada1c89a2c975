"""
MCP Tools Package.

This package contains all MCP tool definitions organized by access level:
- protected: Tools that require a valid bearer token (echo, whoami)
- info: Public tools (server_info)

Each module provides a register_*_tools() function to register tools with FastMCP.
"""

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fastmcp import FastMCP

    from mcp_auth.auth.gate import ToolGate

from mcp_auth.tools.info import register_info_tools
from mcp_auth.tools.protected import register_protected_tools

logger = logging.getLogger(__name__)


def register_tools(mcp: "FastMCP", gate: "ToolGate") -> None:
    """
    Register all MCP tools with the FastMCP instance.

    Args:
        mcp: FastMCP instance to register tools with
        gate: Authorization gate shared by all tools
    """
    logger.info("Registering all MCP tools...")

    register_protected_tools(mcp, gate)
    register_info_tools(mcp, gate)

    logger.info("All MCP tools registered successfully")


__all__ = [
    "register_info_tools",
    "register_protected_tools",
    "register_tools",
]
