"""Configuration package for the MCP auth server."""

from mcp_auth.config.settings import (
    Settings,
    get_settings,
    reset_settings,
    validate_config,
)

__all__ = ["Settings", "get_settings", "reset_settings", "validate_config"]
