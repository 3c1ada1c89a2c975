"""
Main entry point for the MCP auth server.

Wires the OAuth authorization server, the tool gate and the FastMCP server
together, then serves the OAuth endpoints and the MCP tools on one app.
"""

import asyncio
import contextlib
import sys
import traceback

from fastmcp import FastMCP

from mcp_auth.auth import AuthorizationServer, ToolGate, create_authorization_server
from mcp_auth.auth.setup import setup_oauth2_routes
from mcp_auth.config import Settings, get_settings, validate_config
from mcp_auth.core import logger
from mcp_auth.tools import register_tools


def create_mcp_server(
    settings: Settings | None = None,
) -> tuple[FastMCP, AuthorizationServer]:
    """
    Build the FastMCP server with OAuth routes and gated tools.

    Returns:
        The FastMCP server and the authorization server backing it
    """
    settings = settings or get_settings()

    oauth2_server = create_authorization_server(settings)
    gate = ToolGate(oauth2_server, public_tools=settings.get_public_tools_set())

    mcp = FastMCP(settings.mcp_server_name)
    setup_oauth2_routes(mcp, oauth2_server, settings)
    register_tools(mcp, gate)

    logger.info("✓ Tool gate enabled")
    logger.info(f"  - Public tools: {', '.join(sorted(gate.public_tools)) or 'none'}")
    return mcp, oauth2_server


async def sweep_expired_loop(oauth2_server: AuthorizationServer, interval: int) -> None:
    """Periodically drop expired codes and tokens until cancelled."""
    while True:
        await asyncio.sleep(interval)
        try:
            oauth2_server.sweep_expired()
        except Exception as e:
            logger.error(f"Expiry sweep failed: {e}")


async def main() -> None:
    """
    Main async function to run the MCP server.
    """
    settings = get_settings()
    validate_config(settings)

    try:
        logger.info("Initializing FastMCP server...")
        mcp, oauth2_server = create_mcp_server(settings)
        logger.info("FastMCP server initialized successfully")
    except Exception as e:
        logger.error(f"Failed to initialize FastMCP server: {e}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        sys.exit(1)

    sweeper: asyncio.Task | None = None
    if settings.sweep_interval_seconds:
        sweeper = asyncio.create_task(
            sweep_expired_loop(oauth2_server, settings.sweep_interval_seconds)
        )

    try:
        transport = settings.transport.lower()
        logger.info(f"Transport mode: {transport}")

        # Normalize transport names to FastMCP Transport literals
        transport_map = {
            "http": "streamable-http",
            "streamable-http": "streamable-http",
            "sse": "sse",
            "stdio": "stdio",
        }
        fastmcp_transport = transport_map.get(transport, "streamable-http")

        if fastmcp_transport in ("streamable-http", "sse"):
            logger.info(
                "Setting up %s server on %s:%s...",
                fastmcp_transport,
                settings.host,
                settings.port,
            )
            await mcp.run_async(
                transport=fastmcp_transport,  # type: ignore[arg-type]
                host=settings.host,
                port=settings.port,
            )
        else:
            logger.info("Setting up stdio server...")
            await mcp.run_async(transport="stdio")

    except Exception as e:
        logger.error(f"Error in main function: {e}")
        logger.error(f"Traceback: {traceback.format_exc()}")
        raise
    finally:
        logger.info("Shutting down...")
        if sweeper is not None:
            sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await sweeper
        oauth2_server.close()


def run() -> None:
    """Console script entry point."""
    try:
        logger.info("Starting main function...")
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Interrupted")


if __name__ == "__main__":
    run()
