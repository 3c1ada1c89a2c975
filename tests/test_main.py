"""
Tests for server assembly in main.py.
"""

import asyncio
import contextlib
from unittest.mock import Mock, patch

from mcp_auth.auth import AuthorizationServer
from mcp_auth.config import Settings
from mcp_auth.main import create_mcp_server, sweep_expired_loop


class TestCreateMcpServer:
    def test_wires_routes_and_tools(self):
        settings = Settings(oauth_issuer="http://test-server.com")

        with patch("mcp_auth.main.FastMCP") as mock_fastmcp:
            mcp, oauth2_server = create_mcp_server(settings)

        mock_fastmcp.assert_called_once_with(settings.mcp_server_name)
        assert mcp is mock_fastmcp.return_value
        assert isinstance(oauth2_server, AuthorizationServer)
        assert oauth2_server.issuer == "http://test-server.com"
        assert mcp.custom_route.call_count == 6
        assert mcp.tool.call_count == 3


class TestSweepLoop:
    async def test_sweeps_until_cancelled(self):
        oauth2_server = Mock()

        task = asyncio.create_task(sweep_expired_loop(oauth2_server, 0))
        await asyncio.sleep(0.01)
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

        assert oauth2_server.sweep_expired.call_count >= 1

    async def test_sweep_failure_does_not_stop_loop(self):
        oauth2_server = Mock()
        oauth2_server.sweep_expired.side_effect = RuntimeError("boom")

        task = asyncio.create_task(sweep_expired_loop(oauth2_server, 0))
        await asyncio.sleep(0.01)
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

        assert oauth2_server.sweep_expired.call_count >= 2
