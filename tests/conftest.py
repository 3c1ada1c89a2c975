"""
Shared pytest fixtures for the MCP auth server tests.

Stores are built with a controllable clock so expiry can be tested without
sleeping.
"""

import time
from urllib.parse import parse_qs, urlsplit

import pytest

from mcp_auth.auth import (
    AuthorizationServer,
    ClientRegistry,
    CodeStore,
    TokenStore,
    ToolGate,
)
from mcp_auth.auth.models import AuthorizationRequest, ClientRegistrationRequest
from mcp_auth.config import reset_settings

REDIRECT_URI = "http://x/cb"


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float | None = None):
        self.now = time.time() if start is None else start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def _fresh_settings(monkeypatch):
    """Each test reads settings from a clean environment."""
    for name in ("PUBLIC_TOOLS", "ALLOW_DCR", "TOKEN_FORMAT", "OAUTH_ISSUER"):
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client_registry(clock):
    return ClientRegistry(clock=clock)


@pytest.fixture
def code_store(clock):
    return CodeStore(ttl_seconds=600, clock=clock)


@pytest.fixture
def token_store(clock):
    return TokenStore(ttl_seconds=3600, clock=clock)


@pytest.fixture
def oauth2_server(client_registry, code_store, token_store):
    """Create authorization server for testing."""
    return AuthorizationServer(
        issuer="http://test-server.com",
        clients=client_registry,
        codes=code_store,
        tokens=token_store,
    )


@pytest.fixture
def gate(oauth2_server):
    return ToolGate(oauth2_server, public_tools={"server_info"})


@pytest.fixture
def registered(oauth2_server):
    """A client registered with a single redirect URI."""
    return oauth2_server.register_client(
        ClientRegistrationRequest(client_name="T", redirect_uris=[REDIRECT_URI])
    )


@pytest.fixture
def issue_code(oauth2_server, registered):
    """Run the authorize step and return the issued code."""

    def _issue(state: str | None = None) -> str:
        target = oauth2_server.authorize(
            AuthorizationRequest(
                response_type="code",
                client_id=registered.client_id,
                redirect_uri=REDIRECT_URI,
                scope="mcp:tools",
                state=state,
            )
        )
        return parse_qs(urlsplit(target).query)["code"][0]

    return _issue
