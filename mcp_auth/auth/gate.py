"""
Bearer-token gate for MCP tools.

Every protected tool calls :meth:`ToolGate.check` before doing any work.
The gate keeps no cache: each call validates the token through the token
store again, so an expiry is seen on the very next call.
"""

import logging
from collections.abc import Iterable, Mapping

from mcp_auth.auth.oauth2_server import AuthorizationServer
from mcp_auth.auth.storage import AccessToken
from mcp_auth.core.constants import BEARER_PREFIX
from mcp_auth.core.exceptions import UnauthorizedError

logger = logging.getLogger(__name__)


class ToolGate:
    """
    Authorization check in front of protected tools.

    Tools named in ``public_tools`` bypass the gate. The set is fixed at
    construction time.
    """

    def __init__(
        self,
        oauth2_server: AuthorizationServer,
        public_tools: Iterable[str] = (),
    ):
        self.oauth2_server = oauth2_server
        self.public_tools = frozenset(public_tools)

    def is_public(self, tool_name: str) -> bool:
        return tool_name in self.public_tools

    def authorize(self, token: str | None) -> AccessToken:
        """
        Resolve ``token`` to its principal.

        Raises:
            UnauthorizedError: ``unauthorized`` without a token,
                ``invalid_token`` for an unknown or expired one
        """
        if not token:
            raise UnauthorizedError("Valid access token required")

        principal = self.oauth2_server.validate_bearer(token)
        if principal is None:
            raise UnauthorizedError(
                "Invalid or expired token", token_presented=True
            )
        return principal

    def check(self, tool_name: str, token: str | None) -> AccessToken | None:
        """Gate one tool call; public tools return None without validation."""
        if self.is_public(tool_name):
            return None
        try:
            principal = self.authorize(token)
        except UnauthorizedError as e:
            logger.info("Unauthorized call to %s: %s", tool_name, e.error)
            raise
        logger.debug("Tool %s authorized for %s", tool_name, principal.subject)
        return principal


def extract_bearer(authorization: str | None) -> str | None:
    """Return the token of an ``Authorization: Bearer <token>`` header value."""
    # Auth scheme names are case-insensitive (RFC 7235)
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX.lower()):
        return None
    token = authorization[len(BEARER_PREFIX):]
    return token or None


def resolve_token(
    explicit: str | None, headers: Mapping[str, str] | None = None
) -> str | None:
    """Pick the explicit tool argument first, then the request header."""
    if explicit:
        return explicit
    if not headers:
        return None
    return extract_bearer(headers.get("authorization") or headers.get("Authorization"))
