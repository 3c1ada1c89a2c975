"""Custom exceptions for the MCP auth server."""

from .constants import HTTP_BAD_REQUEST, HTTP_FORBIDDEN, HTTP_UNAUTHORIZED


class MCPToolError(Exception):
    """Custom exception for MCP tool errors that should be returned as JSON-RPC errors."""

    def __init__(self, message: str, code: int = -32000):
        self.message = message
        self.code = code
        super().__init__(message)


# ========================================
# Base Exceptions
# ========================================


class AuthServerError(Exception):
    """Base exception for all MCP auth server errors."""


# ========================================
# OAuth Protocol Exceptions
# ========================================


class OAuthError(AuthServerError):
    """Protocol error rendered to the caller as ``{error, error_description}``.

    Every subclass is terminal for the request that raised it: the caller has
    to redo the failed step from scratch.
    """

    error = "server_error"
    status_code = HTTP_BAD_REQUEST

    def __init__(self, description: str | None = None, status_code: int | None = None):
        self.description = description
        if status_code is not None:
            self.status_code = status_code
        super().__init__(description or self.error)

    def to_dict(self) -> dict[str, str]:
        body = {"error": self.error}
        if self.description:
            body["error_description"] = self.description
        return body


class InvalidRequestError(OAuthError):
    """Malformed or missing request parameters."""

    error = "invalid_request"


class InvalidClientError(OAuthError):
    """Unknown client or bad client credentials."""

    error = "invalid_client"
    status_code = HTTP_UNAUTHORIZED


class InvalidGrantError(OAuthError):
    """Unknown, expired, reused or mismatched authorization code."""

    error = "invalid_grant"


class UnsupportedGrantTypeError(OAuthError):
    error = "unsupported_grant_type"


class UnsupportedResponseTypeError(OAuthError):
    error = "unsupported_response_type"


class InvalidClientMetadataError(OAuthError):
    """Dynamic Client Registration request rejected."""

    error = "invalid_client_metadata"


class AccessDeniedError(OAuthError):
    error = "access_denied"
    status_code = HTTP_FORBIDDEN


class UnauthorizedError(OAuthError):
    """Tool gate rejection.

    ``unauthorized`` when no token was presented, ``invalid_token`` when the
    presented token is unknown or expired.
    """

    error = "unauthorized"
    status_code = HTTP_UNAUTHORIZED

    def __init__(
        self,
        description: str | None = None,
        status_code: int | None = None,
        *,
        token_presented: bool = False,
    ):
        if token_presented:
            self.error = "invalid_token"
        super().__init__(description, status_code)


# ========================================
# Storage Exceptions
# ========================================


class PersistenceError(AuthServerError):
    """Best-effort durability write or load failed."""
