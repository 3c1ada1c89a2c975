"""Application-wide constants for the MCP auth server.

This module contains the protocol literals and default lifetimes shared by
the stores, the authorization server and the HTTP layer.
"""

# ========================================
# Lifetimes
# ========================================

CODE_TTL_SECONDS_DEFAULT = 600  # Authorization code lifetime (10 minutes)
TOKEN_TTL_SECONDS_DEFAULT = 3600  # Access token lifetime (1 hour)
SWEEP_INTERVAL_SECONDS_DEFAULT = 300  # Background expiry sweep period

# ========================================
# Protocol Literals
# ========================================

GRANT_TYPE_AUTHORIZATION_CODE = "authorization_code"
RESPONSE_TYPE_CODE = "code"
TOKEN_TYPE_BEARER = "Bearer"
BEARER_PREFIX = "Bearer "
BASIC_PREFIX = "Basic "

DEFAULT_GRANT_TYPES = [GRANT_TYPE_AUTHORIZATION_CODE]
DEFAULT_RESPONSE_TYPES = [RESPONSE_TYPE_CODE]
DEFAULT_TOKEN_ENDPOINT_AUTH_METHOD = "client_secret_post"
TOKEN_ENDPOINT_AUTH_METHODS = ["client_secret_post", "client_secret_basic"]

# Never expires (RFC 7591 section 3.2.1)
CLIENT_SECRET_EXPIRES_AT = 0

# ========================================
# Credential Generation
# ========================================

CLIENT_ID_PREFIX = "client_"
CODE_PREFIX = "code_"
TOKEN_PREFIX = "token_"
CREDENTIAL_ENTROPY_BYTES = 32  # Bytes passed to secrets.token_urlsafe

# ========================================
# HTTP Paths
# ========================================

REGISTER_PATH = "/oauth/register"
AUTHORIZE_PATH = "/oauth/authorize"
TOKEN_PATH = "/oauth/token"
AUTHORIZATION_SERVER_METADATA_PATH = "/.well-known/oauth-authorization-server"
PROTECTED_RESOURCE_METADATA_PATH = "/.well-known/oauth-protected-resource"
HEALTH_PATH = "/health"
MCP_PATH = "/mcp"

# ========================================
# HTTP Status Codes
# ========================================

HTTP_CREATED = 201
HTTP_FOUND = 302
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_INTERNAL_SERVER_ERROR = 500
