"""
OAuth2 endpoints for the MCP auth server using Starlette.

Implements:
- Authorization Server Metadata (RFC 8414)
- Protected Resource Metadata (RFC 9728)
- Dynamic Client Registration (RFC 7591)
- Authorization endpoint (auto-approved, no consent screen)
- Token endpoint
- Health check
"""

import base64
import binascii
import logging
from datetime import UTC, datetime
from urllib.parse import unquote

from pydantic import ValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse, RedirectResponse, Response
from starlette.routing import Route

from mcp_auth.auth.models import (
    AuthorizationRequest,
    ClientRegistrationRequest,
    TokenRequest,
)
from mcp_auth.auth.oauth2_server import AuthorizationServer
from mcp_auth.core.constants import (
    AUTHORIZATION_SERVER_METADATA_PATH,
    AUTHORIZE_PATH,
    BASIC_PREFIX,
    HEALTH_PATH,
    HTTP_CREATED,
    HTTP_FOUND,
    HTTP_INTERNAL_SERVER_ERROR,
    MCP_PATH,
    PROTECTED_RESOURCE_METADATA_PATH,
    REGISTER_PATH,
    TOKEN_PATH,
)
from mcp_auth.core.exceptions import (
    AccessDeniedError,
    InvalidClientError,
    InvalidClientMetadataError,
    InvalidRequestError,
    OAuthError,
)

logger = logging.getLogger(__name__)

NO_STORE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}


def error_response(error: OAuthError) -> JSONResponse:
    """Render an OAuth error as ``{error, error_description?}``."""
    headers = dict(NO_STORE_HEADERS)
    if isinstance(error, InvalidClientError) and error.status_code == 401:
        headers["WWW-Authenticate"] = 'Basic realm="oauth"'
    return JSONResponse(error.to_dict(), status_code=error.status_code, headers=headers)


def server_error(description: str) -> JSONResponse:
    return JSONResponse(
        {"error": "server_error", "error_description": description},
        status_code=HTTP_INTERNAL_SERVER_ERROR,
    )


# OAuth2 endpoint handlers
async def authorization_server_metadata(
    request: Request, oauth2_server: AuthorizationServer
):
    """OAuth 2.0 Authorization Server Metadata (RFC 8414)."""
    return JSONResponse(oauth2_server.get_authorization_server_metadata())


async def protected_resource_metadata(
    request: Request, oauth2_server: AuthorizationServer, resource_url: str
):
    """Protected Resource Metadata (RFC 9728)."""
    return JSONResponse(oauth2_server.get_protected_resource_metadata(resource_url))


async def register_client(
    request: Request, oauth2_server: AuthorizationServer, allow_dcr: bool = True
):
    """Dynamic Client Registration (RFC 7591)."""
    if not allow_dcr:
        return error_response(
            AccessDeniedError("Dynamic client registration is disabled")
        )

    try:
        try:
            body = await request.json()
            req = ClientRegistrationRequest.model_validate(body)
        except (ValueError, ValidationError) as e:
            raise InvalidClientMetadataError("Malformed registration request") from e

        response = oauth2_server.register_client(req)
        return JSONResponse(
            response.model_dump(exclude_none=True),
            status_code=HTTP_CREATED,
            headers=NO_STORE_HEADERS,
        )
    except OAuthError as e:
        logger.info("Registration rejected: %s", e.error)
        return error_response(e)
    except Exception:
        logger.exception("[DCR] Registration error")
        return server_error("Failed to register client")


async def authorize(request: Request, oauth2_server: AuthorizationServer):
    """Authorization endpoint (GET) - auto-approves and redirects with a code."""
    try:
        req = AuthorizationRequest.model_validate(dict(request.query_params))
        target = oauth2_server.authorize(req)
        return RedirectResponse(url=target, status_code=HTTP_FOUND)
    except OAuthError as e:
        logger.info("Authorization rejected: %s", e.error)
        return error_response(e)
    except Exception:
        logger.exception("[OAuth] Authorization error")
        return server_error("Authorization failed")


async def token_endpoint(request: Request, oauth2_server: AuthorizationServer):
    """Token endpoint - exchanges authorization code for access token."""
    try:
        req = await parse_token_request(request)
        response = oauth2_server.token(req)
        return JSONResponse(
            response.model_dump(exclude_none=True), headers=NO_STORE_HEADERS
        )
    except OAuthError as e:
        logger.info("Token request rejected: %s", e.error)
        return error_response(e)
    except Exception:
        logger.exception("[OAuth] Token error")
        return server_error("Token exchange failed")


async def health(request: Request):
    """Health check endpoint."""
    return JSONResponse(
        {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}
    )


async def parse_token_request(request: Request) -> TokenRequest:
    """
    Read a token request from a JSON or form body.

    Client credentials may also come from ``Authorization: Basic``
    (client_secret_basic); body fields take precedence.

    Raises:
        InvalidRequestError: If the body cannot be parsed
    """
    content_type = request.headers.get("content-type", "")
    try:
        if content_type.startswith("application/json"):
            data = await request.json()
        else:
            form = await request.form()
            data = {k: v for k, v in form.items() if isinstance(v, str)}
        if not isinstance(data, dict):
            raise InvalidRequestError("Request body must be an object")

        basic = parse_basic_credentials(request.headers.get("authorization"))
        if basic is not None:
            data.setdefault("client_id", basic[0])
            data.setdefault("client_secret", basic[1])

        return TokenRequest.model_validate(data)
    except (ValueError, ValidationError) as e:
        raise InvalidRequestError("Malformed token request") from e


def parse_basic_credentials(header: str | None) -> tuple[str, str] | None:
    """Decode ``Basic base64(client_id:client_secret)`` (RFC 6749 section 2.3.1)."""
    if not header or not header.lower().startswith(BASIC_PREFIX.lower()):
        return None
    try:
        decoded = base64.b64decode(header[len(BASIC_PREFIX):], validate=True).decode()
    except (binascii.Error, UnicodeDecodeError):
        return None
    client_id, sep, client_secret = decoded.partition(":")
    if not sep:
        return None
    return unquote(client_id), unquote(client_secret)


def build_routes(
    oauth2_server: AuthorizationServer,
    allow_dcr: bool = True,
    resource_url: str | None = None,
) -> list[Route]:
    """
    Bind the handlers above to ``oauth2_server``.

    Returns:
        Starlette routes, usable directly in a Starlette app or registered
        one by one on FastMCP
    """
    resource = resource_url or f"{oauth2_server.issuer}{MCP_PATH}"

    async def _authorization_server_metadata(request: Request) -> Response:
        return await authorization_server_metadata(request, oauth2_server)

    async def _protected_resource_metadata(request: Request) -> Response:
        return await protected_resource_metadata(request, oauth2_server, resource)

    async def _register_client(request: Request) -> Response:
        return await register_client(request, oauth2_server, allow_dcr)

    async def _authorize(request: Request) -> Response:
        return await authorize(request, oauth2_server)

    async def _token_endpoint(request: Request) -> Response:
        return await token_endpoint(request, oauth2_server)

    return [
        Route(AUTHORIZATION_SERVER_METADATA_PATH, _authorization_server_metadata, methods=["GET"]),
        Route(PROTECTED_RESOURCE_METADATA_PATH, _protected_resource_metadata, methods=["GET"]),
        Route(REGISTER_PATH, _register_client, methods=["POST"]),
        Route(AUTHORIZE_PATH, _authorize, methods=["GET"]),
        Route(TOKEN_PATH, _token_endpoint, methods=["POST"]),
        Route(HEALTH_PATH, health, methods=["GET"]),
    ]
