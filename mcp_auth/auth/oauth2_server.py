"""
OAuth2 Authorization Server for MCP.

Implements the authorization code grant with Dynamic Client Registration
(RFC 7591) and Authorization Server Metadata (RFC 8414). Authorization is
auto-approved for a single synthetic subject; there is no consent screen.
"""

import logging
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from mcp_auth.auth.models import (
    AuthorizationRequest,
    AuthorizationServerMetadata,
    ClientRegistrationRequest,
    ClientRegistrationResponse,
    TokenRequest,
    TokenResponse,
)
from mcp_auth.auth.persistence import DurabilityHook, FileDurabilityHook
from mcp_auth.auth.storage import AccessToken
from mcp_auth.auth.stores import ClientRegistry, CodeStore, TokenStore, redact
from mcp_auth.config import Settings
from mcp_auth.core.constants import (
    AUTHORIZE_PATH,
    DEFAULT_GRANT_TYPES,
    DEFAULT_RESPONSE_TYPES,
    GRANT_TYPE_AUTHORIZATION_CODE,
    HTTP_BAD_REQUEST,
    REGISTER_PATH,
    RESPONSE_TYPE_CODE,
    TOKEN_ENDPOINT_AUTH_METHODS,
    TOKEN_PATH,
    TOKEN_TYPE_BEARER,
)
from mcp_auth.core.exceptions import (
    InvalidClientError,
    InvalidClientMetadataError,
    InvalidGrantError,
    InvalidRequestError,
    UnsupportedGrantTypeError,
    UnsupportedResponseTypeError,
)

logger = logging.getLogger(__name__)


class AuthorizationServer:
    """
    OAuth2 Authorization Server implementing the MCP authorization flow.

    State machine:
    - code: issued -> redeemed | expired
    - token: valid -> expired

    Both transitions are one-way. The stores are injected so the atomic
    redeem of :class:`CodeStore` is the only place a code is consumed.
    """

    def __init__(
        self,
        issuer: str,
        clients: ClientRegistry,
        codes: CodeStore,
        tokens: TokenStore,
        default_subject: str = "demo_user",
        hook: DurabilityHook | None = None,
    ):
        """
        Initialize OAuth2 server.

        Args:
            issuer: OAuth2 issuer URL (e.g., "http://localhost:3000")
            clients: Registered client store
            codes: Authorization code store
            tokens: Access token store
            default_subject: Principal every authorization is approved for
            hook: Durability hook shared by the stores, closed by close()
        """
        self.issuer = issuer.rstrip("/")
        self.clients = clients
        self.codes = codes
        self.tokens = tokens
        self.default_subject = default_subject
        self.hook = hook

    # ========== Discovery ==========

    def get_authorization_server_metadata(self) -> dict:
        """
        Get OAuth 2.0 Authorization Server Metadata (RFC 8414).

        Returns:
            Authorization server metadata
        """
        return AuthorizationServerMetadata(
            issuer=self.issuer,
            authorization_endpoint=f"{self.issuer}{AUTHORIZE_PATH}",
            token_endpoint=f"{self.issuer}{TOKEN_PATH}",
            registration_endpoint=f"{self.issuer}{REGISTER_PATH}",
            response_types_supported=list(DEFAULT_RESPONSE_TYPES),
            grant_types_supported=list(DEFAULT_GRANT_TYPES),
            token_endpoint_auth_methods_supported=list(TOKEN_ENDPOINT_AUTH_METHODS),
        ).model_dump()

    def get_protected_resource_metadata(self, resource_url: str) -> dict:
        """
        Get Protected Resource Metadata (RFC 9728).

        Args:
            resource_url: MCP server URL

        Returns:
            Protected resource metadata
        """
        return {
            "resource": resource_url,
            "authorization_servers": [self.issuer],
            "bearer_methods_supported": ["header"],
        }

    # ========== Registration ==========

    def register_client(
        self, request: ClientRegistrationRequest
    ) -> ClientRegistrationResponse:
        """
        Register a new OAuth2 client (Dynamic Client Registration - RFC 7591).

        Raises:
            InvalidClientMetadataError: If client_name is missing or blank
        """
        if not request.client_name or not request.client_name.strip():
            raise InvalidClientMetadataError("client_name is required")

        client = self.clients.register(
            name=request.client_name,
            redirect_uris=request.redirect_uris,
            grant_types=request.grant_types,
            response_types=request.response_types,
            token_endpoint_auth_method=request.token_endpoint_auth_method,
            scope=request.scope,
            client_uri=request.client_uri,
        )

        return ClientRegistrationResponse(
            client_id=client.client_id,
            client_secret=client.client_secret,
            client_id_issued_at=int(client.created_at),
            client_name=client.name,
            redirect_uris=client.redirect_uris,
            grant_types=client.grant_types,
            response_types=client.response_types,
            token_endpoint_auth_method=client.token_endpoint_auth_method,
            scope=client.scope,
            client_uri=client.client_uri,
        )

    # ========== Authorization ==========

    def authorize(self, request: AuthorizationRequest) -> str:
        """
        Validate an authorization request and issue a code.

        Returns:
            Redirect target: the request's redirect_uri carrying ``code`` and,
            if given, the untouched ``state``

        Raises:
            InvalidRequestError: Missing parameters or unregistered redirect_uri
            UnsupportedResponseTypeError: response_type is not "code"
            InvalidClientError: Unknown client_id
        """
        if not request.response_type or not request.client_id or not request.redirect_uri:
            raise InvalidRequestError("Missing required parameters")

        if request.response_type != RESPONSE_TYPE_CODE:
            raise UnsupportedResponseTypeError(
                'Only "code" response type is supported'
            )

        client = self.clients.lookup(request.client_id)
        if client is None:
            raise InvalidClientError("Unknown client_id", status_code=HTTP_BAD_REQUEST)

        # Exact match only; a client with no registered URIs never matches
        if request.redirect_uri not in client.redirect_uris:
            raise InvalidRequestError("Invalid redirect_uri")

        logger.info("Auto-approving authorization for client: %s", client.client_id)

        code = self.codes.issue(
            client.client_id,
            request.redirect_uri,
            request.scope,
            subject=self.default_subject,
            code_challenge=request.code_challenge,
            code_challenge_method=request.code_challenge_method,
        )

        params = {"code": code}
        if request.state is not None:
            params["state"] = request.state
        return append_query(request.redirect_uri, params)

    # ========== Token Exchange ==========

    def token(self, request: TokenRequest) -> TokenResponse:
        """
        Exchange an authorization code for an access token.

        The code is consumed as soon as the client is authenticated; every
        later failure leaves it consumed.

        Raises:
            UnsupportedGrantTypeError: grant_type is not authorization_code
            InvalidRequestError: Missing parameters
            InvalidClientError: Bad client credentials
            InvalidGrantError: Unknown, expired, reused or mismatched code
        """
        if request.grant_type != GRANT_TYPE_AUTHORIZATION_CODE:
            raise UnsupportedGrantTypeError(
                "Only authorization_code grant type is supported"
            )

        if not (
            request.code
            and request.redirect_uri
            and request.client_id
            and request.client_secret
        ):
            raise InvalidRequestError("Missing required parameters")

        if not self.clients.validate_credentials(
            request.client_id, request.client_secret
        ):
            raise InvalidClientError("Invalid client credentials")

        auth_code = self.codes.redeem(request.code)
        if auth_code is None:
            logger.info("Rejected unknown or expired code %s", redact(request.code, 12))
            raise InvalidGrantError("Invalid or expired authorization code")

        if auth_code.client_id != request.client_id:
            logger.warning(
                "Code issued to %s presented by %s", auth_code.client_id, request.client_id
            )
            raise InvalidGrantError("Code was issued to different client")

        if auth_code.redirect_uri != request.redirect_uri:
            raise InvalidGrantError("Redirect URI mismatch")

        if auth_code.is_expired(self.codes.now()):
            raise InvalidGrantError("Authorization code expired")

        access_token = self.tokens.issue(
            client_id=auth_code.client_id,
            subject=auth_code.subject,
            scope=auth_code.scope,
        )

        return TokenResponse(
            access_token=access_token.token,
            token_type=TOKEN_TYPE_BEARER,
            expires_in=self.tokens.ttl_seconds,
            scope=access_token.scope,
        )

    # ========== Token Validation ==========

    def validate_bearer(self, token: str | None) -> AccessToken | None:
        """Return the principal behind ``token`` or None if absent/expired."""
        return self.tokens.validate(token)

    def sweep_expired(self) -> dict[str, int]:
        """Drop expired codes and tokens from memory."""
        purged = {
            "codes": self.codes.purge_expired(),
            "tokens": self.tokens.purge_expired(),
        }
        if any(purged.values()):
            logger.info(
                "Swept %d expired codes and %d expired tokens",
                purged["codes"],
                purged["tokens"],
            )
        return purged

    def close(self) -> None:
        """Wait for pending persistence writes and stop the writer."""
        close = getattr(self.hook, "close", None)
        if close is not None:
            close()


def append_query(url: str, params: dict[str, str]) -> str:
    """Add ``params`` to the query of ``url``, keeping existing parameters."""
    parts = urlsplit(url)
    query = parse_qsl(parts.query, keep_blank_values=True)
    query.extend(params.items())
    return urlunsplit(parts._replace(query=urlencode(query)))


def create_authorization_server(
    settings: Settings, hook: DurabilityHook | None = None
) -> AuthorizationServer:
    """Build the stores and the server from settings.

    A file durability hook is created when ``persist_state`` is enabled and
    no hook is passed explicitly.
    """
    if hook is None and settings.persist_state:
        hook = FileDurabilityHook(settings.storage_dir)

    return AuthorizationServer(
        issuer=settings.oauth_issuer or "",
        clients=ClientRegistry(hook=hook),
        codes=CodeStore(ttl_seconds=settings.code_ttl_seconds, hook=hook),
        tokens=TokenStore(
            ttl_seconds=settings.token_ttl_seconds,
            token_format=settings.token_format,
            secret_key=settings.jwt_secret,
            issuer=settings.oauth_issuer,
            hook=hook,
        ),
        default_subject=settings.default_subject,
        hook=hook,
    )
