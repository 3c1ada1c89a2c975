"""Request and response models for the OAuth endpoints.

Request models accept missing fields as ``None`` so that the authorization
server, not pydantic, decides which OAuth error a missing field maps to.
"""

from pydantic import BaseModel, ConfigDict

from mcp_auth.core.constants import CLIENT_SECRET_EXPIRES_AT, TOKEN_TYPE_BEARER


class ClientRegistrationRequest(BaseModel):
    """Dynamic Client Registration request (RFC 7591)."""

    model_config = ConfigDict(extra="ignore")

    client_name: str | None = None
    redirect_uris: list[str] | None = None
    grant_types: list[str] | None = None
    response_types: list[str] | None = None
    token_endpoint_auth_method: str | None = None
    scope: str | None = None
    client_uri: str | None = None


class ClientRegistrationResponse(BaseModel):
    """Dynamic Client Registration response."""

    client_id: str
    client_secret: str
    client_id_issued_at: int
    client_secret_expires_at: int = CLIENT_SECRET_EXPIRES_AT
    client_name: str
    redirect_uris: list[str]
    grant_types: list[str]
    response_types: list[str]
    token_endpoint_auth_method: str
    scope: str | None = None
    client_uri: str | None = None


class AuthorizationRequest(BaseModel):
    """Query parameters of the authorization endpoint."""

    model_config = ConfigDict(extra="ignore")

    response_type: str | None = None
    client_id: str | None = None
    redirect_uri: str | None = None
    scope: str | None = None
    state: str | None = None
    code_challenge: str | None = None
    code_challenge_method: str | None = None


class TokenRequest(BaseModel):
    """Token endpoint request body (form or JSON)."""

    model_config = ConfigDict(extra="ignore")

    grant_type: str | None = None
    code: str | None = None
    redirect_uri: str | None = None
    client_id: str | None = None
    client_secret: str | None = None
    code_verifier: str | None = None


class TokenResponse(BaseModel):
    """Token endpoint response."""

    access_token: str
    token_type: str = TOKEN_TYPE_BEARER
    expires_in: int
    scope: str | None = None


class AuthorizationServerMetadata(BaseModel):
    """OAuth 2.0 Authorization Server Metadata (RFC 8414)."""

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    registration_endpoint: str
    response_types_supported: list[str]
    grant_types_supported: list[str]
    token_endpoint_auth_methods_supported: list[str]
