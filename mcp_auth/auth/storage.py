"""Pydantic models for OAuth entity storage.

These models define the records held by the client registry, the code store
and the token store, and their shape when persisted as JSON.
"""

import time

from pydantic import BaseModel, Field

from mcp_auth.core.constants import (
    DEFAULT_GRANT_TYPES,
    DEFAULT_RESPONSE_TYPES,
    DEFAULT_TOKEN_ENDPOINT_AUTH_METHOD,
)


class ClientInfo(BaseModel):
    """Public view of a registered client. Carries no secret material."""

    client_id: str
    name: str
    redirect_uris: list[str] = Field(default_factory=list)
    grant_types: list[str] = Field(default_factory=lambda: list(DEFAULT_GRANT_TYPES))
    response_types: list[str] = Field(
        default_factory=lambda: list(DEFAULT_RESPONSE_TYPES)
    )
    token_endpoint_auth_method: str = DEFAULT_TOKEN_ENDPOINT_AUTH_METHOD
    scope: str | None = None
    client_uri: str | None = None
    created_at: float = Field(default_factory=time.time)


class StoredClient(ClientInfo):
    """OAuth client as kept by the registry: the secret only as a hash."""

    client_secret_hash: str

    def public(self) -> ClientInfo:
        return ClientInfo.model_validate(
            self.model_dump(exclude={"client_secret_hash"})
        )


class RegisteredClient(ClientInfo):
    """Result of a registration. The only object that ever holds the secret."""

    client_secret: str


class AuthorizationCode(BaseModel):
    """Authorization code stored until redeemed or expired."""

    code: str
    client_id: str
    redirect_uri: str
    scope: str | None = None
    subject: str
    expires_at: float
    code_challenge: str | None = None
    code_challenge_method: str | None = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now


class AccessToken(BaseModel):
    """Access token stored until it expires."""

    token: str
    client_id: str
    subject: str
    scope: str | None = None
    expires_at: float

    def is_expired(self, now: float) -> bool:
        return self.expires_at <= now
