"""In-memory OAuth stores: registered clients, authorization codes, access tokens.

Each store owns one lock guarding its dict and is shared by every concurrent
request handler. Every mutation hands a snapshot of the collection to a
durability hook before the lock is released, so the hook sees snapshots in
mutation order. Hook failures are logged and swallowed.
"""

import logging
import secrets
import threading
import time
from collections.abc import Callable
from typing import Any, Literal

from jose import JWTError, jwt
from passlib.context import CryptContext
from pydantic import ValidationError

from mcp_auth.auth.persistence import DurabilityHook, NullDurabilityHook
from mcp_auth.auth.storage import (
    AccessToken,
    AuthorizationCode,
    ClientInfo,
    RegisteredClient,
    StoredClient,
)
from mcp_auth.core.constants import (
    CLIENT_ID_PREFIX,
    CODE_PREFIX,
    CODE_TTL_SECONDS_DEFAULT,
    CREDENTIAL_ENTROPY_BYTES,
    DEFAULT_GRANT_TYPES,
    DEFAULT_RESPONSE_TYPES,
    DEFAULT_TOKEN_ENDPOINT_AUTH_METHOD,
    TOKEN_PREFIX,
    TOKEN_TTL_SECONDS_DEFAULT,
)

logger = logging.getLogger(__name__)

# Client secret hashing context
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

Clock = Callable[[], float]


def redact(value: str | None, keep: int = 8) -> str:
    """Shorten a credential to a loggable prefix."""
    if not value:
        return "<none>"
    return f"{value[:keep]}..."


class _LockedStore:
    """Shared plumbing: one lock per map, clock injection, durability hook."""

    collection: str = ""

    def __init__(
        self,
        hook: DurabilityHook | None = None,
        clock: Clock = time.time,
    ) -> None:
        self._lock = threading.Lock()
        self._hook: DurabilityHook = hook or NullDurabilityHook()
        self._clock = clock
        self._records: dict[str, Any] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def now(self) -> float:
        return self._clock()

    def _persist(self) -> None:
        """Hand a snapshot of the collection to the hook. Caller holds the lock.

        Snapshots reach the hook in mutation order; hooks must not block.
        """
        snapshot = {key: record.model_dump() for key, record in self._records.items()}
        try:
            self._hook.persist(self.collection, snapshot)
        except Exception as e:
            logger.error("Failed to persist %s: %s", self.collection, e)

    def _load(self, model: type[Any]) -> None:
        try:
            raw = self._hook.load(self.collection)
        except Exception as e:
            logger.error("Failed to load %s: %s", self.collection, e)
            return
        for key, data in raw.items():
            try:
                self._records[key] = model.model_validate(data)
            except ValidationError as e:
                logger.warning("Skipping invalid %s record %s: %s", self.collection, redact(key), e)
        if self._records:
            logger.info("Loaded %d %s from storage", len(self._records), self.collection)


class _ExpiringStore(_LockedStore):
    """Store of records carrying ``expires_at``."""

    def purge_expired(self) -> int:
        """Drop every expired record; returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [k for k, r in self._records.items() if r.is_expired(now)]
            for key in expired:
                del self._records[key]
            if expired:
                self._persist()
        return len(expired)


# ========== Client Registry ==========


class ClientRegistry(_LockedStore):
    """Registered OAuth clients.

    Secrets are kept only as pbkdf2 hashes, so no read path can hand a secret
    back out once :meth:`register` has returned it.
    """

    collection = "clients"

    def __init__(
        self,
        hook: DurabilityHook | None = None,
        clock: Clock = time.time,
    ) -> None:
        super().__init__(hook, clock)
        self._load(StoredClient)

    def register(
        self,
        name: str,
        redirect_uris: list[str] | None = None,
        grant_types: list[str] | None = None,
        response_types: list[str] | None = None,
        token_endpoint_auth_method: str | None = None,
        scope: str | None = None,
        client_uri: str | None = None,
    ) -> RegisteredClient:
        """Create a client with fresh credentials.

        An empty ``redirect_uris`` list is kept as-is: such a client cannot
        complete any authorize request.
        """
        client_id = f"{CLIENT_ID_PREFIX}{secrets.token_urlsafe(16)}"
        client_secret = secrets.token_urlsafe(CREDENTIAL_ENTROPY_BYTES)

        stored = StoredClient(
            client_id=client_id,
            name=name,
            redirect_uris=list(dict.fromkeys(redirect_uris or [])),
            grant_types=grant_types or list(DEFAULT_GRANT_TYPES),
            response_types=response_types or list(DEFAULT_RESPONSE_TYPES),
            token_endpoint_auth_method=(
                token_endpoint_auth_method or DEFAULT_TOKEN_ENDPOINT_AUTH_METHOD
            ),
            scope=scope,
            client_uri=client_uri,
            created_at=self._clock(),
            client_secret_hash=pwd_context.hash(client_secret),
        )

        with self._lock:
            self._records[client_id] = stored
            self._persist()

        logger.info("Registered client: %s (%s)", client_id, name)
        return RegisteredClient(
            **stored.public().model_dump(),
            client_secret=client_secret,
        )

    def lookup(self, client_id: str | None) -> ClientInfo | None:
        if not client_id:
            return None
        with self._lock:
            stored = self._records.get(client_id)
        return stored.public() if stored else None

    def validate_credentials(
        self, client_id: str | None, client_secret: str | None
    ) -> bool:
        """Check a client_id/client_secret pair.

        Unknown clients still pay for a hash verification so that the answer
        takes the same time whether or not the client exists.
        """
        with self._lock:
            stored = self._records.get(client_id) if client_id else None
        if stored is None or not client_secret:
            pwd_context.dummy_verify()
            return False
        return pwd_context.verify(client_secret, stored.client_secret_hash)


# ========== Authorization Codes ==========


class CodeStore(_ExpiringStore):
    """One-time authorization codes."""

    collection = "codes"

    def __init__(
        self,
        ttl_seconds: int = CODE_TTL_SECONDS_DEFAULT,
        hook: DurabilityHook | None = None,
        clock: Clock = time.time,
    ) -> None:
        super().__init__(hook, clock)
        self.ttl_seconds = ttl_seconds
        self._load(AuthorizationCode)

    def issue(
        self,
        client_id: str,
        redirect_uri: str,
        scope: str | None = None,
        *,
        subject: str,
        code_challenge: str | None = None,
        code_challenge_method: str | None = None,
    ) -> str:
        code = f"{CODE_PREFIX}{secrets.token_urlsafe(CREDENTIAL_ENTROPY_BYTES)}"
        record = AuthorizationCode(
            code=code,
            client_id=client_id,
            redirect_uri=redirect_uri,
            scope=scope,
            subject=subject,
            expires_at=self._clock() + self.ttl_seconds,
            code_challenge=code_challenge,
            code_challenge_method=code_challenge_method,
        )

        with self._lock:
            self._records[code] = record
            self._persist()

        logger.info("Issued authorization code %s for client %s", redact(code, 12), client_id)
        return code

    def redeem(self, code: str | None) -> AuthorizationCode | None:
        """Remove and return a code in one step.

        The lookup and the delete happen under the same lock, so of several
        concurrent redemptions of one code at most one gets the record. An
        expired code is deleted and reported exactly like an unknown one.
        """
        if not code:
            return None
        with self._lock:
            record = self._records.pop(code, None)
            if record is None:
                return None
            self._persist()

        if record.is_expired(self._clock()):
            logger.info("Authorization code %s expired before redemption", redact(code, 12))
            return None
        return record


# ========== Access Tokens ==========


class TokenStore(_ExpiringStore):
    """Bearer access tokens.

    Tokens are either opaque random strings or HS256 JWTs. Either way the
    stored record decides validity and expiry; a JWT is additionally
    signature-checked.
    """

    collection = "tokens"

    def __init__(
        self,
        ttl_seconds: int = TOKEN_TTL_SECONDS_DEFAULT,
        token_format: Literal["opaque", "jwt"] = "opaque",
        secret_key: str | None = None,
        issuer: str | None = None,
        algorithm: str = "HS256",
        hook: DurabilityHook | None = None,
        clock: Clock = time.time,
    ) -> None:
        if token_format == "jwt" and not secret_key:
            msg = "secret_key is required for jwt access tokens"
            raise ValueError(msg)
        super().__init__(hook, clock)
        self.ttl_seconds = ttl_seconds
        self.token_format = token_format
        self.secret_key = secret_key
        self.issuer = issuer
        self.algorithm = algorithm
        self._load(AccessToken)

    def issue(
        self, client_id: str, subject: str, scope: str | None = None
    ) -> AccessToken:
        now = self._clock()
        expires_at = now + self.ttl_seconds

        if self.token_format == "jwt":
            token = self._encode_jwt(client_id, subject, scope, now, expires_at)
        else:
            token = f"{TOKEN_PREFIX}{secrets.token_urlsafe(CREDENTIAL_ENTROPY_BYTES)}"

        record = AccessToken(
            token=token,
            client_id=client_id,
            subject=subject,
            scope=scope,
            expires_at=expires_at,
        )

        with self._lock:
            self._records[token] = record
            self._persist()

        logger.info("Issued access token for client: %s", client_id)
        return record

    def validate(self, token: str | None) -> AccessToken | None:
        """Return the live record for ``token``; expired entries are purged."""
        if not token:
            return None
        with self._lock:
            record = self._records.get(token)
            if record is None:
                return None
            if record.is_expired(self._clock()):
                del self._records[token]
                self._persist()
                logger.info("Access token %s expired", redact(token, 12))
                return None

        if self.token_format == "jwt" and not self._verify_jwt(token):
            return None
        return record

    def _encode_jwt(
        self,
        client_id: str,
        subject: str,
        scope: str | None,
        issued_at: float,
        expires_at: float,
    ) -> str:
        """Create JWT access token."""
        to_encode = {
            "sub": subject,
            "client_id": client_id,
            "scope": scope,
            "iat": int(issued_at),
            "exp": int(expires_at),
            "jti": secrets.token_urlsafe(16),
        }
        if self.issuer:
            to_encode["iss"] = self.issuer
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def _verify_jwt(self, token: str) -> bool:
        # Expiry is governed by the stored record and the store clock
        try:
            jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"verify_exp": False, "verify_aud": False},
            )
        except JWTError as e:
            logger.warning("Token signature check failed: %s", e)
            return False
        return True
