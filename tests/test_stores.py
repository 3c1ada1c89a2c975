"""
Tests for the client registry, code store and token store.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest
from jose import jwt

from mcp_auth.auth import ClientRegistry, CodeStore, TokenStore
from mcp_auth.auth.storage import ClientInfo


class RecordingHook:
    """Durability hook capturing every snapshot it receives."""

    def __init__(self, initial=None, fail=False):
        self.initial = initial or {}
        self.fail = fail
        self.calls = []

    def persist(self, collection, records):
        self.calls.append((collection, records))
        if self.fail:
            raise OSError("disk full")

    def load(self, collection):
        return self.initial.get(collection, {})


class StallingHook(RecordingHook):
    """Blocks the first persist of a snapshot with ``stall_on_size`` records."""

    def __init__(self, stall_on_size):
        super().__init__()
        self.stall_on_size = stall_on_size
        self.stalled = threading.Event()
        self.release = threading.Event()

    def persist(self, collection, records):
        if len(records) == self.stall_on_size and not self.stalled.is_set():
            self.stalled.set()
            self.release.wait(timeout=5)
        super().persist(collection, records)


class TestClientRegistry:
    """ClientRegistry: registration, lookup and credential checks."""

    def test_register_generates_unique_credentials(self, client_registry):
        first = client_registry.register(name="A", redirect_uris=["http://a/cb"])
        second = client_registry.register(name="B", redirect_uris=["http://b/cb"])

        assert first.client_id != second.client_id
        assert first.client_secret != second.client_secret
        assert len(first.client_secret) > 20
        assert first.grant_types == ["authorization_code"]
        assert first.response_types == ["code"]

    def test_register_keeps_empty_redirect_uris(self, client_registry):
        client = client_registry.register(name="NoRedirects")

        assert client.redirect_uris == []
        assert client_registry.lookup(client.client_id).redirect_uris == []

    def test_register_removes_duplicate_redirect_uris(self, client_registry):
        client = client_registry.register(
            name="Dup", redirect_uris=["http://a/cb", "http://b/cb", "http://a/cb"]
        )

        assert client.redirect_uris == ["http://a/cb", "http://b/cb"]

    def test_lookup_never_exposes_secret(self, client_registry):
        client = client_registry.register(name="A", redirect_uris=["http://a/cb"])

        info = client_registry.lookup(client.client_id)

        assert isinstance(info, ClientInfo)
        dumped = info.model_dump()
        assert "client_secret" not in dumped
        assert "client_secret_hash" not in dumped
        assert client.client_secret not in str(dumped)

    def test_lookup_unknown_client(self, client_registry):
        assert client_registry.lookup("client_missing") is None
        assert client_registry.lookup(None) is None

    def test_validate_credentials(self, client_registry):
        client = client_registry.register(name="A", redirect_uris=["http://a/cb"])

        assert client_registry.validate_credentials(client.client_id, client.client_secret)
        assert not client_registry.validate_credentials(client.client_id, "wrong")
        assert not client_registry.validate_credentials(client.client_id, "")
        assert not client_registry.validate_credentials(client.client_id, None)

    def test_validate_credentials_unknown_client_is_false(self, client_registry):
        assert client_registry.validate_credentials("client_missing", "secret") is False
        assert client_registry.validate_credentials(None, None) is False

    def test_registration_is_persisted_without_secret(self, clock):
        hook = RecordingHook()
        registry = ClientRegistry(hook=hook, clock=clock)

        client = registry.register(name="A", redirect_uris=["http://a/cb"])

        collection, records = hook.calls[-1]
        assert collection == "clients"
        assert client.client_id in records
        assert client.client_secret not in str(records)

    def test_hook_failure_does_not_fail_registration(self, clock):
        registry = ClientRegistry(hook=RecordingHook(fail=True), clock=clock)

        client = registry.register(name="A", redirect_uris=["http://a/cb"])

        assert registry.lookup(client.client_id) is not None


class TestCodeStore:
    """CodeStore: issue and atomic single-use redeem."""

    def test_issue_and_redeem(self, code_store, clock):
        code = code_store.issue("c1", "http://x/cb", "mcp:tools", subject="demo_user")

        record = code_store.redeem(code)

        assert record is not None
        assert record.client_id == "c1"
        assert record.redirect_uri == "http://x/cb"
        assert record.scope == "mcp:tools"
        assert record.subject == "demo_user"
        assert record.expires_at == clock.now + 600

    def test_codes_are_unique(self, code_store):
        codes = {
            code_store.issue("c1", "http://x/cb", subject="demo_user") for _ in range(50)
        }
        assert len(codes) == 50

    def test_redeem_is_single_use(self, code_store):
        code = code_store.issue("c1", "http://x/cb", subject="demo_user")

        assert code_store.redeem(code) is not None
        assert code_store.redeem(code) is None

    def test_redeem_unknown_code(self, code_store):
        assert code_store.redeem("code_never_issued") is None
        assert code_store.redeem("") is None
        assert code_store.redeem(None) is None

    def test_expired_code_is_absent_and_deleted(self, code_store, clock):
        code = code_store.issue("c1", "http://x/cb", subject="demo_user")
        clock.advance(600)

        assert code_store.redeem(code) is None
        assert len(code_store) == 0

    def test_code_valid_just_before_expiry(self, code_store, clock):
        code = code_store.issue("c1", "http://x/cb", subject="demo_user")
        clock.advance(599)

        assert code_store.redeem(code) is not None

    def test_pkce_fields_are_recorded(self, code_store):
        code = code_store.issue(
            "c1",
            "http://x/cb",
            subject="demo_user",
            code_challenge="abc",
            code_challenge_method="S256",
        )

        record = code_store.redeem(code)

        assert record.code_challenge == "abc"
        assert record.code_challenge_method == "S256"

    def test_concurrent_redeem_has_one_winner(self, code_store):
        code = code_store.issue("c1", "http://x/cb", subject="demo_user")
        workers = 16
        barrier = threading.Barrier(workers)

        def attempt(_):
            barrier.wait()
            return code_store.redeem(code)

        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(attempt, range(workers)))

        assert sum(r is not None for r in results) == 1

    def test_snapshots_reach_hook_in_mutation_order(self, clock):
        hook = StallingHook(stall_on_size=2)
        store = CodeStore(hook=hook, clock=clock)
        first = store.issue("c1", "http://x/cb", subject="demo_user")

        issuer = threading.Thread(
            target=store.issue, args=("c1", "http://x/cb"), kwargs={"subject": "demo_user"}
        )
        issuer.start()
        assert hook.stalled.wait(timeout=5)

        redeemer = threading.Thread(target=store.redeem, args=(first,))
        redeemer.start()
        redeemer.join(timeout=0.2)
        hook.release.set()
        issuer.join(timeout=5)
        redeemer.join(timeout=5)

        _, last = hook.calls[-1]
        assert first not in last
        assert len(last) == 1

    def test_purge_expired(self, code_store, clock):
        code_store.issue("c1", "http://x/cb", subject="demo_user")
        clock.advance(300)
        live = code_store.issue("c1", "http://x/cb", subject="demo_user")
        clock.advance(400)

        assert code_store.purge_expired() == 1
        assert code_store.redeem(live) is not None


class TestTokenStore:
    """TokenStore: issue, validate and lazy expiry."""

    def test_issue_and_validate(self, token_store, clock):
        issued = token_store.issue("c1", "demo_user", "mcp:tools")

        record = token_store.validate(issued.token)

        assert record == issued
        assert record.expires_at == clock.now + 3600

    def test_validate_unknown_token(self, token_store):
        assert token_store.validate("token_unknown") is None
        assert token_store.validate("") is None
        assert token_store.validate(None) is None

    def test_expired_token_is_purged_and_stays_absent(self, token_store, clock):
        issued = token_store.issue("c1", "demo_user")
        clock.advance(3600)

        assert token_store.validate(issued.token) is None
        assert len(token_store) == 0
        clock.now -= 10
        assert token_store.validate(issued.token) is None

    def test_purge_expired(self, token_store, clock):
        token_store.issue("c1", "demo_user")
        clock.advance(3601)

        assert token_store.purge_expired() == 1
        assert len(token_store) == 0

    def test_jwt_tokens_round_trip(self, clock):
        store = TokenStore(
            token_format="jwt",
            secret_key="test-secret",
            issuer="http://test-server.com",
            clock=clock,
        )

        issued = store.issue("c1", "demo_user", "mcp:tools")
        claims = jwt.get_unverified_claims(issued.token)

        assert claims["sub"] == "demo_user"
        assert claims["client_id"] == "c1"
        assert claims["iss"] == "http://test-server.com"
        assert store.validate(issued.token) == issued

    def test_jwt_signed_elsewhere_is_rejected(self, clock):
        store = TokenStore(token_format="jwt", secret_key="test-secret", clock=clock)
        forged = jwt.encode({"sub": "demo_user"}, "other-secret", algorithm="HS256")

        assert store.validate(forged) is None

    def test_jwt_requires_secret(self):
        with pytest.raises(ValueError):
            TokenStore(token_format="jwt", secret_key=None)

    def test_loads_only_valid_records(self, clock):
        hook = RecordingHook(
            initial={
                "tokens": {
                    "token_a": {
                        "token": "token_a",
                        "client_id": "c1",
                        "subject": "demo_user",
                        "expires_at": clock.now + 100,
                    },
                    "token_b": {"token": "token_b"},
                }
            }
        )

        store = TokenStore(hook=hook, clock=clock)

        assert store.validate("token_a") is not None
        assert store.validate("token_b") is None
