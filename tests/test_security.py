import jwt
import pytest

from todo_rpc.repositories import InMemoryUserRepository
from todo_rpc.result import Err, Ok
from todo_rpc.security import AUTH_FAILURE_MESSAGE, CredentialVerifier, TokenGate, TokenSigner

SECRET = "unit-test-signing-key-0123456789ab"


class FakeClock:
    def __init__(self, now=1_700_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def signer(clock):
    return TokenSigner(SECRET, expires_seconds=60, clock=clock)


@pytest.fixture
def verifier(signer, fast_hasher):
    v = CredentialVerifier(InMemoryUserRepository(), signer, hasher=fast_hasher)
    v.seed_user("alice", "s3cret")
    return v


class TestTokens:
    def test_round_trip(self, signer, clock):
        issued = signer.issue({"id": 7, "username": "alice"})
        assert issued.expires_at - issued.issued_at == 60
        assert signer.verify(issued.token) == {"id": 7, "username": "alice"}

    def test_expired(self, signer, clock):
        issued = signer.issue({"id": 7, "username": "alice"})
        clock.now += 61
        assert signer.verify(issued.token) is None

    def test_other_key_rejected(self, signer, clock):
        issued = signer.issue({"id": 7, "username": "alice"})
        assert TokenSigner("a-different-signing-key-for-tests!", clock=clock).verify(issued.token) is None

    def test_tampered_payload_rejected(self, signer):
        head, body, sig = signer.issue({"id": 7, "username": "alice"}).token.split(".")
        tampered = signer.issue({"id": 1, "username": "admin"}).token.split(".")[1]
        assert signer.verify(f"{head}.{tampered}.{sig}") is None

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b", "a.b.c.d", "....", "é.é.é"])
    def test_malformed(self, signer, garbage):
        assert signer.verify(garbage) is None

    def test_is_standard_hs256_jwt(self, signer, clock):
        issued = signer.issue({"id": 7, "username": "alice"})
        assert jwt.get_unverified_header(issued.token)["alg"] == "HS256"
        claims = jwt.decode(issued.token, SECRET, algorithms=["HS256"], options={"verify_exp": False})
        assert claims == {"id": 7, "username": "alice", "iat": int(clock.now), "exp": int(clock.now) + 60}

    def test_unsigned_token_rejected(self, signer, clock):
        claims = {"id": 7, "username": "alice", "iat": int(clock.now), "exp": int(clock.now) + 60}
        assert signer.verify(jwt.encode(claims, None, algorithm="none")) is None

    def test_missing_expiry_rejected(self, signer, clock):
        token = jwt.encode({"id": 7, "username": "alice", "iat": int(clock.now)}, SECRET, algorithm="HS256")
        assert signer.verify(token) is None

    def test_wrong_claim_types_rejected(self, signer, clock):
        claims = {"id": "7", "username": "alice", "iat": int(clock.now), "exp": int(clock.now) + 60}
        assert signer.verify(jwt.encode(claims, SECRET, algorithm="HS256")) is None

    def test_empty_secret_refused(self):
        with pytest.raises(ValueError):
            TokenSigner("")


class TestTokenGate:
    def test_accepts_valid(self, signer):
        gate = TokenGate(signer)
        token = signer.issue({"id": 1, "username": "a"}).token
        assert gate.authenticate(token) == {"id": 1, "username": "a"}

    @pytest.mark.parametrize("credentials", [None, "", "   ", "nope"])
    def test_rejects(self, signer, credentials):
        assert TokenGate(signer).authenticate(credentials) is None


class TestCredentialVerifier:
    def test_success_issues_token(self, verifier, signer):
        outcome = verifier.authenticate("alice", "s3cret")
        assert isinstance(outcome, Ok)
        assert outcome.value.identity["username"] == "alice"
        assert signer.verify(outcome.value.token) == outcome.value.identity

    def test_failures_are_indistinguishable(self, verifier):
        wrong = verifier.authenticate("alice", "wrong")
        unknown = verifier.authenticate("bob", "s3cret")
        assert isinstance(wrong, Err) and isinstance(unknown, Err)
        assert wrong.error == unknown.error
        assert wrong.error.message == AUTH_FAILURE_MESSAGE

    def test_password_not_stored_in_plaintext(self, verifier):
        stored = verifier._users.get_by_username("alice")["password_hash"]
        assert "s3cret" not in stored
        assert stored.startswith("$argon2id$")

    def test_corrupt_hash_fails_closed(self, signer, fast_hasher):
        users = InMemoryUserRepository()
        users.create_if_absent("eve", "not-a-hash")
        v = CredentialVerifier(users, signer, hasher=fast_hasher)
        assert isinstance(v.authenticate("eve", "anything"), Err)

    def test_seed_is_idempotent(self, verifier):
        assert verifier.seed_user("alice", "changed") is False
        assert isinstance(verifier.authenticate("alice", "s3cret"), Ok)
