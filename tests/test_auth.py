from __future__ import annotations

import pytest

from storefront import auth
from storefront.auth import Identity, SessionRegistry, authenticate, require_role
from storefront.errors import Unauthenticated, Unauthorized
from storefront.models import Document, User
from storefront.security import hash_password, sign, unsign, verify_password


@pytest.fixture(scope="module")
def document():
    return Document(users=[
        User(id=1, name="Admin", email="admin@test.local", password=hash_password("adminpass"), role="admin"),
        User(id=2, name="Sara", email="Sara@Example.com", password=hash_password("hunter22"), role="user"),
    ])


class FakeClock:
    def __init__(self):
        self.now = 1_000.0

    def __call__(self):
        return self.now


def test_hash_is_salted_and_verifies():
    a = hash_password("same")
    b = hash_password("same")
    assert a != b
    assert verify_password("same", a)
    assert not verify_password("other", a)
    assert not verify_password("same", "plaintext")
    assert not verify_password("same", None)


def test_authenticate_is_case_insensitive_on_email(document):
    user = authenticate("  sara@example.COM ", "hunter22", document)
    assert user.id == 2


def test_wrong_password_does_not_leak_user(document):
    with pytest.raises(Unauthenticated) as exc:
        authenticate("sara@example.com", "wrong", document)
    assert exc.value.status_code == 401
    assert "sara" not in exc.value.message.lower()
    assert exc.value.message == "Invalid credentials"


def test_unknown_email_looks_the_same(document):
    with pytest.raises(Unauthenticated) as exc:
        authenticate("nobody@example.com", "hunter22", document)
    assert exc.value.message == "Invalid credentials"


def test_require_role():
    admin = Identity(1, "a@x", "A", "admin", 0)
    user = Identity(2, "u@x", "U", "user", 0)
    assert require_role(admin, "admin") is admin
    assert require_role(admin, "user") is admin
    assert require_role(user, "user") is user
    with pytest.raises(Unauthorized):
        require_role(user, "admin")
    with pytest.raises(Unauthenticated):
        require_role(None, "user")


def test_sign_roundtrip_and_tamper():
    token = sign("abc", "secret")
    assert unsign(token, "secret") == "abc"
    assert unsign(token, "other-secret") is None
    assert unsign(token[:-1] + ("0" if token[-1] != "0" else "1"), "secret") is None
    assert unsign("no-dot", "secret") is None
    assert unsign(None, "secret") is None


def test_session_lifecycle(document):
    clock = FakeClock()
    sessions = SessionRegistry("secret", ttl_seconds=120, clock=clock)
    token = sessions.issue(document.users[1])

    identity = sessions.resolve(token)
    assert identity.user_id == 2 and identity.role == "user"

    assert sessions.revoke(token) is True
    assert sessions.resolve(token) is None
    assert sessions.revoke(token) is False


def test_session_expires(document):
    clock = FakeClock()
    sessions = SessionRegistry("secret", ttl_seconds=120, clock=clock)
    token = sessions.issue(document.users[0])
    clock.now += 119
    assert sessions.resolve(token) is not None
    clock.now += 2
    assert sessions.resolve(token) is None
    assert len(sessions) == 0


def test_forged_token_is_anonymous(document):
    sessions = SessionRegistry("secret")
    token = sessions.issue(document.users[0])
    sid = token.rpartition(".")[0]
    assert sessions.resolve(sign(sid, "guessed")) is None
    assert sessions.resolve("garbage") is None


def test_issue_drops_expired_sessions(document):
    clock = FakeClock()
    sessions = SessionRegistry("secret", ttl_seconds=120, clock=clock)
    for _ in range(1000):
        sessions.issue(document.users[1])
    assert len(sessions) == 1000

    clock.now += 10_000
    token = sessions.issue(document.users[0])
    assert len(sessions) == 1
    assert sessions.resolve(token).user_id == 1


def test_dummy_hash_is_built_once(document):
    auth._dummy_hash.cache_clear()
    for _ in range(2):
        with pytest.raises(Unauthenticated):
            authenticate("ghost@example.com", "whatever", document)
    info = auth._dummy_hash.cache_info()
    assert info.misses == 1 and info.hits == 1
