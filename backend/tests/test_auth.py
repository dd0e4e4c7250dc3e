from datetime import timedelta
from types import SimpleNamespace

import pytest
from jose import jwt
from passlib.utils import handlers

from cinelog import auth

from conftest import auth_headers


def test_password_round_trip():
    stored = auth.get_password_hash("correct horse")

    assert auth.verify_password("correct horse", stored)
    assert not auth.verify_password("correct hors", stored)
    assert not auth.verify_password("correct horsf", stored)


def test_password_hash_is_salted_and_slow():
    first = auth.get_password_hash("same password")
    second = auth.get_password_hash("same password")

    assert first != second
    assert f"${auth.PASSWORD_HASH_ROUNDS}$" in first


@pytest.mark.parametrize("stored", [None, "", "no-separator", "abc:def"])
def test_malformed_stored_hash_never_verifies(stored):
    assert auth.verify_password("anything", stored) is False


def test_digest_comparison_is_constant_time(monkeypatch):
    stored = auth.get_password_hash("s3cret")
    calls = []
    original = handlers.consteq

    def spy(left, right):
        calls.append((left, right))
        return original(left, right)

    monkeypatch.setattr(handlers, "consteq", spy)

    assert not auth.verify_password("s3creT", stored)
    assert calls


def test_token_round_trip(alice):
    payload = auth.decode_access_token(auth.create_access_token(alice))

    assert payload["sub"] == str(alice.id)
    assert payload["role"] == "user"
    assert payload["username"] == "alice"
    assert "exp" in payload


def test_expired_token_has_no_payload(alice):
    token = auth.create_access_token(alice, expires_delta=timedelta(seconds=-5))

    assert auth.decode_access_token(token) is None


def test_tampered_and_foreign_tokens_have_no_payload(alice):
    token = auth.create_access_token(alice)
    header, body, signature = token.split(".")
    tampered = f"{header}.{body}.{signature[:-2]}{'AA' if signature[-2:] != 'AA' else 'BB'}"
    foreign = jwt.encode({"sub": str(alice.id)}, "other-secret", algorithm="HS256")

    assert auth.decode_access_token(tampered) is None
    assert auth.decode_access_token(foreign) is None
    assert auth.decode_access_token("not-a-token") is None


def test_expired_and_forged_tokens_are_rejected_alike(client, alice):
    expired = auth.create_access_token(alice, expires_delta=timedelta(seconds=-5))
    forged = jwt.encode({"sub": str(alice.id), "role": "admin"}, "other-secret", algorithm="HS256")

    expired_res = client.get("/api/users/me", headers={"Authorization": f"Bearer {expired}"})
    forged_res = client.get("/api/users/me", headers={"Authorization": f"Bearer {forged}"})

    assert expired_res.status_code == forged_res.status_code == 401
    assert expired_res.json() == forged_res.json() == {
        "error": "Invalid or expired token",
        "code": "unauthorized",
    }


def test_missing_bearer_is_unauthorized(client):
    res = client.get("/api/users/me")

    assert res.status_code == 401
    assert res.json()["code"] == "unauthorized"


def test_valid_bearer_authenticates(client, alice):
    res = client.get("/api/users/me", headers=auth_headers(alice))

    assert res.status_code == 200
    assert res.json()["username"] == "alice"


@pytest.mark.parametrize(
    "role,actor_id,target_id,expected",
    [
        ("user", 1, 1, True),
        ("user", 1, 2, False),
        ("admin", 1, 2, True),
        ("admin", 1, 1, True),
    ],
)
def test_can_act(role, actor_id, target_id, expected):
    actor = SimpleNamespace(id=actor_id, role=role)

    assert auth.can_act(actor, target_id) is expected
