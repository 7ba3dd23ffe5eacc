from datetime import datetime, timedelta, timezone

import jwt
import pytest

from looped.core.auth import verify_jwt
from looped.core.config import settings
from looped.core.errors import AuthorizationError

SECRET = "looped-test-jwt-secret-0123456789abcdef"


def make_token(sub="user-jwt", secret=SECRET, expires_in=timedelta(minutes=5), aud="authenticated"):
    claims = {"exp": datetime.now(timezone.utc) + expires_in, "aud": aud}
    if sub is not None:
        claims["sub"] = sub
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def jwt_enabled(monkeypatch):
    monkeypatch.setattr(settings, "AUTH_JWT_SECRET", SECRET)
    monkeypatch.setattr(settings, "AUTH_JWT_AUDIENCE", "authenticated")


def test_verify_disabled_without_secret():
    assert verify_jwt(make_token()) is None


def test_verify_returns_subject(jwt_enabled):
    assert verify_jwt(make_token()) == "user-jwt"


@pytest.mark.parametrize(
    "token",
    [
        make_token(expires_in=timedelta(minutes=-1)),
        make_token(secret="another-signing-secret-0123456789abcdef"),
        make_token(aud="someone-else"),
        make_token(sub=None),
        "not-a-jwt",
    ],
)
def test_bad_tokens_are_unauthenticated(jwt_enabled, token):
    with pytest.raises(AuthorizationError) as exc:
        verify_jwt(token)
    assert exc.value.status_code == 401


def test_bearer_token_identifies_user(client, jwt_enabled):
    res = client.get("/v1/streaks/current", headers={"Authorization": f"Bearer {make_token()}"})
    assert res.status_code == 200
    assert res.json()["data"]["user_id"] == "user-jwt"


def test_header_fallback_refused_when_jwt_enabled(client, jwt_enabled, user_headers):
    res = client.get("/v1/streaks/current", headers=user_headers)
    assert res.status_code == 401


def test_expired_bearer_is_401(client, jwt_enabled):
    token = make_token(expires_in=timedelta(minutes=-1))
    res = client.get("/v1/streaks/current", headers={"Authorization": f"Bearer {token}"})
    assert res.status_code == 401
    assert res.json()["error"]["message"] == "Token expired"


def test_healthz(client):
    res = client.get("/healthz")
    assert res.status_code == 200
    assert res.json() == {"status": "ok"}


def test_readyz_reports_tables(client):
    res = client.get("/readyz")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"
