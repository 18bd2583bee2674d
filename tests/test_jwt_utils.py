import logging
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import jwt
import pytest

import server
from exceptions import TokenExpired, TokenInvalid
from jwt_utils import TokenService


SECRET = "jwt-secret-for-tests-0123456789abcdef012345"


@pytest.fixture()
def tokens() -> TokenService:
    return TokenService(SECRET, timedelta(minutes=5))


def test_verify_returns_issued_subject(tokens):
    assert tokens.verify(tokens.issue("maria")) == "maria"


def test_token_signed_with_other_secret_is_invalid(tokens):
    foreign = TokenService("another-secret-0123456789abcdef0123456789", timedelta(minutes=5))
    with pytest.raises(TokenInvalid):
        tokens.verify(foreign.issue("maria"))


def test_expired_token_is_rejected(tokens):
    token = tokens.issue("maria", now=datetime.now(timezone.utc) - timedelta(hours=1))
    with pytest.raises(TokenExpired):
        tokens.verify(token)


def test_garbage_token_is_invalid(tokens):
    with pytest.raises(TokenInvalid):
        tokens.verify("esto.no.es-un-token")
    with pytest.raises(TokenInvalid):
        tokens.verify("")


def test_token_without_subject_is_invalid(tokens):
    now = datetime.now(timezone.utc)
    token = jwt.encode({"iat": now, "exp": now + timedelta(minutes=1)}, SECRET, algorithm="HS256")
    with pytest.raises(TokenInvalid):
        tokens.verify(token)


def test_is_valid_checks_subject_and_never_raises(tokens):
    token = tokens.issue("maria")
    assert tokens.is_valid(token, SimpleNamespace(username="maria"))
    assert not tokens.is_valid(token, SimpleNamespace(username="pedro"))
    expired = tokens.issue("maria", now=datetime.now(timezone.utc) - timedelta(hours=1))
    assert not tokens.is_valid(expired, SimpleNamespace(username="maria"))
    assert not tokens.is_valid("basura", SimpleNamespace(username="maria"))


def test_default_token_lifetime_is_24_minutes():
    assert server.JWT_EXPIRATION_MS == 1000 * 60 * 24
    assert server.token_service.lifetime == timedelta(minutes=24)
    assert not server._warn_short_token_lifetime(server.token_service.lifetime)


def test_short_token_lifetime_is_flagged(caplog):
    with caplog.at_level(logging.WARNING, logger="gestor_banco"):
        assert server._warn_short_token_lifetime(timedelta(seconds=24))
    assert "24.0 s" in caplog.text


def test_token_service_requires_secret():
    with pytest.raises(ValueError):
        TokenService("", timedelta(minutes=1))
