from datetime import timedelta

import pytest
from jose import jwt

from underwriter.core.security import create_access_token, decode_token
from underwriter.core.settings import settings


def test_access_token_round_trip():
    token = create_access_token("user-123")
    payload = decode_token(token, expected_type="access")
    assert payload["sub"] == "user-123"
    assert payload["type"] == "access"
    assert payload["exp"] > payload["iat"]


def test_expired_token_is_rejected():
    token = create_access_token("user-123", expires_delta=timedelta(seconds=-1))
    with pytest.raises(ValueError):
        decode_token(token)


def test_wrong_type_and_wrong_key_are_rejected():
    refresh_like = jwt.encode(
        {"sub": "user-123", "type": "refresh"},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(ValueError, match="Unexpected token type"):
        decode_token(refresh_like, expected_type="access")

    forged = jwt.encode({"sub": "user-123", "type": "access"}, "other-key", algorithm="HS256")
    with pytest.raises(ValueError, match="Invalid token"):
        decode_token(forged)
