import jwt
import pytest

from app.core.exceptions import TokenExpiredError, TokenInvalidError, ValidationError
from app.core.security import (
    create_session_token,
    decode_session_token,
    generate_reset_token,
    hash_password,
    hash_reset_token,
    verify_password,
)


def test_password_hash_is_salted():
    first = hash_password("p1", rounds=4)
    second = hash_password("p1", rounds=4)

    assert first != second
    assert verify_password("p1", first)
    assert verify_password("p1", second)
    assert not verify_password("p2", first)


def test_verify_password_rejects_garbage_hash():
    assert not verify_password("p1", "plaintext")
    assert not verify_password("p1", "")


def test_hash_password_rejects_overlong_password():
    with pytest.raises(ValidationError):
        hash_password("x" * 73, rounds=4)


def test_session_token_round_trip(settings):
    token = create_session_token("65f0c0ffee0000000000abcd", settings)

    assert decode_session_token(token, settings) == "65f0c0ffee0000000000abcd"


def test_session_token_signed_with_other_secret(settings):
    other = settings.model_copy(update={"JWT_SECRET": "someone-else-0123456789abcdef01234567"})
    token = create_session_token("65f0c0ffee0000000000abcd", other)

    with pytest.raises(TokenInvalidError):
        decode_session_token(token, settings)


def test_session_token_expired(settings):
    token = create_session_token("65f0c0ffee0000000000abcd", settings.model_copy(update={"JWT_EXPIRE_DAYS": -1}))

    with pytest.raises(TokenExpiredError):
        decode_session_token(token, settings)


def test_session_token_without_subject(settings):
    token = jwt.encode({"exp": 4102444800}, settings.JWT_SECRET, algorithm="HS256")

    with pytest.raises(TokenInvalidError):
        decode_session_token(token, settings)


def test_reset_token_stores_only_hash():
    token, token_hash = generate_reset_token()

    assert len(token) == 40
    assert token_hash == hash_reset_token(token)
    assert token_hash != token
    assert generate_reset_token()[0] != token
