import jwt
import pytest
from fastapi import HTTPException
from fastapi.security import HTTPAuthorizationCredentials

from climate_seal.core.security import (
    create_access_token,
    decode_token,
    get_current_user,
    hash_password,
    verify_password,
)


def test_password_hash_round_trip():
    encoded = hash_password("s3cret", iterations=1000)
    assert encoded.startswith("pbkdf2_sha256$1000$")
    assert verify_password("s3cret", encoded)
    assert not verify_password("wrong", encoded)
    assert not verify_password("s3cret", "md5$abc")
    assert not verify_password("s3cret", "pbkdf2_sha256$1000$zz$00")


def test_token_carries_user_claims():
    token = create_access_token("Analyst@Example.com", {"uid": "42", "name": "Analyst"})
    assert decode_token(token)["uid"] == "42"

    user = get_current_user(HTTPAuthorizationCredentials(scheme="Bearer", credentials=token))
    assert user == {"id": "42", "email": "analyst@example.com", "name": "Analyst"}


def test_missing_or_bad_tokens_are_rejected():
    with pytest.raises(HTTPException) as exc:
        get_current_user(None)
    assert exc.value.status_code == 401

    forged = jwt.encode({"sub": "a@b.c", "uid": "1"}, "other-key", algorithm="HS256")
    with pytest.raises(HTTPException):
        get_current_user(HTTPAuthorizationCredentials(scheme="Bearer", credentials=forged))

    no_uid = create_access_token("a@b.c")
    with pytest.raises(HTTPException):
        get_current_user(HTTPAuthorizationCredentials(scheme="Bearer", credentials=no_uid))
