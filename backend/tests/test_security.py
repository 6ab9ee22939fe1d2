# tests/test_security.py
from __future__ import annotations

import uuid

import pytest
from jose import jwt

from backoffice.core.config import settings
from backoffice.core.errors import AuthenticationError
from backoffice.core.security import (
    create_access_token,
    create_impersonation_token,
    decode_access_token,
)


def test_access_token_round_trip():
    user = uuid.uuid4()
    principal = decode_access_token(create_access_token(user, email="mali@ofis.com.tr"))

    assert principal.user_id == user
    assert principal.email == "mali@ofis.com.tr"
    assert principal.impersonator_id is None


def test_impersonation_token_carries_both_ids():
    operator, target = uuid.uuid4(), uuid.uuid4()
    principal = decode_access_token(
        create_impersonation_token(target_user_id=target, impersonator_id=operator)
    )
    assert principal.user_id == target
    assert principal.impersonator_id == operator


@pytest.mark.parametrize("wrap", ['"{}"', "Bearer {}", "  {}\n", "'Bearer {}'"])
def test_pasted_tokens_are_normalized(wrap):
    user = uuid.uuid4()
    token = wrap.format(create_access_token(user))
    assert decode_access_token(token).user_id == user


def test_expired_token_is_rejected():
    token = create_access_token(uuid.uuid4(), expires_minutes=-5)
    with pytest.raises(AuthenticationError):
        decode_access_token(token)


def test_wrong_secret_is_rejected():
    token = jwt.encode({"sub": str(uuid.uuid4()), "exp": 9999999999}, "other-secret", algorithm="HS256")
    with pytest.raises(AuthenticationError):
        decode_access_token(token)


@pytest.mark.parametrize(
    "claims",
    [
        {"sub": "not-a-uuid", "exp": 9999999999},
        {"exp": 9999999999},
        {"sub": str(uuid.uuid4())},
        {"sub": str(uuid.uuid4()), "imp": "operator", "exp": 9999999999},
    ],
)
def test_bad_claims_are_rejected(claims):
    token = jwt.encode(claims, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)
    with pytest.raises(AuthenticationError):
        decode_access_token(token)


@pytest.mark.parametrize("token", [None, "", "   ", "Bearer "])
def test_empty_tokens_are_rejected(token):
    with pytest.raises(AuthenticationError):
        decode_access_token(token)
