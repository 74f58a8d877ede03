"""Tests for router exception helpers and token handling."""

from datetime import timedelta

import pytest
from fastapi import HTTPException

from shop_ledger.security import create_access_token, decode_access_token
from shop_ledger.utils import (
    raise_bad_request,
    raise_conflict,
    raise_forbidden,
    raise_internal_error,
    raise_not_found,
    raise_unauthorized,
)


@pytest.mark.parametrize(
    ("helper", "args", "status_code", "detail"),
    [
        (raise_not_found, ("Shop",), 404, "Shop not found"),
        (raise_bad_request, ("Invalid shop ID",), 400, "Invalid shop ID"),
        (raise_forbidden, ("Not allowed",), 403, "Not allowed"),
        (raise_conflict, ("Already set",), 409, "Already set"),
        (raise_internal_error, ("Upload failed",), 500, "Upload failed"),
    ],
)
def test_helpers(helper, args, status_code, detail):
    cause = ValueError("root cause")
    with pytest.raises(HTTPException) as exc_info:
        helper(*args, cause=cause)
    assert exc_info.value.status_code == status_code
    assert exc_info.value.detail == detail
    assert exc_info.value.__cause__ is cause


def test_unauthorized_sets_challenge_header():
    with pytest.raises(HTTPException) as exc_info:
        raise_unauthorized("Could not validate credentials")
    assert exc_info.value.status_code == 401
    assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}


def test_token_round_trip():
    token = create_access_token({"sub": "user-1"})
    assert decode_access_token(token)["sub"] == "user-1"


def test_expired_and_garbage_tokens():
    expired = create_access_token({"sub": "user-1"}, expires_delta=timedelta(seconds=-5))
    assert decode_access_token(expired) is None
    assert decode_access_token("not.a.token") is None
