"""Bearer token issue / verify."""

import datetime as dt

import jwt
import pytest

from ridepool.config import settings
from ridepool.domain.enums import UserRole
from ridepool.domain.errors import Unauthenticated
from ridepool.infrastructure.identity import issue_token, verify


def test_round_trip():
    token = issue_token("user-1", UserRole.DRIVER, "d@example.com")
    caller = verify(token)
    assert caller.id == "user-1"
    assert caller.role == UserRole.DRIVER
    assert caller.email == "d@example.com"
    assert caller.has_role(UserRole.DRIVER, UserRole.ADMIN)
    assert not caller.is_admin


def test_missing_credential():
    with pytest.raises(Unauthenticated, match="Access denied"):
        verify(None)


def test_expired_token():
    token = issue_token("user-1", UserRole.PASSENGER, expires_in=dt.timedelta(seconds=-5))
    with pytest.raises(Unauthenticated, match="Token expired"):
        verify(token)


def test_wrong_signature():
    token = jwt.encode(
        {"id": "user-1", "role": "admin", "exp": dt.datetime.now(dt.timezone.utc) + dt.timedelta(minutes=5)},
        "not-" + settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(Unauthenticated, match="Invalid token"):
        verify(token)


def test_token_without_expiry_is_rejected():
    token = jwt.encode({"id": "user-1"}, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    with pytest.raises(Unauthenticated, match="Invalid token"):
        verify(token)


def test_unknown_role_is_rejected():
    token = jwt.encode(
        {"id": "user-1", "role": "pilot", "exp": dt.datetime.now(dt.timezone.utc) + dt.timedelta(minutes=5)},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(Unauthenticated):
        verify(token)
