# tests/test_dependencies.py
"""Tests for API dependencies module."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from bhromonbondhu.api.dependencies import _decode_user_id, get_current_user
from bhromonbondhu.core.security import create_access_token, decode_access_token
from bhromonbondhu.core.settings import settings


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestDecodeUserId:
    """Test the _decode_user_id helper function."""

    def test_decode_numeric_subject(self):
        assert _decode_user_id("42") == 42

    def test_decode_invalid_subject(self):
        with pytest.raises(HTTPException) as exc_info:
            _decode_user_id("not-a-number")

        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED
        assert "Could not validate credentials" in exc_info.value.detail


class TestGetCurrentUser:
    """Test the get_current_user dependency function."""

    def test_get_current_user_success(self, db_session, traveler):
        token = create_access_token(traveler.id)

        result = get_current_user(_credentials(token), db_session)

        assert result.id == traveler.id

    def test_missing_credentials(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(None, db_session)

        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED
        assert exc_info.value.detail == "No authentication token provided"

    def test_invalid_jwt(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_credentials("invalid_token"), db_session)

        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED
        assert exc_info.value.detail == "Invalid token"

    def test_expired_jwt(self, db_session, traveler):
        past = datetime.now(UTC) - timedelta(days=1)
        token = jwt.encode(
            {"sub": str(traveler.id), "exp": past},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_credentials(token), db_session)

        assert exc_info.value.detail == "Token expired"

    def test_missing_subject(self, db_session):
        token = jwt.encode(
            {"exp": datetime.now(UTC) + timedelta(hours=1)},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_credentials(token), db_session)

        assert exc_info.value.detail == "Could not validate credentials"

    def test_wrong_secret(self, db_session, traveler):
        token = jwt.encode(
            {"sub": str(traveler.id), "exp": datetime.now(UTC) + timedelta(hours=1)},
            "some-other-secret",
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_credentials(token), db_session)

        assert exc_info.value.detail == "Invalid token"

    def test_unknown_user(self, db_session):
        token = create_access_token(987654)

        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_credentials(token), db_session)

        assert exc_info.value.detail == "User not found"

    def test_deactivated_user(self, db_session, make_user):
        user = make_user("dormant", "Dormant Host", "host", is_active=False)
        token = create_access_token(user.id)

        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_credentials(token), db_session)

        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED
        assert exc_info.value.detail == "Account is deactivated"


def test_access_token_round_trip_claims():
    token = create_access_token(7, extra_claims={"role": "host"})
    payload = decode_access_token(token)
    assert payload["sub"] == "7"
    assert payload["role"] == "host"
    assert payload["exp"] > payload["iat"]
