# tests/v1/test_dependencies.py
"""Tests for API dependencies and token helpers."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi import HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from office_chat.api.v1.dependencies import get_current_user, get_stream_user
from office_chat.core.security import create_access_token, decode_access_token
from office_chat.core.settings import settings


def _credentials(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestAccessTokens:
    """Test creating and decoding access tokens."""

    def test_round_trip(self):
        token = create_access_token("user-1", {"role": "PARTNER"})
        assert decode_access_token(token) == "user-1"

    def test_wrong_secret(self):
        token = jwt.encode({"sub": "user-1"}, "other-secret", algorithm=settings.jwt_algorithm)
        assert decode_access_token(token) is None

    def test_expired_token(self):
        expired = datetime.now(UTC) - timedelta(minutes=1)
        token = jwt.encode(
            {"sub": "user-1", "exp": expired},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )
        assert decode_access_token(token) is None

    def test_missing_subject(self):
        token = jwt.encode({"role": "ADMIN"}, settings.secret_key, algorithm=settings.jwt_algorithm)
        assert decode_access_token(token) is None


class TestGetCurrentUser:
    """Test the get_current_user dependency function."""

    def test_success(self, db_session, test_user):
        user = get_current_user(_credentials(create_access_token(test_user.id)), db_session)
        assert user.id == test_user.id

    def test_missing_credentials(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(None, db_session)
        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED

    def test_unknown_user(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_credentials(create_access_token("nobody")), db_session)
        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED
        assert exc_info.value.detail == "Unauthorized"

    def test_inactive_user(self, db_session, inactive_user):
        with pytest.raises(HTTPException) as exc_info:
            get_current_user(_credentials(create_access_token(inactive_user.id)), db_session)
        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED


class TestGetStreamUser:
    """Event streams may authenticate through the query string."""

    def test_query_token(self, db_session, test_user):
        user = get_stream_user(db_session, None, create_access_token(test_user.id))
        assert user.id == test_user.id

    def test_header_takes_precedence(self, db_session, test_user, other_user):
        user = get_stream_user(
            db_session,
            _credentials(create_access_token(other_user.id)),
            create_access_token(test_user.id),
        )
        assert user.id == other_user.id

    def test_no_token(self, db_session):
        with pytest.raises(HTTPException) as exc_info:
            get_stream_user(db_session, None, None)
        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED
