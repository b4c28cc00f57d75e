# tests/v1/test_dependencies.py
"""Tests for API dependencies module."""

import time

import pytest
from fastapi import HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials
from jose import jwt

from peerhub.api.v1.dependencies import (
    get_coordinator,
    get_current_account_id,
    get_permission_evaluator,
)
from peerhub.core.security import create_access_token
from peerhub.core.settings import settings
from peerhub.services.lifecycle import DataLifecycleCoordinator
from peerhub.services.permissions import PermissionEvaluator


def _bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


class TestGetCurrentAccountId:
    """Test the get_current_account_id dependency function."""

    def test_missing_credentials_mean_anonymous(self):
        assert get_current_account_id(None) is None

    def test_valid_token_returns_subject(self):
        token = create_access_token("account-42")

        assert get_current_account_id(_bearer(token)) == "account-42"

    def test_invalid_token(self):
        with pytest.raises(HTTPException) as exc_info:
            get_current_account_id(_bearer("invalid_token"))

        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED
        assert "Could not validate credentials" in exc_info.value.detail

    def test_missing_subject(self):
        token = jwt.encode(
            {"exp": int(time.time()) + 3600},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(HTTPException) as exc_info:
            get_current_account_id(_bearer(token))

        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED

    def test_wrong_algorithm(self):
        token = jwt.encode(
            {"sub": "account-42", "exp": int(time.time()) + 3600},
            settings.secret_key,
            algorithm="HS512",
        )

        with pytest.raises(HTTPException):
            get_current_account_id(_bearer(token))

    def test_expired_token(self):
        token = jwt.encode(
            {"sub": "account-42", "exp": 1234567890},
            settings.secret_key,
            algorithm=settings.jwt_algorithm,
        )

        with pytest.raises(HTTPException) as exc_info:
            get_current_account_id(_bearer(token))

        assert exc_info.value.status_code == status.HTTP_401_UNAUTHORIZED


def test_service_dependencies_bind_to_session(db_session):
    assert isinstance(get_permission_evaluator(db_session), PermissionEvaluator)
    assert isinstance(get_coordinator(db_session), DataLifecycleCoordinator)
