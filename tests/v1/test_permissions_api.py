# tests/v1/test_permissions_api.py
"""Tests for the permission check endpoints."""

from fastapi import status
from fastapi.testclient import TestClient

from peerhub.models import Role
from peerhub.services.permissions import Reasons
from tests.conftest import auth_headers


def test_anonymous_gets_default_actions(client: TestClient) -> None:
    response = client.get("/api/v1/permissions")

    assert response.status_code == status.HTTP_200_OK
    body = response.json()
    assert set(body) == {"createPost", "manageGroups", "viewMembers"}
    assert body["createPost"] == {"allowed": False, "reason": Reasons.SIGN_IN_TO_POST}


def test_member_checks_selected_actions(client: TestClient, member) -> None:
    response = client.get(
        "/api/v1/permissions",
        params=[("actions", "createPost"), ("actions", "manageGroups"), ("actions", "bogus")],
        headers=auth_headers(member),
    )

    body = response.json()
    assert body["createPost"]["allowed"] is True
    assert body["manageGroups"] == {"allowed": False, "reason": Reasons.ADMIN_ONLY_GROUPS}
    assert body["bogus"] == {"allowed": False, "reason": Reasons.UNKNOWN_PERMISSION}


def test_delete_check_respects_ownership(client: TestClient, make_account, make_post) -> None:
    author = make_account(Role.MEMBER)
    other = make_account(Role.MEMBER)
    post = make_post(author)

    own = client.get(f"/api/v1/permissions/posts/{post.id}/delete", headers=auth_headers(author))
    foreign = client.get(
        f"/api/v1/permissions/posts/{post.id}/delete", headers=auth_headers(other)
    )

    assert own.json()["allowed"] is True
    assert foreign.json() == {"allowed": False, "reason": Reasons.DELETE_OWN_ONLY}


def test_profile_for_signed_in_account(client: TestClient, admin) -> None:
    response = client.get("/api/v1/permissions/me", headers=auth_headers(admin))

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["roles"] == ["admin"]


def test_profile_for_anonymous_is_null(client: TestClient) -> None:
    response = client.get("/api/v1/permissions/me")

    assert response.status_code == status.HTTP_200_OK
    assert response.json() is None


def test_invalid_token_is_rejected(client: TestClient) -> None:
    response = client.get(
        "/api/v1/permissions", headers={"Authorization": "Bearer not-a-jwt"}
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
