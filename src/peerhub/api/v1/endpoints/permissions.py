# src/peerhub/api/v1/endpoints/permissions.py
"""Permission check endpoints used by the client to render calls-to-action."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query

from peerhub.api.v1.dependencies import AccountIdDep, PermissionsDep
from peerhub.schemas.permission import AccountProfile, PermissionResult
from peerhub.services.permissions import PermissionAction

router = APIRouter(prefix="/permissions", tags=["permissions"])

DEFAULT_ACTIONS = [
    PermissionAction.CREATE_POST.value,
    PermissionAction.MANAGE_GROUPS.value,
    PermissionAction.VIEW_MEMBERS.value,
]


@router.get("", response_model=dict[str, PermissionResult])
async def check_permissions(
    account_id: AccountIdDep,
    permissions: PermissionsDep,
    actions: Annotated[list[str] | None, Query()] = None,
) -> dict[str, PermissionResult]:
    """Evaluate several actions for the caller; unknown names are denied."""
    return permissions.check_multiple(account_id, actions or DEFAULT_ACTIONS)


@router.get("/posts/{post_id}/delete", response_model=PermissionResult)
async def check_delete_post(
    post_id: str,
    account_id: AccountIdDep,
    permissions: PermissionsDep,
) -> PermissionResult:
    """Check whether the caller may delete a specific post."""
    return permissions.can_delete_post(account_id, post_id)


@router.get("/me", response_model=AccountProfile | None)
async def get_my_profile(
    account_id: AccountIdDep,
    permissions: PermissionsDep,
) -> AccountProfile | None:
    """Return the caller's profile with current roles, or null when anonymous."""
    return permissions.get_account_profile(account_id)
