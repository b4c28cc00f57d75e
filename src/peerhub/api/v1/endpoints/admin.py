# src/peerhub/api/v1/endpoints/admin.py
"""Administrative cleanup and reset endpoints.

Cleanup endpoints always answer 200 with a result object whose ``success``
flag carries the outcome. The reset endpoint follows the raising contract of
``perform_community_reset`` and maps failures to HTTP errors.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from peerhub.api.v1.dependencies import AccountIdDep, CoordinatorDep
from peerhub.core.errors import PermissionDenied, StoreError
from peerhub.schemas.lifecycle import (
    CleanupResult,
    CleanupStatus,
    CommunityResetResult,
    CompleteCleanupResult,
    IntegrityReport,
    SeedGroupStatus,
)

router = APIRouter(prefix="/admin", tags=["admin"])


def _require_identity(account_id: str | None) -> str:
    # An HTTP caller is never the trusted maintenance context.
    if account_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    return account_id


@router.get("/cleanup/status", response_model=CleanupStatus)
async def get_cleanup_status(
    account_id: AccountIdDep,
    coordinator: CoordinatorDep,
) -> CleanupStatus:
    """Return current row counts for posts, groups, likes and memberships."""
    _require_identity(account_id)
    return coordinator.get_cleanup_status()


@router.post("/cleanup/posts", response_model=CleanupResult)
async def clear_all_posts(
    account_id: AccountIdDep,
    coordinator: CoordinatorDep,
) -> CleanupResult:
    """Delete every post and its likes and comments."""
    return coordinator.clear_all_posts(account_id)


@router.post("/cleanup/groups", response_model=CleanupResult)
async def clear_all_groups(
    account_id: AccountIdDep,
    coordinator: CoordinatorDep,
) -> CleanupResult:
    """Delete every group and its memberships."""
    return coordinator.clear_all_groups(account_id)


@router.post("/cleanup/complete", response_model=CompleteCleanupResult)
async def perform_complete_cleanup(
    account_id: AccountIdDep,
    coordinator: CoordinatorDep,
) -> CompleteCleanupResult:
    """Clear posts, then groups, then validate integrity."""
    return coordinator.perform_complete_cleanup(account_id)


@router.get("/integrity", response_model=IntegrityReport)
async def validate_integrity(
    account_id: AccountIdDep,
    coordinator: CoordinatorDep,
) -> IntegrityReport:
    """Scan for orphaned likes and memberships."""
    _require_identity(account_id)
    return coordinator.validate_integrity()


@router.get("/seed-groups", response_model=SeedGroupStatus)
async def check_seed_groups(
    account_id: AccountIdDep,
    coordinator: CoordinatorDep,
) -> SeedGroupStatus:
    """Report which seed groups exist."""
    _require_identity(account_id)
    try:
        return coordinator.check_seed_groups()
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc


@router.post(
    "/seed-groups",
    response_model=list[str],
    status_code=status.HTTP_201_CREATED,
)
async def create_missing_seed_groups(
    account_id: AccountIdDep,
    coordinator: CoordinatorDep,
) -> list[str]:
    """Create only the seed groups that are missing."""
    try:
        return coordinator.create_missing_seed_groups(_require_identity(account_id))
    except PermissionDenied as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.reason) from exc
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc


@router.post("/reset", response_model=CommunityResetResult)
async def perform_community_reset(
    account_id: AccountIdDep,
    coordinator: CoordinatorDep,
) -> CommunityResetResult:
    """Empty posts and groups and reseed the canonical groups atomically."""
    try:
        return coordinator.perform_community_reset(_require_identity(account_id))
    except PermissionDenied as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=exc.reason) from exc
    except StoreError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(exc),
        ) from exc
