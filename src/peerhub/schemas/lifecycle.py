"""Schemas describing the outcome of destructive lifecycle operations."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from peerhub.db.time import utcnow


class CleanupResult(BaseModel):
    """Outcome of one destructive operation.

    ``success`` is never true for a partial outcome; a failed operation
    always reports ``deleted_count == 0``.
    """

    success: bool
    deleted_count: int = 0
    message: str
    timestamp: datetime = Field(default_factory=utcnow)


class OrphanedRecords(BaseModel):
    """Counts of dependent rows whose parent row no longer exists.

    ``-1`` means the count could not be taken.
    """

    post_likes: int = 0
    group_memberships: int = 0

    @property
    def total(self) -> int:
        return self.post_likes + self.group_memberships


class IntegrityReport(BaseModel):
    """Result of a referential-integrity scan."""

    is_valid: bool
    issues: list[str] = Field(default_factory=list)
    orphaned_records: OrphanedRecords = Field(default_factory=OrphanedRecords)
    timestamp: datetime = Field(default_factory=utcnow)


class CompleteCleanupResult(BaseModel):
    """Outcome of clearing posts, then groups, then validating integrity."""

    posts_cleanup: CleanupResult
    groups_cleanup: CleanupResult
    integrity_validation: IntegrityReport
    overall_success: bool


class CommunityResetResult(BaseModel):
    """Outcome of the composite delete-and-reseed operation."""

    deleted_posts: int = Field(ge=0)
    deleted_groups: int = Field(ge=0)
    created_groups: int = Field(ge=0)
    integrity_check_passed: bool
    performed_by: str | None = None
    timestamp: datetime = Field(default_factory=utcnow)


class CleanupStatus(BaseModel):
    """Current row counts for the tables touched by cleanup; -1 on store error."""

    posts_count: int
    groups_count: int
    post_likes_count: int
    group_memberships_count: int
    last_updated: datetime = Field(default_factory=utcnow)


class SeedGroupStatus(BaseModel):
    """Which of the canonical seed groups currently exist."""

    existing_groups: list[str]
    missing_groups: list[str]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_exist(self) -> bool:
        return not self.missing_groups
