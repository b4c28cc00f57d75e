"""Pydantic schemas for permission verdicts and lifecycle results."""

from .lifecycle import (
    CleanupResult,
    CleanupStatus,
    CommunityResetResult,
    CompleteCleanupResult,
    IntegrityReport,
    OrphanedRecords,
    SeedGroupStatus,
)
from .permission import AccountProfile, PermissionResult

__all__ = [
    "AccountProfile",
    "CleanupResult",
    "CleanupStatus",
    "CommunityResetResult",
    "CompleteCleanupResult",
    "IntegrityReport",
    "OrphanedRecords",
    "PermissionResult",
    "SeedGroupStatus",
]
