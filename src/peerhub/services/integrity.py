"""Read-only detection of orphaned likes and memberships."""
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from peerhub.core.errors import StoreError
from peerhub.models import Group, GroupMembership, Post, PostLike
from peerhub.schemas.lifecycle import IntegrityReport, OrphanedRecords

__all__ = ["IntegrityValidator", "STORE_CHECK_FAILED"]

logger = logging.getLogger(__name__)

STORE_CHECK_FAILED = "Data integrity validation failed"


class IntegrityValidator:
    """Count dependent rows whose parent row is gone.

    Never mutates data and never attempts repairs; fixing orphans is always
    a separate, explicit cleanup operation.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def _count(self, stmt, label: str) -> int:
        try:
            return int(self._session.scalar(stmt) or 0)
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.error("Failed to count orphaned %s: %s", label, exc)
            raise StoreError(str(exc), procedure=f"count_orphaned_{label}") from exc

    def count_orphaned_post_likes(self) -> int:
        """Return the number of likes pointing at a post row that does not exist."""
        stmt = select(func.count(PostLike.id)).where(
            PostLike.post_id.not_in(select(Post.id))
        )
        return self._count(stmt, "post_likes")

    def count_orphaned_group_memberships(self) -> int:
        """Return the number of memberships pointing at a missing group row."""
        stmt = select(func.count(GroupMembership.id)).where(
            GroupMembership.group_id.not_in(select(Group.id))
        )
        return self._count(stmt, "group_memberships")

    def scan(self) -> OrphanedRecords:
        """Count both kinds of orphans.

        Raises:
            StoreError: If either count cannot be taken.
        """
        return OrphanedRecords(
            post_likes=self.count_orphaned_post_likes(),
            group_memberships=self.count_orphaned_group_memberships(),
        )

    @staticmethod
    def build_report(store_check_passed: bool, orphaned: OrphanedRecords) -> IntegrityReport:
        """Combine the store's own check with the orphan counts.

        The report is valid only if the store check passed and both counts
        are zero; each non-zero count is listed with its exact value.
        """
        issues: list[str] = []
        if not store_check_passed:
            issues.append(STORE_CHECK_FAILED)
        if orphaned.post_likes > 0:
            issues.append(f"Found {orphaned.post_likes} orphaned post likes")
        if orphaned.group_memberships > 0:
            issues.append(f"Found {orphaned.group_memberships} orphaned group memberships")
        return IntegrityReport(
            is_valid=store_check_passed and not issues,
            issues=issues,
            orphaned_records=orphaned,
        )
