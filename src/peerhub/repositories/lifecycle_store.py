"""Store procedures behind the data lifecycle engine.

Each public method mirrors one stored procedure of the community database
and runs inside a single transaction: a normal return means the procedure
was fully applied, an exception means nothing was.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy import String, delete, func, select, type_coerce
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from peerhub.core.errors import StoreError
from peerhub.db.time import utcnow
from peerhub.models import (
    Account,
    Group,
    GroupMembership,
    Post,
    PostComment,
    PostLike,
    Role,
    RoleAssignment,
)
from peerhub.services.seed_groups import SEED_GROUPS, build_seed_groups, seed_group_status

__all__ = ["LifecycleStore", "SqlLifecycleStore", "NO_ADMIN_MESSAGE"]

logger = logging.getLogger(__name__)

NO_ADMIN_MESSAGE = (
    "No admin user found to create groups. Please provide admin_user_id parameter."
)

# Key of the PostgreSQL advisory lock held by every destructive procedure.
LIFECYCLE_LOCK_KEY = 0x5045_4552_4855_42


class LifecycleStore(Protocol):
    """Narrow procedural interface consumed by the lifecycle coordinator.

    Implementations must serialize concurrent destructive calls themselves;
    ``SqlLifecycleStore`` does so with a PostgreSQL advisory lock.
    """

    def cleanup_all_posts(self) -> int: ...

    def cleanup_all_groups(self) -> int: ...

    def validate_data_integrity(self) -> bool: ...

    def perform_community_reset(self, admin_user_id: str | None = None) -> dict[str, Any]: ...

    def count_rows(self) -> dict[str, int]: ...

    def existing_group_names(self) -> list[str]: ...

    def create_missing_seed_groups(self, admin_user_id: str) -> list[str]: ...


class SqlLifecycleStore:
    """SQLAlchemy implementation of the lifecycle procedures."""

    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow) -> None:
        """Initialize the store with a SQLAlchemy session."""
        self.session = session
        self._clock = clock

    def _fail(self, procedure: str, exc: SQLAlchemyError) -> StoreError:
        self.session.rollback()
        logger.error("Store procedure %s failed: %s", procedure, exc)
        return StoreError(str(exc), procedure=procedure)

    def _acquire_lifecycle_lock(self) -> None:
        # Held until commit or rollback. SQLite serializes writers on its own.
        if self.session.get_bind().dialect.name == "postgresql":
            self.session.execute(select(func.pg_advisory_xact_lock(LIFECYCLE_LOCK_KEY)))

    @contextmanager
    def _transaction(self, procedure: str) -> Iterator[Session]:
        """Lock, then commit on success; roll back and translate database errors otherwise."""
        try:
            self._acquire_lifecycle_lock()
            yield self.session
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail(procedure, exc) from exc
        except Exception:
            self.session.rollback()
            raise

    # -- building blocks, always called inside _transaction -----------------

    def _delete_posts(self) -> int:
        # Dependents first so no like or comment outlives its post.
        self.session.execute(delete(PostLike).execution_options(synchronize_session=False))
        self.session.execute(delete(PostComment).execution_options(synchronize_session=False))
        result = self.session.execute(delete(Post).execution_options(synchronize_session=False))
        return int(result.rowcount or 0)

    def _delete_groups(self) -> int:
        self.session.execute(
            delete(GroupMembership).execution_options(synchronize_session=False)
        )
        result = self.session.execute(delete(Group).execution_options(synchronize_session=False))
        return int(result.rowcount or 0)

    def _orphan_counts(self) -> tuple[int, int]:
        orphaned_likes = self.session.scalar(
            select(func.count(PostLike.id))
            .outerjoin(Post, PostLike.post_id == Post.id)
            .where(Post.id.is_(None))
        ) or 0
        orphaned_memberships = self.session.scalar(
            select(func.count(GroupMembership.id))
            .outerjoin(Group, GroupMembership.group_id == Group.id)
            .where(Group.id.is_(None))
        ) or 0
        return int(orphaned_likes), int(orphaned_memberships)

    def _find_admin_account_id(self) -> str | None:
        now = self._clock()
        assignments = self.session.scalars(
            select(RoleAssignment)
            .join(Account, Account.id == RoleAssignment.account_id)
            .where(
                type_coerce(RoleAssignment.role, String).in_(Role.ADMIN.stored_labels),
                RoleAssignment.is_active.is_(True),
                Account.is_active.is_(True),
            )
            .order_by(RoleAssignment.granted_at)
        ).all()
        for assignment in assignments:
            if assignment.is_current(now):
                return assignment.account_id
        return None

    # -- procedures ----------------------------------------------------------

    def cleanup_all_posts(self) -> int:
        """Delete every post with its likes and comments; return the post count."""
        with self._transaction("cleanup_all_posts"):
            deleted = self._delete_posts()
        return deleted

    def cleanup_all_groups(self) -> int:
        """Delete every group with its memberships; return the group count."""
        with self._transaction("cleanup_all_groups"):
            deleted = self._delete_groups()
        return deleted

    def validate_data_integrity(self) -> bool:
        """Return True when no like or membership references a missing parent."""
        try:
            orphaned_likes, orphaned_memberships = self._orphan_counts()
        except SQLAlchemyError as exc:
            raise self._fail("validate_data_integrity", exc) from exc
        return orphaned_likes == 0 and orphaned_memberships == 0

    def perform_community_reset(self, admin_user_id: str | None = None) -> dict[str, Any]:
        """Empty posts and groups, then recreate the seed groups, in one transaction.

        Without ``admin_user_id`` the first currently valid admin becomes the
        creator of the seed groups.

        Raises:
            StoreError: If no admin can be found or any statement fails.
        """
        with self._transaction("perform_community_reset") as session:
            performed_by = admin_user_id or self._find_admin_account_id()
            if performed_by is None:
                raise StoreError(NO_ADMIN_MESSAGE, procedure="perform_community_reset")

            deleted_posts = self._delete_posts()
            deleted_groups = self._delete_groups()
            seeded = build_seed_groups(performed_by, SEED_GROUPS)
            session.add_all(seeded)
            session.flush()
            orphaned_likes, orphaned_memberships = self._orphan_counts()

        return {
            "deleted_posts": deleted_posts,
            "deleted_groups": deleted_groups,
            "created_groups": len(seeded),
            "integrity_check_passed": orphaned_likes == 0 and orphaned_memberships == 0,
            "performed_by": performed_by,
            "timestamp": self._clock(),
        }

    def count_rows(self) -> dict[str, int]:
        """Return current row counts of the tables touched by cleanup."""
        try:
            return {
                "posts_count": self.session.scalar(select(func.count(Post.id))) or 0,
                "groups_count": self.session.scalar(select(func.count(Group.id))) or 0,
                "post_likes_count": self.session.scalar(select(func.count(PostLike.id))) or 0,
                "group_memberships_count": self.session.scalar(
                    select(func.count(GroupMembership.id))
                ) or 0,
            }
        except SQLAlchemyError as exc:
            raise self._fail("count_rows", exc) from exc

    def existing_group_names(self) -> list[str]:
        """Return the names of all active groups."""
        try:
            return list(
                self.session.scalars(select(Group.name).where(Group.is_active.is_(True)))
            )
        except SQLAlchemyError as exc:
            raise self._fail("existing_group_names", exc) from exc

    def create_missing_seed_groups(self, admin_user_id: str) -> list[str]:
        """Create the seed groups that do not exist yet; return their names."""
        with self._transaction("create_missing_seed_groups") as session:
            status = seed_group_status(
                session.scalars(select(Group.name).where(Group.is_active.is_(True)))
            )
            missing = [seed for seed in SEED_GROUPS if seed.name in status.missing_groups]
            session.add_all(build_seed_groups(admin_user_id, missing))
        return [seed.name for seed in missing]
