"""Coordination of irreversible, cross-table lifecycle operations.

Every operation is gated by ``can_manage_groups`` and walks the same state
machine::

    requested -> permission_checked -> executing -> validated -> succeeded
                                                              \\-> failed

There is no partial-success terminal state: the store runs each procedure
inside one transaction, so an operation either fully applies or reports
failure with no net effect.

Two error conventions coexist. ``clear_all_posts``,
``clear_all_groups``, ``validate_integrity`` and ``perform_complete_cleanup``
return result objects so callers can branch without exception handling.
``perform_community_reset`` raises, because it is driven by maintenance
tooling that must halt on failure.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from enum import Enum

from pydantic import ValidationError as SchemaValidationError

from peerhub.core.errors import PermissionDenied, StoreError
from peerhub.repositories.lifecycle_store import LifecycleStore
from peerhub.schemas.lifecycle import (
    CleanupResult,
    CleanupStatus,
    CommunityResetResult,
    CompleteCleanupResult,
    IntegrityReport,
    OrphanedRecords,
    SeedGroupStatus,
)
from peerhub.services.integrity import IntegrityValidator
from peerhub.services.permissions import PermissionEvaluator
from peerhub.services.seed_groups import seed_group_status

__all__ = [
    "DataLifecycleCoordinator",
    "LifecycleOperation",
    "OperationState",
    "PERMISSION_DENIED_FOR_CLEANUP",
]

logger = logging.getLogger(__name__)

PERMISSION_DENIED_FOR_CLEANUP = "Permission denied for cleanup operations"


class OperationState(str, Enum):
    """States of one lifecycle operation."""

    REQUESTED = "requested"
    PERMISSION_CHECKED = "permission_checked"
    EXECUTING = "executing"
    VALIDATED = "validated"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


_TRANSITIONS: dict[OperationState, frozenset[OperationState]] = {
    # requested -> executing is taken by ungated reads and by the trusted reset path.
    OperationState.REQUESTED: frozenset(
        {OperationState.PERMISSION_CHECKED, OperationState.EXECUTING, OperationState.FAILED}
    ),
    OperationState.PERMISSION_CHECKED: frozenset(
        {OperationState.EXECUTING, OperationState.FAILED}
    ),
    OperationState.EXECUTING: frozenset({OperationState.VALIDATED, OperationState.FAILED}),
    OperationState.VALIDATED: frozenset({OperationState.SUCCEEDED, OperationState.FAILED}),
    OperationState.SUCCEEDED: frozenset(),
    OperationState.FAILED: frozenset(),
}


class LifecycleOperation:
    """Tracks the state of a single coordinator call."""

    def __init__(self, name: str) -> None:
        self.name = name
        self.state = OperationState.REQUESTED
        self.history: list[OperationState] = [OperationState.REQUESTED]

    def advance(self, state: OperationState) -> None:
        """Move to ``state``.

        Raises:
            RuntimeError: If the transition is not allowed from the current state.
        """
        if state not in _TRANSITIONS[self.state]:
            raise RuntimeError(
                f"{self.name}: illegal transition {self.state.value} -> {state.value}"
            )
        logger.debug("%s: %s -> %s", self.name, self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def fail(self) -> None:
        self.advance(OperationState.FAILED)

    @property
    def finished(self) -> bool:
        return self.state in (OperationState.SUCCEEDED, OperationState.FAILED)


def _is_valid_count(count: object) -> bool:
    # bool is an int subclass but never a row count.
    return isinstance(count, int) and not isinstance(count, bool) and count >= 0


class DataLifecycleCoordinator:
    """Run destructive operations as permission-checked atomic units.

    Store calls are never retried: a destructive procedure must not be
    applied twice. Instances hold no state apart from ``last_operation``,
    which is replaced at the start of every call.
    """

    def __init__(
        self,
        permissions: PermissionEvaluator,
        integrity: IntegrityValidator,
        store: LifecycleStore,
    ) -> None:
        self._permissions = permissions
        self._integrity = integrity
        self._store = store
        self.last_operation: LifecycleOperation | None = None

    def _begin(self, name: str) -> LifecycleOperation:
        operation = LifecycleOperation(name)
        self.last_operation = operation
        return operation

    @staticmethod
    def _failed_cleanup(message: str) -> CleanupResult:
        return CleanupResult(success=False, deleted_count=0, message=message)

    def _clear(
        self,
        name: str,
        admin_id: str | None,
        noun: str,
        procedure: Callable[[], int],
    ) -> CleanupResult:
        operation = self._begin(name)
        permission = self._permissions.can_manage_groups(admin_id)
        if not permission.allowed:
            operation.fail()
            logger.warning("%s denied for %r: %s", name, admin_id, permission.reason)
            return self._failed_cleanup(f"Permission denied: {permission.reason}")
        operation.advance(OperationState.PERMISSION_CHECKED)

        operation.advance(OperationState.EXECUTING)
        try:
            count = procedure()
        except StoreError as exc:
            operation.fail()
            logger.error("%s failed: %s", name, exc.detail)
            return self._failed_cleanup(str(exc))

        if not _is_valid_count(count):
            operation.fail()
            logger.error("%s returned an invalid row count: %r", name, count)
            return self._failed_cleanup(f"Database error: invalid deleted count {count!r}")
        operation.advance(OperationState.VALIDATED)

        operation.advance(OperationState.SUCCEEDED)
        logger.info("%s by %s deleted %d %s", name, admin_id, count, noun)
        return CleanupResult(
            success=True,
            deleted_count=count,
            message=f"Successfully deleted {count} {noun} and related data",
        )

    def clear_all_posts(self, admin_id: str | None) -> CleanupResult:
        """Delete every post together with its likes and comments."""
        return self._clear("clear_all_posts", admin_id, "posts", self._store.cleanup_all_posts)

    def clear_all_groups(self, admin_id: str | None) -> CleanupResult:
        """Delete every group together with its memberships."""
        return self._clear(
            "clear_all_groups", admin_id, "groups", self._store.cleanup_all_groups
        )

    def validate_integrity(self) -> IntegrityReport:
        """Run the store's integrity check and count orphans independently.

        Store failures produce an invalid report with orphan counts of -1;
        integrity problems are never raised.
        """
        operation = self._begin("validate_integrity")
        operation.advance(OperationState.EXECUTING)
        try:
            store_check_passed = self._store.validate_data_integrity()
            orphaned = self._integrity.scan()
        except StoreError as exc:
            operation.fail()
            logger.error("validate_integrity failed: %s", exc.detail)
            return IntegrityReport(
                is_valid=False,
                issues=[f"Database error during validation: {exc.detail}"],
                orphaned_records=OrphanedRecords(post_likes=-1, group_memberships=-1),
            )
        operation.advance(OperationState.VALIDATED)

        report = IntegrityValidator.build_report(store_check_passed is True, orphaned)
        if report.is_valid:
            operation.advance(OperationState.SUCCEEDED)
        else:
            operation.fail()
            logger.warning("Integrity validation found issues: %s", "; ".join(report.issues))
        return report

    def perform_complete_cleanup(self, admin_id: str | None) -> CompleteCleanupResult:
        """Clear posts, then groups, then validate integrity.

        On an initial permission denial nothing runs and the integrity
        report is synthetic: it says nothing about the actual data.
        """
        operation = self._begin("perform_complete_cleanup")
        permission = self._permissions.can_manage_groups(admin_id)
        if not permission.allowed:
            operation.fail()
            logger.warning(
                "perform_complete_cleanup denied for %r: %s", admin_id, permission.reason
            )
            denied = self._failed_cleanup(f"Permission denied: {permission.reason}")
            return CompleteCleanupResult(
                posts_cleanup=denied,
                groups_cleanup=denied.model_copy(),
                integrity_validation=IntegrityReport(
                    is_valid=False,
                    issues=[PERMISSION_DENIED_FOR_CLEANUP],
                    orphaned_records=OrphanedRecords(),
                ),
                overall_success=False,
            )

        operation.advance(OperationState.PERMISSION_CHECKED)

        operation.advance(OperationState.EXECUTING)
        # Posts, then groups, then validation.
        posts_cleanup = self.clear_all_posts(admin_id)
        groups_cleanup = self.clear_all_groups(admin_id)
        integrity_validation = self.validate_integrity()
        self.last_operation = operation
        operation.advance(OperationState.VALIDATED)

        overall_success = (
            posts_cleanup.success and groups_cleanup.success and integrity_validation.is_valid
        )
        if overall_success:
            operation.advance(OperationState.SUCCEEDED)
        else:
            operation.fail()
        return CompleteCleanupResult(
            posts_cleanup=posts_cleanup,
            groups_cleanup=groups_cleanup,
            integrity_validation=integrity_validation,
            overall_success=overall_success,
        )

    def perform_community_reset(self, admin_id: str | None = None) -> CommunityResetResult:
        """Delete all posts and groups and recreate the seed groups atomically.

        With ``admin_id`` (any value other than ``None``, blank included) the
        caller must be an admin. Without it the call is trusted to come from
        maintenance tooling such as a scheduled job; callers outside that
        context must always pass ``admin_id``.

        Raises:
            PermissionDenied: If ``admin_id`` is given and is not an admin.
            StoreError: If the store procedure fails or returns a malformed result.
        """
        operation = self._begin("perform_community_reset")
        if admin_id is not None:
            permission = self._permissions.can_manage_groups(admin_id)
            if not permission.allowed:
                operation.fail()
                logger.warning(
                    "perform_community_reset denied for %r: %s", admin_id, permission.reason
                )
                raise PermissionDenied(permission.reason or "")
            operation.advance(OperationState.PERMISSION_CHECKED)
        else:
            logger.warning(
                "perform_community_reset called without an admin identity; "
                "skipping permission check for trusted maintenance context"
            )

        operation.advance(OperationState.EXECUTING)
        try:
            payload = self._store.perform_community_reset(admin_id)
            result = CommunityResetResult.model_validate(payload)
        except StoreError as exc:
            operation.fail()
            logger.error("perform_community_reset failed: %s", exc.detail)
            raise
        except SchemaValidationError as exc:
            operation.fail()
            logger.error("perform_community_reset returned a malformed result: %s", exc)
            raise StoreError(
                f"malformed community reset result: {exc}",
                procedure="perform_community_reset",
            ) from exc

        try:
            orphaned = self._integrity.scan()
        except StoreError as exc:
            logger.error("Post-reset integrity scan failed: %s", exc.detail)
            orphaned = OrphanedRecords(post_likes=-1, group_memberships=-1)
        result = result.model_copy(
            update={
                "integrity_check_passed": result.integrity_check_passed and orphaned.total == 0,
            }
        )
        operation.advance(OperationState.VALIDATED)

        operation.advance(OperationState.SUCCEEDED)
        logger.info(
            "Community reset by %s: deleted %d posts, %d groups; created %d groups; "
            "integrity %s",
            result.performed_by,
            result.deleted_posts,
            result.deleted_groups,
            result.created_groups,
            "passed" if result.integrity_check_passed else "FAILED",
        )
        return result

    def get_cleanup_status(self) -> CleanupStatus:
        """Return current row counts; every count is -1 if the store fails."""
        try:
            counts = self._store.count_rows()
        except StoreError as exc:
            logger.error("get_cleanup_status failed: %s", exc.detail)
            return CleanupStatus(
                posts_count=-1,
                groups_count=-1,
                post_likes_count=-1,
                group_memberships_count=-1,
            )
        return CleanupStatus(**counts)

    def check_seed_groups(self) -> SeedGroupStatus:
        """Report which seed groups exist.

        Raises:
            StoreError: If group names cannot be read.
        """
        return seed_group_status(self._store.existing_group_names())

    def create_missing_seed_groups(self, admin_id: str) -> list[str]:
        """Create only the seed groups that are missing; return their names.

        Raises:
            PermissionDenied: If the caller is not an admin.
            StoreError: If the store procedure fails.
        """
        operation = self._begin("create_missing_seed_groups")
        permission = self._permissions.can_manage_groups(admin_id)
        if not permission.allowed:
            operation.fail()
            raise PermissionDenied(permission.reason or "")
        operation.advance(OperationState.PERMISSION_CHECKED)

        operation.advance(OperationState.EXECUTING)
        try:
            created = self._store.create_missing_seed_groups(admin_id)
        except StoreError:
            operation.fail()
            raise
        operation.advance(OperationState.VALIDATED)
        operation.advance(OperationState.SUCCEEDED)
        logger.info("Created %d missing seed groups", len(created))
        return created
