"""Permission decisions for community actions.

Every ``can_*`` method returns a ``PermissionResult``; an unauthorized caller
never causes an exception. Role resolution failures fail closed: the caller
is treated as a guest and denied.
"""
from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from peerhub.core.errors import ResolutionError, UnknownPermissionError
from peerhub.models import Post, Role
from peerhub.schemas.permission import AccountProfile, PermissionResult
from peerhub.services.roles import AccountStatus, RoleResolution, RoleResolver

__all__ = ["PermissionAction", "PermissionEvaluator", "Reasons"]

logger = logging.getLogger(__name__)


class PermissionAction(str, Enum):
    """Action names accepted by ``evaluate`` and ``check_multiple``."""

    CREATE_POST = "createPost"
    DELETE_POST = "deletePost"
    MANAGE_GROUPS = "manageGroups"
    VIEW_MEMBERS = "viewMembers"


class Reasons:
    """User-facing denial messages."""

    SIGN_IN_TO_POST = (
        "Only registered members can create posts. Please sign up or sign in to continue."
    )
    ACCOUNT_INACTIVE = "Your account is inactive. Please contact an administrator."
    SIGN_IN_AS_ADMIN = "Please sign in as an administrator to manage groups."
    ADMIN_ONLY_GROUPS = "Only administrators can manage groups."
    SIGN_IN_TO_VIEW_MEMBERS = "Please sign in to view the member list."
    SIGN_IN_TO_DELETE = "Please sign in to delete posts."
    DELETE_OWN_ONLY = "You can only delete your own posts."
    POST_NOT_FOUND = "Post not found."
    VERIFY_FAILED = "Unable to verify permissions. Please try again."
    UNKNOWN_PERMISSION = "unknown permission"


class PermissionEvaluator:
    """Map (role, action, ownership) to an allow/deny verdict."""

    def __init__(self, resolver: RoleResolver, session: Session) -> None:
        self._resolver = resolver
        self._session = session

    def _resolve(self, account_id: str | None) -> RoleResolution | None:
        try:
            return self._resolver.resolve(account_id)
        except ResolutionError as exc:
            logger.error("Role resolution failed, denying: %s", exc)
            return None

    @staticmethod
    def _signed_out_reason(resolution: RoleResolution, sign_in_reason: str) -> str:
        if resolution.status is AccountStatus.INACTIVE:
            return Reasons.ACCOUNT_INACTIVE
        return sign_in_reason

    def can_create_post(self, account_id: str | None) -> PermissionResult:
        """Members and admins may create posts."""
        resolution = self._resolve(account_id)
        if resolution is None:
            return PermissionResult.deny(Reasons.VERIFY_FAILED)
        if resolution.role >= Role.MEMBER:
            return PermissionResult.allow()
        return PermissionResult.deny(
            self._signed_out_reason(resolution, Reasons.SIGN_IN_TO_POST)
        )

    def can_delete_post(self, account_id: str | None, post: Post | str | None) -> PermissionResult:
        """Admins may delete any post; members only posts they authored.

        Authorship is read from the store rather than from ``post``, so an
        in-memory edit of ``post.author_id`` cannot grant access.
        """
        resolution = self._resolve(account_id)
        if resolution is None:
            return PermissionResult.deny(Reasons.VERIFY_FAILED)
        if resolution.role == Role.ADMIN:
            return PermissionResult.allow()
        if resolution.role < Role.MEMBER:
            return PermissionResult.deny(
                self._signed_out_reason(resolution, Reasons.SIGN_IN_TO_DELETE)
            )

        post_id = post.id if isinstance(post, Post) else post
        if not post_id:
            return PermissionResult.deny(Reasons.POST_NOT_FOUND)
        try:
            author_id = self._session.scalar(select(Post.author_id).where(Post.id == post_id))
        except SQLAlchemyError as exc:
            logger.error("Failed to read author of post %s: %s", post_id, exc)
            return PermissionResult.deny(Reasons.VERIFY_FAILED)

        if author_id is None:
            return PermissionResult.deny(Reasons.POST_NOT_FOUND)
        if author_id == resolution.account_id:
            return PermissionResult.allow()
        return PermissionResult.deny(Reasons.DELETE_OWN_ONLY)

    def can_manage_groups(self, account_id: str | None) -> PermissionResult:
        """Only admins may manage groups or run cleanup operations."""
        resolution = self._resolve(account_id)
        if resolution is None:
            return PermissionResult.deny(Reasons.VERIFY_FAILED)
        if resolution.role == Role.ADMIN:
            return PermissionResult.allow()
        if resolution.role == Role.MEMBER:
            return PermissionResult.deny(Reasons.ADMIN_ONLY_GROUPS)
        return PermissionResult.deny(
            self._signed_out_reason(resolution, Reasons.SIGN_IN_AS_ADMIN)
        )

    def can_view_members(self, account_id: str | None) -> PermissionResult:
        """Member lists are never readable anonymously."""
        resolution = self._resolve(account_id)
        if resolution is None:
            return PermissionResult.deny(Reasons.VERIFY_FAILED)
        if resolution.role >= Role.MEMBER:
            return PermissionResult.allow()
        return PermissionResult.deny(
            self._signed_out_reason(resolution, Reasons.SIGN_IN_TO_VIEW_MEMBERS)
        )

    def evaluate(
        self,
        account_id: str | None,
        action: PermissionAction | str,
        post: Post | str | None = None,
    ) -> PermissionResult:
        """Evaluate a single action by name.

        Raises:
            UnknownPermissionError: If ``action`` is not a known action name.
        """
        try:
            action = PermissionAction(action)
        except ValueError as exc:
            raise UnknownPermissionError(str(action)) from exc

        if action is PermissionAction.CREATE_POST:
            return self.can_create_post(account_id)
        if action is PermissionAction.DELETE_POST:
            return self.can_delete_post(account_id, post)
        if action is PermissionAction.MANAGE_GROUPS:
            return self.can_manage_groups(account_id)
        return self.can_view_members(account_id)

    def check_multiple(
        self,
        account_id: str | None,
        actions: Iterable[str],
        post: Post | str | None = None,
    ) -> dict[str, PermissionResult]:
        """Evaluate each action independently.

        Unknown names are denied with "unknown permission" instead of aborting
        the batch.
        """
        results: dict[str, PermissionResult] = {}
        for action in actions:
            try:
                results[action] = self.evaluate(account_id, action, post=post)
            except UnknownPermissionError:
                results[action] = PermissionResult.deny(Reasons.UNKNOWN_PERMISSION)
        return results

    def is_authenticated(self, account_id: str | None) -> bool:
        """Return True if the account resolves to any role above guest."""
        resolution = self._resolve(account_id)
        return resolution is not None and resolution.role > Role.GUEST

    def get_account_profile(self, account_id: str | None) -> AccountProfile | None:
        """Return the account with its current role names, or None if unavailable."""
        try:
            account = self._resolver.load_account(account_id)
            if account is None:
                return None
            assignments = self._resolver.current_assignments(account.id)
        except ResolutionError as exc:
            logger.error("Failed to load profile for %s: %s", account_id, exc)
            return None
        return AccountProfile(
            id=account.id,
            email=account.email,
            display_name=account.display_name,
            is_active=account.is_active,
            roles=sorted({assignment.role.label for assignment in assignments}),
        )
