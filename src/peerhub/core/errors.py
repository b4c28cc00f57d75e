"""Error taxonomy for the community data lifecycle engine.

Denials and store failures are normally reported through result objects;
these exceptions exist for the places where an operation must halt instead
(community reset, seed group creation) and for the adapters that translate
low-level database errors.
"""

from __future__ import annotations


class PeerhubError(RuntimeError):
    """Base exception for the community core."""


class PermissionDenied(PeerhubError):
    """Raised when a caller is not allowed to perform an action.

    The ``reason`` is user-facing and role-aware.
    """

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Permission denied: {reason}")


class ValidationError(PeerhubError):
    """Raised for malformed input such as an empty group name or role."""


class StoreError(PeerhubError):
    """Raised when a store procedure fails or times out.

    ``detail`` keeps the underlying message untouched so operators can
    diagnose the root cause from the surfaced text.
    """

    prefix = "Database error"

    def __init__(self, detail: str, *, procedure: str | None = None) -> None:
        self.detail = detail
        self.procedure = procedure
        super().__init__(f"{self.prefix}: {detail}")


class ResolutionError(StoreError):
    """Raised when an account's role assignments cannot be read."""

    prefix = "Role resolution failed"


class IntegrityViolation(PeerhubError):
    """Orphaned rows found after a mutation.

    Never raised by the lifecycle coordinator, which reports integrity
    problems through ``IntegrityReport`` instead.
    """

    def __init__(self, post_likes: int, group_memberships: int) -> None:
        self.post_likes = post_likes
        self.group_memberships = group_memberships
        super().__init__(
            f"{post_likes} orphaned post likes, "
            f"{group_memberships} orphaned group memberships"
        )


class UnknownPermissionError(PeerhubError, ValueError):
    """Raised when an action name does not match any known permission."""

    def __init__(self, action: str) -> None:
        self.action = action
        super().__init__(f"unknown permission: {action!r}")
