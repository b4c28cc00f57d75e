"""Resolution of an account's effective authorization role."""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from peerhub.core.errors import ResolutionError, ValidationError
from peerhub.db.time import utcnow
from peerhub.models import Account, Role, RoleAssignment

__all__ = [
    "AccountStatus",
    "RoleResolution",
    "RoleResolver",
    "normalize_account_id",
]

logger = logging.getLogger(__name__)


class AccountStatus(str, Enum):
    """What the store knows about the account behind an identifier."""

    ANONYMOUS = "anonymous"  # no identifier supplied
    UNKNOWN = "unknown"  # identifier supplied, no account row
    INACTIVE = "inactive"
    ACTIVE = "active"


@dataclass(frozen=True)
class RoleResolution:
    """Effective role of an account together with its account status."""

    account_id: str | None
    role: Role
    status: AccountStatus

    @property
    def is_anonymous(self) -> bool:
        return self.status in (AccountStatus.ANONYMOUS, AccountStatus.UNKNOWN)


def normalize_account_id(account_id: str | None) -> str | None:
    """Return ``None`` for missing or blank identifiers, the identifier otherwise."""
    if account_id is None or not str(account_id).strip():
        return None
    return str(account_id)


class RoleResolver:
    """Look up effective roles from persisted role assignments.

    Every call reads the store again; nothing is cached between decisions.
    """

    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow) -> None:
        self._session = session
        self._clock = clock

    def resolve_role(self, account_id: str | None) -> Role:
        """Return the effective role of ``account_id``.

        Raises:
            ResolutionError: If the store cannot be read.
        """
        return self.resolve(account_id).role

    def resolve(self, account_id: str | None) -> RoleResolution:
        """Return the effective role and account status of ``account_id``.

        Blank identifiers resolve to ``guest`` without querying the store.

        Raises:
            ResolutionError: If the store cannot be read.
        """
        normalized = normalize_account_id(account_id)
        if normalized is None:
            return RoleResolution(None, Role.GUEST, AccountStatus.ANONYMOUS)

        account = self._load_account(normalized)
        if account is None:
            return RoleResolution(normalized, Role.GUEST, AccountStatus.UNKNOWN)
        if not account.is_active:
            return RoleResolution(normalized, Role.GUEST, AccountStatus.INACTIVE)

        current = [assignment.role for assignment in self.current_assignments(normalized)]
        return RoleResolution(
            normalized,
            max(current, default=Role.GUEST),
            AccountStatus.ACTIVE,
        )

    def current_assignments(self, account_id: str) -> list[RoleAssignment]:
        """Return the active, unexpired assignments of ``account_id``.

        Raises:
            ResolutionError: If the store cannot be read.
        """
        now = self._clock()
        try:
            assignments = self._session.scalars(
                select(RoleAssignment)
                .where(RoleAssignment.account_id == account_id)
                .order_by(RoleAssignment.granted_at)
                .execution_options(populate_existing=True)
            ).all()
        except (SQLAlchemyError, LookupError, ValidationError) as exc:
            # Unreadable rows, including unknown stored role labels, fail closed.
            self._session.rollback()
            logger.error("Failed to read role assignments for %s: %s", account_id, exc)
            raise ResolutionError(str(exc)) from exc
        return [assignment for assignment in assignments if assignment.is_current(now)]

    def load_account(self, account_id: str | None) -> Account | None:
        """Return the account row for ``account_id`` or ``None``.

        Raises:
            ResolutionError: If the store cannot be read.
        """
        normalized = normalize_account_id(account_id)
        if normalized is None:
            return None
        return self._load_account(normalized)

    def _load_account(self, account_id: str) -> Account | None:
        try:
            return self._session.get(Account, account_id, populate_existing=True)
        except SQLAlchemyError as exc:
            self._session.rollback()
            logger.error("Failed to read account %s: %s", account_id, exc)
            raise ResolutionError(str(exc)) from exc
