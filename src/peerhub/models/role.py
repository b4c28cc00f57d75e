# src/peerhub/models/role.py
"""Authorization roles and their persisted assignments."""

from __future__ import annotations

import uuid
from datetime import datetime
from enum import IntEnum

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

from peerhub.core.errors import ValidationError
from peerhub.db.session import Base
from peerhub.db.time import as_utc, utcnow

# Role names found in older profile rows; they load as their current role.
LEGACY_ROLE_ALIASES = {
    "super_admin": "admin",
    "moderator": "member",
    "user": "member",
}


class Role(IntEnum):
    """Closed, totally ordered set of authorization roles."""

    GUEST = 0
    MEMBER = 1
    ADMIN = 2

    @property
    def label(self) -> str:
        """Return the lowercase name stored in the database."""
        return self.name.lower()

    @classmethod
    def parse(cls, name: str | None) -> Role:
        """Parse a role name, accepting legacy aliases.

        Raises:
            ValidationError: If the name is empty or not a known role.
        """
        key = (name or "").strip().lower()
        key = LEGACY_ROLE_ALIASES.get(key, key)
        if not key:
            raise ValidationError("Role name must not be empty")
        try:
            return cls[key.upper()]
        except KeyError as exc:
            raise ValidationError(f"Unknown role name: {name!r}") from exc

    @property
    def stored_labels(self) -> list[str]:
        """Return every label that loads as this role, legacy aliases included."""
        aliases = sorted(
            alias for alias, target in LEGACY_ROLE_ALIASES.items() if target == self.label
        )
        return [self.label, *aliases]


class RoleType(TypeDecorator):
    """Store a ``Role`` as its label and load labels through ``Role.parse``.

    An unrecognized stored label raises ``ValidationError`` when the row is
    loaded.
    """

    impl = String(16)
    cache_ok = True

    def process_bind_param(self, value: Role | str | None, dialect) -> str | None:
        if value is None:
            return None
        if isinstance(value, Role):
            return value.label
        return Role.parse(value).label

    def process_result_value(self, value: str | None, dialect) -> Role | None:
        if value is None:
            return None
        return Role.parse(value)


class RoleAssignment(Base):
    """Grant of a role to an account.

    Assignments are never edited in place; they are superseded by new rows
    or switched off through ``is_active``.
    """

    __tablename__ = "role_assignment"
    __table_args__ = (
        Index("ix_role_assignment_account_id", "account_id"),
    )

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    account_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("account.id", ondelete="CASCADE"),
        nullable=False,
    )
    role: Mapped[Role] = mapped_column(
        RoleType(),
        nullable=False,
    )
    granted_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    granted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    # NULL means the grant never expires.
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def is_current(self, now: datetime) -> bool:
        """Return True when the assignment is active and not yet expired at ``now``."""
        if not self.is_active:
            return False
        if self.expires_at is None:
            return True
        return as_utc(self.expires_at) > as_utc(now)
