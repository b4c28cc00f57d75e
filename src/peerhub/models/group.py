# src/peerhub/models/group.py
"""SQLAlchemy models for community groups and their memberships."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from peerhub.db.session import Base
from peerhub.db.time import utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class Group(Base):
    """Named community group linking out to an external chat space."""

    __tablename__ = "community_group"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    external_link: Mapped[str | None] = mapped_column(Text, nullable=True)
    member_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_by: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("account.id", ondelete="CASCADE"),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class GroupMembership(Base):
    """Membership of an account in a group; orphaned if the group row vanishes."""

    __tablename__ = "group_membership"
    __table_args__ = (
        UniqueConstraint("group_id", "account_id", name="uq_group_membership_account"),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    group_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("community_group.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    # member | moderator | admin, scoped to the group.
    role: Mapped[str] = mapped_column(String(50), nullable=False, default="member")
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
