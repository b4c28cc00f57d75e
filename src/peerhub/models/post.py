# src/peerhub/models/post.py
"""SQLAlchemy models for posts and the rows that depend on them."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy import UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from peerhub.db.session import Base
from peerhub.db.time import utcnow


def _new_id() -> str:
    return str(uuid.uuid4())


class Post(Base):
    """Community post.

    Ordinary deletion only flips ``is_active``; rows are physically removed
    by the bulk cleanup procedures alone.
    """

    __tablename__ = "post"
    __table_args__ = (
        CheckConstraint(
            "length(content) >= 1 AND length(content) <= 5000",
            name="ck_post_content_length",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    author_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("account.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    likes_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comments_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class PostLike(Base):
    """Like left by an account on a post; orphaned if the post row vanishes."""

    __tablename__ = "post_like"
    __table_args__ = (UniqueConstraint("post_id", "account_id", name="uq_post_like_account"),)

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    post_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    account_id: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )


class PostComment(Base):
    """Comment attached to a post."""

    __tablename__ = "post_comment"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    post_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("post.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    author_id: Mapped[str] = mapped_column(String(64), nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
