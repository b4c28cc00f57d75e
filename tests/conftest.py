# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-peerhub")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from peerhub.core.security import create_access_token
from peerhub.db.session import Base
from peerhub.db.session import get_db as app_get_session
from peerhub.main import app as fastapi_app
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

TEST_DB_URL = "sqlite://"

# Fixed "now" for tests that depend on role expiry.
NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)

_ACCOUNT_COUNTER = count(1)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    # Store procedures commit and roll back themselves, so tests run against
    # real transactions and wipe the tables afterwards.
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def make_account(db_session: Session) -> Callable[..., Account]:
    """Return a factory that persists an account with optional role grants."""

    def _make(
        *roles: Role,
        account_id: str | None = None,
        is_active: bool = True,
        expires_at: datetime | None = None,
        assignment_active: bool = True,
    ) -> Account:
        number = next(_ACCOUNT_COUNTER)
        account = Account(
            id=account_id or f"account-{number}",
            email=f"user{number}@example.com",
            display_name=f"User {number}",
            is_active=is_active,
        )
        db_session.add(account)
        for role in roles:
            db_session.add(
                RoleAssignment(
                    account_id=account.id,
                    role=role,
                    granted_at=datetime(2025, 1, 1, tzinfo=UTC),
                    expires_at=expires_at,
                    is_active=assignment_active,
                )
            )
        db_session.commit()
        return account

    return _make


@pytest.fixture()
def admin(make_account: Callable[..., Account]) -> Account:
    return make_account(Role.ADMIN)


@pytest.fixture()
def member(make_account: Callable[..., Account]) -> Account:
    return make_account(Role.MEMBER)


@pytest.fixture()
def make_post(db_session: Session) -> Callable[..., Post]:
    """Return a factory that persists a post with likes and comments."""

    def _make(author: Account, *, likes: int = 0, comments: int = 0) -> Post:
        post = Post(author_id=author.id, content="Hello from the hub")
        db_session.add(post)
        db_session.flush()
        for index in range(likes):
            db_session.add(PostLike(post_id=post.id, account_id=f"liker-{index}"))
        for index in range(comments):
            db_session.add(
                PostComment(post_id=post.id, author_id=author.id, content=f"comment {index}")
            )
        post.likes_count = likes
        post.comments_count = comments
        db_session.commit()
        return post

    return _make


@pytest.fixture()
def make_group(db_session: Session) -> Callable[..., Group]:
    """Return a factory that persists a group with memberships."""

    def _make(creator: Account, *, name: str = "Study Circle", members: int = 0) -> Group:
        group = Group(name=name, description="A test group", created_by=creator.id)
        db_session.add(group)
        db_session.flush()
        for index in range(members):
            db_session.add(GroupMembership(group_id=group.id, account_id=f"member-{index}"))
        group.member_count = members
        db_session.commit()
        return group

    return _make


@pytest.fixture()
def add_orphans(db_session: Session) -> Callable[..., None]:
    """Insert likes and memberships whose parents do not exist.

    SQLite does not enforce foreign keys by default, which lets tests create
    the dangling rows that integrity checks must detect.
    """

    def _add(*, likes: int = 0, memberships: int = 0) -> None:
        for index in range(likes):
            db_session.add(PostLike(post_id=f"missing-post-{index}", account_id="ghost"))
        for index in range(memberships):
            db_session.add(
                GroupMembership(group_id=f"missing-group-{index}", account_id="ghost")
            )
        db_session.commit()

    return _add


def auth_headers(account: Account | str) -> dict[str, str]:
    """Return authorization headers for ``account``."""
    subject = account if isinstance(account, str) else account.id
    return {"Authorization": f"Bearer {create_access_token(subject)}"}
