# tests/test_roles.py
"""Tests for role parsing and effective role resolution."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from peerhub.core.errors import ResolutionError, ValidationError
from peerhub.models import Role, RoleAssignment
from peerhub.services.permissions import PermissionEvaluator, Reasons
from peerhub.services.roles import AccountStatus, RoleResolver, normalize_account_id
from tests.conftest import NOW, fixed_clock


class TestRoleParsing:
    def test_roles_are_totally_ordered(self):
        assert Role.GUEST < Role.MEMBER < Role.ADMIN

    def test_parse_accepts_labels_case_insensitively(self):
        assert Role.parse("admin") is Role.ADMIN
        assert Role.parse(" Member ") is Role.MEMBER

    @pytest.mark.parametrize(
        ("legacy", "expected"),
        [("super_admin", Role.ADMIN), ("moderator", Role.MEMBER), ("user", Role.MEMBER)],
    )
    def test_parse_maps_legacy_names(self, legacy, expected):
        assert Role.parse(legacy) is expected

    @pytest.mark.parametrize("name", ["", "   ", None])
    def test_parse_rejects_empty_names(self, name):
        with pytest.raises(ValidationError):
            Role.parse(name)

    def test_parse_rejects_unknown_names(self):
        with pytest.raises(ValidationError, match="Unknown role name"):
            Role.parse("owner")

    def test_label_is_lowercase_name(self):
        assert Role.ADMIN.label == "admin"


def test_normalize_account_id_treats_blank_as_missing():
    assert normalize_account_id(None) is None
    assert normalize_account_id("") is None
    assert normalize_account_id("  ") is None
    assert normalize_account_id("abc") == "abc"


class TestRoleResolver:
    def test_missing_identifier_is_guest_without_query(self, mocker):
        session = mocker.MagicMock()
        resolver = RoleResolver(session)

        resolution = resolver.resolve("")

        assert resolution.role is Role.GUEST
        assert resolution.status is AccountStatus.ANONYMOUS
        assert resolution.is_anonymous
        session.get.assert_not_called()
        session.scalars.assert_not_called()

    def test_unknown_account_is_guest(self, db_session):
        resolution = RoleResolver(db_session).resolve("no-such-account")

        assert resolution.role is Role.GUEST
        assert resolution.status is AccountStatus.UNKNOWN

    def test_account_without_assignments_is_guest(self, db_session, make_account):
        account = make_account()

        resolution = RoleResolver(db_session).resolve(account.id)

        assert resolution.role is Role.GUEST
        assert resolution.status is AccountStatus.ACTIVE

    def test_highest_current_role_wins(self, db_session, make_account):
        account = make_account(Role.MEMBER, Role.ADMIN)

        assert RoleResolver(db_session).resolve_role(account.id) is Role.ADMIN

    def test_inactive_account_is_guest_regardless_of_roles(self, db_session, make_account):
        account = make_account(Role.ADMIN, is_active=False)

        resolution = RoleResolver(db_session).resolve(account.id)

        assert resolution.role is Role.GUEST
        assert resolution.status is AccountStatus.INACTIVE

    def test_inactive_assignment_is_ignored(self, db_session, make_account):
        account = make_account(Role.ADMIN, assignment_active=False)

        assert RoleResolver(db_session).resolve_role(account.id) is Role.GUEST

    def test_expired_assignment_is_ignored(self, db_session, make_account):
        account = make_account(Role.ADMIN, expires_at=NOW - timedelta(seconds=1))
        resolver = RoleResolver(db_session, clock=fixed_clock)

        assert resolver.resolve_role(account.id) is Role.GUEST

    def test_assignment_expiring_in_future_counts(self, db_session, make_account):
        account = make_account(Role.ADMIN, expires_at=NOW + timedelta(days=1))
        resolver = RoleResolver(db_session, clock=fixed_clock)

        assert resolver.resolve_role(account.id) is Role.ADMIN

    def test_assignment_expiring_exactly_now_is_expired(self, db_session, make_account):
        account = make_account(Role.MEMBER, expires_at=NOW)
        resolver = RoleResolver(db_session, clock=fixed_clock)

        assert resolver.resolve_role(account.id) is Role.GUEST

    def test_role_changes_are_seen_immediately(self, db_session, make_account):
        account = make_account(Role.MEMBER)
        resolver = RoleResolver(db_session)
        assert resolver.resolve_role(account.id) is Role.MEMBER

        db_session.add(
            RoleAssignment(
                account_id=account.id,
                role=Role.ADMIN,
                granted_at=datetime(2025, 6, 1, tzinfo=UTC),
            )
        )
        db_session.commit()

        assert resolver.resolve_role(account.id) is Role.ADMIN

    def test_revoked_role_is_seen_immediately(self, db_session, make_account):
        account = make_account(Role.ADMIN)
        resolver = RoleResolver(db_session)
        assert resolver.resolve_role(account.id) is Role.ADMIN

        for assignment in resolver.current_assignments(account.id):
            assignment.is_active = False
        db_session.commit()

        assert resolver.resolve_role(account.id) is Role.GUEST

    def test_store_failure_raises_resolution_error(self, mocker):
        session = mocker.MagicMock()
        session.get.side_effect = OperationalError("SELECT", {}, Exception("disk I/O error"))

        with pytest.raises(ResolutionError) as exc_info:
            RoleResolver(session).resolve("account-1")

        assert "disk I/O error" in exc_info.value.detail
        assert str(exc_info.value).startswith("Role resolution failed")
        session.rollback.assert_called_once()

    def test_assignment_read_failure_rolls_back(self, mocker):
        session = mocker.MagicMock()
        session.scalars.side_effect = OperationalError("SELECT", {}, Exception("locked"))

        with pytest.raises(ResolutionError):
            RoleResolver(session).current_assignments("account-1")

        session.rollback.assert_called_once()


def _relabel_assignments(session, account_id: str, label: str) -> None:
    session.execute(
        text("UPDATE role_assignment SET role = :label WHERE account_id = :account_id"),
        {"label": label, "account_id": account_id},
    )
    session.commit()
    session.expire_all()


class TestStoredRoleLabels:
    def test_stored_labels_include_legacy_aliases(self):
        assert Role.ADMIN.stored_labels == ["admin", "super_admin"]
        assert Role.MEMBER.stored_labels == ["member", "moderator", "user"]
        assert Role.GUEST.stored_labels == ["guest"]

    def test_legacy_label_loads_as_current_role(self, db_session, make_account):
        account = make_account(Role.MEMBER)
        _relabel_assignments(db_session, account.id, "super_admin")

        assert RoleResolver(db_session).resolve_role(account.id) is Role.ADMIN
        evaluator = PermissionEvaluator(RoleResolver(db_session), db_session)
        assert evaluator.can_manage_groups(account.id).allowed

    def test_legacy_label_is_rewritten_on_bind(self, db_session, make_account):
        account = make_account()
        db_session.add(
            RoleAssignment(
                account_id=account.id,
                role="moderator",
                granted_at=datetime(2025, 1, 1, tzinfo=UTC),
            )
        )
        db_session.commit()

        stored = db_session.scalar(
            text("SELECT role FROM role_assignment WHERE account_id = :account_id"),
            {"account_id": account.id},
        )
        assert stored == "member"

    def test_unknown_label_fails_closed(self, db_session, make_account):
        account = make_account(Role.ADMIN)
        _relabel_assignments(db_session, account.id, "owner")

        with pytest.raises(ResolutionError):
            RoleResolver(db_session).resolve_role(account.id)

        evaluator = PermissionEvaluator(RoleResolver(db_session), db_session)
        result = evaluator.can_manage_groups(account.id)
        assert result.allowed is False
        assert result.reason == Reasons.VERIFY_FAILED
