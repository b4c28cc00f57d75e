# tests/test_community_reset_cli.py
"""Tests for the peerhub-reset maintenance command."""

from __future__ import annotations

import json

from sqlalchemy import func, select

from peerhub.models import Group
from peerhub.scripts.community_reset import main
from peerhub.services.permissions import Reasons
from peerhub.services.seed_groups import SEED_GROUPS


def test_reset_with_admin(db_session, admin, make_post, capsys):
    make_post(admin)

    exit_code = main(["--admin-id", admin.id], session_factory=lambda: db_session)

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["deleted_posts"] == 1
    assert output["created_groups"] == len(SEED_GROUPS)
    assert db_session.scalar(select(func.count(Group.id))) == len(SEED_GROUPS)


def test_reset_without_admin_id_uses_existing_admin(db_session, admin, capsys):
    exit_code = main([], session_factory=lambda: db_session)

    assert exit_code == 0
    assert json.loads(capsys.readouterr().out)["performed_by"] == admin.id


def test_reset_by_member_is_refused(db_session, member, capsys):
    exit_code = main(["--admin-id", member.id], session_factory=lambda: db_session)

    assert exit_code == 2
    error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])["error"]
    assert error == f"Permission denied: {Reasons.ADMIN_ONLY_GROUPS}"


def test_reset_without_any_admin_fails(db_session, capsys):
    exit_code = main([], session_factory=lambda: db_session)

    assert exit_code == 1
    assert "No admin user found" in capsys.readouterr().err


def test_status_is_read_only(db_session, member, make_post, capsys):
    make_post(member, likes=1)

    exit_code = main(["--status"], session_factory=lambda: db_session)

    assert exit_code == 0
    output = json.loads(capsys.readouterr().out)
    assert output["posts_count"] == 1
    assert output["post_likes_count"] == 1


def test_validate_exit_code_reflects_orphans(db_session, add_orphans, capsys):
    assert main(["--validate"], session_factory=lambda: db_session) == 0
    capsys.readouterr()

    add_orphans(likes=1)

    assert main(["--validate"], session_factory=lambda: db_session) == 1
    assert json.loads(capsys.readouterr().out)["is_valid"] is False
