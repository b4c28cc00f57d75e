# tests/test_errors.py
"""Tests for the error taxonomy."""

from peerhub.core.errors import (
    IntegrityViolation,
    PermissionDenied,
    ResolutionError,
    StoreError,
    UnknownPermissionError,
)


def test_permission_denied_keeps_reason():
    exc = PermissionDenied("Only administrators can manage groups.")

    assert exc.reason == "Only administrators can manage groups."
    assert str(exc) == "Permission denied: Only administrators can manage groups."


def test_store_error_surfaces_detail_unchanged():
    exc = StoreError("relation \"post\" does not exist", procedure="cleanup_all_posts")

    assert exc.detail == "relation \"post\" does not exist"
    assert exc.procedure == "cleanup_all_posts"
    assert str(exc) == "Database error: relation \"post\" does not exist"


def test_resolution_error_is_a_store_error():
    exc = ResolutionError("timeout")

    assert isinstance(exc, StoreError)
    assert str(exc) == "Role resolution failed: timeout"


def test_integrity_violation_message():
    exc = IntegrityViolation(post_likes=2, group_memberships=0)

    assert str(exc) == "2 orphaned post likes, 0 orphaned group memberships"


def test_unknown_permission_is_a_value_error():
    assert isinstance(UnknownPermissionError("fly"), ValueError)
