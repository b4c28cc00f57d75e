# src/peerhub/models/__init__.py
"""SQLAlchemy models for the community core."""

from .account import Account
from .group import Group, GroupMembership
from .post import Post, PostComment, PostLike
from .role import Role, RoleAssignment

__all__ = [
    "Account",
    "Group", "GroupMembership",
    "Post", "PostComment", "PostLike",
    "Role", "RoleAssignment",
]
