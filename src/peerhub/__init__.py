"""Peer Learning Hub community core: roles, permissions and data lifecycle."""

__version__ = "0.1.0"
