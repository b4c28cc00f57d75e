# src/peerhub/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .admin import router as admin_router
from .permissions import router as permissions_router

__all__ = [
    "admin_router",
    "permissions_router",
]
