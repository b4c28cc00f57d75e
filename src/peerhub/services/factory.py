# src/peerhub/services/factory.py
"""Construction of the default service graph over a database session."""
from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session

from peerhub.db.time import utcnow
from peerhub.repositories.lifecycle_store import SqlLifecycleStore
from peerhub.services.integrity import IntegrityValidator
from peerhub.services.lifecycle import DataLifecycleCoordinator
from peerhub.services.permissions import PermissionEvaluator
from peerhub.services.roles import RoleResolver

__all__ = ["build_coordinator", "build_permission_evaluator"]


def build_permission_evaluator(
    session: Session,
    clock: Callable[[], datetime] = utcnow,
) -> PermissionEvaluator:
    """Wire a permission evaluator over ``session``."""
    return PermissionEvaluator(RoleResolver(session, clock=clock), session)


def build_coordinator(
    session: Session,
    clock: Callable[[], datetime] = utcnow,
) -> DataLifecycleCoordinator:
    """Wire the default lifecycle coordinator over ``session``."""
    return DataLifecycleCoordinator(
        permissions=build_permission_evaluator(session, clock=clock),
        integrity=IntegrityValidator(session),
        store=SqlLifecycleStore(session, clock=clock),
    )
