"""Shared API dependencies for authentication and service wiring."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from peerhub.core.security import decode_access_token
from peerhub.db.session import get_db
from peerhub.services.factory import build_coordinator, build_permission_evaluator
from peerhub.services.lifecycle import DataLifecycleCoordinator
from peerhub.services.permissions import PermissionEvaluator

# Anonymous callers are allowed through; they resolve to the guest role.
bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_current_account_id(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)],
) -> str | None:
    """Return the account id carried by the bearer token, or None if absent.

    Raises:
        HTTPException: If a token is present but invalid.
    """
    if credentials is None:
        return None
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    return subject


def get_permission_evaluator(db: SessionDep) -> PermissionEvaluator:
    """Build a permission evaluator bound to the request session."""
    return build_permission_evaluator(db)


def get_coordinator(db: SessionDep) -> DataLifecycleCoordinator:
    """Build a lifecycle coordinator bound to the request session."""
    return build_coordinator(db)


# Type aliases for dependency injection
AccountIdDep = Annotated[str | None, Depends(get_current_account_id)]
PermissionsDep = Annotated[PermissionEvaluator, Depends(get_permission_evaluator)]
CoordinatorDep = Annotated[DataLifecycleCoordinator, Depends(get_coordinator)]
