"""Permission-related Pydantic schemas."""

from pydantic import BaseModel, Field


class PermissionResult(BaseModel):
    """Allow/deny verdict with a user-facing reason on denial."""

    allowed: bool
    reason: str | None = Field(default=None, description="Why the action was denied.")

    @classmethod
    def allow(cls) -> "PermissionResult":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str) -> "PermissionResult":
        return cls(allowed=False, reason=reason)


class AccountProfile(BaseModel):
    """Account information with its currently valid role names."""

    id: str
    email: str | None
    display_name: str | None
    is_active: bool
    roles: list[str]
