"""User entity model."""
from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class UserRole(str, Enum):
    CLIENT = "client"
    AFFILIATE = "affiliate"
    ADMIN = "admin"


class User(BaseModel):
    """Authenticated user as returned by the backend."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, use_enum_values=True)

    id: str = Field(..., description="Backend user ID")
    name: str = ""
    email: str = ""
    role: UserRole = UserRole.CLIENT
    avatar: str | None = None
    phone: str | None = None
    address: str | None = None
    bio: str | None = None
    created_at: str | None = Field(None, alias="createdAt")
    email_verified: bool | None = Field(None, alias="emailVerified")

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_affiliate(self) -> bool:
        return self.role == UserRole.AFFILIATE

    def to_storage(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True)
