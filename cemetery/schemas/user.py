"""User administration contracts."""

from datetime import date, datetime
from typing import Literal, Optional

from cemetery.schemas.common import CamelModel


class UserResponse(CamelModel):
    id: str
    name: str
    email: str
    email_verified: bool
    image: Optional[str] = None
    role: Optional[str] = None
    banned: bool = False
    ban_reason: Optional[str] = None
    ban_expires: Optional[date] = None
    created_at: datetime


class RoleUpdate(CamelModel):
    role: Literal["user", "admin"]


class BanRequest(CamelModel):
    reason: Optional[str] = None
    expires: Optional[date] = None
