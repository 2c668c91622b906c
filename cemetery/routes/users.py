"""User administration endpoints (admin-only)."""

from typing import List

from fastapi import APIRouter

from cemetery.routes import AUTH_ERRORS, NOT_FOUND
from cemetery.routes.deps import AdminUser, DbSession
from cemetery.schemas.user import BanRequest, RoleUpdate, UserResponse
from cemetery.services.user_service import user_service

router = APIRouter(prefix="/api/users", tags=["Users"], responses=AUTH_ERRORS)


@router.get("", response_model=List[UserResponse], summary="List users")
async def list_users(db: DbSession, admin: AdminUser):
    return await user_service.list_users(db)


@router.patch("/{user_id}/role", response_model=UserResponse, responses=NOT_FOUND, summary="Change a user's role")
async def set_role(user_id: str, payload: RoleUpdate, db: DbSession, admin: AdminUser):
    return await user_service.set_role(db, user_id, payload.role)


@router.post("/{user_id}/ban", response_model=UserResponse, responses=NOT_FOUND, summary="Ban a user")
async def ban_user(user_id: str, payload: BanRequest, db: DbSession, admin: AdminUser):
    return await user_service.ban_user(db, user_id, reason=payload.reason, expires=payload.expires)


@router.post("/{user_id}/unban", response_model=UserResponse, responses=NOT_FOUND, summary="Lift a ban")
async def unban_user(user_id: str, db: DbSession, admin: AdminUser):
    return await user_service.unban_user(db, user_id)
