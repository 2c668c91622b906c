"""Grave ↔ user relation endpoints. Everything but `/mine` is admin-only."""

from typing import List

from fastapi import APIRouter, status

from cemetery.routes import AUTH_ERRORS, BAD_INPUT, NOT_FOUND
from cemetery.routes.deps import AdminUser, CurrentUser, DbSession
from cemetery.schemas.common import SuccessResponse
from cemetery.schemas.grave import GraveResponse
from cemetery.schemas.relation import RelationCreate, RelationResponse
from cemetery.schemas.user import UserResponse
from cemetery.services.relation_service import relation_service

router = APIRouter(prefix="/api/grave-relations", tags=["Grave Relations"], responses=AUTH_ERRORS)


@router.get("", response_model=List[RelationResponse], summary="All relations, newest first")
async def list_relations(db: DbSession, admin: AdminUser):
    return await relation_service.list_relations(db)


@router.get("/mine", response_model=List[GraveResponse], summary="Graves related to the caller")
async def my_related_graves(db: DbSession, user: CurrentUser):
    return await relation_service.my_related_graves(db, user)


@router.get("/by-user/{user_id}", response_model=List[RelationResponse], summary="Relations of a user")
async def relations_by_user(user_id: str, db: DbSession, admin: AdminUser):
    return await relation_service.relations_by_user(db, user_id)


@router.get("/by-grave/{grave_id}", response_model=List[RelationResponse], summary="Relations of a grave")
async def relations_by_grave(grave_id: str, db: DbSession, admin: AdminUser):
    return await relation_service.relations_by_grave(db, grave_id)


@router.get("/available-graves", response_model=List[GraveResponse], summary="Graves with no relation")
async def available_graves(db: DbSession, admin: AdminUser):
    return await relation_service.available_graves(db)


@router.get("/available-users", response_model=List[UserResponse], summary="Users that can be related")
async def available_users(db: DbSession, admin: AdminUser):
    return await relation_service.available_users(db)


@router.post(
    "",
    response_model=RelationResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**BAD_INPUT, **NOT_FOUND},
    summary="Relate a user to a grave",
)
async def create_relation(payload: RelationCreate, db: DbSession, admin: AdminUser):
    return await relation_service.create_relation(db, payload)


@router.delete("/{relation_id}", response_model=SuccessResponse, responses=NOT_FOUND, summary="Remove a relation")
async def delete_relation(relation_id: str, db: DbSession, admin: AdminUser):
    await relation_service.delete_relation(db, relation_id)
    return SuccessResponse(message="Relation deleted")
