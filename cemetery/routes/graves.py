"""
Grave endpoints.

Reads need a signed-in user; writes, pictures and expiration alerts are
admin-only. `/expiration-alerts` is declared before `/{grave_id}` so it is
not captured as an ID.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, File, Form, Request, UploadFile, status

from cemetery.routes import AUTH_ERRORS, BAD_INPUT, NOT_FOUND
from cemetery.routes.deps import AdminUser, CurrentUser, DbSession
from cemetery.schemas.common import SuccessResponse
from cemetery.schemas.grave import (
    ExpirationAlertsResponse,
    GraveCreate,
    GraveResponse,
    GraveUpdate,
    PictureResponse,
)
from cemetery.services.grave_service import grave_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/graves", tags=["Graves"], responses=AUTH_ERRORS)


@router.get("", response_model=List[GraveResponse], summary="List all graves")
async def list_graves(db: DbSession, user: CurrentUser):
    return await grave_service.list_graves(db)


@router.get(
    "/expiration-alerts",
    response_model=ExpirationAlertsResponse,
    summary="Graves whose lease has expired or expires soon",
)
async def expiration_alerts(db: DbSession, admin: AdminUser):
    return await grave_service.expiration_alerts(db)


@router.get(
    "/by-cluster/{cluster_id}",
    response_model=List[GraveResponse],
    summary="Graves in a cluster",
)
async def graves_by_cluster(cluster_id: str, db: DbSession, user: CurrentUser):
    return await grave_service.list_by_cluster(db, cluster_id)


@router.get("/{grave_id}", response_model=GraveResponse, responses=NOT_FOUND, summary="Get a grave")
async def get_grave(grave_id: str, db: DbSession, user: CurrentUser):
    return await grave_service.get_grave(db, grave_id)


@router.post(
    "",
    response_model=GraveResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**BAD_INPUT, **NOT_FOUND},
    summary="Create a grave in a cluster",
)
async def create_grave(payload: GraveCreate, db: DbSession, admin: AdminUser):
    return await grave_service.create_grave(db, payload)


@router.patch(
    "/{grave_id}",
    response_model=GraveResponse,
    responses={**BAD_INPUT, **NOT_FOUND},
    summary="Merge attributes into a grave",
)
async def update_grave(grave_id: str, payload: GraveUpdate, db: DbSession, admin: AdminUser):
    return await grave_service.update_grave(db, grave_id, payload)


@router.delete(
    "/{grave_id}",
    response_model=SuccessResponse,
    responses=NOT_FOUND,
    summary="Delete a grave with its pictures and relations",
)
async def delete_grave(grave_id: str, db: DbSession, admin: AdminUser):
    await grave_service.delete_grave(db, grave_id)
    return SuccessResponse(message="Grave deleted")


# ── Pictures ──────────────────────────────────────────────────────────────


@router.post(
    "/{grave_id}/pictures",
    response_model=PictureResponse,
    status_code=status.HTTP_201_CREATED,
    responses={**BAD_INPUT, **NOT_FOUND},
    summary="Upload a picture of a grave (PNG, JPEG or WebP)",
)
async def upload_picture(
    grave_id: str,
    request: Request,
    db: DbSession,
    admin: AdminUser,
    file: UploadFile = File(..., description="Image file"),
    image_alt: Optional[str] = Form(default=None, alias="imageAlt"),
    description: Optional[str] = Form(default=None),
):
    content = await file.read()
    content_length = request.headers.get("content-length")
    return await grave_service.upload_picture(
        db,
        grave_id,
        filename=file.filename or "",
        content=content,
        content_length=int(content_length) if content_length else None,
        image_alt=image_alt,
        description=description,
    )


@router.delete(
    "/pictures/{picture_id}",
    response_model=SuccessResponse,
    responses=NOT_FOUND,
    summary="Delete a grave picture",
)
async def delete_picture(picture_id: str, db: DbSession, admin: AdminUser):
    await grave_service.delete_picture(db, picture_id)
    return SuccessResponse(message="Picture deleted")
