"""Cluster instruction endpoints: reads for signed-in users, edits for admins."""

from typing import List, Optional

from fastapi import APIRouter, File, Request, UploadFile, status

from cemetery.routes import AUTH_ERRORS, BAD_INPUT, NOT_FOUND
from cemetery.routes.deps import AdminUser, CurrentUser, DbSession
from cemetery.schemas.cluster import InstructionsResponse, StepCreate, StepResponse, StepUpdate
from cemetery.schemas.common import SuccessResponse
from cemetery.services.instruction_service import instruction_service

router = APIRouter(prefix="/api/instructions", tags=["Instructions"], responses=AUTH_ERRORS)


@router.get("", response_model=List[InstructionsResponse], summary="All cluster instructions")
async def list_instructions(db: DbSession, user: CurrentUser):
    return await instruction_service.list_instructions(db)


@router.get(
    "/clusters/{cluster_id}",
    response_model=Optional[InstructionsResponse],
    summary="Instructions for one cluster (null when none exist)",
)
async def get_instructions(cluster_id: str, db: DbSession, user: CurrentUser):
    return await instruction_service.get_instructions(db, cluster_id)


@router.post(
    "/clusters/{cluster_id}",
    response_model=InstructionsResponse,
    responses=NOT_FOUND,
    summary="Get or create the instruction record for a cluster",
)
async def get_or_create_instructions(cluster_id: str, db: DbSession, admin: AdminUser):
    return await instruction_service.get_or_create_instructions(db, cluster_id)


@router.post(
    "/clusters/{cluster_id}/steps",
    response_model=StepResponse,
    status_code=status.HTTP_201_CREATED,
    responses=NOT_FOUND,
    summary="Append a step",
)
async def add_step(cluster_id: str, payload: StepCreate, db: DbSession, admin: AdminUser):
    return await instruction_service.add_step(db, cluster_id, payload.title, payload.description)


@router.delete(
    "/clusters/{cluster_id}",
    response_model=SuccessResponse,
    responses=NOT_FOUND,
    summary="Delete a cluster's instructions and all steps",
)
async def delete_instructions(cluster_id: str, db: DbSession, admin: AdminUser):
    await instruction_service.delete_instructions(db, cluster_id)
    return SuccessResponse(message="Instructions deleted")


@router.patch(
    "/steps/{step_id}",
    response_model=StepResponse,
    responses=NOT_FOUND,
    summary="Edit a step's title and description",
)
async def update_step(step_id: str, payload: StepUpdate, db: DbSession, admin: AdminUser):
    return await instruction_service.update_step(db, step_id, payload.title, payload.description)


@router.delete(
    "/steps/{step_id}",
    response_model=SuccessResponse,
    responses=NOT_FOUND,
    summary="Delete a step",
)
async def delete_step(step_id: str, db: DbSession, admin: AdminUser):
    await instruction_service.delete_step(db, step_id)
    return SuccessResponse(message="Step deleted")


@router.put(
    "/steps/{step_id}/image",
    response_model=StepResponse,
    responses={**BAD_INPUT, **NOT_FOUND},
    summary="Upload or replace a step image",
)
async def upload_step_image(
    step_id: str,
    request: Request,
    db: DbSession,
    admin: AdminUser,
    file: UploadFile = File(..., description="Image file"),
):
    content = await file.read()
    content_length = request.headers.get("content-length")
    return await instruction_service.upload_step_image(
        db,
        step_id,
        filename=file.filename or "",
        content=content,
        content_length=int(content_length) if content_length else None,
    )


@router.delete(
    "/steps/{step_id}/image",
    response_model=StepResponse,
    responses=NOT_FOUND,
    summary="Remove a step image",
)
async def remove_step_image(step_id: str, db: DbSession, admin: AdminUser):
    return await instruction_service.remove_step_image(db, step_id)
