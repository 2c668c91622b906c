"""
Cemetery Records Service: Service Request Routes
=================================================

What:  Submission and tracking for users; review, audit and deletion for
       admins.
Who:   The requester dashboard and the admin request queue.

Access:
    GET  /api/requests/mine          signed-in user (own requests)
    GET  /api/requests/{id}          owner or admin
    POST /api/requests               signed-in user
    GET  /api/requests?page&limit    admin
    PUT  /api/requests/{id}/status   admin
    POST /api/requests/{id}/logs     admin
    DELETE /api/requests/{id}        admin
"""

import logging
from typing import List

from fastapi import APIRouter, Query, status

from cemetery.routes import AUTH_ERRORS, BAD_INPUT, NOT_FOUND
from cemetery.routes.deps import AdminUser, CurrentUser, DbSession
from cemetery.schemas.common import SuccessResponse
from cemetery.schemas.request import (
    LogAppend,
    PaginatedRequests,
    RequestCreate,
    RequestCreated,
    RequestDetail,
    RequestLogEntry,
    RequestRow,
    StatusUpdate,
)
from cemetery.services.request_service import request_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/requests", tags=["Requests"], responses=AUTH_ERRORS)


@router.get("/mine", response_model=List[RequestRow], summary="The caller's requests, newest first")
async def list_my_requests(db: DbSession, user: CurrentUser):
    return await request_service.list_my_requests(db, user)


@router.get(
    "",
    response_model=PaginatedRequests,
    summary="All requests, paginated, newest first",
)
async def list_all_requests(
    db: DbSession,
    admin: AdminUser,
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
):
    return await request_service.list_all_requests(db, page=page, limit=limit)


@router.get(
    "/{request_id}",
    response_model=RequestDetail,
    responses=NOT_FOUND,
    summary="A request with its status and audit log",
)
async def get_request(request_id: str, db: DbSession, user: CurrentUser):
    return await request_service.get_request(db, user, request_id)


@router.post(
    "",
    response_model=RequestCreated,
    status_code=status.HTTP_201_CREATED,
    responses={**BAD_INPUT, **NOT_FOUND},
    summary="Submit a service request",
)
async def create_request(payload: RequestCreate, db: DbSession, user: CurrentUser):
    return await request_service.create_request(db, user, payload)


@router.put(
    "/{request_id}/status",
    response_model=RequestRow,
    responses=NOT_FOUND,
    summary="Set a request's status (any transition allowed)",
)
async def update_status(request_id: str, payload: StatusUpdate, db: DbSession, admin: AdminUser):
    return await request_service.update_status(
        db, admin, request_id, status=payload.status, remark=payload.remark
    )


@router.post(
    "/{request_id}/logs",
    response_model=RequestLogEntry,
    status_code=status.HTTP_201_CREATED,
    responses={**BAD_INPUT, **NOT_FOUND},
    summary="Append an audit log entry",
)
async def append_log(request_id: str, payload: LogAppend, db: DbSession, admin: AdminUser):
    return await request_service.append_log(db, admin, request_id, payload.message)


@router.delete(
    "/{request_id}",
    response_model=SuccessResponse,
    responses=NOT_FOUND,
    summary="Delete a request with its status, logs and grave link",
)
async def delete_request(request_id: str, db: DbSession, admin: AdminUser):
    await request_service.delete_request(db, admin, request_id)
    return SuccessResponse(message="Request deleted")
