"""
Keyword search for signed-in users. Request matches are limited to the
caller's own requests unless the caller is an admin.
"""

from typing import Annotated

from fastapi import APIRouter, Query

from cemetery.routes import AUTH_ERRORS
from cemetery.routes.deps import CurrentUser, DbSession
from cemetery.schemas.search import GraveSearchResponse, RequestSearchResponse, SearchAllResponse
from cemetery.services.search_service import search_service

router = APIRouter(prefix="/api/search", tags=["Search"], responses=AUTH_ERRORS)

SearchQuery = Annotated[str, Query(min_length=1, description="Case-insensitive substring")]
Limit = Annotated[int, Query(ge=1, le=1000)]
Offset = Annotated[int, Query(ge=0)]


@router.get("/graves", response_model=GraveSearchResponse, summary="Search graves")
async def search_graves(
    db: DbSession,
    user: CurrentUser,
    query: SearchQuery,
    limit: Limit = 50,
    offset: Offset = 0,
):
    return await search_service.search_graves(db, query, limit, offset)


@router.get("/requests", response_model=RequestSearchResponse, summary="Search requests")
async def search_requests(
    db: DbSession,
    user: CurrentUser,
    query: SearchQuery,
    limit: Limit = 50,
    offset: Offset = 0,
):
    owner_id = None if user.is_admin else user.id
    return await search_service.search_requests(db, query, limit, offset, owner_id=owner_id)


@router.get("/all", response_model=SearchAllResponse, summary="Search graves and requests")
async def search_all(
    db: DbSession,
    user: CurrentUser,
    query: SearchQuery,
    limit: Limit = 50,
    offset: Offset = 0,
):
    owner_id = None if user.is_admin else user.id
    return await search_service.search_all(db, query, limit, offset, owner_id=owner_id)
