"""
Public, read-only endpoints for the visitor map: clusters, their graves and
instructions, grave pictures, and grave keyword search. No identity needed.
"""

from typing import List, Optional

from fastapi import APIRouter, Query

from cemetery.routes.deps import DbSession
from cemetery.schemas.cluster import ClusterResponse, InstructionsResponse
from cemetery.schemas.grave import GraveResponse, PictureResponse
from cemetery.schemas.search import GraveSearchResponse
from cemetery.services.cluster_service import cluster_service
from cemetery.services.grave_service import grave_service
from cemetery.services.instruction_service import instruction_service
from cemetery.services.search_service import search_service

router = APIRouter(prefix="/api/public", tags=["Public"])


@router.get("/clusters", response_model=List[ClusterResponse], summary="List clusters")
async def list_clusters(db: DbSession):
    return await cluster_service.list_clusters(db)


@router.get(
    "/clusters/{cluster_id}/graves",
    response_model=List[GraveResponse],
    summary="Graves in a cluster",
)
async def graves_by_cluster(cluster_id: str, db: DbSession):
    return await grave_service.list_by_cluster(db, cluster_id)


@router.get(
    "/clusters/{cluster_id}/instructions",
    response_model=Optional[InstructionsResponse],
    summary="Visiting instructions for a cluster (null when none exist)",
)
async def cluster_instructions(cluster_id: str, db: DbSession):
    return await instruction_service.get_instructions(db, cluster_id)


@router.get(
    "/graves/{grave_id}/pictures",
    response_model=List[PictureResponse],
    summary="Pictures of a grave",
)
async def grave_pictures(grave_id: str, db: DbSession):
    return await grave_service.list_pictures(db, grave_id)


@router.get("/search", response_model=GraveSearchResponse, summary="Search graves by keyword")
async def search_graves(
    db: DbSession,
    query: str = Query(min_length=1, description="Case-insensitive substring"),
    limit: int = Query(default=50, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
):
    return await search_service.search_graves(db, query, limit, offset)
