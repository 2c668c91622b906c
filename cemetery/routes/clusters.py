"""Cluster endpoints: read for signed-in users, writes for admins."""

from typing import List

from fastapi import APIRouter, status

from cemetery.routes import AUTH_ERRORS, NOT_FOUND
from cemetery.routes.deps import AdminUser, CurrentUser, DbSession
from cemetery.schemas.cluster import ClusterCreate, ClusterResponse, ClusterUpdate
from cemetery.schemas.common import SuccessResponse
from cemetery.services.cluster_service import cluster_service

router = APIRouter(prefix="/api/clusters", tags=["Clusters"], responses=AUTH_ERRORS)


@router.get("", response_model=List[ClusterResponse], summary="List clusters")
async def list_clusters(db: DbSession, user: CurrentUser):
    return await cluster_service.list_clusters(db)


@router.post(
    "",
    response_model=ClusterResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a cluster",
)
async def create_cluster(payload: ClusterCreate, db: DbSession, admin: AdminUser):
    return await cluster_service.create_cluster(db, payload)


@router.patch(
    "/{cluster_id}",
    response_model=ClusterResponse,
    responses=NOT_FOUND,
    summary="Update a cluster",
)
async def update_cluster(cluster_id: str, payload: ClusterUpdate, db: DbSession, admin: AdminUser):
    return await cluster_service.update_cluster(db, cluster_id, payload)


@router.delete(
    "/{cluster_id}",
    response_model=SuccessResponse,
    responses=NOT_FOUND,
    summary="Delete a cluster with its graves and instructions",
)
async def delete_cluster(cluster_id: str, db: DbSession, admin: AdminUser):
    await cluster_service.delete_cluster(db, cluster_id)
    return SuccessResponse(message="Cluster deleted")
