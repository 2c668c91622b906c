"""
Cemetery Records Service: Cluster Service
==========================================

What:  CRUD for grave clusters.
How:   Deleting a cluster removes its graves through GraveService's cascade
       and its instructions through InstructionService, then the cluster row.
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cemetery.exceptions import DatabaseError, NotFoundError
from cemetery.models.cluster import GraveCluster
from cemetery.models.grave import GraveDetails
from cemetery.schemas.cluster import ClusterCreate, ClusterResponse, ClusterUpdate
from cemetery.services.grave_service import grave_service
from cemetery.services.instruction_service import instruction_service

logger = logging.getLogger(__name__)


class ClusterService:
    async def list_clusters(self, db: AsyncSession) -> List[ClusterResponse]:
        result = await db.execute(
            select(GraveCluster).order_by(GraveCluster.cluster_number.asc(), GraveCluster.name.asc())
        )
        return [ClusterResponse.model_validate(c) for c in result.scalars().all()]

    async def get_cluster(self, db: AsyncSession, cluster_id: str) -> GraveCluster:
        cluster = await db.get(GraveCluster, cluster_id)
        if cluster is None:
            raise NotFoundError(resource="cluster", resource_id=cluster_id)
        return cluster

    async def create_cluster(self, db: AsyncSession, payload: ClusterCreate) -> ClusterResponse:
        cluster = GraveCluster(
            name=payload.name.strip(),
            cluster_number=payload.cluster_number,
            coordinates=payload.coordinates.model_dump(),
        )
        try:
            db.add(cluster)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create cluster '%s': %s", payload.name, str(e), exc_info=True)
            raise DatabaseError(context={"name": payload.name})

        logger.info("Cluster %s created: '%s' #%d", cluster.id, cluster.name, cluster.cluster_number)
        return ClusterResponse.model_validate(cluster)

    async def update_cluster(
        self, db: AsyncSession, cluster_id: str, payload: ClusterUpdate
    ) -> ClusterResponse:
        cluster = await self.get_cluster(db, cluster_id)
        changes = payload.model_dump(exclude_unset=True, exclude_none=True)

        if "name" in changes:
            cluster.name = changes["name"].strip()
        if "cluster_number" in changes:
            cluster.cluster_number = changes["cluster_number"]
        if "coordinates" in changes:
            cluster.coordinates = changes["coordinates"]

        await db.flush()
        logger.info("Cluster %s updated (%s)", cluster.id, ", ".join(sorted(changes)) or "no changes")
        return ClusterResponse.model_validate(cluster)

    async def delete_cluster(self, db: AsyncSession, cluster_id: str) -> None:
        cluster = await self.get_cluster(db, cluster_id)

        result = await db.execute(
            select(GraveDetails.id).where(GraveDetails.grave_cluster_id == cluster.id)
        )
        graves = await grave_service.purge_graves(db, result.scalars().all())
        removed = await instruction_service.purge_for_clusters(db, [cluster.id])

        await db.delete(cluster)
        await db.flush()
        logger.info(
            "Cluster %s deleted with %d graves and %d instruction steps",
            cluster_id,
            graves,
            removed["steps"],
        )


cluster_service = ClusterService()
