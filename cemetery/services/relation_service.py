"""
Cemetery Records Service: Grave Relation Service
=================================================

What:  Links users (next of kin and similar) to the graves they care for.
How:   Each (user, grave) pair appears once. The service checks for an
       existing pair and reports a readable error; the unique constraint
       backs it up under concurrent inserts.
"""

import logging
from typing import List

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cemetery.exceptions import NotFoundError, ValidationError
from cemetery.models.cluster import GraveCluster
from cemetery.models.grave import GraveDetails, GraveRelatedUser
from cemetery.models.user import User
from cemetery.schemas.grave import GraveResponse
from cemetery.schemas.relation import RelationCreate, RelationResponse
from cemetery.schemas.user import UserResponse
from cemetery.services.grave_service import graves_with_clusters, to_grave_response

logger = logging.getLogger(__name__)

DUPLICATE_RELATION_MESSAGE = "This user is already related to this grave"


def _relations_query():
    return (
        select(GraveRelatedUser, User, GraveDetails, GraveCluster)
        .join(User, User.id == GraveRelatedUser.user_id)
        .join(GraveDetails, GraveDetails.id == GraveRelatedUser.grave_details_id)
        .join(GraveCluster, GraveCluster.id == GraveDetails.grave_cluster_id)
        .order_by(GraveRelatedUser.created_at.desc())
    )


def _to_response(relation, user, grave, cluster) -> RelationResponse:
    return RelationResponse(
        id=relation.id,
        user_id=relation.user_id,
        grave_details_id=relation.grave_details_id,
        user_name=user.name,
        user_email=user.email,
        user_role=user.role,
        grave_json=grave.attributes,
        grave_cluster_id=cluster.id,
        cluster_name=cluster.name,
        cluster_number=cluster.cluster_number,
        created_at=relation.created_at,
    )


class RelationService:
    async def list_relations(self, db: AsyncSession) -> List[RelationResponse]:
        result = await db.execute(_relations_query())
        return [_to_response(*row) for row in result.all()]

    async def relations_by_user(self, db: AsyncSession, user_id: str) -> List[RelationResponse]:
        result = await db.execute(_relations_query().where(GraveRelatedUser.user_id == user_id))
        return [_to_response(*row) for row in result.all()]

    async def relations_by_grave(self, db: AsyncSession, grave_id: str) -> List[RelationResponse]:
        result = await db.execute(
            _relations_query().where(GraveRelatedUser.grave_details_id == grave_id)
        )
        return [_to_response(*row) for row in result.all()]

    async def my_related_graves(self, db: AsyncSession, user: User) -> List[GraveResponse]:
        result = await db.execute(
            graves_with_clusters()
            .join(GraveRelatedUser, GraveRelatedUser.grave_details_id == GraveDetails.id)
            .where(GraveRelatedUser.user_id == user.id)
            .order_by(GraveRelatedUser.created_at.desc())
        )
        return [to_grave_response(g, c) for g, c in result.all()]

    async def available_graves(self, db: AsyncSession) -> List[GraveResponse]:
        """Graves nobody is related to yet."""
        related = select(GraveRelatedUser.grave_details_id)
        result = await db.execute(
            graves_with_clusters()
            .where(GraveDetails.id.not_in(related))
            .order_by(GraveDetails.created_at.desc())
        )
        return [to_grave_response(g, c) for g, c in result.all()]

    async def available_users(self, db: AsyncSession) -> List[UserResponse]:
        result = await db.execute(select(User).order_by(User.name.asc()))
        return [UserResponse.model_validate(u) for u in result.scalars().all()]

    async def create_relation(self, db: AsyncSession, payload: RelationCreate) -> RelationResponse:
        """
        Raises:
            NotFoundError: the user or the grave does not exist
            ValidationError: the pair is already related
        """
        user = await db.get(User, payload.user_id)
        if user is None:
            raise NotFoundError(resource="user", resource_id=payload.user_id)
        grave = await db.get(GraveDetails, payload.grave_details_id)
        if grave is None:
            raise NotFoundError(resource="grave", resource_id=payload.grave_details_id)

        existing = await db.scalar(
            select(GraveRelatedUser.id).where(
                GraveRelatedUser.user_id == user.id,
                GraveRelatedUser.grave_details_id == grave.id,
            )
        )
        if existing is not None:
            raise ValidationError(
                message=DUPLICATE_RELATION_MESSAGE,
                field="userId",
                context={"user_id": user.id, "grave_details_id": grave.id},
            )

        relation = GraveRelatedUser(user_id=user.id, grave_details_id=grave.id)
        try:
            db.add(relation)
            await db.flush()
        except IntegrityError:
            raise ValidationError(
                message=DUPLICATE_RELATION_MESSAGE,
                field="userId",
                context={"user_id": user.id, "grave_details_id": grave.id},
            )

        cluster = await db.get(GraveCluster, grave.grave_cluster_id)
        logger.info("User %s related to grave %s", user.id, grave.id)
        return _to_response(relation, user, grave, cluster)

    async def delete_relation(self, db: AsyncSession, relation_id: str) -> None:
        relation = await db.get(GraveRelatedUser, relation_id)
        if relation is None:
            raise NotFoundError(resource="relation", resource_id=relation_id)
        await db.delete(relation)
        await db.flush()
        logger.info("Relation %s deleted", relation_id)


relation_service = RelationService()
