"""
Cemetery Records Service: Grave Service
========================================

What:  Grave records, their pictures, lease-expiration alerts, and the
       explicit cascade used when graves (or whole clusters) are deleted.
Who:   routes/graves.py, routes/public.py, ClusterService, SearchService.

Deletion order for a grave:
    pictures → grave-user relations → request-grave links → grave row
    then the picture files, best-effort.
"""

import logging
from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cemetery.config import settings
from cemetery.database import utcnow
from cemetery.exceptions import DatabaseError, NotFoundError, ValidationError
from cemetery.models.cluster import GraveCluster
from cemetery.models.grave import GraveDetails, GravePicture, GraveRelatedUser
from cemetery.models.request import RequestGraveRelation
from cemetery.schemas.grave import (
    GRAVE_ATTRIBUTE_KEYS,
    ExpirationAlertsResponse,
    GraveCreate,
    GraveResponse,
    GraveUpdate,
    PictureResponse,
)
from cemetery.services.file_service import CATEGORY_GRAVES, file_service

logger = logging.getLogger(__name__)

REQUIRED_ATTRIBUTES = ("deceased_name", "grave_type", "plot_number")


def to_grave_response(grave: GraveDetails, cluster: Optional[GraveCluster] = None) -> GraveResponse:
    return GraveResponse(
        id=grave.id,
        grave_cluster_id=grave.grave_cluster_id,
        cluster_name=cluster.name if cluster else None,
        cluster_number=cluster.cluster_number if cluster else None,
        grave_json=grave.attributes,
        grave_expiration_date=grave.grave_expiration_date,
        created_at=grave.created_at,
        updated_at=grave.updated_at,
    )


def _picture_response(picture: GravePicture) -> PictureResponse:
    return PictureResponse.model_validate(picture)


def graves_with_clusters():
    """Base SELECT of (GraveDetails, GraveCluster) rows."""
    return select(GraveDetails, GraveCluster).join(
        GraveCluster, GraveCluster.id == GraveDetails.grave_cluster_id
    )


class GraveService:
    # ── Reads ─────────────────────────────────────────────────────────────

    async def list_graves(self, db: AsyncSession) -> List[GraveResponse]:
        result = await db.execute(
            graves_with_clusters().order_by(GraveDetails.created_at.desc())
        )
        return [to_grave_response(g, c) for g, c in result.all()]

    async def list_by_cluster(self, db: AsyncSession, cluster_id: str) -> List[GraveResponse]:
        result = await db.execute(
            graves_with_clusters()
            .where(GraveDetails.grave_cluster_id == cluster_id)
            .order_by(GraveDetails.created_at.asc())
        )
        return [to_grave_response(g, c) for g, c in result.all()]

    async def get_grave_row(self, db: AsyncSession, grave_id: str) -> Tuple[GraveDetails, GraveCluster]:
        result = await db.execute(graves_with_clusters().where(GraveDetails.id == grave_id))
        row = result.first()
        if row is None:
            raise NotFoundError(resource="grave", resource_id=grave_id)
        return row[0], row[1]

    async def get_grave(self, db: AsyncSession, grave_id: str) -> GraveResponse:
        grave, cluster = await self.get_grave_row(db, grave_id)
        return to_grave_response(grave, cluster)

    async def _get_cluster(self, db: AsyncSession, cluster_id: str) -> GraveCluster:
        cluster = await db.get(GraveCluster, cluster_id)
        if cluster is None:
            raise NotFoundError(resource="cluster", resource_id=cluster_id)
        return cluster

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_grave(self, db: AsyncSession, payload: GraveCreate) -> GraveResponse:
        """
        Raises:
            ValidationError: deceased name, grave type or plot number is blank
            NotFoundError: the cluster does not exist
        """
        for field in REQUIRED_ATTRIBUTES:
            if not (getattr(payload, field) or "").strip():
                raise ValidationError(
                    message=f"{GRAVE_ATTRIBUTE_KEYS[field]} is required",
                    field=GRAVE_ATTRIBUTE_KEYS[field],
                )

        cluster = await self._get_cluster(db, payload.cluster_id)

        attributes = {}
        for field, key in GRAVE_ATTRIBUTE_KEYS.items():
            value = getattr(payload, field)
            if value is not None:
                attributes[key] = value.strip() if field in REQUIRED_ATTRIBUTES else value

        grave = GraveDetails(
            grave_cluster_id=cluster.id,
            grave_json=attributes,
            grave_expiration_date=payload.grave_expiration_date,
        )
        try:
            db.add(grave)
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create grave in cluster %s: %s", cluster.id, str(e), exc_info=True)
            raise DatabaseError(context={"cluster_id": cluster.id})

        logger.info("Grave %s created in cluster %s (plot %s)", grave.id, cluster.id, attributes.get("plotNumber"))
        return to_grave_response(grave, cluster)

    async def update_grave(self, db: AsyncSession, grave_id: str, payload: GraveUpdate) -> GraveResponse:
        """
        Merges the given attributes into the stored payload; keys not in the
        body are preserved. A null attribute removes the key.
        """
        grave, cluster = await self.get_grave_row(db, grave_id)
        changes = payload.model_dump(exclude_unset=True)

        if "cluster_id" in changes and changes["cluster_id"] is not None:
            cluster = await self._get_cluster(db, changes["cluster_id"])
            grave.grave_cluster_id = cluster.id

        if "grave_expiration_date" in changes:
            grave.grave_expiration_date = changes["grave_expiration_date"]

        attributes = grave.attributes
        for field, key in GRAVE_ATTRIBUTE_KEYS.items():
            if field not in changes:
                continue
            value = changes[field]
            if field in REQUIRED_ATTRIBUTES and not (value or "").strip():
                raise ValidationError(message=f"{key} cannot be empty", field=key)
            if value is None:
                attributes.pop(key, None)
            else:
                attributes[key] = value
        # Reassign so the JSON column is flagged dirty.
        grave.grave_json = attributes

        await db.flush()
        logger.info("Grave %s updated (%s)", grave.id, ", ".join(sorted(changes)) or "no changes")
        return to_grave_response(grave, cluster)

    async def delete_grave(self, db: AsyncSession, grave_id: str) -> None:
        await self.get_grave_row(db, grave_id)
        await self.purge_graves(db, [grave_id])
        logger.info("Grave %s deleted", grave_id)

    async def purge_graves(self, db: AsyncSession, grave_ids: Iterable[str]) -> int:
        """Deletes graves and everything that hangs off them. Returns the count."""
        ids = list(grave_ids)
        if not ids:
            return 0

        result = await db.execute(
            select(GravePicture.image_path).where(GravePicture.grave_details_id.in_(ids))
        )
        picture_paths = [p for p in result.scalars().all() if p]

        try:
            await db.execute(delete(GravePicture).where(GravePicture.grave_details_id.in_(ids)))
            await db.execute(delete(GraveRelatedUser).where(GraveRelatedUser.grave_details_id.in_(ids)))
            await db.execute(
                delete(RequestGraveRelation).where(RequestGraveRelation.grave_details_id.in_(ids))
            )
            await db.execute(delete(GraveDetails).where(GraveDetails.id.in_(ids)))
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to delete graves %s: %s", ids, str(e), exc_info=True)
            raise DatabaseError(context={"grave_ids": ids})

        for path in picture_paths:
            await file_service.cleanup_file(path)
        return len(ids)

    # ── Expiration ────────────────────────────────────────────────────────

    async def expiration_alerts(
        self, db: AsyncSession, today: Optional[date] = None
    ) -> ExpirationAlertsResponse:
        """
        `expired`: expiration date before today.
        `near_expiration`: today through today + EXPIRATION_WARNING_DAYS, inclusive.
        """
        today = today or utcnow().date()
        horizon = today + timedelta(days=settings.expiration_warning_days)

        result = await db.execute(
            graves_with_clusters()
            .where(GraveDetails.grave_expiration_date.is_not(None))
            .where(GraveDetails.grave_expiration_date <= horizon)
            .order_by(GraveDetails.grave_expiration_date.asc())
        )
        expired: List[GraveResponse] = []
        near: List[GraveResponse] = []
        for grave, cluster in result.all():
            if grave.grave_expiration_date < today:
                expired.append(to_grave_response(grave, cluster))
            else:
                near.append(to_grave_response(grave, cluster))

        return ExpirationAlertsResponse(
            expired=expired,
            near_expiration=near,
            total_expired=len(expired),
            total_near_expiration=len(near),
        )

    # ── Pictures ──────────────────────────────────────────────────────────

    async def list_pictures(self, db: AsyncSession, grave_id: str) -> List[PictureResponse]:
        result = await db.execute(
            select(GravePicture)
            .where(GravePicture.grave_details_id == grave_id)
            .order_by(GravePicture.created_at.asc())
        )
        return [_picture_response(p) for p in result.scalars().all()]

    async def upload_picture(
        self,
        db: AsyncSession,
        grave_id: str,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
        image_alt: Optional[str] = None,
        description: Optional[str] = None,
    ) -> PictureResponse:
        grave, _ = await self.get_grave_row(db, grave_id)
        relative_path = await file_service.validate_and_store(
            filename=filename,
            content=content,
            category=CATEGORY_GRAVES,
            content_length=content_length,
        )

        picture = GravePicture(
            grave_details_id=grave.id,
            image_url=file_service.public_url(relative_path),
            image_path=relative_path,
            image_alt=image_alt,
            description=description,
        )
        try:
            db.add(picture)
            await db.flush()
        except SQLAlchemyError as e:
            await file_service.cleanup_file(relative_path)
            logger.error("Failed to record picture for grave %s: %s", grave.id, str(e), exc_info=True)
            raise DatabaseError(context={"grave_id": grave.id})

        logger.info("Picture %s added to grave %s", picture.id, grave.id)
        return _picture_response(picture)

    async def delete_picture(self, db: AsyncSession, picture_id: str) -> None:
        picture = await db.get(GravePicture, picture_id)
        if picture is None:
            raise NotFoundError(resource="picture", resource_id=picture_id)

        image_path = picture.image_path
        await db.delete(picture)
        await db.flush()
        logger.info("Picture %s deleted from grave %s", picture_id, picture.grave_details_id)
        await file_service.cleanup_file(image_path)


grave_service = GraveService()
