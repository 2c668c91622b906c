"""
Cemetery Records Service: Keyword Search
=========================================

What:  Case-insensitive substring search over graves and service requests.
How:   Grave fields are pulled out of the JSON payload with `as_string()`,
       which compiles to `->>` on PostgreSQL and JSON_EXTRACT on SQLite.
       Both sides are lower-cased; LIKE wildcards in the query are escaped.

Searched fields:
    graves    deceasedName, plotNumber, graveType, notes
    requests  raw request_details, requester name, requester email
"""

import logging
import math
from typing import List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from cemetery.models.cluster import GraveCluster
from cemetery.models.grave import GraveDetails
from cemetery.models.request import Request
from cemetery.models.user import User
from cemetery.schemas.grave import GraveResponse
from cemetery.schemas.request import RequestRow
from cemetery.schemas.search import (
    GraveBucket,
    GraveSearchResponse,
    RequestBucket,
    RequestSearchResponse,
    SearchAllResponse,
)
from cemetery.services.grave_service import to_grave_response
from cemetery.services.request_service import request_service

logger = logging.getLogger(__name__)

GRAVE_SEARCH_KEYS = ("deceasedName", "plotNumber", "graveType", "notes")


def has_more(returned: int, limit: int, offset: int, total: int) -> bool:
    return returned == limit and offset + limit < total


def _contains(column, needle: str):
    return column.icontains(needle, autoescape=True)


class SearchService:
    async def _graves(
        self, db: AsyncSession, query: str, limit: int, offset: int
    ) -> Tuple[List[GraveResponse], int]:
        needle = query.strip()
        condition = or_(
            *(_contains(GraveDetails.grave_json[key].as_string(), needle) for key in GRAVE_SEARCH_KEYS)
        )

        total = await db.scalar(
            select(func.count()).select_from(GraveDetails).where(condition)
        ) or 0
        result = await db.execute(
            select(GraveDetails, GraveCluster)
            .join(GraveCluster, GraveCluster.id == GraveDetails.grave_cluster_id)
            .where(condition)
            .order_by(GraveDetails.created_at.desc(), GraveDetails.id)
            .offset(offset)
            .limit(limit)
        )
        return [to_grave_response(g, c) for g, c in result.all()], total

    async def _requests(
        self,
        db: AsyncSession,
        query: str,
        limit: int,
        offset: int,
        owner_id: Optional[str] = None,
    ) -> Tuple[List[RequestRow], int]:
        needle = query.strip()
        condition = or_(
            _contains(Request.request_details, needle),
            _contains(User.name, needle),
            _contains(User.email, needle),
        )

        base = select(Request).join(User, User.id == Request.user_id).where(condition)
        if owner_id is not None:
            base = base.where(Request.user_id == owner_id)

        total = await db.scalar(select(func.count()).select_from(base.subquery())) or 0
        result = await db.execute(
            base.order_by(Request.created_at.desc(), Request.id).offset(offset).limit(limit)
        )
        rows = await request_service.build_rows(db, result.scalars().all())
        return rows, total

    # ── Public API ────────────────────────────────────────────────────────

    async def search_graves(
        self, db: AsyncSession, query: str, limit: int = 50, offset: int = 0
    ) -> GraveSearchResponse:
        results, total = await self._graves(db, query, limit, offset)
        logger.debug("Grave search '%s' matched %d", query, total)
        return GraveSearchResponse(
            results=results,
            total=total,
            has_more=has_more(len(results), limit, offset, total),
        )

    async def search_requests(
        self,
        db: AsyncSession,
        query: str,
        limit: int = 50,
        offset: int = 0,
        owner_id: Optional[str] = None,
    ) -> RequestSearchResponse:
        """`owner_id` restricts matches to one requester (non-admin callers)."""
        results, total = await self._requests(db, query, limit, offset, owner_id)
        return RequestSearchResponse(
            results=results,
            total=total,
            has_more=has_more(len(results), limit, offset, total),
        )

    async def search_all(
        self,
        db: AsyncSession,
        query: str,
        limit: int = 50,
        offset: int = 0,
        owner_id: Optional[str] = None,
    ) -> SearchAllResponse:
        """Each category gets ceil(limit/2) results starting at ceil(offset/2)."""
        half_limit = math.ceil(limit / 2)
        half_offset = math.ceil(offset / 2)

        graves, graves_total = await self._graves(db, query, half_limit, half_offset)
        requests, requests_total = await self._requests(db, query, half_limit, half_offset, owner_id)
        return SearchAllResponse(
            graves=GraveBucket(results=graves, total=graves_total),
            requests=RequestBucket(results=requests, total=requests_total),
            total=graves_total + requests_total,
        )


search_service = SearchService()
