"""
Cemetery Records Service: Service Request Service
==================================================

What:  Submission, review and audit trail of service requests.
Why:   Families ask for maintenance (cleaning, repairs, lease renewals);
       administrators move each request through its lifecycle and every
       step is recorded.
How:   Every write happens inside the per-request session opened by
       `get_db_session`, so the rows written by one call are committed
       together or rolled back together.

Writes per operation:
    create_request → request + status('pending') + 1 log [+ grave link]
    update_status  → upsert status row + 1 log
    append_log     → 1 log
    delete_request → logs, status, grave links, then the request

`is_overdue` is derived on every read and never stored.
"""

import json
import logging
import math
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from cemetery.config import settings
from cemetery.database import utcnow
from cemetery.exceptions import (
    AuthorizationError,
    CemeteryError,
    DatabaseError,
    NotFoundError,
    ValidationError,
)
from cemetery.models.cluster import GraveCluster
from cemetery.models.grave import GraveDetails
from cemetery.models.request import (
    Request,
    RequestGraveRelation,
    RequestLog,
    RequestStatus,
    RequestStatusValue,
)
from cemetery.models.user import User
from cemetery.schemas.request import (
    PaginatedRequests,
    Pagination,
    ParsedRequestDetails,
    RelatedGrave,
    RequestCreate,
    RequestCreated,
    RequestDetail,
    RequestLogEntry,
    RequestRow,
)
from cemetery.services.auth_service import as_utc

logger = logging.getLogger(__name__)

SUBMITTED_LOG = "Request submitted and is under review."

# keys of ParsedRequestDetails, in either spelling, that must decode as text
DETAIL_TEXT_FIELDS = (
    "details",
    "priority",
    "contactPhone",
    "contact_phone",
    "preferredContactTime",
    "preferred_contact_time",
    "additionalNotes",
    "additional_notes",
)


# ══════════════════════════════════════════════════════════════════════════
# Pure helpers
# ══════════════════════════════════════════════════════════════════════════


def is_overdue(
    status: Optional[str],
    created_at: datetime,
    now: Optional[datetime] = None,
    days: Optional[int] = None,
) -> bool:
    """
    A request is overdue while it is still pending more than `days` after it
    was submitted. Naive datetimes are read as UTC.

    >>> from datetime import datetime, timezone, timedelta
    >>> now = datetime(2026, 1, 10, tzinfo=timezone.utc)
    >>> is_overdue("pending", now - timedelta(days=8), now)
    True
    >>> is_overdue("pending", now - timedelta(days=7), now)
    False
    >>> is_overdue("approved", now - timedelta(days=30), now)
    False
    """
    if status != RequestStatusValue.PENDING.value:
        return False
    threshold = timedelta(days=days if days is not None else settings.overdue_after_days)
    now = as_utc(now or utcnow())
    return now - as_utc(created_at) > threshold


def serialize_request_details(payload: RequestCreate) -> str:
    """The text stored in `request.request_details`. Unset optional fields are omitted."""
    body = payload.model_dump(
        by_alias=True,
        exclude={"request_related_grave"},
        exclude_none=True,
    )
    body["details"] = payload.details.strip()
    return json.dumps(body, ensure_ascii=False)


def parse_request_details(raw: Optional[str]) -> dict:
    """
    Decodes `request_details`. Rows that are not a JSON object (legacy plain
    text, malformed JSON, a bare string or list) come back as {"details": raw}.
    """
    if not raw:
        return {"details": raw or ""}
    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        return {"details": raw}
    if not isinstance(parsed, dict):
        return {"details": raw}
    return _coerce_details(parsed)


def _coerce_details(parsed: dict) -> dict:
    """Older rows may carry null or numeric values in the text fields."""
    coerced = dict(parsed)
    for key in DETAIL_TEXT_FIELDS:
        value = coerced.get(key)
        if value is None:
            if key == "details":
                coerced[key] = ""
            else:
                coerced.pop(key, None)
        elif not isinstance(value, str):
            coerced[key] = json.dumps(value, ensure_ascii=False) if isinstance(value, (dict, list)) else str(value)
    return coerced


def build_pagination(page: int, limit: int, total: int) -> Pagination:
    total_pages = math.ceil(total / limit) if limit else 0
    return Pagination(
        page=page,
        limit=limit,
        total=total,
        total_pages=total_pages,
        has_next=page < total_pages,
        has_prev=page > 1,
    )


def status_change_log(old: Optional[str], new: str, remark: Optional[str]) -> str:
    text = f"Status changed from {old or 'none'} to {new}."
    if remark:
        text += f" Remark: {remark}"
    return text


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════


class RequestService:
    """
    Responsibilities:
        - create_request / update_status / append_log / delete_request
        - get_request (owner or admin), list_my_requests, list_all_requests
        - build_rows: shared row assembly for listings and search
    """

    # ── Row assembly ──────────────────────────────────────────────────────

    async def build_rows(self, db: AsyncSession, requests: Iterable[Request]) -> List[RequestRow]:
        """
        Decorates requests with requester, status, related grave and the
        overdue flag. Lookups are batched: one query per related table.
        """
        requests = list(requests)
        if not requests:
            return []
        ids = [r.id for r in requests]

        users: Dict[str, User] = {
            u.id: u
            for u in (
                await db.execute(select(User).where(User.id.in_({r.user_id for r in requests})))
            ).scalars()
        }
        statuses: Dict[str, RequestStatus] = {
            s.request_id: s
            for s in (
                await db.execute(select(RequestStatus).where(RequestStatus.request_id.in_(ids)))
            ).scalars()
        }
        graves: Dict[str, RelatedGrave] = {}
        link_rows = await db.execute(
            select(RequestGraveRelation.request_id, GraveDetails, GraveCluster)
            .join(GraveDetails, GraveDetails.id == RequestGraveRelation.grave_details_id)
            .join(GraveCluster, GraveCluster.id == GraveDetails.grave_cluster_id)
            .where(RequestGraveRelation.request_id.in_(ids))
        )
        for request_id, grave, cluster in link_rows.all():
            graves.setdefault(
                request_id,
                RelatedGrave(
                    id=grave.id,
                    grave_json=grave.attributes,
                    cluster_id=cluster.id,
                    cluster_name=cluster.name,
                ),
            )

        now = utcnow()
        rows = []
        for request in requests:
            user = users.get(request.user_id)
            status = statuses.get(request.id)
            status_value = status.status.value if status else None
            rows.append(
                RequestRow(
                    id=request.id,
                    user_id=request.user_id,
                    user_name=user.name if user else None,
                    user_email=user.email if user else None,
                    request_details=request.request_details,
                    parsed_details=ParsedRequestDetails.model_validate(
                        parse_request_details(request.request_details)
                    ),
                    status=status.status if status else None,
                    status_remark=status.remark if status else None,
                    status_updated_at=status.updated_at if status else None,
                    related_grave=graves.get(request.id),
                    is_overdue=is_overdue(status_value, request.created_at, now),
                    created_at=request.created_at,
                    updated_at=request.updated_at,
                )
            )
        return rows

    async def _get(self, db: AsyncSession, request_id: str) -> Request:
        request = await db.get(Request, request_id)
        if request is None:
            raise NotFoundError(resource="request", resource_id=request_id)
        return request

    # ── Writes ────────────────────────────────────────────────────────────

    async def create_request(
        self, db: AsyncSession, user: User, payload: RequestCreate
    ) -> RequestCreated:
        """
        Raises:
            ValidationError: details are blank
            NotFoundError: `request_related_grave` names a missing grave
            DatabaseError: unexpected persistence failure
        """
        if not payload.details or not payload.details.strip():
            raise ValidationError(message="Request details are required", field="details")

        if payload.request_related_grave:
            if await db.get(GraveDetails, payload.request_related_grave) is None:
                raise NotFoundError(resource="grave", resource_id=payload.request_related_grave)

        try:
            request = Request(user_id=user.id, request_details=serialize_request_details(payload))
            db.add(request)
            await db.flush()

            db.add(RequestStatus(request_id=request.id, status=RequestStatusValue.PENDING))
            db.add(RequestLog(request_id=request.id, user_id=user.id, log=SUBMITTED_LOG))
            if payload.request_related_grave:
                db.add(
                    RequestGraveRelation(
                        request_id=request.id,
                        grave_details_id=payload.request_related_grave,
                    )
                )
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to create request for user %s: %s", user.id, str(e), exc_info=True)
            raise DatabaseError(
                message="Your request could not be submitted. Please try again.",
                context={"user_id": user.id},
            )

        logger.info("Request %s submitted by user %s", request.id, user.id)
        return RequestCreated(id=request.id, status=RequestStatusValue.PENDING, message=SUBMITTED_LOG)

    async def update_status(
        self,
        db: AsyncSession,
        admin: User,
        request_id: str,
        status: RequestStatusValue,
        remark: Optional[str] = None,
    ) -> RequestRow:
        """
        Upserts the single status row and appends one log by `admin`. Any
        transition is allowed; the last write wins.
        """
        request = await self._get(db, request_id)

        try:
            current = await db.scalar(
                select(RequestStatus).where(RequestStatus.request_id == request.id)
            )
            old = current.status.value if current else None
            if current is None:
                db.add(RequestStatus(request_id=request.id, status=status, remark=remark))
            else:
                current.status = status
                current.remark = remark
                current.updated_at = utcnow()

            db.add(
                RequestLog(
                    request_id=request.id,
                    user_id=admin.id,
                    log=status_change_log(old, status.value, remark),
                )
            )
            request.updated_at = utcnow()
            await db.flush()
        except SQLAlchemyError as e:
            logger.error("Failed to update status of request %s: %s", request_id, str(e), exc_info=True)
            raise DatabaseError(context={"request_id": request_id})

        logger.info(
            "Request %s status %s -> %s by %s", request.id, old or "none", status.value, admin.id
        )
        return (await self.build_rows(db, [request]))[0]

    async def append_log(
        self, db: AsyncSession, admin: User, request_id: str, message: str
    ) -> RequestLogEntry:
        if not message or not message.strip():
            raise ValidationError(message="Log message is required", field="message")
        request = await self._get(db, request_id)

        entry = RequestLog(request_id=request.id, user_id=admin.id, log=message.strip())
        db.add(entry)
        await db.flush()
        logger.info("Log appended to request %s by %s", request.id, admin.id)
        return RequestLogEntry(
            id=entry.id,
            log=entry.log,
            user_id=admin.id,
            user_name=admin.name,
            created_at=entry.created_at,
        )

    async def delete_request(self, db: AsyncSession, admin: User, request_id: str) -> None:
        """Removes logs, status row and grave links explicitly, then the request."""
        request = await self._get(db, request_id)
        try:
            await db.execute(delete(RequestLog).where(RequestLog.request_id == request.id))
            await db.execute(delete(RequestStatus).where(RequestStatus.request_id == request.id))
            await db.execute(
                delete(RequestGraveRelation).where(RequestGraveRelation.request_id == request.id)
            )
            await db.delete(request)
            await db.flush()
        except CemeteryError:
            raise
        except SQLAlchemyError as e:
            logger.error("Failed to delete request %s: %s", request_id, str(e), exc_info=True)
            raise DatabaseError(context={"request_id": request_id})

        logger.info("Request %s deleted by %s", request_id, admin.id)

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_request(self, db: AsyncSession, user: User, request_id: str) -> RequestDetail:
        """
        Raises:
            NotFoundError: no such request
            AuthorizationError: caller is neither the owner nor an admin
        """
        request = await self._get(db, request_id)
        if request.user_id != user.id and not user.is_admin:
            raise AuthorizationError(
                message="You can only view your own requests",
                context={"request_id": request_id, "user_id": user.id},
            )

        row = (await self.build_rows(db, [request]))[0]
        result = await db.execute(
            select(RequestLog, User.name)
            .outerjoin(User, User.id == RequestLog.user_id)
            .where(RequestLog.request_id == request.id)
            .order_by(RequestLog.created_at.desc(), RequestLog.id.desc())
        )
        logs = [
            RequestLogEntry(
                id=log.id,
                log=log.log,
                user_id=log.user_id,
                user_name=name,
                created_at=log.created_at,
            )
            for log, name in result.all()
        ]
        return RequestDetail(**row.model_dump(), logs=logs)

    async def list_my_requests(self, db: AsyncSession, user: User) -> List[RequestRow]:
        result = await db.execute(
            select(Request)
            .where(Request.user_id == user.id)
            .order_by(Request.created_at.desc())
        )
        return await self.build_rows(db, result.scalars().all())

    async def list_all_requests(self, db: AsyncSession, page: int = 1, limit: int = 10) -> PaginatedRequests:
        total = await db.scalar(select(func.count()).select_from(Request)) or 0
        result = await db.execute(
            select(Request)
            .order_by(Request.created_at.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        rows = await self.build_rows(db, result.scalars().all())
        return PaginatedRequests(data=rows, pagination=build_pagination(page, limit, total))


request_service = RequestService()
