"""
Cemetery Records Service: Service Request Models
=================================================

What:  Service requests submitted by users, their single current status row,
       their append-only audit log, and the optional link to a grave.

Lifecycle:
    pending → processing → approved | rejected

    Transitions are not guarded: an admin may set any status at any time.
    `request_status` is upserted (one row per request); `request_logs` only
    ever grows until the request itself is deleted.
"""

import enum
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from cemetery.database import Base, new_id, utcnow


class RequestStatusValue(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    APPROVED = "approved"
    REJECTED = "rejected"


class Request(Base):
    """
    A service request. `request_details` is a serialized JSON object:
        {details, priority, contactPhone, preferredContactTime, additionalNotes}
    Older rows may hold plain text; see services.request_service.parse_request_details.
    """

    __tablename__ = "request"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user.id", ondelete="CASCADE"), nullable=False
    )
    request_details: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_request_user", "user_id"),
        Index("idx_request_created_at", created_at.desc()),
    )

    def __repr__(self) -> str:
        return f"<Request(id={self.id}, user_id={self.user_id}, created_at='{self.created_at}')>"


class RequestStatus(Base):
    """Current status of a request. `request_id` is unique: one row per request."""

    __tablename__ = "request_status"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    status: Mapped[RequestStatusValue] = mapped_column(
        Enum(
            RequestStatusValue,
            name="request_status_enum",
            values_callable=lambda members: [m.value for m in members],
        ),
        nullable=False,
    )
    remark: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    request_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("request.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )


class RequestLog(Base):
    """One audit entry: what happened to a request and who did it."""

    __tablename__ = "request_logs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    request_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("request.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user.id", ondelete="CASCADE"), nullable=False
    )
    log: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("idx_request_logs_request", "request_id", created_at.desc()),)


class RequestGraveRelation(Base):
    """Optional link from a request to the grave it concerns (at most one per request)."""

    __tablename__ = "request_grave_relation"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    request_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("request.id", ondelete="CASCADE"), nullable=False
    )
    grave_details_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("grave_details.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_request_grave_relation_request", "request_id"),
        Index("idx_request_grave_relation_grave", "grave_details_id"),
    )
