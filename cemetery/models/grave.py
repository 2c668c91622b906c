"""
Cemetery Records Service: Grave Models
=======================================

What:  Plot records (`grave_details`), their pictures, and the many-to-many
       link between users and graves (next-of-kin and similar).

`grave_json` is a free-form payload. Keys written by this service:
    deceasedName, birthDate, deathDate, plotNumber, graveType, notes
Rows written elsewhere may carry more keys; they are preserved on update.
"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import Date, DateTime, ForeignKey, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from cemetery.database import Base, new_id, utcnow
from cemetery.models.cluster import JSONType


class GraveDetails(Base):
    """A single burial plot. Always belongs to exactly one cluster."""

    __tablename__ = "grave_details"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    grave_json: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    grave_cluster_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("grave_cluster.id", ondelete="CASCADE"), nullable=False
    )
    # Optional renewal/expiry date of the plot lease.
    grave_expiration_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (
        Index("idx_grave_details_cluster", "grave_cluster_id"),
        Index("idx_grave_details_expiration", "grave_expiration_date"),
    )

    @property
    def attributes(self) -> dict:
        return dict(self.grave_json or {})

    def __repr__(self) -> str:
        plot = self.attributes.get("plotNumber")
        return f"<GraveDetails(id={self.id}, plot='{plot}', cluster={self.grave_cluster_id})>"


class GravePicture(Base):
    """An image of a grave stored under STORAGE_ROOT."""

    __tablename__ = "grave_picture"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    image_url: Mapped[str] = mapped_column(Text, nullable=False)
    image_path: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    image_alt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    grave_details_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("grave_details.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("idx_grave_picture_grave", "grave_details_id"),)


class GraveRelatedUser(Base):
    """Links a user to a grave. A (user, grave) pair appears at most once."""

    __tablename__ = "grave_related_users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("user.id", ondelete="CASCADE"), nullable=False
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
        UniqueConstraint("user_id", "grave_details_id", name="uq_grave_related_user_pair"),
    )
