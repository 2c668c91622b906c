"""
Cemetery Records Service: Cluster Models
=========================================

What:  Grave clusters (named, geolocated groups of plots) and their ordered
       visiting/maintenance instructions.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from cemetery.database import Base, new_id, utcnow

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


class GraveCluster(Base):
    """
    A named cluster of plots with a map position.

    `coordinates` holds {"latitude": float, "longitude": float}.
    """

    __tablename__ = "grave_cluster"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    cluster_number: Mapped[int] = mapped_column(Integer, nullable=False)
    coordinates: Mapped[Optional[dict]] = mapped_column(JSONType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    def __repr__(self) -> str:
        return f"<GraveCluster(id={self.id}, name='{self.name}', number={self.cluster_number})>"


class ClusterInstructions(Base):
    """Instruction header; a cluster has at most one."""

    __tablename__ = "cluster_instructions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    grave_cluster_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("grave_cluster.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("idx_cluster_instructions_cluster", "grave_cluster_id"),)


class ClusterInstructionStep(Base):
    """
    One numbered step. `instruction` is "<title>\\n\\n<description>".

    `image_path` is relative to STORAGE_ROOT and set only for images stored by
    this service; `image_url` is what clients render.
    """

    __tablename__ = "cluster_instruction_steps"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    step: Mapped[int] = mapped_column(Integer, nullable=False)
    instruction: Mapped[str] = mapped_column(Text, nullable=False)
    image_url: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    image_path: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    image_custom_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    cluster_instructions_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("cluster_instructions.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow
    )

    __table_args__ = (Index("idx_instruction_steps_parent", "cluster_instructions_id", "step"),)
