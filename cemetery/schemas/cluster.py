"""Cluster and cluster-instruction contracts."""

from datetime import datetime
from typing import List, Optional

from pydantic import Field

from cemetery.schemas.common import CamelModel, Coordinates


class ClusterCreate(CamelModel):
    name: str = Field(min_length=1, max_length=255)
    cluster_number: int = Field(ge=0, description="Human-facing cluster number")
    coordinates: Coordinates


class ClusterUpdate(CamelModel):
    """Partial update: omitted fields are left untouched."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    cluster_number: Optional[int] = Field(default=None, ge=0)
    coordinates: Optional[Coordinates] = None


class ClusterResponse(CamelModel):
    id: str
    name: str
    cluster_number: int
    coordinates: Optional[Coordinates] = None
    created_at: datetime
    updated_at: datetime


# ── Instructions ─────────────────────────────────────────────────────────


class StepCreate(CamelModel):
    title: str = Field(min_length=1, max_length=255)
    description: str = Field(min_length=1)


class StepUpdate(StepCreate):
    pass


class StepResponse(CamelModel):
    """
    One instruction step. `instruction` is the stored text; `title` and
    `description` are split back out of it on the first blank line.
    """

    id: str
    step: int
    instruction: str
    title: str
    description: str
    image_url: Optional[str] = None
    image_custom_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class InstructionsResponse(CamelModel):
    id: str
    grave_cluster_id: str
    cluster_name: Optional[str] = None
    steps: List[StepResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime
