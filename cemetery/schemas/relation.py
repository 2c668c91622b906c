"""Grave ↔ user relation contracts."""

from datetime import datetime
from typing import Optional

from cemetery.schemas.common import CamelModel


class RelationCreate(CamelModel):
    user_id: str
    grave_details_id: str


class RelationResponse(CamelModel):
    """A relation row joined with the user, the grave and its cluster."""

    id: str
    user_id: str
    grave_details_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_role: Optional[str] = None
    grave_json: Optional[dict] = None
    grave_cluster_id: Optional[str] = None
    cluster_name: Optional[str] = None
    cluster_number: Optional[int] = None
    created_at: datetime
