"""
Grave contracts.

The grave's descriptive attributes travel as `graveJson`, mirroring the
stored payload. Create/update bodies list the attributes explicitly so they
are validated and documented in OpenAPI.
"""

from datetime import date, datetime
from typing import List, Optional

from pydantic import Field

from cemetery.schemas.common import CamelModel

# camelCase keys written into grave_json
GRAVE_ATTRIBUTE_KEYS = {
    "deceased_name": "deceasedName",
    "birth_date": "birthDate",
    "death_date": "deathDate",
    "plot_number": "plotNumber",
    "grave_type": "graveType",
    "notes": "notes",
}


class GraveCreate(CamelModel):
    cluster_id: str = Field(description="Owning grave cluster")
    deceased_name: str
    grave_type: str
    plot_number: str
    birth_date: Optional[str] = None
    death_date: Optional[str] = None
    notes: Optional[str] = None
    grave_expiration_date: Optional[date] = None


class GraveUpdate(CamelModel):
    """
    Partial update. Given attributes are merged into the stored payload.
    Sending `graveExpirationDate: null` explicitly clears the date.
    """

    cluster_id: Optional[str] = None
    deceased_name: Optional[str] = None
    grave_type: Optional[str] = None
    plot_number: Optional[str] = None
    birth_date: Optional[str] = None
    death_date: Optional[str] = None
    notes: Optional[str] = None
    grave_expiration_date: Optional[date] = None


class GraveResponse(CamelModel):
    id: str
    grave_cluster_id: str
    cluster_name: Optional[str] = None
    cluster_number: Optional[int] = None
    grave_json: dict = Field(default_factory=dict)
    grave_expiration_date: Optional[date] = None
    created_at: datetime
    updated_at: datetime


class PictureResponse(CamelModel):
    id: str
    grave_details_id: str
    image_url: str
    image_alt: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime


class ExpirationAlertsResponse(CamelModel):
    expired: List[GraveResponse]
    near_expiration: List[GraveResponse]
    total_expired: int
    total_near_expiration: int
