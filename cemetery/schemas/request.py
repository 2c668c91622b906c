"""
Cemetery Records Service: Service Request Schemas
==================================================

What:  Contracts for submitting requests, changing their status, appending
       audit logs, and the row/detail/paginated shapes returned to clients.
Who:   routes/requests.py and routes/search.py.
"""

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import Field, field_validator

from cemetery.models.request import RequestStatusValue
from cemetery.schemas.common import CamelModel

Priority = Literal["low", "medium", "high"]


# ══════════════════════════════════════════════════════════════════════════
# Input Models
# ══════════════════════════════════════════════════════════════════════════


class RequestCreate(CamelModel):
    """
    Everything except `request_related_grave` is serialized into the single
    `request_details` text column.
    """

    details: str = Field(description="What the requester needs done")
    priority: Priority = "medium"
    contact_phone: Optional[str] = None
    preferred_contact_time: Optional[str] = None
    additional_notes: Optional[str] = None
    request_related_grave: Optional[str] = Field(
        default=None, description="ID of the grave this request concerns"
    )


class StatusUpdate(CamelModel):
    status: RequestStatusValue
    remark: Optional[str] = None

    @field_validator("remark")
    @classmethod
    def blank_remark_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class LogAppend(CamelModel):
    message: str = Field(min_length=1)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class ParsedRequestDetails(CamelModel):
    """The decoded `request_details` payload. Unknown keys are kept."""

    model_config = {**CamelModel.model_config, "extra": "allow"}

    details: str = ""
    priority: Optional[str] = None
    contact_phone: Optional[str] = None
    preferred_contact_time: Optional[str] = None
    additional_notes: Optional[str] = None


class RelatedGrave(CamelModel):
    id: str
    grave_json: Optional[dict] = None
    cluster_id: Optional[str] = None
    cluster_name: Optional[str] = None


class RequestRow(CamelModel):
    """Summary shape used by every request listing."""

    id: str
    user_id: str
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    request_details: str
    parsed_details: ParsedRequestDetails
    status: Optional[RequestStatusValue] = None
    status_remark: Optional[str] = None
    status_updated_at: Optional[datetime] = None
    related_grave: Optional[RelatedGrave] = None
    is_overdue: bool = False
    created_at: datetime
    updated_at: datetime


class RequestLogEntry(CamelModel):
    id: str
    log: str
    user_id: str
    user_name: Optional[str] = None
    created_at: datetime


class RequestDetail(RequestRow):
    logs: List[RequestLogEntry] = Field(default_factory=list)


class Pagination(CamelModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool


class PaginatedRequests(CamelModel):
    data: List[RequestRow]
    pagination: Pagination


class RequestCreated(CamelModel):
    id: str
    status: RequestStatusValue
    message: str = "Request submitted and is under review."
