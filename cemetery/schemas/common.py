"""
Cemetery Records Service: Shared Schemas
=========================================

What:  The camelCase base model every API contract inherits from, plus the
       error, health and acknowledgement bodies shared across routers.
How:   Field names stay snake_case in Python. `alias_generator=to_camel`
       makes the wire format camelCase (`contactPhone`, `totalPages`, ...)
       and `populate_by_name` lets clients send either spelling.
"""

from typing import Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base for every request/response body in this service."""

    model_config = {
        "alias_generator": to_camel,
        "populate_by_name": True,
        "from_attributes": True,
    }


class Coordinates(CamelModel):
    latitude: float = Field(ge=-90, le=90, description="Latitude in decimal degrees")
    longitude: float = Field(ge=-180, le=180, description="Longitude in decimal degrees")


class SuccessResponse(CamelModel):
    """Acknowledgement for deletes and other writes with nothing to return."""

    success: bool = True
    message: Optional[str] = None


class ErrorResponse(CamelModel):
    """
    Standardized error body for every non-2xx response except FastAPI's 422.

    Example:
        {
            "error": "not_found",
            "message": "Request with ID '...' was not found",
            "details": {"resource": "request"},
            "requestId": "550e8400-e29b-41d4-a716-446655440000"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(CamelModel):
    status: str = Field(description="Overall service status: healthy or unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    uptime_seconds: float = Field(description="Seconds since service started")
