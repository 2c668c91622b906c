"""
Stored image delivery.

GET /api/files/{path} serves grave pictures and instruction-step images
written by FileService. The path is resolved against STORAGE_ROOT and
anything that escapes it is rejected.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import FileResponse

from cemetery.exceptions import NotFoundError
from cemetery.routes import BAD_INPUT, NOT_FOUND
from cemetery.services.file_service import file_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Files"])


@router.get(
    "/files/{file_path:path}",
    responses={200: {"description": "Image file"}, **BAD_INPUT, **NOT_FOUND},
    summary="Serve a stored image",
)
async def serve_file(file_path: str) -> FileResponse:
    full_path = file_service.resolve(file_path)
    if not full_path.is_file():
        raise NotFoundError(resource="file", resource_id=file_path)

    # Stored names are UUIDs, so a path's content never changes.
    return FileResponse(
        path=str(full_path),
        headers={"Cache-Control": "public, max-age=86400"},
    )
