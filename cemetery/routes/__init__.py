# Routes package init
"""
Cemetery Records Service: API Routes Package
=============================================

Route Inventory:
    - public.py:           /api/public/*          (no identity)
    - files.py:            /api/files/{path}      (stored images)
    - health.py:           /health
    - clusters.py:         /api/clusters
    - graves.py:           /api/graves
    - instructions.py:     /api/instructions
    - grave_relations.py:  /api/grave-relations
    - requests.py:         /api/requests
    - search.py:           /api/search
    - users.py:            /api/users

Access is declared per handler with the dependency aliases in deps.py
(`CurrentUser`, `AdminUser`). Routes stay thin: parse input, call one
service method, return its result.
"""

from cemetery.schemas.common import ErrorResponse

# Shared OpenAPI error documentation.
AUTH_ERRORS = {
    401: {"description": "Missing, unknown or expired session", "model": ErrorResponse},
    403: {"description": "Caller lacks the required role", "model": ErrorResponse},
}
NOT_FOUND = {404: {"description": "Resource not found", "model": ErrorResponse}}
BAD_INPUT = {400: {"description": "Invalid input", "model": ErrorResponse}}
