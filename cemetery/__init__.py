"""
Cemetery Records Service: Application Package
==============================================

What:  Grave-records backend: clusters, graves, grave relations, and the
       service-request lifecycle with its audit trail.
Who:   Imported by uvicorn (`cemetery.main:app`), Alembic, the seeder and pytest.

Layering:

    ┌─────────────────────────────────────┐
    │        Routes (FastAPI routers)     │  ← HTTP + role gating only
    ├─────────────────────────────────────┤
    │     Services (business rules)       │  ← lifecycle, search, cascades
    ├─────────────────────────────────────┤
    │   Models (ORM) & Schemas (Pydantic) │
    ├─────────────────────────────────────┤
    │    Database (async SQLAlchemy)      │
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
