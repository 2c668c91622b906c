# Models package init
"""
Importing this package registers every table with `Base.metadata`
(Alembic autogenerate and the test suite's `create_all` rely on it).
"""

from cemetery.models.user import User, Session, ROLE_ADMIN, ROLE_USER, ROLES  # noqa: F401
from cemetery.models.cluster import (  # noqa: F401
    GraveCluster,
    ClusterInstructions,
    ClusterInstructionStep,
)
from cemetery.models.grave import GraveDetails, GravePicture, GraveRelatedUser  # noqa: F401
from cemetery.models.request import (  # noqa: F401
    Request,
    RequestStatus,
    RequestStatusValue,
    RequestLog,
    RequestGraveRelation,
)
