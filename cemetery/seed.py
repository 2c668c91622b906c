"""
Cemetery Records Service: Development Seeder
=============================================

What:  Fills a database with sample users, clusters, graves and service
       requests in assorted states. Re-running it only issues fresh session
       tokens: users are matched by email, and the sample records are
       skipped once any cluster exists.
How:   Everything goes through the service layer, so seeded rows obey the
       same rules as API writes (one status row per request, a submission
       log, explicit grave links). Session tokens are printed so the API
       can be exercised straight away:

           python -m cemetery.seed --requests 30
           curl -H "Authorization: Bearer <token>" localhost:8000/api/requests/mine

Run migrations first (`alembic upgrade head`), or pass `--create-tables`.
"""

import asyncio
import logging
import random
from datetime import date, timedelta
from typing import List

import click
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cemetery.database import Base, async_session_factory, engine, utcnow
from cemetery.models import GraveCluster, Request, User
from cemetery.models.request import RequestStatusValue
from cemetery.schemas.cluster import ClusterCreate
from cemetery.schemas.common import Coordinates
from cemetery.schemas.grave import GraveCreate
from cemetery.schemas.request import RequestCreate
from cemetery.services.auth_service import auth_service
from cemetery.services.cluster_service import cluster_service
from cemetery.services.grave_service import grave_service
from cemetery.services.instruction_service import instruction_service
from cemetery.services.request_service import request_service
from cemetery.services.user_service import user_service

logger = logging.getLogger("cemetery.seed")

SAMPLE_USERS = [
    ("Maria Santos", "maria.santos@example.com", "user"),
    ("Juan Dela Cruz", "juan.delacruz@example.com", "user"),
    ("Ana Rodriguez", "ana.rodriguez@example.com", "user"),
    ("Carlos Mendoza", "carlos.mendoza@example.com", "user"),
    ("Elena Garcia", "elena.garcia@example.com", "user"),
    ("Admin User", "admin@example.com", "admin"),
]

SAMPLE_CLUSTERS = [
    ("Garden of Peace", 1, 14.5995, 120.9842),
    ("Memorial Gardens", 2, 14.6005, 120.9852),
    ("Eternal Rest", 3, 14.6015, 120.9862),
]

SAMPLE_GRAVES = [
    # cluster index, plot, deceased, type, birth, death, lease expiry
    (0, "A-001", "Jose Santos", "Lawn", "1950-01-15", "2023-03-15", date(2053, 3, 15)),
    (0, "A-002", "Maria Dela Cruz", "Lawn", "1945-06-20", "2022-11-10", date(2052, 11, 10)),
    (1, "B-001", "Carlos Rodriguez", "Mausoleum", "1960-09-05", "2024-01-20", date(2054, 1, 20)),
    (1, "B-002", "Lourdes Reyes", "Niche", "1938-02-11", "1999-07-30", None),
    (2, "C-001", "Ramon Garcia", "Lawn", "1941-12-01", "2001-05-05", None),
]

REQUEST_TYPES = [
    "Grave Maintenance Request",
    "Grave Transfer Request",
    "Memorial Service Request",
    "Grave Decoration Request",
    "Grave Documentation Request",
]

REQUEST_DETAILS = [
    "The headstone needs cleaning and the surrounding area requires landscaping.",
    "Please provide the forms needed to transfer ownership of the plot to my sister.",
    "We would like to schedule a memorial service next month.",
    "Are there restrictions on flowers and decorations placed on the grave?",
    "I need official documentation of the plot for legal purposes.",
]

INSTRUCTION_STEPS = [
    ("Enter through the main gate", "Follow the central path past the chapel."),
    ("Turn left at the fountain", "The cluster marker is on the right after twenty meters."),
]


async def seed_sample_data(db: AsyncSession, request_count: int, rng: random.Random) -> List[str]:
    """
    Writes the sample data through `db` without committing and returns
    printable lines (user, role, token) for the issued sessions.
    """
    lines: List[str] = []
    users: List[User] = []
    for name, email, role in SAMPLE_USERS:
        user = await user_service.create_user(db, name=name, email=email, role=role)
        session = await auth_service.issue_session(db, user)
        users.append(user)
        lines.append(f"{role:<6} {email:<32} {session.token}")
    admin = next(u for u in users if u.is_admin)
    members = [u for u in users if not u.is_admin]

    existing = await db.scalar(select(func.count()).select_from(GraveCluster))
    if existing:
        logger.info("Found %d clusters; skipping sample clusters, graves and requests", existing)
        return lines

    clusters = []
    for name, number, lat, lng in SAMPLE_CLUSTERS:
        clusters.append(
            await cluster_service.create_cluster(
                db,
                ClusterCreate(
                    name=name,
                    cluster_number=number,
                    coordinates=Coordinates(latitude=lat, longitude=lng),
                ),
            )
        )
    for title, description in INSTRUCTION_STEPS:
        await instruction_service.add_step(db, clusters[0].id, title, description)

    graves = []
    for cluster_idx, plot, deceased, grave_type, birth, death, expiry in SAMPLE_GRAVES:
        graves.append(
            await grave_service.create_grave(
                db,
                GraveCreate(
                    cluster_id=clusters[cluster_idx].id,
                    plot_number=plot,
                    deceased_name=deceased,
                    grave_type=grave_type,
                    birth_date=birth,
                    death_date=death,
                    grave_expiration_date=expiry,
                ),
            )
        )

    now = utcnow()
    for _ in range(request_count):
        requester = rng.choice(members)
        payload = RequestCreate(
            details=f"{rng.choice(REQUEST_TYPES)}: {rng.choice(REQUEST_DETAILS)}",
            priority=rng.choice(["low", "medium", "high"]),
            contact_phone=f"+63 9{rng.randint(10, 99)} {rng.randint(100, 999)} {rng.randint(1000, 9999)}",
            request_related_grave=rng.choice(graves).id if rng.random() < 0.6 else None,
        )
        created = await request_service.create_request(db, requester, payload)

        # Spread submissions over the last 90 days so some pending ones are overdue.
        request = await db.get(Request, created.id)
        request.created_at = now - timedelta(days=rng.randint(0, 90), hours=rng.randint(0, 23))

        status = rng.choice(list(RequestStatusValue))
        if status is not RequestStatusValue.PENDING:
            remark = "Reviewed by the cemetery office" if status is RequestStatusValue.REJECTED else None
            await request_service.update_status(db, admin, created.id, status, remark)
        if rng.random() < 0.3:
            await request_service.append_log(db, admin, created.id, "Contacted requester by phone.")

    logger.info(
        "Seeded %d users, %d clusters, %d graves, %d requests",
        len(users),
        len(clusters),
        len(graves),
        request_count,
    )
    return lines


async def seed(request_count: int, create_tables: bool, rng: random.Random) -> List[str]:
    if create_tables:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async with async_session_factory() as db:
        lines = await seed_sample_data(db, request_count, rng)
        await db.commit()
    await engine.dispose()
    return lines


@click.command()
@click.option("--requests", "request_count", default=20, show_default=True, help="Number of sample requests.")
@click.option("--create-tables", is_flag=True, help="Create tables from the ORM metadata first.")
@click.option("--random-seed", default=None, type=int, help="Seed for reproducible data.")
def main(request_count: int, create_tables: bool, random_seed: int) -> None:
    """Populate the database with sample data for local development."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    lines = asyncio.run(seed(request_count, create_tables, random.Random(random_seed)))

    click.echo("\nSession tokens (Authorization: Bearer <token>):")
    for line in lines:
        click.echo(f"  {line}")


if __name__ == "__main__":
    main()
