"""
Cemetery Records Service: Seeder Tests
=======================================

What:  The development seeder writes its sample records once; a second run
       only issues new session tokens.
"""

import random

import pytest
from sqlalchemy import func, select

from cemetery.models import ClusterInstructionStep, GraveCluster, GraveDetails, Request, User
from cemetery.seed import SAMPLE_CLUSTERS, SAMPLE_GRAVES, SAMPLE_USERS, seed_sample_data


async def count(db, model) -> int:
    return await db.scalar(select(func.count()).select_from(model))


class TestSeedSampleData:
    @pytest.mark.asyncio
    async def test_first_run_writes_sample_records(self, db_session):
        lines = await seed_sample_data(db_session, request_count=4, rng=random.Random(7))

        assert len(lines) == len(SAMPLE_USERS)
        assert await count(db_session, GraveCluster) == len(SAMPLE_CLUSTERS)
        assert await count(db_session, GraveDetails) == len(SAMPLE_GRAVES)
        assert await count(db_session, ClusterInstructionStep) == 2
        assert await count(db_session, Request) == 4

    @pytest.mark.asyncio
    async def test_second_run_does_not_duplicate(self, db_session):
        first = await seed_sample_data(db_session, request_count=4, rng=random.Random(7))
        second = await seed_sample_data(db_session, request_count=4, rng=random.Random(8))

        assert await count(db_session, User) == len(SAMPLE_USERS)
        assert await count(db_session, GraveCluster) == len(SAMPLE_CLUSTERS)
        assert await count(db_session, GraveDetails) == len(SAMPLE_GRAVES)
        assert await count(db_session, ClusterInstructionStep) == 2
        assert await count(db_session, Request) == 4
        # fresh tokens on every run
        assert first != second
