"""
Cemetery Records Service: Grave Relation Tests
===============================================

What:  Linking users (relatives) to graves: duplicates, lookups in both
       directions and the "available" listings used by the admin screens.
"""

import pytest
import pytest_asyncio

from cemetery.exceptions import NotFoundError, ValidationError
from cemetery.schemas.relation import RelationCreate
from cemetery.services.relation_service import DUPLICATE_RELATION_MESSAGE, relation_service


@pytest_asyncio.fixture
async def relative(make_user):
    return await make_user("Juan Dela Cruz")


class TestCreateRelation:
    @pytest.mark.asyncio
    async def test_relation_joined_with_user_and_grave(self, db_session, user, grave):
        relation = await relation_service.create_relation(
            db_session, RelationCreate(user_id=user["user"].id, grave_details_id=grave.id)
        )
        assert relation.user_name == "Maria Santos"
        assert relation.grave_json["plotNumber"] == "A-001"
        assert relation.cluster_name == "Garden of Peace"

    @pytest.mark.asyncio
    async def test_duplicate_pair_rejected(self, db_session, user, grave):
        payload = RelationCreate(user_id=user["user"].id, grave_details_id=grave.id)
        await relation_service.create_relation(db_session, payload)

        with pytest.raises(ValidationError, match=DUPLICATE_RELATION_MESSAGE):
            await relation_service.create_relation(db_session, payload)
        assert len(await relation_service.relations_by_grave(db_session, grave.id)) == 1

    @pytest.mark.asyncio
    async def test_unknown_user(self, db_session, grave):
        with pytest.raises(NotFoundError) as exc_info:
            await relation_service.create_relation(
                db_session, RelationCreate(user_id="missing", grave_details_id=grave.id)
            )
        assert exc_info.value.resource == "user"

    @pytest.mark.asyncio
    async def test_unknown_grave(self, db_session, user):
        with pytest.raises(NotFoundError) as exc_info:
            await relation_service.create_relation(
                db_session, RelationCreate(user_id=user["user"].id, grave_details_id="missing")
            )
        assert exc_info.value.resource == "grave"


class TestRelationLookups:
    @pytest.mark.asyncio
    async def test_by_user_and_my_graves(self, db_session, user, relative, make_grave):
        mine = await make_grave("A-001")
        theirs = await make_grave("A-002", "Carlos Rodriguez")
        await relation_service.create_relation(
            db_session, RelationCreate(user_id=user["user"].id, grave_details_id=mine.id)
        )
        await relation_service.create_relation(
            db_session, RelationCreate(user_id=relative["user"].id, grave_details_id=theirs.id)
        )

        by_user = await relation_service.relations_by_user(db_session, user["user"].id)
        assert [r.grave_details_id for r in by_user] == [mine.id]

        graves = await relation_service.my_related_graves(db_session, user["user"])
        assert [g.id for g in graves] == [mine.id]
        assert len(await relation_service.list_relations(db_session)) == 2

    @pytest.mark.asyncio
    async def test_available_graves_excludes_related(self, db_session, user, make_grave):
        related = await make_grave("A-001")
        free = await make_grave("A-002", "Lourdes Reyes")
        await relation_service.create_relation(
            db_session, RelationCreate(user_id=user["user"].id, grave_details_id=related.id)
        )

        available = await relation_service.available_graves(db_session)
        assert [g.id for g in available] == [free.id]

    @pytest.mark.asyncio
    async def test_delete_relation(self, db_session, user, grave):
        relation = await relation_service.create_relation(
            db_session, RelationCreate(user_id=user["user"].id, grave_details_id=grave.id)
        )
        await relation_service.delete_relation(db_session, relation.id)
        assert await relation_service.relations_by_grave(db_session, grave.id) == []

        with pytest.raises(NotFoundError):
            await relation_service.delete_relation(db_session, relation.id)
