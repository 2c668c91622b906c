"""
Cemetery Records Service: Instruction Service Tests
====================================================

What:  Step numbering, title/description storage, renumbering after delete,
       step images and removal of whole instruction sets.
"""

from unittest.mock import patch

import pytest

from cemetery.exceptions import NotFoundError
from cemetery.models.cluster import ClusterInstructionStep
from cemetery.services.file_service import file_service
from cemetery.services.instruction_service import (
    compose_instruction,
    instruction_service,
    split_instruction,
)


class TestInstructionText:
    def test_compose_and_split(self):
        text = compose_instruction("Enter the gate", "Follow the central path.")
        assert text == "Enter the gate\n\nFollow the central path."
        assert split_instruction(text) == ("Enter the gate", "Follow the central path.")

    def test_text_without_separator_is_all_title(self):
        assert split_instruction("Turn left") == ("Turn left", "")

    def test_only_first_separator_splits(self):
        assert split_instruction("A\n\nB\n\nC") == ("A", "B\n\nC")


class TestSteps:
    @pytest.mark.asyncio
    async def test_steps_numbered_in_order(self, db_session, cluster):
        first = await instruction_service.add_step(db_session, cluster.id, "Gate", "Enter")
        second = await instruction_service.add_step(db_session, cluster.id, "Fountain", "Turn left")

        assert (first.step, second.step) == (1, 2)
        assert second.title == "Fountain"
        assert second.description == "Turn left"

        instructions = await instruction_service.get_instructions(db_session, cluster.id)
        assert [s.title for s in instructions.steps] == ["Gate", "Fountain"]

    @pytest.mark.asyncio
    async def test_add_step_to_unknown_cluster(self, db_session):
        with pytest.raises(NotFoundError):
            await instruction_service.add_step(db_session, "missing", "a", "b")

    @pytest.mark.asyncio
    async def test_get_or_create_is_idempotent(self, db_session, cluster):
        first = await instruction_service.get_or_create_instructions(db_session, cluster.id)
        again = await instruction_service.get_or_create_instructions(db_session, cluster.id)
        assert first.id == again.id
        assert again.steps == []

    @pytest.mark.asyncio
    async def test_no_instructions_returns_none(self, db_session, cluster):
        assert await instruction_service.get_instructions(db_session, cluster.id) is None

    @pytest.mark.asyncio
    async def test_update_step_rewrites_text(self, db_session, cluster):
        step = await instruction_service.add_step(db_session, cluster.id, "Gate", "Enter")
        updated = await instruction_service.update_step(db_session, step.id, "North gate", "Use the side door")
        assert updated.instruction == "North gate\n\nUse the side door"
        assert updated.step == 1

    @pytest.mark.asyncio
    async def test_delete_renumbers_remaining(self, db_session, cluster):
        steps = [
            await instruction_service.add_step(db_session, cluster.id, f"Step {i}", "...")
            for i in range(1, 4)
        ]
        await instruction_service.delete_step(db_session, steps[0].id)

        instructions = await instruction_service.get_instructions(db_session, cluster.id)
        assert [(s.step, s.title) for s in instructions.steps] == [(1, "Step 2"), (2, "Step 3")]

        added = await instruction_service.add_step(db_session, cluster.id, "Step 4", "...")
        assert added.step == 3

    @pytest.mark.asyncio
    async def test_delete_missing_step(self, db_session):
        with pytest.raises(NotFoundError):
            await instruction_service.delete_step(db_session, "missing")


class TestStepImages:
    @pytest.mark.asyncio
    async def test_replace_and_remove_image(self, db_session, cluster, sample_image_bytes):
        step = await instruction_service.add_step(db_session, cluster.id, "Gate", "Enter")

        with patch.object(file_service, "validate_mime_type", return_value="image/png"):
            first = await instruction_service.upload_step_image(db_session, step.id, "a.png", sample_image_bytes)
            first_path = (await db_session.get(ClusterInstructionStep, step.id)).image_path
            second = await instruction_service.upload_step_image(db_session, step.id, "b.png", sample_image_bytes)
            second_path = (await db_session.get(ClusterInstructionStep, step.id)).image_path

        assert first.image_custom_id.startswith(f"step_{step.id}_")
        assert second.image_url.startswith("/api/files/instructions/")
        assert not file_service.resolve(first_path).exists()
        assert file_service.resolve(second_path).exists()

        cleared = await instruction_service.remove_step_image(db_session, step.id)
        assert cleared.image_url is None
        assert cleared.image_custom_id is None
        assert not file_service.resolve(second_path).exists()


class TestDeleteInstructions:
    @pytest.mark.asyncio
    async def test_delete_all_for_cluster(self, db_session, cluster):
        await instruction_service.add_step(db_session, cluster.id, "Gate", "Enter")
        await instruction_service.delete_instructions(db_session, cluster.id)
        assert await instruction_service.get_instructions(db_session, cluster.id) is None

    @pytest.mark.asyncio
    async def test_delete_when_none_exist(self, db_session, cluster):
        with pytest.raises(NotFoundError) as exc_info:
            await instruction_service.delete_instructions(db_session, cluster.id)
        assert exc_info.value.resource == "instructions"
