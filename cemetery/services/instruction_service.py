"""
Cemetery Records Service: Cluster Instruction Service
======================================================

What:  Ordered, illustrated visiting instructions for each cluster.
How:   A cluster has at most one `cluster_instructions` header. Steps are
       numbered 1..n; a new step gets `count + 1` and deleting a step closes
       the gap. Each step stores "<title>\\n\\n<description>" as one text.

Step images are stored through FileService. Replacing or removing an image
deletes the previous file best-effort.
"""

import logging
import time
from typing import Dict, List, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cemetery.exceptions import NotFoundError
from cemetery.models.cluster import ClusterInstructions, ClusterInstructionStep, GraveCluster
from cemetery.schemas.cluster import InstructionsResponse, StepResponse
from cemetery.services.file_service import CATEGORY_INSTRUCTIONS, file_service

logger = logging.getLogger(__name__)

TITLE_SEPARATOR = "\n\n"


def compose_instruction(title: str, description: str) -> str:
    return f"{title}{TITLE_SEPARATOR}{description}"


def split_instruction(text: str) -> tuple:
    """Inverse of compose_instruction; text without a separator is all title."""
    title, _, description = text.partition(TITLE_SEPARATOR)
    return title, description


def _step_response(step: ClusterInstructionStep) -> StepResponse:
    title, description = split_instruction(step.instruction)
    return StepResponse(
        id=step.id,
        step=step.step,
        instruction=step.instruction,
        title=title,
        description=description,
        image_url=step.image_url,
        image_custom_id=step.image_custom_id,
        created_at=step.created_at,
        updated_at=step.updated_at,
    )


class InstructionService:
    async def _header_for_cluster(
        self, db: AsyncSession, cluster_id: str
    ) -> Optional[ClusterInstructions]:
        result = await db.execute(
            select(ClusterInstructions)
            .where(ClusterInstructions.grave_cluster_id == cluster_id)
            .order_by(ClusterInstructions.created_at.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _steps(self, db: AsyncSession, header_id: str) -> List[ClusterInstructionStep]:
        result = await db.execute(
            select(ClusterInstructionStep)
            .where(ClusterInstructionStep.cluster_instructions_id == header_id)
            .order_by(ClusterInstructionStep.step.asc())
        )
        return list(result.scalars().all())

    async def _get_step(self, db: AsyncSession, step_id: str) -> ClusterInstructionStep:
        step = await db.get(ClusterInstructionStep, step_id)
        if step is None:
            raise NotFoundError(resource="step", resource_id=step_id)
        return step

    async def _build(
        self, db: AsyncSession, header: ClusterInstructions, cluster_name: Optional[str] = None
    ) -> InstructionsResponse:
        steps = await self._steps(db, header.id)
        return InstructionsResponse(
            id=header.id,
            grave_cluster_id=header.grave_cluster_id,
            cluster_name=cluster_name,
            steps=[_step_response(s) for s in steps],
            created_at=header.created_at,
            updated_at=header.updated_at,
        )

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_instructions(
        self, db: AsyncSession, cluster_id: str
    ) -> Optional[InstructionsResponse]:
        """The cluster's instructions with ordered steps, or None."""
        header = await self._header_for_cluster(db, cluster_id)
        if header is None:
            return None
        return await self._build(db, header)

    async def list_instructions(self, db: AsyncSession) -> List[InstructionsResponse]:
        result = await db.execute(
            select(ClusterInstructions, GraveCluster.name)
            .join(GraveCluster, GraveCluster.id == ClusterInstructions.grave_cluster_id)
            .order_by(GraveCluster.cluster_number.asc())
        )
        return [await self._build(db, header, name) for header, name in result.all()]

    # ── Writes ────────────────────────────────────────────────────────────

    async def get_or_create(self, db: AsyncSession, cluster_id: str) -> ClusterInstructions:
        header = await self._header_for_cluster(db, cluster_id)
        if header is not None:
            return header

        if await db.get(GraveCluster, cluster_id) is None:
            raise NotFoundError(resource="cluster", resource_id=cluster_id)

        header = ClusterInstructions(grave_cluster_id=cluster_id)
        db.add(header)
        await db.flush()
        logger.info("Instructions %s created for cluster %s", header.id, cluster_id)
        return header

    async def get_or_create_instructions(
        self, db: AsyncSession, cluster_id: str
    ) -> InstructionsResponse:
        header = await self.get_or_create(db, cluster_id)
        return await self._build(db, header)

    async def add_step(
        self, db: AsyncSession, cluster_id: str, title: str, description: str
    ) -> StepResponse:
        header = await self.get_or_create(db, cluster_id)
        count = await db.scalar(
            select(func.count())
            .select_from(ClusterInstructionStep)
            .where(ClusterInstructionStep.cluster_instructions_id == header.id)
        )
        step = ClusterInstructionStep(
            cluster_instructions_id=header.id,
            step=(count or 0) + 1,
            instruction=compose_instruction(title, description),
        )
        db.add(step)
        await db.flush()
        logger.info("Step %d added to instructions %s", step.step, header.id)
        return _step_response(step)

    async def update_step(
        self, db: AsyncSession, step_id: str, title: str, description: str
    ) -> StepResponse:
        step = await self._get_step(db, step_id)
        step.instruction = compose_instruction(title, description)
        await db.flush()
        return _step_response(step)

    async def delete_step(self, db: AsyncSession, step_id: str) -> None:
        step = await self._get_step(db, step_id)
        header_id, image_path = step.cluster_instructions_id, step.image_path

        await db.delete(step)
        await db.flush()

        # Close the gap so numbering stays 1..n.
        for number, remaining in enumerate(await self._steps(db, header_id), start=1):
            if remaining.step != number:
                remaining.step = number
        await db.flush()

        logger.info("Step %s deleted from instructions %s", step_id, header_id)
        await file_service.cleanup_file(image_path)

    async def upload_step_image(
        self,
        db: AsyncSession,
        step_id: str,
        filename: str,
        content: bytes,
        content_length: Optional[int] = None,
    ) -> StepResponse:
        step = await self._get_step(db, step_id)
        relative_path = await file_service.validate_and_store(
            filename=filename,
            content=content,
            category=CATEGORY_INSTRUCTIONS,
            content_length=content_length,
        )
        previous = step.image_path

        step.image_url = file_service.public_url(relative_path)
        step.image_path = relative_path
        step.image_custom_id = f"step_{step.id}_{int(time.time() * 1000)}"
        await db.flush()

        await file_service.cleanup_file(previous)
        return _step_response(step)

    async def remove_step_image(self, db: AsyncSession, step_id: str) -> StepResponse:
        step = await self._get_step(db, step_id)
        previous = step.image_path

        step.image_url = None
        step.image_path = None
        step.image_custom_id = None
        await db.flush()

        await file_service.cleanup_file(previous)
        return _step_response(step)

    async def delete_instructions(self, db: AsyncSession, cluster_id: str) -> None:
        header = await self._header_for_cluster(db, cluster_id)
        if header is None:
            raise NotFoundError(resource="instructions", resource_id=cluster_id)
        await self.purge_for_clusters(db, [cluster_id])
        logger.info("Instructions for cluster %s deleted", cluster_id)

    async def purge_for_clusters(self, db: AsyncSession, cluster_ids: List[str]) -> Dict[str, int]:
        """Deletes every instruction header and step under the given clusters."""
        result = await db.execute(
            select(ClusterInstructions.id).where(ClusterInstructions.grave_cluster_id.in_(cluster_ids))
        )
        header_ids = list(result.scalars().all())
        if not header_ids:
            return {"instructions": 0, "steps": 0}

        result = await db.execute(
            select(ClusterInstructionStep.image_path).where(
                ClusterInstructionStep.cluster_instructions_id.in_(header_ids)
            )
        )
        image_paths = list(result.scalars().all())

        await db.execute(
            delete(ClusterInstructionStep).where(
                ClusterInstructionStep.cluster_instructions_id.in_(header_ids)
            )
        )
        await db.execute(delete(ClusterInstructions).where(ClusterInstructions.id.in_(header_ids)))
        await db.flush()

        for path in image_paths:
            await file_service.cleanup_file(path)
        return {"instructions": len(header_ids), "steps": len(image_paths)}


instruction_service = InstructionService()
