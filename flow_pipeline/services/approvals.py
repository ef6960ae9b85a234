"""Approval service - human sign-off on artifacts from needs_approval jobs."""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from datetime import UTC, datetime

import structlog
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from flow_pipeline.core.errors import ApprovalAlreadyDecidedError, ApprovalNotFoundError
from flow_pipeline.models.approval import Approval, ApprovalStatus

log = structlog.get_logger(__name__)


class ApprovalService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def create_for_artifacts(
        self,
        project_id: uuid.UUID,
        artifact_ids: Sequence[uuid.UUID],
    ) -> list[Approval]:
        """Create one pending approval per artifact."""
        approvals = [
            Approval(project_id=project_id, artifact_id=artifact_id)
            for artifact_id in artifact_ids
        ]
        self.db.add_all(approvals)
        await self.db.flush()
        log.info("approvals.created", project_id=str(project_id), count=len(approvals))
        return approvals

    async def list_for_project(
        self,
        project_id: uuid.UUID,
        status: ApprovalStatus | str | None = None,
    ) -> list[Approval]:
        stmt = select(Approval).where(Approval.project_id == project_id)
        if status is not None:
            stmt = stmt.where(Approval.status == ApprovalStatus(status).value)
        result = await self.db.execute(stmt.order_by(Approval.created_at))
        return list(result.scalars().all())

    async def decide(
        self,
        approval_id: uuid.UUID,
        status: ApprovalStatus | str,
    ) -> Approval:
        """Approve or reject a pending approval. Decisions are final.

        Raises:
            ApprovalNotFoundError: unknown approval
            ApprovalAlreadyDecidedError: the approval is no longer pending
            ValueError: ``status`` is not approved or rejected
        """
        decision = ApprovalStatus(status)
        if decision == ApprovalStatus.PENDING:
            raise ValueError("Decision must be 'approved' or 'rejected'")

        approval = await self.db.get(Approval, approval_id)
        if approval is None:
            raise ApprovalNotFoundError(f"Approval {approval_id} not found")
        if approval.status != ApprovalStatus.PENDING:
            raise ApprovalAlreadyDecidedError(
                f"Approval {approval_id} was already {approval.status}"
            )

        # Only a row that is still pending is updated
        result = await self.db.execute(
            update(Approval)
            .where(
                Approval.id == approval_id,
                Approval.status == ApprovalStatus.PENDING.value,
            )
            .values(status=decision.value, decided_at=datetime.now(UTC))
            .execution_options(synchronize_session=False)
        )
        await self.db.refresh(approval)
        if result.rowcount == 0:
            raise ApprovalAlreadyDecidedError(
                f"Approval {approval_id} was already {approval.status}"
            )

        log.info("approval.decided", approval_id=str(approval_id), status=decision.value)
        return approval
