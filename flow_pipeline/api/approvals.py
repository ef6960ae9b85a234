"""Approval endpoints.

GET  /api/v1/projects/{id}/approvals?status=  - List approvals of a project
POST /api/v1/approvals/{id}/decision          - Approve or reject
"""

from __future__ import annotations

import uuid

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from flow_pipeline.api.schemas import ApprovalDecision, ApprovalResponse
from flow_pipeline.database import get_db_session
from flow_pipeline.models.approval import ApprovalStatus
from flow_pipeline.services.approvals import ApprovalService
from flow_pipeline.services.projects import ProjectService

router = APIRouter(tags=["approvals"])


@router.get("/projects/{project_id}/approvals", response_model=list[ApprovalResponse])
async def list_approvals(
    project_id: uuid.UUID,
    status: ApprovalStatus | None = Query(default=None),
    db: AsyncSession = Depends(get_db_session),
) -> list[ApprovalResponse]:
    await ProjectService(db).get_project(project_id)
    approvals = await ApprovalService(db).list_for_project(project_id, status)
    return [ApprovalResponse.model_validate(a) for a in approvals]


@router.post("/approvals/{approval_id}/decision", response_model=ApprovalResponse)
async def decide_approval(
    approval_id: uuid.UUID,
    body: ApprovalDecision,
    db: AsyncSession = Depends(get_db_session),
) -> ApprovalResponse:
    approval = await ApprovalService(db).decide(approval_id, body.status)
    await db.commit()
    return ApprovalResponse.model_validate(approval)
