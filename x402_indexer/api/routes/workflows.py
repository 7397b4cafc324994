"""Workflow Routes — read-only views over derived workflow state.

Invariants:
    - GET only: the indexer never writes on behalf of a client
    - Unknown workflow id -> ResourceNotFoundError -> 404 with the standard error envelope
    - Pagination bounded (limit 1-200)

Design Decisions:
    - Routes delegate to WorkflowQueries (no SQL here)
    - Workflow ids normalized to lowercase hex before lookup (ids are stored lowercase)
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from x402_indexer.core.domain_types import normalize_hex
from x402_indexer.core.errors import ResourceNotFoundError
from x402_indexer.infrastructure.database import get_db
from x402_indexer.schemas.workflow import (
    ReplayProgress, WorkflowDetail, WorkflowPage, WorkflowStats,
)
from x402_indexer.services.workflow_queries import WorkflowQueries

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1", tags=["workflows"])


@router.get("/workflows", response_model=WorkflowPage)
async def list_workflows(
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    db: AsyncSession = Depends(get_db),
):
    """List workflows, newest first."""
    return await WorkflowQueries(db).list_workflows(limit=limit, offset=offset)


@router.get("/workflows/{workflow_id}", response_model=WorkflowDetail)
async def get_workflow(workflow_id: str, db: AsyncSession = Depends(get_db)):
    """Workflow state plus its ordered timeline, decisions and settlements."""
    detail = await WorkflowQueries(db).get_workflow(normalize_hex(workflow_id))
    if detail is None:
        raise ResourceNotFoundError("Workflow", workflow_id)
    return detail


@router.get("/stats", response_model=WorkflowStats)
async def get_stats(db: AsyncSession = Depends(get_db)):
    return await WorkflowQueries(db).get_stats()


@router.get("/replay/progress", response_model=ReplayProgress)
async def get_replay_progress(db: AsyncSession = Depends(get_db)):
    return await WorkflowQueries(db).get_replay_progress()
