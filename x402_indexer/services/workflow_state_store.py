"""Workflow State Store — persistence for derived workflow state.

Invariants:
    - upsert writes every column from the reducer output (no partial updates)
    - clear_all deletes only workflow_states, never chain_events
    - list_page orders by started_at desc, workflow_id asc (stable paging)
    - Caller owns the transaction (no commit here)

Design Decisions:
    - session.merge for upsert: portable across PostgreSQL and SQLite, primary key lookup
"""

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from x402_indexer.core.domain_types import WorkflowStatus
from x402_indexer.core.reducer import WorkflowState
from x402_indexer.models.workflow_state import WorkflowState as WorkflowStateRow


def row_to_state(row: WorkflowStateRow) -> WorkflowState:
    return WorkflowState(
        workflow_id=row.workflow_id,
        status=WorkflowStatus(row.status),
        initiator=row.initiator,
        started_at=int(row.started_at),
        completed_at=int(row.completed_at) if row.completed_at is not None else None,
        failure_reason=row.failure_reason,
        last_event_block=int(row.last_event_block),
        last_event_log_index=int(row.last_event_log_index),
    )


class WorkflowStateStore:
    """Read/write access to workflow_states."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get(self, workflow_id: str) -> WorkflowState | None:
        row = await self.db.get(WorkflowStateRow, workflow_id)
        return row_to_state(row) if row else None

    async def upsert(self, state: WorkflowState) -> None:
        await self.db.merge(WorkflowStateRow(
            workflow_id=state.workflow_id,
            status=state.status.value,
            initiator=state.initiator,
            started_at=state.started_at,
            completed_at=state.completed_at,
            failure_reason=state.failure_reason,
            last_event_block=state.last_event_block,
            last_event_log_index=state.last_event_log_index,
        ))

    async def clear_all(self) -> int:
        """Delete every derived row. Returns rows removed."""
        result = await self.db.execute(delete(WorkflowStateRow))
        return int(result.rowcount or 0)

    async def list_page(self, limit: int, offset: int) -> list[WorkflowState]:
        result = await self.db.execute(
            select(WorkflowStateRow)
            .order_by(
                WorkflowStateRow.started_at.desc(),
                WorkflowStateRow.workflow_id.asc(),
            )
            .limit(limit)
            .offset(offset),
        )
        return [row_to_state(r) for r in result.scalars().all()]

    async def list_all(self) -> list[WorkflowState]:
        result = await self.db.execute(
            select(WorkflowStateRow).order_by(WorkflowStateRow.workflow_id.asc()),
        )
        return [row_to_state(r) for r in result.scalars().all()]

    async def count_by_status(self) -> dict[str, int]:
        result = await self.db.execute(
            select(WorkflowStateRow.status, func.count())
            .group_by(WorkflowStateRow.status),
        )
        return {status: int(n) for status, n in result.all()}

    async def count(self) -> int:
        result = await self.db.execute(
            select(func.count()).select_from(WorkflowStateRow),
        )
        return int(result.scalar_one())
