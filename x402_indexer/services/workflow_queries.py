"""Workflow Queries — read-only access to derived state for the API and the CLI.

Invariants:
    - Never writes: every method is a SELECT over workflow_states / chain_events / system_state
    - get_workflow returns None for an unknown id (routes map it to 404)
    - Timeline is the stored event log in canonical order, never re-derived

Design Decisions:
    - Thin wrapper over the stores + pure views (core/workflow_views.py)
"""

from sqlalchemy.ext.asyncio import AsyncSession

from x402_indexer.core.workflow_views import compute_stats, split_timeline, state_to_dict
from x402_indexer.services.event_store import EventStore
from x402_indexer.services.system_state_store import SystemStateStore
from x402_indexer.services.workflow_state_store import WorkflowStateStore


class WorkflowQueries:

    def __init__(self, db: AsyncSession):
        self.events = EventStore(db)
        self.states = WorkflowStateStore(db)
        self.system = SystemStateStore(db)

    async def list_workflows(self, limit: int = 50, offset: int = 0) -> dict:
        states = await self.states.list_page(limit=limit, offset=offset)
        total = await self.states.count()
        return {
            "items": [state_to_dict(s) for s in states],
            "total": total,
            "limit": limit,
            "offset": offset,
        }

    async def get_workflow(self, workflow_id: str) -> dict | None:
        state = await self.states.get(workflow_id)
        if state is None:
            return None
        events = await self.events.list_events(workflow_id=workflow_id)
        return {**state_to_dict(state), **split_timeline(events)}

    async def get_stats(self) -> dict:
        return compute_stats(await self.states.count_by_status())

    async def get_replay_progress(self) -> dict:
        checkpoint = await self.system.get()
        return {
            "last_processed_block": (
                checkpoint.last_processed_block if checkpoint else 0
            ),
            "confirmation_blocks": (
                checkpoint.confirmation_blocks if checkpoint else None
            ),
            "total_events": await self.events.count(),
            "total_workflows": await self.states.count(),
        }
