"""Workflow Schemas — Pydantic response models for the read-only query API.

Invariants:
    - Field names mirror core/workflow_views.py dict keys (views feed schemas directly)
    - status is a WorkflowStatus value; event_type is the stored string (unknown types pass through)
    - Amounts are decimal strings: uint256 does not fit JSON numbers

Design Decisions:
    - Response-only schemas: the API has no write path
"""

from typing import Any

from pydantic import BaseModel, Field

from x402_indexer.core.domain_types import WorkflowStatus


class WorkflowSummary(BaseModel):
    """Derived state of one workflow."""
    workflow_id: str
    status: WorkflowStatus
    initiator: str | None = None
    started_at: int
    completed_at: int | None = None
    failure_reason: str | None = None
    last_event_block: int
    last_event_log_index: int


class WorkflowPage(BaseModel):
    items: list[WorkflowSummary]
    total: int = Field(ge=0)
    limit: int
    offset: int


class TimelineEntry(BaseModel):
    """One stored chain event, in canonical order."""
    event_type: str
    block_number: int
    transaction_index: int
    log_index: int
    tx_hash: str
    block_timestamp: int
    payload: dict[str, Any]


class WorkflowDetail(WorkflowSummary):
    timeline: list[TimelineEntry]
    decisions: list[TimelineEntry]
    settlements: list[TimelineEntry]


class WorkflowStats(BaseModel):
    """Dashboard counters. REJECTED is counted under failed."""
    total: int
    running: int
    completed: int
    failed: int
    by_status: dict[str, int]


class ReplayProgress(BaseModel):
    last_processed_block: int
    confirmation_blocks: int | None = None
    total_events: int
    total_workflows: int
