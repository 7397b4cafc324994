"""Domain Types — rich types that replace bare primitives across the indexer.

Invariants:
    - Workflow ids and tx hashes are stored lowercase, 0x-prefixed (66 chars)
    - All valid event kinds and workflow statuses encoded as Enums — no raw string matching
    - EventPosition is the canonical ordering key: (block_number, transaction_index, log_index)

Design Decisions:
    - NamedTuple for the ordering key: tuple comparison is the canonical order
    - str Enums: serialize to JSON and to the String columns without custom encoders
"""

from enum import Enum
from typing import NamedTuple


# ─── Value Types ─────────────────────────────────────────────────

class EventPosition(NamedTuple):
    """Canonical total order over chain events."""
    block_number: int
    transaction_index: int
    log_index: int


# ─── Enums ───────────────────────────────────────────────────────

class EventType(str, Enum):
    """The five contract events mirrored by the indexer."""
    WORKFLOW_STARTED = "WORKFLOW_STARTED"
    DECISION_RECORDED = "DECISION_RECORDED"
    PAYMENT_EXECUTED = "PAYMENT_EXECUTED"
    WORKFLOW_COMPLETED = "WORKFLOW_COMPLETED"
    WORKFLOW_FAILED = "WORKFLOW_FAILED"


class WorkflowStatus(str, Enum):
    """Derived workflow status — maps to workflow_states.status column."""
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    REJECTED = "REJECTED"


class RecordOutcome(str, Enum):
    """Result of an idempotent Event Store insert."""
    INSERTED = "inserted"
    ALREADY_PRESENT = "already_present"


def normalize_hex(value: str | bytes) -> str:
    """Lowercase 0x-prefixed hex form used for every stored identifier."""
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    text = value.lower()
    return text if text.startswith("0x") else "0x" + text
