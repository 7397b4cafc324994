"""Chain Events — immutable event records and their per-type payload variants.

Invariants:
    - ChainEvent is frozen: once built from a log or a stored row it never changes
    - Each payload variant carries only the fields its event type defines
    - payload_to_dict(payload_from_dict(t, d)) preserves every known field
    - Unrecognized event types keep their raw payload in UnknownPayload (never dropped)

Design Decisions:
    - Tagged union of frozen dataclasses over a free-form dict: no stringly-typed
      field access in the reducer
    - amount kept as decimal string: uint256 does not fit in JSON numbers
    - created_at is NOT part of ChainEvent: it is audit-only and lives on the ORM row
"""

from dataclasses import dataclass, field, asdict
from typing import Any, Union

from x402_indexer.core.domain_types import EventPosition, EventType


@dataclass(frozen=True)
class WorkflowStartedPayload:
    initiator: str


@dataclass(frozen=True)
class DecisionRecordedPayload:
    approved: bool
    reason: str = ""


@dataclass(frozen=True)
class PaymentExecutedPayload:
    to: str
    amount: str


@dataclass(frozen=True)
class WorkflowCompletedPayload:
    pass


@dataclass(frozen=True)
class WorkflowFailedPayload:
    reason: str = ""


@dataclass(frozen=True)
class UnknownPayload:
    data: dict[str, Any] = field(default_factory=dict)


EventPayload = Union[
    WorkflowStartedPayload,
    DecisionRecordedPayload,
    PaymentExecutedPayload,
    WorkflowCompletedPayload,
    WorkflowFailedPayload,
    UnknownPayload,
]

_PAYLOAD_TYPES: dict[EventType, type] = {
    EventType.WORKFLOW_STARTED: WorkflowStartedPayload,
    EventType.DECISION_RECORDED: DecisionRecordedPayload,
    EventType.PAYMENT_EXECUTED: PaymentExecutedPayload,
    EventType.WORKFLOW_COMPLETED: WorkflowCompletedPayload,
    EventType.WORKFLOW_FAILED: WorkflowFailedPayload,
}


@dataclass(frozen=True)
class ChainEvent:
    """One contract log, with full canonical ordering metadata."""
    workflow_id: str
    event_type: str
    payload: EventPayload
    block_number: int
    transaction_index: int
    log_index: int
    tx_hash: str
    block_timestamp: int
    block_hash: str = ""

    @property
    def position(self) -> EventPosition:
        return EventPosition(
            self.block_number, self.transaction_index, self.log_index,
        )

    @property
    def known_type(self) -> EventType | None:
        """EventType member, or None when the stored type is not recognized."""
        try:
            return EventType(self.event_type)
        except ValueError:
            return None


def payload_from_dict(event_type: str, data: dict[str, Any] | None) -> EventPayload:
    """Build the payload variant for event_type from its JSON column form."""
    data = dict(data or {})
    try:
        payload_cls = _PAYLOAD_TYPES[EventType(event_type)]
    except (ValueError, KeyError):
        return UnknownPayload(data=data)

    if payload_cls is WorkflowStartedPayload:
        return WorkflowStartedPayload(initiator=str(data.get("initiator", "")))
    if payload_cls is DecisionRecordedPayload:
        return DecisionRecordedPayload(
            approved=bool(data.get("approved", False)),
            reason=str(data.get("reason") or ""),
        )
    if payload_cls is PaymentExecutedPayload:
        return PaymentExecutedPayload(
            to=str(data.get("to", "")), amount=str(data.get("amount", "0")),
        )
    if payload_cls is WorkflowFailedPayload:
        return WorkflowFailedPayload(reason=str(data.get("reason") or ""))
    return WorkflowCompletedPayload()


def payload_to_dict(payload: EventPayload) -> dict[str, Any]:
    """Serialize a payload variant to a JSON-safe dict. Pure, no IO."""
    if isinstance(payload, UnknownPayload):
        return dict(payload.data)
    return asdict(payload)
