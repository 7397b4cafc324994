"""Test factories — ChainEvent values and ABI-encoded raw logs.

Design Decisions:
    - Raw logs encoded with eth_abi.encode: the decoder is exercised against real
      ABI bytes, not hand-written hex
"""

from eth_abi import encode as abi_encode

from x402_indexer.core.domain_types import EventType
from x402_indexer.core.event_abi import EVENT_SIGNATURES, RawLog
from x402_indexer.core.events import (
    ChainEvent,
    DecisionRecordedPayload,
    PaymentExecutedPayload,
    WorkflowCompletedPayload,
    WorkflowFailedPayload,
    WorkflowStartedPayload,
)

CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
INITIATOR = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
PAYEE = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"

WF_1 = "0x" + "11" * 32
WF_2 = "0x" + "22" * 32
WF_3 = "0x" + "33" * 32


def tx_hash(n: int) -> str:
    return "0x" + f"{n:064x}"


def make_event(
    event_type: EventType | str,
    block: int,
    log_index: int = 0,
    tx_index: int = 0,
    workflow_id: str = WF_1,
    timestamp: int | None = None,
    payload=None,
    tx: str | None = None,
) -> ChainEvent:
    """ChainEvent with sensible defaults per type."""
    kind = event_type.value if isinstance(event_type, EventType) else event_type
    if payload is None:
        payload = _default_payload(kind)
    return ChainEvent(
        workflow_id=workflow_id,
        event_type=kind,
        payload=payload,
        block_number=block,
        transaction_index=tx_index,
        log_index=log_index,
        tx_hash=tx or tx_hash(block * 1000 + tx_index),
        block_timestamp=timestamp if timestamp is not None else 1000 + block,
        block_hash="0x" + f"{block:064x}",
    )


def _default_payload(kind: str):
    defaults = {
        EventType.WORKFLOW_STARTED.value: WorkflowStartedPayload(initiator=INITIATOR),
        EventType.DECISION_RECORDED.value: DecisionRecordedPayload(approved=True),
        EventType.PAYMENT_EXECUTED.value: PaymentExecutedPayload(to=PAYEE, amount="1000"),
        EventType.WORKFLOW_COMPLETED.value: WorkflowCompletedPayload(),
        EventType.WORKFLOW_FAILED.value: WorkflowFailedPayload(reason="timeout"),
    }
    return defaults.get(kind, WorkflowCompletedPayload())


# ─── Raw logs ────────────────────────────────────────────────────

SIGNATURE_BY_TYPE = {sig.event_type: sig for sig in EVENT_SIGNATURES}


def _address_topic(address: str) -> str:
    return "0x" + "00" * 12 + address.lower().removeprefix("0x")


def make_log(
    event_type: EventType,
    block: int,
    log_index: int = 0,
    workflow_id: str = WF_1,
    tx: str | None = None,
    **args,
) -> RawLog:
    """Raw log as eth_getLogs would return it for one of the five events."""
    sig = SIGNATURE_BY_TYPE[event_type]
    topics = [sig.topic, workflow_id]
    for name, abi_type in sig.indexed[1:]:
        assert abi_type == "address"
        topics.append(_address_topic(args[name]))
    data = b""
    if sig.data:
        data = abi_encode([t for _, t in sig.data], [args[name] for name, _ in sig.data])
    return RawLog(
        address=CONTRACT,
        topics=tuple(topics),
        data="0x" + data.hex(),
        block_number=block,
        block_hash="0x" + f"{block:064x}",
        tx_hash=tx or tx_hash(block * 1000 + log_index),
        log_index=log_index,
    )


def started_log(block: int, log_index: int = 0, workflow_id: str = WF_1, **kw) -> RawLog:
    return make_log(
        EventType.WORKFLOW_STARTED, block, log_index, workflow_id,
        initiator=kw.pop("initiator", INITIATOR), **kw,
    )


def decision_log(
    block: int, approved: bool, reason: str = "", log_index: int = 0,
    workflow_id: str = WF_1, **kw,
) -> RawLog:
    return make_log(
        EventType.DECISION_RECORDED, block, log_index, workflow_id,
        approved=approved, reason=reason, **kw,
    )


def payment_log(
    block: int, amount: int, log_index: int = 0, workflow_id: str = WF_1, **kw,
) -> RawLog:
    return make_log(
        EventType.PAYMENT_EXECUTED, block, log_index, workflow_id,
        to=kw.pop("to", PAYEE), amount=amount, **kw,
    )


def completed_log(block: int, log_index: int = 0, workflow_id: str = WF_1, **kw) -> RawLog:
    return make_log(EventType.WORKFLOW_COMPLETED, block, log_index, workflow_id, **kw)


def failed_log(
    block: int, reason: str, log_index: int = 0, workflow_id: str = WF_1, **kw,
) -> RawLog:
    return make_log(
        EventType.WORKFLOW_FAILED, block, log_index, workflow_id, reason=reason, **kw,
    )
