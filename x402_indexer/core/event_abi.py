"""Event ABI — signature table and log decoding for the five workflow events.

Invariants:
    - Every signature carries workflowId (bytes32, indexed) as its first argument
    - topic0 = keccak(signature); a log whose topic0 is not in the table decodes to None
    - Indexed args read from topics[1:], non-indexed args ABI-decoded from data
    - Addresses returned checksummed, workflow ids lowercase 0x-hex, uint256 as decimal str
    - A known topic0 with a malformed body raises ValueError (caller decides to skip)

Design Decisions:
    - Hand-declared table (not a JSON ABI file): five fixed events, contract is not ours
    - eth_abi.decode for data, Web3.keccak for topics — same primitives web3 contracts use
"""

from dataclasses import dataclass
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from web3 import Web3

from x402_indexer.core.domain_types import EventType, normalize_hex
from x402_indexer.core.events import (
    DecisionRecordedPayload,
    EventPayload,
    PaymentExecutedPayload,
    WorkflowCompletedPayload,
    WorkflowFailedPayload,
    WorkflowStartedPayload,
)


@dataclass(frozen=True)
class EventSignature:
    event_type: EventType
    name: str
    indexed: tuple[tuple[str, str], ...]
    data: tuple[tuple[str, str], ...]

    @property
    def text(self) -> str:
        types = [t for _, t in self.indexed] + [t for _, t in self.data]
        return f"{self.name}({','.join(types)})"

    @property
    def topic(self) -> str:
        return normalize_hex(bytes(Web3.keccak(text=self.text)))


# Indexed args in declaration order; WorkflowStarted has no data section.
EVENT_SIGNATURES: tuple[EventSignature, ...] = (
    EventSignature(
        EventType.WORKFLOW_STARTED, "WorkflowStarted",
        indexed=(("workflowId", "bytes32"), ("initiator", "address")),
        data=(),
    ),
    EventSignature(
        EventType.DECISION_RECORDED, "DecisionRecorded",
        indexed=(("workflowId", "bytes32"),),
        data=(("approved", "bool"), ("reason", "string")),
    ),
    EventSignature(
        EventType.PAYMENT_EXECUTED, "PaymentExecuted",
        indexed=(("workflowId", "bytes32"), ("to", "address")),
        data=(("amount", "uint256"),),
    ),
    EventSignature(
        EventType.WORKFLOW_COMPLETED, "WorkflowCompleted",
        indexed=(("workflowId", "bytes32"),),
        data=(),
    ),
    EventSignature(
        EventType.WORKFLOW_FAILED, "WorkflowFailed",
        indexed=(("workflowId", "bytes32"),),
        data=(("reason", "string"),),
    ),
)

SIGNATURES_BY_TOPIC: dict[str, EventSignature] = {
    sig.topic: sig for sig in EVENT_SIGNATURES
}


@dataclass(frozen=True)
class RawLog:
    """Chain log normalized to plain Python types (hex strings, ints)."""
    address: str
    topics: tuple[str, ...]
    data: str
    block_number: int
    block_hash: str
    tx_hash: str
    log_index: int
    transaction_index: int | None = None


@dataclass(frozen=True)
class DecodedLog:
    workflow_id: str
    event_type: EventType
    payload: EventPayload
    log: RawLog


def _hex_to_bytes(value: str) -> bytes:
    text = value[2:] if value.startswith("0x") else value
    return bytes.fromhex(text)


def _decode_topic(abi_type: str, topic: str) -> Any:
    raw = _hex_to_bytes(topic)
    if abi_type == "address":
        return Web3.to_checksum_address("0x" + raw[-20:].hex())
    if abi_type == "bytes32":
        return normalize_hex(raw)
    return abi_decode([abi_type], raw)[0]


def _build_payload(event_type: EventType, args: dict[str, Any]) -> EventPayload:
    if event_type is EventType.WORKFLOW_STARTED:
        return WorkflowStartedPayload(initiator=args["initiator"])
    if event_type is EventType.DECISION_RECORDED:
        return DecisionRecordedPayload(
            approved=bool(args["approved"]), reason=args["reason"],
        )
    if event_type is EventType.PAYMENT_EXECUTED:
        return PaymentExecutedPayload(to=args["to"], amount=str(args["amount"]))
    if event_type is EventType.WORKFLOW_COMPLETED:
        return WorkflowCompletedPayload()
    return WorkflowFailedPayload(reason=args["reason"])


def decode_log(log: RawLog) -> DecodedLog | None:
    """Decode a raw log into a typed event; None if topic0 is not ours."""
    if not log.topics:
        return None
    sig = SIGNATURES_BY_TOPIC.get(normalize_hex(log.topics[0]))
    if sig is None:
        return None
    if len(log.topics) != len(sig.indexed) + 1:
        raise ValueError(
            f"{sig.name} log has {len(log.topics) - 1} indexed topics, "
            f"expected {len(sig.indexed)}",
        )

    args: dict[str, Any] = {}
    for (name, abi_type), topic in zip(sig.indexed, log.topics[1:]):
        args[name] = _decode_topic(abi_type, topic)
    if sig.data:
        try:
            values = abi_decode([t for _, t in sig.data], _hex_to_bytes(log.data))
        except DecodingError as e:
            raise ValueError(f"{sig.name} log data does not decode: {e}") from e
        for (name, _), value in zip(sig.data, values):
            args[name] = value

    return DecodedLog(
        workflow_id=args["workflowId"],
        event_type=sig.event_type,
        payload=_build_payload(sig.event_type, args),
        log=log,
    )
