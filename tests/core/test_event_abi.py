"""Event ABI — topic table and log decoding against eth_abi-encoded logs.

Tests:
    - Five signatures, each topic0 = keccak(signature text)
    - Each event kind decodes to its payload variant
    - Unknown topic0 -> None; malformed log -> ValueError
"""

import pytest
from web3 import Web3

from x402_indexer.core.domain_types import EventType
from x402_indexer.core.event_abi import (
    EVENT_SIGNATURES, SIGNATURES_BY_TOPIC, RawLog, decode_log,
)
from x402_indexer.core.events import (
    DecisionRecordedPayload,
    PaymentExecutedPayload,
    WorkflowCompletedPayload,
    WorkflowFailedPayload,
    WorkflowStartedPayload,
)

from tests.factories import (
    INITIATOR, PAYEE, WF_2,
    completed_log, decision_log, failed_log, payment_log, started_log,
)


def test_five_signatures_with_distinct_topics():
    assert len(EVENT_SIGNATURES) == 5
    assert len(SIGNATURES_BY_TOPIC) == 5
    assert {s.event_type for s in EVENT_SIGNATURES} == set(EventType)


def test_topic_is_keccak_of_signature_text():
    started = next(s for s in EVENT_SIGNATURES if s.name == "WorkflowStarted")
    assert started.text == "WorkflowStarted(bytes32,address)"
    expected = "0x" + bytes(Web3.keccak(text="WorkflowStarted(bytes32,address)")).hex()
    assert started.topic == expected


def test_decode_workflow_started():
    decoded = decode_log(started_log(10, workflow_id=WF_2))
    assert decoded.event_type is EventType.WORKFLOW_STARTED
    assert decoded.workflow_id == WF_2
    assert decoded.payload == WorkflowStartedPayload(initiator=INITIATOR)


def test_decode_decision_recorded():
    decoded = decode_log(decision_log(11, approved=False, reason="fraud"))
    assert decoded.payload == DecisionRecordedPayload(approved=False, reason="fraud")


def test_decode_payment_keeps_amount_as_decimal_string():
    big = 2**200 + 7
    decoded = decode_log(payment_log(12, amount=big))
    assert decoded.payload == PaymentExecutedPayload(to=PAYEE, amount=str(big))


def test_decode_completed_and_failed():
    assert decode_log(completed_log(13)).payload == WorkflowCompletedPayload()
    assert decode_log(failed_log(13, reason="expired")).payload == (
        WorkflowFailedPayload(reason="expired")
    )


def test_unknown_topic_decodes_to_none():
    log = started_log(10)
    foreign = RawLog(
        address=log.address,
        topics=("0x" + "ab" * 32,) + log.topics[1:],
        data=log.data,
        block_number=log.block_number,
        block_hash=log.block_hash,
        tx_hash=log.tx_hash,
        log_index=log.log_index,
    )
    assert decode_log(foreign) is None


def test_missing_indexed_topic_raises():
    log = started_log(10)
    truncated = RawLog(
        address=log.address, topics=log.topics[:2], data=log.data,
        block_number=10, block_hash=log.block_hash, tx_hash=log.tx_hash, log_index=0,
    )
    with pytest.raises(ValueError):
        decode_log(truncated)


def test_undecodable_data_raises():
    log = failed_log(10, reason="x")
    broken = RawLog(
        address=log.address, topics=log.topics, data="0x",
        block_number=10, block_hash=log.block_hash, tx_hash=log.tx_hash, log_index=0,
    )
    with pytest.raises(ValueError):
        decode_log(broken)
