"""Ordering Validator — canonical (block, txIndex, logIndex) order.

Tests:
    - Ascending sequences validate; empty and single sequences are ordered
    - Lower block after higher block is a violation
    - Equal position is a violation (not a duplicate to tolerate)
    - sort_canonical restores order without mutating input
"""

from x402_indexer.core.domain_types import EventType
from x402_indexer.core.ordering import first_violation, is_ordered, sort_canonical

from tests.factories import make_event, WF_2


def test_ascending_sequence_is_ordered():
    events = [
        make_event(EventType.WORKFLOW_STARTED, 10, log_index=0),
        make_event(EventType.DECISION_RECORDED, 10, log_index=1),
        make_event(EventType.PAYMENT_EXECUTED, 10, log_index=2, tx_index=1),
        make_event(EventType.WORKFLOW_COMPLETED, 11, log_index=0),
    ]
    assert is_ordered(events)
    assert first_violation(events) is None


def test_empty_and_single_are_ordered():
    assert is_ordered([])
    assert is_ordered([make_event(EventType.WORKFLOW_STARTED, 1)])


def test_later_event_with_smaller_block_is_rejected():
    events = [
        make_event(EventType.WORKFLOW_STARTED, 12),
        make_event(EventType.WORKFLOW_COMPLETED, 11),
    ]
    assert not is_ordered(events)
    assert first_violation(events) == 1


def test_lower_tx_index_in_same_block_is_rejected():
    events = [
        make_event(EventType.WORKFLOW_STARTED, 10, tx_index=2, log_index=5),
        make_event(EventType.DECISION_RECORDED, 10, tx_index=1, log_index=6),
    ]
    assert not is_ordered(events)


def test_repeated_position_is_a_violation():
    events = [
        make_event(EventType.WORKFLOW_STARTED, 10, log_index=3),
        make_event(EventType.WORKFLOW_STARTED, 10, log_index=3, workflow_id=WF_2),
    ]
    assert first_violation(events) == 1


def test_sort_canonical_orders_by_block_tx_log():
    a = make_event(EventType.WORKFLOW_STARTED, 10, tx_index=0, log_index=0)
    b = make_event(EventType.DECISION_RECORDED, 10, tx_index=1, log_index=1)
    c = make_event(EventType.WORKFLOW_COMPLETED, 11, tx_index=0, log_index=0)
    shuffled = [c, b, a]
    assert sort_canonical(shuffled) == [a, b, c]
    assert shuffled == [c, b, a]
