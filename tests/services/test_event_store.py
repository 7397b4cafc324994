"""Event Store — idempotent append and canonical reads.

Invariants:
    - Second write of (tx_hash, log_index) returns ALREADY_PRESENT and never raises
    - First write wins: the stored payload is not replaced
    - list_events is canonical regardless of insertion order
"""

from x402_indexer.core.domain_types import EventType, RecordOutcome
from x402_indexer.core.events import DecisionRecordedPayload
from x402_indexer.services.event_store import EventStore

from tests.factories import make_event, WF_1, WF_2


async def test_first_write_inserts(test_db):
    store = EventStore(test_db)
    outcome = await store.record_event(make_event(EventType.WORKFLOW_STARTED, 10))
    await test_db.commit()
    assert outcome is RecordOutcome.INSERTED
    assert await store.count() == 1


async def test_duplicate_with_different_payload_keeps_first_row(test_db):
    store = EventStore(test_db)
    first = make_event(
        EventType.DECISION_RECORDED, 11,
        payload=DecisionRecordedPayload(approved=True, reason="ok"),
    )
    second = make_event(
        EventType.DECISION_RECORDED, 11,
        payload=DecisionRecordedPayload(approved=False, reason="tampered"),
    )
    assert await store.record_event(first) is RecordOutcome.INSERTED
    assert await store.record_event(second) is RecordOutcome.ALREADY_PRESENT
    await test_db.commit()

    stored = await store.list_events()
    assert len(stored) == 1
    assert stored[0].payload == DecisionRecordedPayload(approved=True, reason="ok")


async def test_same_tx_different_log_index_are_distinct(test_db):
    store = EventStore(test_db)
    await store.record_event(make_event(EventType.WORKFLOW_STARTED, 10, log_index=0))
    await store.record_event(make_event(EventType.DECISION_RECORDED, 10, log_index=1))
    await test_db.commit()
    assert await store.count() == 2


async def test_list_events_returns_canonical_order(test_db):
    store = EventStore(test_db)
    late = make_event(EventType.WORKFLOW_COMPLETED, 12)
    middle = make_event(EventType.DECISION_RECORDED, 10, tx_index=2, log_index=5)
    early = make_event(EventType.WORKFLOW_STARTED, 10, tx_index=1, log_index=4)
    for event in (late, middle, early):
        await store.record_event(event)
    await test_db.commit()

    assert await store.list_events() == [early, middle, late]


async def test_list_events_filters(test_db):
    store = EventStore(test_db)
    await store.record_event(make_event(EventType.WORKFLOW_STARTED, 10, workflow_id=WF_1))
    await store.record_event(
        make_event(EventType.WORKFLOW_STARTED, 10, log_index=1, workflow_id=WF_2),
    )
    await store.record_event(make_event(EventType.WORKFLOW_COMPLETED, 20, workflow_id=WF_1))
    await test_db.commit()

    only_wf1 = await store.list_events(workflow_id=WF_1)
    assert [e.block_number for e in only_wf1] == [10, 20]
    in_range = await store.list_events(from_block=11, to_block=25)
    assert [e.workflow_id for e in in_range] == [WF_1]
