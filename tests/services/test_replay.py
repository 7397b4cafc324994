"""Replay Engine — full rebuild from the event log as a startup barrier.

Invariants:
    - Two replays over the same log produce identical workflow_states rows
    - Ordering violation aborts before the clear: workflow_states and checkpoint untouched
    - Checkpoint advanced to the highest stored block
    - Rows with no backing events do not survive a replay
"""

import pytest

from x402_indexer.core.domain_types import EventType, WorkflowStatus
from x402_indexer.core.errors import EventOrderingError
from x402_indexer.core.events import DecisionRecordedPayload
from x402_indexer.core.reducer import reduce_workflow
from x402_indexer.services.event_store import EventStore
from x402_indexer.services.replay import ReplayEngine
from x402_indexer.services.system_state_store import SystemStateStore
from x402_indexer.services.workflow_state_store import WorkflowStateStore

from tests.factories import make_event, tx_hash, WF_1, WF_2, WF_3


async def _seed(session_factory, events):
    async with session_factory() as db:
        store = EventStore(db)
        for event in events:
            await store.record_event(event)
        await db.commit()


async def _replay(session_factory):
    async with session_factory() as db:
        return await ReplayEngine(db).replay_all()


async def _all_states(session_factory):
    async with session_factory() as db:
        return await WorkflowStateStore(db).list_all()


async def _checkpoint(session_factory):
    async with session_factory() as db:
        return (await SystemStateStore(db).get()).last_processed_block


def _log():
    return [
        make_event(EventType.WORKFLOW_STARTED, 10, workflow_id=WF_1),
        make_event(EventType.WORKFLOW_STARTED, 10, log_index=1, workflow_id=WF_2),
        make_event(EventType.DECISION_RECORDED, 11, workflow_id=WF_1),
        make_event(
            EventType.DECISION_RECORDED, 11, log_index=1, workflow_id=WF_2,
            payload=DecisionRecordedPayload(approved=False, reason="fraud"),
        ),
        make_event(EventType.PAYMENT_EXECUTED, 12, workflow_id=WF_1),
        make_event(EventType.WORKFLOW_COMPLETED, 13, workflow_id=WF_1),
    ]


async def test_replay_rebuilds_every_workflow(test_session_factory, initialized):
    await _seed(test_session_factory, _log())
    stats = await _replay(test_session_factory)

    assert stats.events_processed == 6
    assert stats.workflows_rebuilt == 2
    states = {s.workflow_id: s for s in await _all_states(test_session_factory)}
    assert states[WF_1].status is WorkflowStatus.COMPLETED
    assert states[WF_2].status is WorkflowStatus.REJECTED
    assert states[WF_2].failure_reason == "fraud"


async def test_replay_twice_is_deterministic(test_session_factory, initialized):
    await _seed(test_session_factory, _log())
    await _replay(test_session_factory)
    first = await _all_states(test_session_factory)
    await _replay(test_session_factory)
    second = await _all_states(test_session_factory)
    assert first == second


async def test_replay_advances_checkpoint_to_max_block(test_session_factory, initialized):
    await _seed(test_session_factory, _log())
    await _replay(test_session_factory)
    assert await _checkpoint(test_session_factory) == 13


async def test_empty_log_leaves_checkpoint(test_session_factory, initialized):
    stats = await _replay(test_session_factory)
    assert stats.events_processed == 0
    assert await _checkpoint(test_session_factory) == 0


async def test_stale_rows_without_events_are_cleared(test_session_factory, initialized):
    await _seed(test_session_factory, _log())
    async with test_session_factory() as db:
        await WorkflowStateStore(db).upsert(
            reduce_workflow(None, make_event(EventType.WORKFLOW_STARTED, 5, workflow_id=WF_3)),
        )
        await db.commit()

    await _replay(test_session_factory)
    ids = {s.workflow_id for s in await _all_states(test_session_factory)}
    assert ids == {WF_1, WF_2}


async def test_ordering_violation_aborts_without_touching_state(
    test_session_factory, initialized,
):
    # two distinct logs claiming the same canonical position
    await _seed(test_session_factory, [
        make_event(EventType.WORKFLOW_STARTED, 10, tx=tx_hash(1)),
        make_event(EventType.WORKFLOW_COMPLETED, 10, tx=tx_hash(2)),
    ])
    existing = reduce_workflow(
        None, make_event(EventType.WORKFLOW_STARTED, 5, workflow_id=WF_3),
    )
    async with test_session_factory() as db:
        await WorkflowStateStore(db).upsert(existing)
        await db.commit()

    with pytest.raises(EventOrderingError):
        await _replay(test_session_factory)

    assert await _all_states(test_session_factory) == [existing]
    assert await _checkpoint(test_session_factory) == 0


async def test_replay_workflow_rebuilds_one(test_session_factory, initialized):
    await _seed(test_session_factory, _log())
    async with test_session_factory() as db:
        state = await ReplayEngine(db).replay_workflow(WF_1)
        await db.commit()
    assert state.status is WorkflowStatus.COMPLETED
    assert [s.workflow_id for s in await _all_states(test_session_factory)] == [WF_1]


async def test_replay_workflow_unknown_returns_none(test_session_factory, initialized):
    async with test_session_factory() as db:
        assert await ReplayEngine(db).replay_workflow(WF_3) is None
