"""ORM Models — SQLAlchemy declarative models for the three indexer tables.

Invariants:
    - All models inherit from Base (db/base.py)
    - chain_events is the source of truth; workflow_states is derived from it

Design Decisions:
    - One file per table for locality
    - All models imported here so Base.metadata is complete before create_all/migrations
"""

from x402_indexer.models.chain_event import ChainEvent  # noqa: F401
from x402_indexer.models.workflow_state import WorkflowState  # noqa: F401
from x402_indexer.models.system_state import SystemState  # noqa: F401
