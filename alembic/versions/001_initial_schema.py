"""Initial schema — chain_events, workflow_states, system_state.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-18

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "chain_events",
        sa.Column("id", UUID(as_uuid=True), primary_key=True),
        sa.Column("workflow_id", sa.String(66), nullable=False),
        sa.Column("event_type", sa.String(32), nullable=False),
        sa.Column("payload", sa.JSON, nullable=False),
        sa.Column("block_number", sa.BigInteger, nullable=False),
        sa.Column("transaction_index", sa.Integer, nullable=False),
        sa.Column("log_index", sa.Integer, nullable=False),
        sa.Column("tx_hash", sa.String(66), nullable=False),
        sa.Column("block_hash", sa.String(66), nullable=False, server_default=""),
        sa.Column("block_timestamp", sa.BigInteger, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.UniqueConstraint("tx_hash", "log_index", name="uq_chain_events_tx_hash_log_index"),
    )
    op.create_index(
        "ix_chain_events_canonical_order", "chain_events",
        ["block_number", "transaction_index", "log_index"],
    )
    op.create_index("ix_chain_events_workflow_id", "chain_events", ["workflow_id"])

    op.create_table(
        "workflow_states",
        sa.Column("workflow_id", sa.String(66), primary_key=True),
        sa.Column("status", sa.String(16), nullable=False),
        sa.Column("initiator", sa.String(42), nullable=True),
        sa.Column("started_at", sa.BigInteger, nullable=False),
        sa.Column("completed_at", sa.BigInteger, nullable=True),
        sa.Column("failure_reason", sa.Text, nullable=True),
        sa.Column("last_event_block", sa.BigInteger, nullable=False),
        sa.Column("last_event_log_index", sa.Integer, nullable=False),
    )
    op.create_index("ix_workflow_states_started_at", "workflow_states", ["started_at"])
    op.create_index("ix_workflow_states_status", "workflow_states", ["status"])

    op.create_table(
        "system_state",
        sa.Column("id", sa.Integer, primary_key=True),
        sa.Column("last_processed_block", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("confirmation_blocks", sa.Integer, nullable=False, server_default="3"),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("system_state")
    op.drop_index("ix_workflow_states_status", table_name="workflow_states")
    op.drop_index("ix_workflow_states_started_at", table_name="workflow_states")
    op.drop_table("workflow_states")
    op.drop_index("ix_chain_events_workflow_id", table_name="chain_events")
    op.drop_index("ix_chain_events_canonical_order", table_name="chain_events")
    op.drop_table("chain_events")
