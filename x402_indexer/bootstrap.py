"""Bootstrap — startup wiring shared by the API lifespan and the CLI.

Invariants:
    - Startup order: system_state row -> full replay -> chain handshake -> ingestor
    - Replay failure propagates: no caller may serve or ingest on unreplayed state
    - Chain id mismatch is a ConfigurationError (wrong network = wrong contract)

Design Decisions:
    - Settings read here (shell), passed as plain values to services
"""

import logging

from x402_indexer.config import Settings
from x402_indexer.core.errors import ConfigurationError
from x402_indexer.core.repository_protocols import ChainClient
from x402_indexer.infrastructure.chain_client import ResilientChainClient
from x402_indexer.infrastructure.database import DatabaseSessionManager
from x402_indexer.services.ingestor import Ingestor, IngestorConfig
from x402_indexer.services.replay import ReplayEngine, ReplayStats
from x402_indexer.services.system_state_store import SystemStateStore

logger = logging.getLogger(__name__)


async def prepare_database(
    manager: DatabaseSessionManager, settings: Settings,
) -> ReplayStats:
    """Ensure the checkpoint row exists, then rebuild derived state from the log."""
    async with manager.session() as db:
        checkpoint = await SystemStateStore(db).ensure_initialized(
            settings.confirmation_blocks,
        )
        await db.commit()
    logger.info(
        f"Checkpoint at block {checkpoint.last_processed_block}",
        extra={"block_number": checkpoint.last_processed_block},
    )
    async with manager.session() as db:
        return await ReplayEngine(db).replay_all()


def build_chain_client(settings: Settings) -> ResilientChainClient:
    return ResilientChainClient(
        settings.rpc_url,
        timeout_seconds=settings.rpc_timeout_seconds,
        max_retries=settings.rpc_max_retries,
        base_delay_ms=settings.rpc_base_delay_ms,
        max_delay_ms=settings.rpc_max_delay_ms,
    )


async def verify_chain(chain: ChainClient, settings: Settings) -> int:
    """Handshake with the node. Returns the reported chain id."""
    network = await chain.get_network()
    chain_id = network["chain_id"]
    if chain_id != settings.chain_id:
        raise ConfigurationError(
            "chain_id", f"node reports {chain_id}, expected {settings.chain_id}",
        )
    logger.info(f"Connected to chain {chain_id}")
    return chain_id


def ingestor_config(settings: Settings) -> IngestorConfig:
    if not settings.contract_configured:
        raise ConfigurationError("contract_address", "contract address is not set")
    return IngestorConfig(
        contract_address=settings.contract_address,
        start_block=settings.block_start,
        confirmation_blocks=settings.confirmation_blocks,
        chunk_size=settings.log_chunk_size,
        poll_interval_seconds=settings.poll_interval_seconds,
    )


def build_ingestor(
    manager: DatabaseSessionManager, chain: ChainClient, settings: Settings,
) -> Ingestor:
    return Ingestor(manager.session, chain, ingestor_config(settings))
