"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - Chain access reaches the Ingestor only through ChainClient

Design Decisions:
    - Protocol over ABC: structural subtyping, tests plug fakes without inheritance
    - Async in Protocol: boundary methods are async because implementations do IO,
      but core pure functions never are — the shell orchestrates around them
"""

from typing import Any, Protocol, Sequence

from x402_indexer.core.event_abi import RawLog


class ChainClient(Protocol):
    """Read-only chain access consumed by the Ingestor — implemented by infrastructure."""
    async def get_head_block_number(self) -> int: ...
    async def get_logs(
        self, address: str, topics: Sequence[Any], from_block: int, to_block: int,
    ) -> list[RawLog]: ...
    async def get_transaction_receipt(self, tx_hash: str) -> dict: ...
    async def get_block(self, number: int) -> dict: ...
    async def get_network(self) -> dict: ...
