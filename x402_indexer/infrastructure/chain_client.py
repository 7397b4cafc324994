"""Resilient Chain Client — wraps AsyncWeb3 with timeout, retry, backoff, and error mapping.

Invariants:
    - Read-only: only eth_blockNumber, eth_getLogs, eth_getTransactionReceipt,
      eth_getBlockByNumber and eth_chainId are ever issued
    - Transient errors (web3 errors, connection, timeout): max rpc_max_retries retries
      with exponential backoff and jitter
    - All failures after retries mapped to ChainRPCError (core/errors.py)
    - Logs returned as core RawLog (hex strings, ints): nothing downstream sees HexBytes

Design Decisions:
    - Wrapper over raw provider: isolates retry logic from the Ingestor
    - Explicit per-request timeout on the HTTP provider: a hung node cannot stall a cycle forever
    - ±25% jitter on backoff: avoids synchronized retries against shared rate limits
"""

import asyncio
import logging
import random
from typing import Any, Awaitable, Callable, Sequence, TypeVar

from web3 import AsyncHTTPProvider, AsyncWeb3
from web3.exceptions import Web3Exception

from x402_indexer.core.domain_types import normalize_hex
from x402_indexer.core.errors import ChainRPCError, ErrorContext
from x402_indexer.core.event_abi import RawLog

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_ERRORS = (Web3Exception, OSError, asyncio.TimeoutError)


def _hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return normalize_hex(bytes(value))
    return normalize_hex(str(value))


def normalize_log(log: Any) -> RawLog:
    """Convert a web3 log AttributeDict into a RawLog."""
    tx_index = log.get("transactionIndex")
    return RawLog(
        address=str(log["address"]),
        topics=tuple(_hex(t) for t in log["topics"]),
        data=_hex(log.get("data") or b""),
        block_number=int(log["blockNumber"]),
        block_hash=_hex(log["blockHash"]),
        tx_hash=_hex(log["transactionHash"]),
        log_index=int(log["logIndex"]),
        transaction_index=int(tx_index) if tx_index is not None else None,
    )


class ResilientChainClient:
    """Wraps AsyncWeb3 with retry logic, timeouts, and error mapping."""

    def __init__(
        self,
        rpc_url: str,
        timeout_seconds: int = 10,
        max_retries: int = 3,
        base_delay_ms: int = 500,
        max_delay_ms: int = 10_000,
    ):
        self.w3 = AsyncWeb3(
            AsyncHTTPProvider(
                rpc_url, request_kwargs={"timeout": timeout_seconds},
            ),
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def get_head_block_number(self) -> int:
        async def call():
            return await self.w3.eth.block_number
        return int(await self._with_retry("eth_blockNumber", call))

    async def get_logs(
        self, address: str, topics: Sequence[Any], from_block: int, to_block: int,
    ) -> list[RawLog]:
        params = {
            "address": AsyncWeb3.to_checksum_address(address),
            "topics": list(topics),
            "fromBlock": from_block,
            "toBlock": to_block,
        }

        async def call():
            return await self.w3.eth.get_logs(params)

        logs = await self._with_retry(
            "eth_getLogs", call,
            ErrorContext(debug_info={"from_block": from_block, "to_block": to_block}),
        )
        return [normalize_log(log) for log in logs]

    async def get_transaction_receipt(self, tx_hash: str) -> dict:
        async def call():
            return await self.w3.eth.get_transaction_receipt(tx_hash)
        receipt = await self._with_retry(
            "eth_getTransactionReceipt", call, ErrorContext(tx_hash=tx_hash),
        )
        return {
            "transactionIndex": int(receipt["transactionIndex"]),
            "blockNumber": int(receipt["blockNumber"]),
        }

    async def get_block(self, number: int) -> dict:
        async def call():
            return await self.w3.eth.get_block(number)
        block = await self._with_retry(
            "eth_getBlockByNumber", call, ErrorContext(block_number=number),
        )
        return {
            "number": int(block["number"]),
            "timestamp": int(block["timestamp"]),
            "hash": _hex(block["hash"]),
        }

    async def get_network(self) -> dict:
        async def call():
            return await self.w3.eth.chain_id
        return {"chain_id": int(await self._with_retry("eth_chainId", call))}

    async def _with_retry(
        self,
        method: str,
        call: Callable[[], Awaitable[T]],
        context: ErrorContext | None = None,
    ) -> T:
        """Run call with exponential backoff on transient failures."""
        for attempt in range(self.max_retries + 1):
            try:
                return await call()
            except _TRANSIENT_ERRORS as e:
                if attempt >= self.max_retries:
                    raise ChainRPCError(
                        f"Transient failure after {self.max_retries} retries: {e}",
                        method, context=context,
                    ) from e
                delay = self._backoff(attempt)
                logger.warning(
                    f"{method} failed, retry after {delay}ms: {e}",
                    extra={"attempt": attempt + 1},
                )
                await asyncio.sleep(delay / 1000)
            except Exception as e:
                logger.error(f"Unexpected chain RPC error on {method}: {e}", exc_info=True)
                raise ChainRPCError(str(e), method, context=context) from e
        raise ChainRPCError("retry loop exhausted", method, context=context)

    def _backoff(self, attempt: int) -> int:
        """Exponential backoff with ±25% jitter."""
        delay = min(self.max_delay_ms, (2 ** attempt) * self.base_delay_ms)
        return int(delay * random.uniform(0.75, 1.25))  # nosec B311
