"""Lightweight JSON-RPC client for Ethereum-compatible nodes.

This module provides:
- `RPC`: an async client with sane timeouts/connection limits
- Helper utilities to format block numbers

It returns `EventLog` records, sorted in chain order and with block
timestamps resolved, ready for downstream decoding.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from flipindex.core.models import EventLog

logger = logging.getLogger(__name__)


class RPCError(RuntimeError):
    """JSON-RPC level error returned by the node."""


def to_hex_block(x: int) -> str:
    """Return a 0x-prefixed hex block number."""
    return hex(x)


def _parse_quantity(value: Any) -> int | None:
    if isinstance(value, str) and value.startswith("0x"):
        return int(value, 16)
    if isinstance(value, int):
        return value
    return None


class RPC:
    """Minimal async RPC client.

    Parameters
    ----------
    url : str
        RPC endpoint URL.
    timeout_s : int
        Per-operation timeout in seconds (connect/read/write).
    max_connections : int
        Maximum concurrent connections to keep in the pool.
    """

    def __init__(self, url: str, *, timeout_s: int = 20, max_connections: int = 16) -> None:
        self.url = url
        self.client = httpx.AsyncClient(
            timeout=httpx.Timeout(
                connect=timeout_s,
                read=timeout_s,
                write=timeout_s,
                pool=max(30, timeout_s * 3),
            ),
            limits=httpx.Limits(
                max_connections=max_connections,
                max_keepalive_connections=max(1, max_connections // 2),
            ),
            http2=True,
        )
        self._timestamps: dict[int, int] = {}

    async def _call(self, method: str, params: list[Any]) -> Any:
        r = await self.client.post(
            self.url,
            json={"jsonrpc": "2.0", "id": 1, "method": method, "params": params},
        )
        r.raise_for_status()
        data = r.json()
        if "error" in data:
            e = data["error"]
            raise RPCError(f"RPC error: {e.get('code')} {e.get('message')}")
        return data.get("result")

    async def latest_block(self) -> int:
        """Return the latest block number as an int."""
        return int(await self._call("eth_blockNumber", []), 16)

    async def block_timestamp(self, block_number: int) -> int:
        """Return the timestamp of a block, cached per block number."""
        ts = self._timestamps.get(block_number)
        if ts is None:
            block = await self._call("eth_getBlockByNumber", [to_hex_block(block_number), False])
            if block is None:
                raise RPCError(f"block {block_number} not found")
            ts = self._timestamps[block_number] = int(block["timestamp"], 16)
        return ts

    async def get_logs(
        self,
        *,
        addresses: Sequence[str],
        from_block: int,
        to_block: int,
    ) -> list[EventLog]:
        """Fetch all logs of `addresses` in an inclusive block range, in chain order.

        Ranges are requested in ascending order, so cached timestamps of blocks
        before `from_block` are dropped.
        """
        self._timestamps = {b: ts for b, ts in self._timestamps.items() if b >= from_block}
        params = [
            {
                "address": [a.lower() for a in addresses],
                "fromBlock": to_hex_block(from_block),
                "toBlock": to_hex_block(to_block),
            }
        ]
        raw_logs = await self._call("eth_getLogs", params) or []

        out: list[EventLog] = []
        for rl in raw_logs:
            if rl.get("removed"):
                continue
            block_number = int(rl["blockNumber"], 16)
            ts = _parse_quantity(rl.get("blockTimestamp"))
            if ts is None:
                ts = await self.block_timestamp(block_number)
            out.append(
                EventLog(
                    address=rl["address"].lower(),
                    topics=tuple(t.lower() for t in rl.get("topics", [])),
                    data_hex=str(rl.get("data") or "0x"),
                    block_number=block_number,
                    tx_hash=(rl.get("transactionHash") or "").lower(),
                    log_index=int(rl["logIndex"], 16),
                    block_timestamp=ts,
                )
            )
        out.sort(key=lambda log: (log.block_number, log.log_index))
        logger.debug("eth_getLogs [%d, %d] → %d logs", from_block, to_block, len(out))
        return out

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self.client.aclose()
