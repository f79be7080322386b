"""Core data models: raw log records and persisted entities.

This module defines:
- `EventLog`: minimal RPC log record used by the decoder.
- `Meta`: per-log metadata carried by every decoded event.
- `ChunkRecord`: manifest entry used for run auditing.
- The persisted entities (`CollectionInfo`, `CollectionStats`, `NFTOwnership`,
  `OwnershipSummary`, `CrossChainStatus`, `Txs`, `Checkpoint`, `SyncState`).

Design notes
------------
- Every entity is a plain mutable dataclass with a string `id` primary key and a
  class-level `__table__` name used by the stores.
- Addresses are lowercased 0x-hex strings.
- uint256 quantities are Python ints in memory; fields flagged with
  `UINT256` metadata are persisted as decimal strings.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from enum import IntEnum
from typing import ClassVar, Literal

# Field metadata marking values that may exceed 64 bits.
UINT256 = {"uint256": True}

Status = Literal["started", "done", "failed"]


# === RPC record ===


@dataclass(slots=True, frozen=True)
class EventLog:
    """Raw log as fetched from RPC, minimally normalized."""

    address: str  # lowercased 0x...
    topics: tuple[str, ...]  # lowercased 0x...
    data_hex: str  # "0x..."
    block_number: int
    tx_hash: str  # lowercased 0x...
    log_index: int
    block_timestamp: int | None = None


@dataclass(slots=True, frozen=True)
class Meta:
    """Lightweight metadata for a single log, carried by every typed event."""

    block_number: int
    block_timestamp: int
    tx_hash: str
    log_index: int
    address: str

    @property
    def position(self) -> tuple[int, int]:
        """Canonical chain position used for ordering and checkpoints."""
        return (self.block_number, self.log_index)


# === Manifest record ===


@dataclass(slots=True)
class ChunkRecord:
    """A single chunk execution record persisted to the live manifest."""

    network: str
    from_block: int
    to_block: int
    status: Status
    error: str | None
    logs: int  # raw logs fetched
    decoded: int  # logs turned into typed events
    applied: int  # events that mutated state
    rejected: int  # events dropped by policy
    updated_at: float

    def to_json_line(self) -> str:
        """Serialize as a compact JSON line."""
        return json.dumps(asdict(self), separators=(",", ":")) + "\n"


# === Entities ===


class TxType(IntEnum):
    """Activity-feed transaction kinds (numeric codes are part of the read contract)."""

    MINT = 1
    BUY = 2
    SELL = 3
    BULK_BUY = 4
    BULK_SELL = 5
    BULK_MINT = 6
    QUICK_BUY = 7


@dataclass
class CollectionInfo:
    """Static description of one collection contract, keyed by its address."""

    __table__: ClassVar[str] = "collection_info"

    id: str
    name: str
    symbol: str
    creator: str
    creator_fee: int = field(metadata=UINT256)
    base_uri: str
    initial_price: int = field(metadata=UINT256)
    max_supply: int = field(metadata=UINT256)
    max_price: int = field(metadata=UINT256)
    supports_mint: bool
    supports_cross_chain: bool
    gas_limit: int = field(metadata=UINT256)
    price_contract_address: str
    is_registered: bool
    created_at_block_timestamp: int
    created_at_block_number: int
    gateway_address: str | None = None
    universal_address: str | None = None


@dataclass
class CollectionStats:
    """Per-collection aggregate counters (1:1 with `CollectionInfo`)."""

    __table__: ClassVar[str] = "collection_stats"

    id: str
    current_supply: int = 0
    total_supply: int = 0
    owner_count: int = 0
    total_volume: int = field(default=0, metadata=UINT256)
    floor_price: int = field(default=0, metadata=UINT256)
    total_transactions: int = 0
    last_updated_at_block_timestamp: int = 0


@dataclass
class NFTOwnership:
    """Current owner of one token of one collection."""

    __table__: ClassVar[str] = "nft_ownership"

    id: str
    collection_address: str
    token_id: int = field(metadata=UINT256)
    owner: str


@dataclass
class OwnershipSummary:
    """How many tokens of one collection an owner holds (zero rows are kept)."""

    __table__: ClassVar[str] = "ownership_summary"

    id: str
    collection_address: str
    owner: str
    nft_count: int
    first_owned_at_block_timestamp: int
    last_updated_at_block_timestamp: int


@dataclass
class CrossChainStatus:
    """Latest cross-chain transfer of a token (last write wins)."""

    __table__: ClassVar[str] = "cross_chain_status"

    id: str
    contract_address: str
    token_id: int = field(metadata=UINT256)
    sender: str
    receiver: str
    destination: str
    is_transferred: bool
    block_number: int
    block_timestamp: int
    transaction_hash: str


@dataclass
class Txs:
    """Immutable activity-feed row, one per applied trade event."""

    __table__: ClassVar[str] = "txs"

    id: str
    collection_address: str
    tx_type: int
    sender: str
    price: int = field(metadata=UINT256)
    token_ids: list[int] = field(metadata=UINT256)
    block_number: int
    block_timestamp: int
    transaction_hash: str
    log_index: int


@dataclass
class Checkpoint:
    """Chain position of the last event applied to one collection."""

    __table__: ClassVar[str] = "checkpoint"

    id: str
    block_number: int
    log_index: int

    def covers(self, meta: Meta) -> bool:
        return meta.position <= (self.block_number, self.log_index)


@dataclass
class SyncState:
    """Last block fully indexed for one network."""

    __table__: ClassVar[str] = "sync_state"

    id: str
    last_block: int


Entity = (
    CollectionInfo
    | CollectionStats
    | NFTOwnership
    | OwnershipSummary
    | CrossChainStatus
    | Txs
    | Checkpoint
    | SyncState
)

ENTITY_TYPES: tuple[type, ...] = (
    CollectionInfo,
    CollectionStats,
    NFTOwnership,
    OwnershipSummary,
    CrossChainStatus,
    Txs,
    Checkpoint,
    SyncState,
)
