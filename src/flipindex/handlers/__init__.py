"""Event handlers that turn typed events into entity updates.

This package provides:
- Collection registry handlers (CollectionCreated, ConfigChanged)
- Trade aggregation handlers (mint, single and bulk trades, cross-chain)
- The ownership delta primitive shared by the trade handlers
"""

from flipindex.handlers.ownership import OwnerDeltas, apply_delta, apply_deltas
from flipindex.handlers.registry import handle_collection_created, handle_config_changed
from flipindex.handlers.trade import (
    handle_bulk_mint,
    handle_bulk_trade,
    handle_minted,
    handle_token_trade,
    handle_transfer_cross_chain,
)

__all__ = [
    "OwnerDeltas",
    "apply_delta",
    "apply_deltas",
    "handle_collection_created",
    "handle_config_changed",
    "handle_bulk_mint",
    "handle_bulk_trade",
    "handle_minted",
    "handle_token_trade",
    "handle_transfer_cross_chain",
]
