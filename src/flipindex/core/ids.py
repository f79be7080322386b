"""Deterministic entity id derivation.

All ids are pure functions of event fields: no randomness, no clocks.
Composite keys are keccak-256 digests of `"<address>-<part>"` so they stay
fixed-width whatever the token id magnitude.
"""

from __future__ import annotations

from eth_utils import keccak


def _digest(address: str, part: str) -> str:
    return "0x" + keccak(text=f"{address.lower()}-{part}").hex()


def nft_ownership_id(collection_address: str, token_id: int) -> str:
    return _digest(collection_address, str(token_id))


def ownership_summary_id(collection_address: str, owner: str) -> str:
    return _digest(collection_address, owner.lower())


def cross_chain_status_id(flip_contract: str, token_id: int) -> str:
    return _digest(flip_contract, str(token_id))


def event_id(tx_hash: str, log_index: int) -> str:
    """Id of a per-event row; unique even for several events in one transaction."""
    return f"{tx_hash.lower()}-{log_index}"
