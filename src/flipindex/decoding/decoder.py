"""Generic event decoder using dynamic projections.

This module translates raw logs into `ParsedEvent` using an `EventRegistry`
defined by `EventSpec` + (topic|data) field specs. Any key defined in the
spec's `projection` mapping becomes an entry in `ParsedEvent.values`.

The data section is decoded with `eth_abi`, which follows head offsets into
the tails of dynamic values (`string`, `bytes`, `uint256[]`).

Logs whose topic0 is not in the registry decode to None. Logs that match a
spec but whose topics or data do not fit it raise `MalformedEvent`.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError

from flipindex.core.errors import MalformedEvent
from flipindex.core.models import EventLog, Meta
from flipindex.decoding.specs import EventRegistry, EventSpec, resolve_projection_ref
from flipindex.decoding.utils import normalize_data_value, parse_topic_field

# ---------- parsed event ----------


@dataclass(slots=True)
class ParsedEvent:
    """Decoded event with open-ended `values` for dynamic projections."""

    name: str
    address: str
    meta: Meta
    values: dict[str, Any]


# ---------- helper functions ----------


def _get_spec(topics: Sequence[str], registry: EventRegistry) -> EventSpec | None:
    if not topics:
        return None
    return registry.get(topics[0].lower())


# ---------- main generic decoder ----------


def decode_event(
    *,
    topics: Sequence[str],
    data: bytes,
    meta: Meta,
    registry: EventRegistry,
) -> ParsedEvent | None:
    """Decode raw log (topics + data) into a `ParsedEvent`.

    Returns None when topic0 is unknown to the registry.
    """
    spec = _get_spec(topics, registry)
    if spec is None:
        return None

    topic_vals: dict[str, Any] = {}
    for tf in spec.topic_fields:
        if tf.index >= len(topics):
            raise MalformedEvent(f"{spec.name}: expected {len(spec.topic_fields) + 1} topics, got {len(topics)}")
        topic_vals[tf.name] = parse_topic_field(topics[tf.index], tf)

    try:
        decoded = abi_decode(spec.data_types, data)
    except (DecodingError, UnicodeDecodeError) as e:
        raise MalformedEvent(f"{spec.name}: cannot decode {len(data)} data bytes: {e}") from e

    data_vals: dict[str, Any] = {
        df.name: normalize_data_value(decoded[df.index], df.type) for df in spec.data_fields
    }

    resolved = {
        out_key: resolve_projection_ref(ref, topic_vals, data_vals) for out_key, ref in spec.projection.items()
    }

    return ParsedEvent(
        name=spec.name,
        address=meta.address,
        meta=meta,
        values=resolved,
    )


def decode_log(log: EventLog, registry: EventRegistry) -> ParsedEvent | None:
    """Decode an RPC `EventLog`; its block timestamp must already be resolved."""
    if log.block_timestamp is None:
        raise ValueError(f"log {log.tx_hash}-{log.log_index} has no block timestamp")
    meta = Meta(
        block_number=log.block_number,
        block_timestamp=log.block_timestamp,
        tx_hash=log.tx_hash,
        log_index=log.log_index,
        address=log.address,
    )
    hex_str = log.data_hex[2:] if log.data_hex.startswith("0x") else log.data_hex
    try:
        data = bytes.fromhex(hex_str)
    except ValueError as e:
        raise MalformedEvent(f"log {log.tx_hash}-{log.log_index}: data is not hex") from e
    return decode_event(topics=log.topics, data=data, meta=meta, registry=registry)
