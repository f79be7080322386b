"""Decoding utilities: typed parsers for indexed topics and decoded data values."""

from __future__ import annotations

from typing import Any

from .specs import TopicFieldSpec


def parse_topic_field(topic_hex: str, spec: TopicFieldSpec) -> Any:
    """Parse one indexed topic according to the declared type."""
    t = spec.type
    h = topic_hex.lower()
    if t == "address":
        return "0x" + h[-40:]
    if t == "bool":
        return int(h, 16) != 0
    if t.startswith("uint"):
        return int(h, 16)
    if t.startswith("int"):
        v = int(h, 16)
        bits = int(t[3:]) if t != "int" else 256
        if v >= 2 ** (bits - 1):
            v -= 2**bits
        return v
    # Dynamic indexed values are only available as their keccak hash
    return h


def normalize_data_value(value: Any, typ: str) -> Any:
    """Normalize one `eth_abi` decoded value.

    Addresses become lowercase hex, raw bytes become 0x-hex and arrays become
    lists of normalized items.
    """
    if typ.endswith("[]"):
        item_type = typ[:-2]
        return [normalize_data_value(v, item_type) for v in value]
    if typ == "address":
        return value.lower()
    if isinstance(value, bytes):
        return "0x" + value.hex()
    return value
