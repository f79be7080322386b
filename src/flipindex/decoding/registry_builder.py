"""Registry builder utilities for creating event registries from signatures.

This module provides the core tools for building EventRegistry instances:
- Generic `make_registry()` function for single or multiple signatures
- Signature parsing helpers for converting Solidity event signatures to EventSpec
"""

from __future__ import annotations

import re
from typing import Optional

from eth_utils import keccak

from .specs import DataFieldSpec, EventRegistry, EventSpec, Projection, ProjectionRefs, TopicFieldSpec

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def snake_case(name: str) -> str:
    """`creatorFeePercent` → `creator_fee_percent`."""
    return _CAMEL_BOUNDARY.sub("_", name).lower()


# ---- Helpers: build specs from event signature ----
def _split_params(params_str: str) -> list[str]:
    """Split the parameter list by commas while respecting nested tuple types."""
    items: list[str] = []
    depth = 0
    buf: list[str] = []
    for ch in params_str:
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
        elif ch == "," and depth == 0:
            items.append("".join(buf).strip())
            buf = []
            continue
        buf.append(ch)
    if buf:
        items.append("".join(buf).strip())
    return [i for i in items if i]


def _parse_param(p: str, fallback_name: str) -> tuple[str, str, bool]:
    """Parse one parameter fragment into (name, abi_type, indexed)."""
    tokens = p.split()
    indexed = "indexed" in tokens
    tokens = [t for t in tokens if t != "indexed"]
    if not tokens:
        raise ValueError(f"Invalid event parameter: {p!r}")
    if len(tokens) == 1:
        return (fallback_name, tokens[0], indexed)
    # Last token is the name, the rest is the type
    return (tokens[-1], "".join(tokens[:-1]), indexed)


def event_spec_from_signature(signature: str, projection: Optional[Projection] = None) -> EventSpec:
    """Build an EventSpec from a Solidity event signature string.

    Example input:
      "Minted(address indexed flipContract, address indexed to, uint256 indexed tokenId, uint256 price)"

    Without an explicit projection every field is exposed under its snake_case
    name (``flipContract`` → ``flip_contract``).
    """
    sig = signature.strip()
    open_paren = sig.find("(")
    close_paren = sig.rfind(")")
    if open_paren == -1 or close_paren == -1 or close_paren < open_paren:
        raise ValueError(f"Invalid event signature: {signature}")
    name = sig[:open_paren].strip()
    params_str = sig[open_paren + 1 : close_paren].strip()

    parsed = [
        _parse_param(part, fallback_name=f"arg{i}") for i, part in enumerate(_split_params(params_str))
    ]
    indexed_params = [(n, t) for (n, t, is_indexed) in parsed if is_indexed]
    data_params = [(n, t) for (n, t, is_indexed) in parsed if not is_indexed]
    if len(indexed_params) > 3:
        raise ValueError(f"{name}: at most 3 indexed parameters allowed, got {len(indexed_params)}")

    # topic0 hashes the canonical type list (no names, no 'indexed')
    canonical_signature = f"{name}({','.join(t for (_, t, _) in parsed)})"
    topic0 = "0x" + keccak(text=canonical_signature).hex()

    topic_fields = [TopicFieldSpec(n, idx + 1, t) for idx, (n, t) in enumerate(indexed_params)]
    data_fields = [DataFieldSpec(n, idx, t) for idx, (n, t) in enumerate(data_params)]

    if projection is None:
        proj: dict = {}
        for n, _t in indexed_params:
            proj[snake_case(n)] = ProjectionRefs.TopicRef(name=n)
        for n, _t in data_params:
            proj[snake_case(n)] = ProjectionRefs.DataRef(name=n)
        projection = proj

    return EventSpec(
        topic0=topic0,
        name=name,
        topic_fields=topic_fields,
        data_fields=data_fields,
        projection=projection,
    )


def make_registry(signatures: str | list[str]) -> EventRegistry:
    """Create a registry from one or multiple event signatures.

    Args:
        signatures: Single signature string or list of signature strings

    Returns:
        EventRegistry with entries for each signature
    """
    reg: EventRegistry = {}
    sig_list = [signatures] if isinstance(signatures, str) else signatures
    for signature in sig_list:
        spec = event_spec_from_signature(signature)
        if spec.topic0 in reg:
            raise ValueError(f"Duplicate event signature in registry: {spec.name}")
        reg[spec.topic0] = spec
    return reg
