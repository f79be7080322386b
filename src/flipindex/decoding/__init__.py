"""Event decoding with dynamic projections.

This package provides:
- Event specification system (EventSpec, TopicFieldSpec, DataFieldSpec)
- Generic decoder that translates raw logs into ParsedEvent objects
- Signature-based registries for the FLIP factory and trade contracts
- The adapter from ParsedEvent to typed indexer events
"""

from flipindex.decoding.adapter import to_indexed_event
from flipindex.decoding.decoder import ParsedEvent, decode_event, decode_log
from flipindex.decoding.registries import make_factory_registry, make_flip_registry, make_trade_registry
from flipindex.decoding.registry_builder import event_spec_from_signature, make_registry
from flipindex.decoding.specs import (
    DataFieldSpec,
    EventRegistry,
    EventSpec,
    Projection,
    TopicFieldSpec,
)

__all__ = [
    "to_indexed_event",
    "ParsedEvent",
    "decode_event",
    "decode_log",
    "make_factory_registry",
    "make_flip_registry",
    "make_trade_registry",
    "event_spec_from_signature",
    "make_registry",
    "DataFieldSpec",
    "EventRegistry",
    "EventSpec",
    "Projection",
    "TopicFieldSpec",
]
