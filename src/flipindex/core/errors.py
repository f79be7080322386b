"""Indexer error taxonomy.

Handlers raise `EventRejected` subclasses; the dispatcher maps each class to
an action through its policy table. `StoreUnavailable` is raised by stores and
triggers a whole-event retry.
"""

from __future__ import annotations


class IndexerError(Exception):
    """Base class for all flipindex errors."""


class EventRejected(IndexerError):
    """The event cannot be applied; no state was mutated."""


class MissingParentEntity(EventRejected):
    """A referenced CollectionInfo or NFTOwnership row does not exist."""


class DuplicateCreate(EventRejected):
    """A creation event targets an id that already exists."""


class MalformedEvent(EventRejected):
    """Decoded payload does not match the expected event shape."""


class MissingConfigTarget(EventRejected):
    """A configuration event names a collection that was never created."""


class UnstorableEntity(EventRejected):
    """The store refused a row the event produced (value out of column range)."""


class StoreUnavailable(IndexerError):
    """Transient entity-store failure during load, save or commit."""


class ConfigError(IndexerError, ValueError):
    """Invalid indexer configuration."""
