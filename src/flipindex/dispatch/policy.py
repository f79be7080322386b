"""Failure policy: what the dispatcher does with each error class."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from flipindex.core.errors import (
    DuplicateCreate,
    IndexerError,
    MalformedEvent,
    MissingConfigTarget,
    MissingParentEntity,
    StoreUnavailable,
    UnstorableEntity,
)


class Action(str, Enum):
    DROP = "drop"  # rejected, counted, processing continues
    SKIP = "skip"  # harmless no-op, counted, processing continues
    RETRY = "retry"  # re-run the whole event from a fresh load


@dataclass(frozen=True)
class Rule:
    action: Action
    log_level: int


FAILURE_POLICY: dict[type[IndexerError], Rule] = {
    MissingParentEntity: Rule(Action.DROP, logging.ERROR),
    DuplicateCreate: Rule(Action.DROP, logging.ERROR),
    MalformedEvent: Rule(Action.DROP, logging.ERROR),
    UnstorableEntity: Rule(Action.DROP, logging.ERROR),
    MissingConfigTarget: Rule(Action.SKIP, logging.WARNING),
    StoreUnavailable: Rule(Action.RETRY, logging.WARNING),
}


def rule_for(error: IndexerError) -> Rule:
    """Most specific rule for the error's class (walks the MRO)."""
    for cls in type(error).__mro__:
        rule = FAILURE_POLICY.get(cls)
        if rule is not None:
            return rule
    raise KeyError(f"no failure policy for {type(error).__name__}")
