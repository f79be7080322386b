"""Routing of typed events to handlers with per-collection ordering.

This package provides:
- Dispatcher: transactional, checkpointed, retrying event application
- FAILURE_POLICY: error class → action table
"""

from flipindex.dispatch.dispatcher import DispatchStats, Dispatcher, Outcome, route
from flipindex.dispatch.policy import FAILURE_POLICY, Action, rule_for

__all__ = [
    "DispatchStats",
    "Dispatcher",
    "Outcome",
    "route",
    "FAILURE_POLICY",
    "Action",
    "rule_for",
]
