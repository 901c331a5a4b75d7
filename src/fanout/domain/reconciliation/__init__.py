"""Desired-state reconciliation of a parent's children.

Stages, leaf-first:
1) ``compare``: decide whether a live child drifted from its declaration
2) ``fetch``: load tracked children, dropping references that vanished
3) ``gate``: refuse to mutate while any child is in flight
4) ``prune``: delete children that are no longer declared
5) ``upsert``: create or update declared children, tracking new ones
6) ``engine``: sequence the stages and report the outcome on the parent
"""

from __future__ import annotations

from .compare import default_mappings, needs_update
from .engine import ChildReconciler, ReconcileOutcome, ReconcileResult
from .fetch import FetchResult, load_children
from .gate import find_blocking_child
from .prune import PruneResult, prune_orphans
from .reporting import StatusReporter, get_or_init_condition, updated_condition
from .upsert import OperationResult, UpsertResult, create_or_update_child, upsert_child

__all__ = [
    "ChildReconciler",
    "FetchResult",
    "OperationResult",
    "PruneResult",
    "ReconcileOutcome",
    "ReconcileResult",
    "StatusReporter",
    "UpsertResult",
    "create_or_update_child",
    "default_mappings",
    "find_blocking_child",
    "get_or_init_condition",
    "load_children",
    "needs_update",
    "prune_orphans",
    "updated_condition",
    "upsert_child",
]
