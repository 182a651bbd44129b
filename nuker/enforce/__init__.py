"""Resource enforcement engine.

This module decides which scanned resources violate policy and acts on them
in dependency-safe order.

Classes:
    Orchestrator: Runs scan, decision, ordering and execution
    PolicyEngine: Rule evaluation for one resource type
    DependencyGraph: Dependency graph construction and ordering
"""

from __future__ import annotations

from .graph import DependencyGraph
from .orchestrator import Orchestrator
from .policy import PolicyEngine

__all__ = [
    "Orchestrator",
    "PolicyEngine",
    "DependencyGraph",
]
