"""Dependency graph for enforcement ordering.

Builds a DAG of resources keyed by region, resource type and id, and
orders it so every dependency is processed before the resources that depend
on it.
"""

from __future__ import annotations

import heapq
import logging
from typing import Dict, Iterator, List, Optional, Set, Tuple

from ..models.resource import Resource, ResourceKey

logger = logging.getLogger(__name__)

ROOT_INDEX = 0


class CycleError(Exception):
    """Raised when the dependency graph contains a cycle.

    Attributes:
        resource_id: Id of a resource lying on the cycle
    """

    def __init__(self, resource_id: str) -> None:
        super().__init__(f"Error graph has cycle at node: {resource_id}")
        self.resource_id = resource_id


class DependencyGraph:
    """Dependency graph of resources.

    Nodes live in an arena addressed by insertion index, with a separate map
    from resource key to index. Index 0 is always the sentinel root resource,
    which is never returned by order().

    An edge ``u -> v`` means u must be processed before v.

    Attributes:
        nodes: Resources by index
        id_map: Resource key to node index
    """

    def __init__(self) -> None:
        self.nodes: List[Resource] = [Resource.root()]
        self.id_map: Dict[ResourceKey, int] = {}
        self._successors: List[Set[int]] = [set()]
        self._edge_count = 0

    def __len__(self) -> int:
        """Number of resources, excluding the root."""
        return len(self.nodes) - 1

    def __contains__(self, key: object) -> bool:
        return key in self.id_map

    def get(self, key: ResourceKey) -> Optional[Resource]:
        index = self.id_map.get(key)
        if index is None:
            return None
        return self.nodes[index]

    @property
    def edge_count(self) -> int:
        return self._edge_count

    def edges(self) -> Iterator[Tuple[str, str]]:
        """Yield (before_id, after_id) pairs for every edge."""
        for index, successors in enumerate(self._successors):
            for successor in sorted(successors):
                yield self.nodes[index].id, self.nodes[successor].id

    def insert(self, resource: Resource) -> None:
        """Insert a resource and its declared dependencies.

        A resource whose key is already present is merged: only the stored
        node's state is overwritten, its enforcement decision and tags are
        kept. Each dependency is inserted with the same rule and an edge
        ``dependency -> resource`` is added.

        Args:
            resource: Resource to insert
        """
        index = self._upsert(resource)

        for dependency in resource.dependencies or []:
            dependency_index = self._upsert(dependency)
            self._add_edge(dependency_index, index)

    def has_cycle(self) -> bool:
        try:
            self._topological_indices()
        except CycleError:
            return True
        return False

    def order(self) -> List[Resource]:
        """Order resources so that dependencies come first.

        Uses Kahn's algorithm; among nodes that are ready at the same time the
        earliest inserted comes first, so the order is deterministic.

        Returns:
            Resources in processing order, without the root

        Raises:
            CycleError: If the graph contains a cycle
        """
        return [self.nodes[index] for index in self._topological_indices() if index != ROOT_INDEX]

    def to_dot(self) -> Optional[str]:
        """Render the graph in Graphviz DOT format.

        Returns:
            DOT source, or None when the graph holds no resources
        """
        if len(self) == 0:
            return None

        lines = ["digraph dependencies {"]
        for index, node in enumerate(self.nodes):
            if index == ROOT_INDEX:
                continue
            label = f"{node.region}\\n{node.type.value}\\n{node.id}\\n{node.enforcement_state.value}"
            lines.append(f'    n{index} [label="{label}"];')
        for index, successors in enumerate(self._successors):
            for successor in sorted(successors):
                lines.append(f"    n{index} -> n{successor};")
        lines.append("}")
        return "\n".join(lines)

    def _upsert(self, resource: Resource) -> int:
        index = self.id_map.get(resource.key)

        if index is not None:
            self.nodes[index].state = resource.state
            return index

        index = len(self.nodes)
        self.nodes.append(resource)
        self._successors.append(set())
        self.id_map[resource.key] = index
        logger.debug(f"Added {resource.type.value} {resource.id} in {resource.region} to dependency graph")
        return index

    def _add_edge(self, before: int, after: int) -> None:
        if after in self._successors[before]:
            return
        self._successors[before].add(after)
        self._edge_count += 1

    def _topological_indices(self) -> List[int]:
        in_degree = [0] * len(self.nodes)
        for successors in self._successors:
            for successor in successors:
                in_degree[successor] += 1

        ready = [index for index, degree in enumerate(in_degree) if degree == 0]
        heapq.heapify(ready)
        ordered: List[int] = []

        while ready:
            index = heapq.heappop(ready)
            ordered.append(index)
            for successor in self._successors[index]:
                in_degree[successor] -= 1
                if in_degree[successor] == 0:
                    heapq.heappush(ready, successor)

        if len(ordered) != len(self.nodes):
            remaining = {index for index, degree in enumerate(in_degree) if degree > 0}
            raise CycleError(self.nodes[self._find_cycle_node(remaining)].id)

        return ordered

    def _find_cycle_node(self, remaining: Set[int]) -> int:
        """Find a node on a cycle among the nodes Kahn's algorithm left over.

        Every leftover node has a leftover predecessor, so walking backwards
        from any of them must revisit a node, and that node is on a cycle.
        """
        predecessors: Dict[int, int] = {}
        for index in sorted(remaining):
            for successor in self._successors[index]:
                if successor in remaining and successor not in predecessors:
                    predecessors[successor] = index

        current = min(remaining)
        seen: Set[int] = set()
        while current not in seen:
            seen.add(current)
            current = predecessors[current]
        return current
