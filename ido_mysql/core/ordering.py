# SPDX-License-Identifier: Apache-2.0
# Copyright 2024-2026 CAB Ingénierie / Christophe ABOULICAM
"""Resource catalog and the ordering graph between its resources.

Ordering is enforced by sequencing: the catalog is applied in a topological
order of its edges. A cycle is a configuration error; the graph is never
re-ordered to make it fit.
"""

from collections.abc import Iterator
from typing import Union

from ..errors import ConfigurationError, OrderingError
from .resources import Resource

ResourceOrRef = Union[Resource, str]


def _ref(item: ResourceOrRef) -> str:
    return item if isinstance(item, str) else item.ref


class OrderingGraph:
    """Directed 'before → after' edges between resource refs."""

    def __init__(self):
        self._nodes: list[str] = []
        self._edges: dict[str, list[str]] = {}

    def add_node(self, ref: str) -> None:
        if ref not in self._edges:
            self._nodes.append(ref)
            self._edges[ref] = []

    def add_edge(self, before: str, after: str) -> None:
        for ref in (before, after):
            if ref not in self._edges:
                raise OrderingError(
                    f"Ordering edge {before} -> {after} names unknown resource {ref}",
                    step="ordering",
                    details={"before": before, "after": after},
                )
        if before == after:
            raise OrderingError(
                f"Resource {before} cannot be ordered before itself",
                step="ordering",
                details={"before": before, "after": after},
            )
        if after not in self._edges[before]:
            self._edges[before].append(after)

    @property
    def edges(self) -> list[tuple[str, str]]:
        return [(before, after) for before in self._nodes for after in self._edges[before]]

    def precedes(self, before: str, after: str) -> bool:
        """True when a path of edges leads from before to after."""
        seen: set[str] = set()
        stack = list(self._edges.get(before, []))
        while stack:
            ref = stack.pop()
            if ref == after:
                return True
            if ref not in seen:
                seen.add(ref)
                stack.extend(self._edges[ref])
        return False

    def topological_order(self) -> list[str]:
        """Kahn's algorithm; ties keep declaration order so output is deterministic."""
        indegree = {ref: 0 for ref in self._nodes}
        for before, after in self.edges:
            indegree[after] += 1

        order: list[str] = []
        ready = [ref for ref in self._nodes if indegree[ref] == 0]
        while ready:
            ref = ready.pop(0)
            order.append(ref)
            for after in self._edges[ref]:
                indegree[after] -= 1
                if indegree[after] == 0:
                    ready.append(after)
            ready.sort(key=self._nodes.index)

        if len(order) != len(self._nodes):
            cyclic = [ref for ref in self._nodes if ref not in order]
            raise OrderingError(
                f"Ordering cycle between: {', '.join(cyclic)}",
                step="ordering",
                details={"resources": cyclic},
            )
        return order


class Catalog:
    """The resources of one feature and the ordering between them."""

    def __init__(self, name: str):
        self.name = name
        self.graph = OrderingGraph()
        self._resources: dict[str, Resource] = {}

    def add(self, resource: Resource) -> Resource:
        if resource.ref in self._resources:
            raise ConfigurationError(
                f"Duplicate declaration of {resource.ref}",
                step="catalog",
                details={"ref": resource.ref},
            )
        self._resources[resource.ref] = resource
        self.graph.add_node(resource.ref)
        return resource

    def order(self, before: ResourceOrRef, after: ResourceOrRef) -> None:
        self.graph.add_edge(_ref(before), _ref(after))

    def get(self, ref: str) -> Resource:
        return self._resources[ref]

    def ordered(self) -> list[Resource]:
        return [self._resources[ref] for ref in self.graph.topological_order()]

    def __contains__(self, item: ResourceOrRef) -> bool:
        return _ref(item) in self._resources

    def __iter__(self) -> Iterator[Resource]:
        return iter(self._resources.values())

    def __len__(self) -> int:
        return len(self._resources)
