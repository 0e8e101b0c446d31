"""
Dependency graph bookkeeping and cycle detection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .node import Provider
    from .store import ContainerStore


class DirectedGraph(ABC):
    """A graph whose nodes are numbered 0..order()-1."""

    @abstractmethod
    def order(self) -> int:
        """Number of nodes in the graph."""

    @abstractmethod
    def edges_from(self, u: int) -> list[int]:
        """Nodes that node ``u`` depends on."""


def is_acyclic(graph: DirectedGraph) -> tuple[bool, list[int]]:
    """
    Check a graph for cycles using DFS.

    The search keeps its own stack, so chains of any length are handled
    without touching the interpreter's recursion limit.

    Returns:
        ``(True, [])`` if the graph is acyclic, otherwise ``(False, cycle)``
        where ``cycle`` lists node numbers along the cycle and repeats the
        first one at the end.
    """
    WHITE = 0  # Not visited
    GRAY = 1  # Currently being processed
    BLACK = 2  # Completely processed

    colors = [WHITE] * graph.order()

    for root in range(graph.order()):
        if colors[root] != WHITE:
            continue

        colors[root] = GRAY
        path = [root]
        pending: list[Iterator[int]] = [iter(graph.edges_from(root))]
        while pending:
            for v in pending[-1]:
                if colors[v] == GRAY:
                    # Found a back edge
                    return False, path[path.index(v) :] + [v]
                if colors[v] == WHITE:
                    colors[v] = GRAY
                    path.append(v)
                    pending.append(iter(graph.edges_from(v)))
                    break
            else:
                colors[path.pop()] = BLACK
                pending.pop()
    return True, []


class GraphHolder(DirectedGraph):
    """
    The providers of a Container laid out as a graph.

    Nodes are appended in the order providers are built. A snapshot remembers
    how many nodes existed; rolling back drops every node added since, which
    undoes a failed registration without copying the graph. Edges are not
    stored: they are derived from each provider's parameters and the store's
    current providers.
    """

    def __init__(self, store: ContainerStore):
        self._store = store
        self._nodes: list[Provider] = []
        self._snapshot: int | None = None

    def order(self) -> int:
        return len(self._nodes)

    def node(self, u: int) -> Provider:
        return self._nodes[u]

    def new_node(self, provider: Provider) -> int:
        """Append a provider and return its order."""
        self._nodes.append(provider)
        return len(self._nodes) - 1

    def edges_from(self, u: int) -> list[int]:
        edges: list[int] = []
        for key in self._nodes[u].param_list.dependency_keys():
            edges.extend(provider.order for provider in self._store.providers_for(key))
        return edges

    def snapshot(self) -> None:
        """Remember the current state so that rollback can return to it."""
        self._snapshot = len(self._nodes)

    def rollback(self) -> None:
        """Drop every node added since the last snapshot. Without a snapshot this does nothing."""
        if self._snapshot is None:
            return
        del self._nodes[self._snapshot :]
        self._snapshot = None
