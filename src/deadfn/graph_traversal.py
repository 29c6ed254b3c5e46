"""
Shared graph traversal.

Any directed graph that can answer ``neighbors`` and ``contains_node`` gets
multi-source reachability and root-to-target path explanation for free. The
function call graph implements it; a module-level graph could do the same
without duplicating the walk.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from collections import deque
from typing import Dict, Generic, Hashable, Iterable, List, Optional, Set, TypeVar

N = TypeVar("N", bound=Hashable)


class GraphTraversal(ABC, Generic[N]):
    @abstractmethod
    def neighbors(self, node: N) -> Iterable[N]:
        """Outgoing neighbours of ``node``."""

    @abstractmethod
    def contains_node(self, node: N) -> bool:
        """Whether ``node`` belongs to the graph."""

    def reachable_from(self, roots: Iterable[N]) -> Set[N]:
        """All nodes reachable from any of ``roots`` (roots included).

        Iterative frontier walk, O(V + E). Roots not in the graph are ignored.
        The visited check makes cycles and self-loops safe.
        """
        visited: Set[N] = set()
        frontier: List[N] = [r for r in roots if self.contains_node(r)]
        while frontier:
            node = frontier.pop()
            if node in visited:
                continue
            visited.add(node)
            for nxt in self.neighbors(node):
                if nxt not in visited:
                    frontier.append(nxt)
        return visited

    def reachable_from_single(self, root: N) -> Set[N]:
        return self.reachable_from([root])

    def explain_path(self, roots: Iterable[N], target: N) -> Optional[List[N]]:
        """Shortest root→target node chain, or None when target is unreachable."""
        if not self.contains_node(target):
            return None
        prev: Dict[N, Optional[N]] = {}
        q: deque = deque()
        for r in roots:
            if self.contains_node(r) and r not in prev:
                prev[r] = None
                q.append(r)
        while q:
            node = q.popleft()
            if node == target:
                chain: List[N] = []
                cur: Optional[N] = node
                while cur is not None:
                    chain.append(cur)
                    cur = prev[cur]
                chain.reverse()
                return chain
            for nxt in self.neighbors(node):
                if nxt not in prev:
                    prev[nxt] = node
                    q.append(nxt)
        return None


class AdjacencyGraph(GraphTraversal[N]):
    """Plain adjacency-set graph."""

    def __init__(self) -> None:
        self.nodes: Set[N] = set()
        self.edges: Dict[N, Set[N]] = {}

    def add_node(self, node: N) -> None:
        self.nodes.add(node)

    def add_edge(self, src: N, dst: N) -> None:
        self.nodes.add(src)
        self.nodes.add(dst)
        self.edges.setdefault(src, set()).add(dst)

    def neighbors(self, node: N) -> Iterable[N]:
        return self.edges.get(node, ())

    def contains_node(self, node: N) -> bool:
        return node in self.nodes
