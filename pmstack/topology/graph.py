import heapq
import logging
from collections import defaultdict
from collections.abc import Iterable

from pmstack.errors import CyclicDependencyError, DanglingReferenceError
from pmstack.models import DependencyEdge, EdgeKind

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Directed "must-provision-before" edges between logical ids.

    An edge (source -> target) means source waits for target. Edges only
    reference ids; the graph never owns resources.
    """

    def __init__(self):
        self._edges: dict[tuple[str, str], DependencyEdge] = {}

    @property
    def edges(self) -> list[DependencyEdge]:
        return list(self._edges.values())

    def add_edge(
        self,
        source: str,
        target: str,
        kind: EdgeKind = EdgeKind.HARD_BLOCK,
    ) -> DependencyEdge:
        """Add an edge. A HardBlock edge supersedes a SoftOrdering edge on the same pair."""
        if source == target:
            raise CyclicDependencyError([source, target])

        key = (source, target)
        existing = self._edges.get(key)
        if existing is not None and (
            existing.kind == EdgeKind.HARD_BLOCK or existing.kind == kind
        ):
            return existing

        edge = DependencyEdge(source=source, target=target, kind=kind)
        self._edges[key] = edge
        logger.debug("Edge %s -> %s (%s)", source, target, kind.value)
        return edge

    def dependencies(self, logical_id: str, kind: EdgeKind | None = None) -> list[str]:
        return [
            e.target
            for e in self._edges.values()
            if e.source == logical_id and (kind is None or e.kind == kind)
        ]

    def check_references(self, known_ids: Iterable[str]) -> None:
        """Raise DanglingReferenceError if any edge endpoint is not a known id."""
        known = set(known_ids)
        for edge in self._edges.values():
            for endpoint in (edge.source, edge.target):
                if endpoint not in known:
                    raise DanglingReferenceError(
                        f"Edge {edge.source} -> {edge.target} references an unknown resource",
                        logical_id=endpoint,
                    )

    def find_cycle(self) -> list[str] | None:
        """Return one cycle as a list of ids (first id repeated at the end), or None."""
        adjacency: dict[str, list[str]] = defaultdict(list)
        for source, target in self._edges:
            adjacency[source].append(target)

        visiting: set[str] = set()
        done: set[str] = set()
        path: list[str] = []

        def visit(node: str) -> list[str] | None:
            visiting.add(node)
            path.append(node)
            for nxt in adjacency.get(node, []):
                if nxt in visiting:
                    return path[path.index(nxt):] + [nxt]
                if nxt not in done:
                    cycle = visit(nxt)
                    if cycle:
                        return cycle
            visiting.discard(node)
            done.add(node)
            path.pop()
            return None

        for node in list(adjacency):
            if node not in done:
                cycle = visit(node)
                if cycle:
                    return cycle
        return None

    def topological_order(self, logical_ids: list[str]) -> list[str]:
        """Order ids so every edge target precedes its source.

        Kahn's algorithm; ties are broken by position in `logical_ids`
        (registration order). Raises CyclicDependencyError on a cycle.
        """
        position = {lid: i for i, lid in enumerate(logical_ids)}
        self.check_references(position)

        pending = {lid: 0 for lid in logical_ids}
        dependents: dict[str, list[str]] = defaultdict(list)
        for source, target in self._edges:
            pending[source] += 1
            dependents[target].append(source)

        ready = [(position[lid], lid) for lid, count in pending.items() if count == 0]
        heapq.heapify(ready)

        order: list[str] = []
        while ready:
            _, lid = heapq.heappop(ready)
            order.append(lid)
            for dependent in dependents[lid]:
                pending[dependent] -= 1
                if pending[dependent] == 0:
                    heapq.heappush(ready, (position[dependent], dependent))

        if len(order) != len(logical_ids):
            cycle = self.find_cycle() or [lid for lid in logical_ids if lid not in order]
            raise CyclicDependencyError(cycle)
        return order

    def __len__(self) -> int:
        return len(self._edges)
