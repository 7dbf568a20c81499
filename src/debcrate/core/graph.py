"""Generic graph discovery, projection and topological sorting.

The functions here know nothing about crates: nodes are any hashable,
totally ordered values. The build-order resolver supplies a successor
function that performs registry lookups; everything else is pure.

Successor maps are plain ``dict[node, set[node]]``. Iteration over sets is
always done in sorted order so that results are reproducible for identical
input graphs.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, TypeVar

N = TypeVar("N", bound=Hashable)
K = TypeVar("K", bound=Hashable)

Graph = dict[Any, set[Any]]

SuccessorFn = Callable[[Any], tuple[Iterable[Any], Iterable[Any]]]
ProgressFn = Callable[[deque, Graph], None]


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


@dataclass
class DiscoveredGraph:
    """Result of a discovery run.

    Attributes:
        hard: Node -> successors required to build that node. Every
            discovered node is a key, including leaves.
        soft: Node -> successors needed only for completeness. Empty sets
            unless the successor function reports soft requirements.
    """

    hard: Graph = field(default_factory=dict)
    soft: Graph = field(default_factory=dict)

    @property
    def nodes(self) -> set[Any]:
        return set(self.hard)

    def __len__(self) -> int:
        return len(self.hard)


def discover(
    seeds: Iterable[N],
    next_fn: SuccessorFn,
    progress: ProgressFn | None = None,
) -> DiscoveredGraph:
    """Discover the full graph reachable from *seeds*.

    Maintains a FIFO worklist. Each node is passed to *next_fn* exactly
    once; the hard and soft successors it returns are recorded and any node
    not seen before is queued. Exceptions raised by *next_fn* abort
    discovery and propagate unchanged.

    Args:
        seeds: Starting nodes.
        next_fn: Returns ``(hard, soft)`` successor iterables for a node.
        progress: Called with ``(remaining, graph)`` after each dequeue.
            Observability only; its return value is ignored.

    Returns:
        The discovered graph.
    """
    seen = set()
    remaining: deque = deque()
    for seed in sorted(set(seeds)):
        seen.add(seed)
        remaining.append(seed)

    graph = DiscoveredGraph()
    while remaining:
        node = remaining.popleft()
        if progress is not None:
            progress(remaining, graph.hard)
        hard, soft = next_fn(node)
        hard = set(hard)
        soft = set(soft)
        for succ in sorted(hard | soft):
            if succ not in seen:
                seen.add(succ)
                remaining.append(succ)
        graph.hard[node] = hard
        graph.soft[node] = soft
    return graph


# ---------------------------------------------------------------------------
# Post-processing
# ---------------------------------------------------------------------------


def project(graph: Mapping[N, Iterable[N]], key: Callable[[N], K]) -> dict[K, set[K]]:
    """Collapse a successor map through *key*, unioning merged successor sets.

    Every projected key of the input appears in the output, even when it has
    no successors.
    """
    projected: dict[K, set[K]] = {}
    for node, succs in graph.items():
        entry = projected.setdefault(key(node), set())
        for succ in succs:
            entry.add(key(succ))
    return projected


def reverse(graph: Mapping[N, Iterable[N]]) -> dict[N, set[N]]:
    """Build the predecessor map of a successor map.

    Each edge ``a -> b`` becomes ``b -> a``. Every node that appears in the
    input, as a key or as a successor, is a key of the output, so reversing
    twice returns the original graph whenever all its nodes are keys.
    """
    reversed_graph: dict[N, set[N]] = {}
    for node, succs in graph.items():
        reversed_graph.setdefault(node, set())
        for succ in succs:
            reversed_graph.setdefault(succ, set()).add(node)
    return reversed_graph


@dataclass
class TopoSort:
    """Outcome of ``topo_sort``.

    Attributes:
        order: Emitted nodes in sort order. Complete only on success.
        remaining: Node -> entries still outstanding after sorting stalled.
            Non-empty exactly when the graph contains a cycle.
    """

    order: list[Any] = field(default_factory=list)
    remaining: dict[Any, set[Any]] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return not self.remaining


def topo_sort(
    roots: Iterable[N],
    succ: Mapping[N, Iterable[N]],
    pred: Mapping[N, Iterable[N]],
) -> TopoSort:
    """Kahn's algorithm.

    Starting from *roots* (nodes with nothing outstanding in *pred*), emit a
    node, then remove it from the outstanding set of each of its *succ*
    neighbours; a neighbour whose outstanding set becomes empty is ready and
    is emitted later. Ready nodes are taken in sorted order.

    To obtain a build order from a "requires" map, pass the reversed map as
    *succ* and the requires map itself as *pred*: a crate is then emitted
    only after everything it requires.

    Args:
        roots: Nodes with no outstanding entries.
        succ: Node -> nodes unblocked by emitting it.
        pred: Node -> nodes that must be emitted first. Not mutated.

    Returns:
        A ``TopoSort``; ``remaining`` holds the cyclic remainder if sorting
        stalled before every node was emitted.
    """
    outstanding = {node: set(deps) for node, deps in pred.items()}
    ready = deque(sorted(set(roots)))
    emitted = set()
    order = []
    while ready:
        node = ready.popleft()
        if node in emitted:
            continue
        emitted.add(node)
        order.append(node)
        freed = []
        for nxt in succ.get(node, ()):
            deps = outstanding.setdefault(nxt, set())
            deps.discard(node)
            if not deps and nxt not in emitted:
                freed.append(nxt)
        ready.extend(sorted(freed))

    remaining = {node: deps for node, deps in outstanding.items() if deps}
    return TopoSort(order=order, remaining=remaining)
