"""Build-order core: graph engine, feature index and resolver.

A crate's build order is computed over a graph whose nodes pair a resolved
crate with one feature activation:

- **Graph engine** (``graph``): worklist discovery from a successor
  function, projection, reversal and Kahn topological sorting.
- **Feature index** (``features``): Cargo feature semantics, closing a
  requested feature over the features and dependencies it enables.
- **Resolver** (``resolver``): drives discovery with registry lookups and a
  per-spec resolution cache, then sorts dependencies before dependents.
"""

from debcrate.core.features import FeatureEntry, FeatureIndex, transitive_deps
from debcrate.core.graph import (
    DiscoveredGraph,
    TopoSort,
    discover,
    project,
    reverse,
    topo_sort,
)
from debcrate.core.models import (
    ALL_FEATURES,
    DEFAULT_FEATURE,
    NO_FEATURES,
    DependencySpec,
    DepKind,
    GraphNode,
    PackageIdentity,
    seed_spec,
)
from debcrate.core.resolver import (
    BuildOrder,
    BuildOrderResolver,
    ResolvePolicy,
    ResolveType,
    SeedFeatures,
    build_order,
)

__all__ = [
    "ALL_FEATURES",
    "DEFAULT_FEATURE",
    "NO_FEATURES",
    "BuildOrder",
    "BuildOrderResolver",
    "DependencySpec",
    "DepKind",
    "DiscoveredGraph",
    "FeatureEntry",
    "FeatureIndex",
    "GraphNode",
    "PackageIdentity",
    "ResolvePolicy",
    "ResolveType",
    "SeedFeatures",
    "TopoSort",
    "build_order",
    "discover",
    "project",
    "reverse",
    "seed_spec",
    "topo_sort",
    "transitive_deps",
]
