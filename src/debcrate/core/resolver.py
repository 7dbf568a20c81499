"""Build-order resolution for a seed crate.

Answers "in which order must crates be packaged so that each one's build
requirements are already available?". The resolver walks the graph of
``GraphNode`` values (crate identity + feature activation) with the generic
graph engine, asking the registry for each dependency once per distinct
``DependencySpec``, then projects the graph onto crate identities and sorts
it so that dependencies come before their dependents.

Two resolution types mirror the two questions a distribution asks:

- ``BINARY_FOR_DEBIAN_UNSTABLE``: what must be built first so this crate can
  be built? Only hard requirements are followed.
- ``SOURCE_FOR_DEBIAN_TESTING``: what else must migrate with this crate?
  Soft requirements (dependencies of features the build does not need) are
  discovered too, so the full closure is known.

A build requirement always includes the ``default`` feature set (or every
feature, when features are collapsed): a distribution builds one artifact
with fixed features regardless of which feature a dependent asks for.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from debcrate.core.features import FeatureIndex, transitive_deps
from debcrate.core.graph import DiscoveredGraph, discover, project, reverse, topo_sort
from debcrate.core.models import (
    ALL_FEATURES,
    DEFAULT_FEATURE,
    NO_FEATURES,
    DependencySpec,
    GraphNode,
    PackageIdentity,
)

if TYPE_CHECKING:
    from debcrate.config import PackageConfig
    from debcrate.registry.base import CrateInfo, Registry

logger = logging.getLogger(__name__)

# Log discovery progress every this many dequeued nodes.
PROGRESS_INTERVAL: int = 16

ConfigLookup = Callable[[PackageIdentity], "PackageConfig | None"]


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


class ResolveType(enum.Enum):
    """Which requirements discovery follows."""

    BINARY_FOR_DEBIAN_UNSTABLE = "BinaryForDebianUnstable"
    SOURCE_FOR_DEBIAN_TESTING = "SourceForDebianTesting"


class SeedFeatures(enum.Enum):
    """Feature activation the seed crate is resolved with."""

    LIBRARY = NO_FEATURES
    DEFAULT = DEFAULT_FEATURE
    ALL = ALL_FEATURES


@dataclass(frozen=True)
class ResolvePolicy:
    """How a build order is computed.

    Attributes:
        resolve_type: Follow hard requirements only, or soft ones too.
        seed_features: Activation of the seed crate. ``ALL`` also collapses
            every dependency to a single all-features node.
        collapse_features: Treat every crate as if its features were
            collapsed into one package, making all of its dependencies
            build requirements.
    """

    resolve_type: ResolveType = ResolveType.BINARY_FOR_DEBIAN_UNSTABLE
    seed_features: SeedFeatures = SeedFeatures.LIBRARY
    collapse_features: bool = False

    @property
    def follows_soft(self) -> bool:
        return self.resolve_type is ResolveType.SOURCE_FOR_DEBIAN_TESTING


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass
class BuildOrder:
    """Outcome of a build-order run.

    Attributes:
        seed: The resolved seed crate.
        order: Crates in build order, dependencies first. Empty on a cycle.
        cycle: Crate -> requirements still outstanding when sorting stalled.
            Non-empty exactly when the graph is cyclic.
        leftovers: Crates resolved during discovery but missing from the
            order. Indicates a resolver bug; never fatal.
        extras: Crates in the order that discovery never resolved.
            Indicates a resolver bug; never fatal.
        graph: The feature-level graph discovery produced.
    """

    seed: PackageIdentity
    order: list[PackageIdentity] = field(default_factory=list)
    cycle: dict[PackageIdentity, set[PackageIdentity]] = field(default_factory=dict)
    leftovers: list[PackageIdentity] = field(default_factory=list)
    extras: list[PackageIdentity] = field(default_factory=list)
    graph: DiscoveredGraph = field(default_factory=DiscoveredGraph)

    @property
    def success(self) -> bool:
        return not self.cycle

    def cycle_edges(self) -> list[str]:
        """One ``crate -> requirement`` line per outstanding edge, sorted."""
        return [
            f"{node} -> {dep}"
            for node in sorted(self.cycle)
            for dep in sorted(self.cycle[node])
        ]


@dataclass
class _Crate:
    info: CrateInfo
    index: FeatureIndex
    config: PackageConfig | None = None


# ---------------------------------------------------------------------------
# Resolver
# ---------------------------------------------------------------------------


class BuildOrderResolver:
    """Computes build orders against one registry.

    The resolution cache maps each distinct ``DependencySpec`` to the
    identity the registry chose for it, so identical requests never query the
    registry twice. Cache and crate metadata are reset at the start of every
    ``build_order`` call. Not thread-safe.

    Args:
        registry: Where crate versions and manifests come from.
        config_lookup: Returns per-crate overrides for a resolved identity,
            or None when there are none.
    """

    def __init__(
        self,
        registry: Registry,
        config_lookup: ConfigLookup | None = None,
    ) -> None:
        self._registry = registry
        self._config_lookup = config_lookup
        self._cache: dict[DependencySpec, PackageIdentity] = {}
        self._crates: dict[PackageIdentity, _Crate] = {}

    @property
    def resolved(self) -> list[PackageIdentity]:
        """Identities resolved so far in the current run, sorted."""
        return sorted(self._crates)

    def resolve(self, spec: DependencySpec) -> PackageIdentity:
        """Resolve *spec* through the cache.

        Different specs may resolve to the same identity; its metadata is
        then loaded only once.

        Raises:
            ResolutionError: If the registry cannot satisfy *spec*.
        """
        cached = self._cache.get(spec)
        if cached is not None:
            return cached
        info = self._registry.resolve(spec)
        identity = info.identity
        if identity not in self._crates:
            config = self._config_lookup(identity) if self._config_lookup else None
            self._crates[identity] = _Crate(info, info.feature_index(), config)
        self._cache[spec] = identity
        return identity

    def build_deps(
        self, node: GraphNode, policy: ResolvePolicy
    ) -> tuple[list[DependencySpec], list[DependencySpec]]:
        """Hard and soft dependency specs of one graph node.

        Hard: what a dependent needs built first, i.e. the dependencies of
        the requested feature plus the crate's baseline build (``default``,
        or everything when features are collapsed). Soft: every other
        dependency the crate can activate, only under the coverage policy.
        """
        crate = self._crates[node.identity]
        index = crate.index
        all_deps = index.all_dependencies()
        _, feature_deps = transitive_deps(index, node.feature)

        collapse = policy.collapse_features or (
            crate.config is not None and crate.config.collapse_features
        )
        if collapse:
            baseline = all_deps
        else:
            _, baseline = transitive_deps(index, DEFAULT_FEATURE)

        excluded = set(crate.config.build_depends_excludes) if crate.config else set()
        hard: dict[DependencySpec, None] = {}
        for dep in feature_deps + baseline:
            if dep.name not in excluded:
                hard.setdefault(dep, None)

        soft: list[DependencySpec] = []
        if policy.follows_soft:
            soft = [dep for dep in all_deps if dep not in hard]
        return list(hard), soft

    def build_order(
        self,
        seed: DependencySpec,
        policy: ResolvePolicy | None = None,
    ) -> BuildOrder:
        """Compute the build order for *seed*.

        Args:
            seed: The crate to package.
            policy: Resolution policy; defaults to binary resolution of the
                bare library.

        Returns:
            A ``BuildOrder``. On a cycle, ``order`` is empty and ``cycle``
            holds the unresolved subgraph.

        Raises:
            ResolutionError: If any dependency cannot be resolved. Discovery
                stops immediately; no partial order is returned.
        """
        policy = policy or ResolvePolicy()
        self._cache.clear()
        self._crates.clear()

        seed_id = self.resolve(seed)
        seed_node = GraphNode(seed_id, policy.seed_features.value)

        graph = discover([seed_node], lambda n: self._next(n, policy), self._progress())
        logger.debug("discovered %d feature nodes", len(graph))

        succ = project(graph.hard, lambda n: n.identity)
        pred = reverse(succ)
        roots = [pkg for pkg, deps in succ.items() if not deps]
        # pred/succ swapped: emit a crate only after everything it requires
        result = topo_sort(roots, pred, succ)

        if not result.success:
            build = BuildOrder(seed=seed_id, cycle=result.remaining, graph=graph)
            logger.error(
                "cyclic build graph; patch the crate(s) to break the cycle:\n  %s",
                "\n  ".join(build.cycle_edges()),
            )
            return build

        build = BuildOrder(seed=seed_id, order=result.order, graph=graph)
        resolved = set(self._crates)
        for pkg in build.order:
            if pkg not in resolved:
                logger.error("extra package in build order, never resolved: %s", pkg)
                build.extras.append(pkg)
        ordered = set(build.order)
        for pkg in sorted(resolved - ordered):
            logger.error(
                "resolved package missing from build order: %s, succ: %s, pred: %s",
                pkg,
                ", ".join(str(p) for p in sorted(succ.get(pkg, ()))),
                ", ".join(str(p) for p in sorted(pred.get(pkg, ()))),
            )
            build.leftovers.append(pkg)
        return build

    def _next(
        self, node: GraphNode, policy: ResolvePolicy
    ) -> tuple[list[GraphNode], list[GraphNode]]:
        hard, soft = self.build_deps(node, policy)
        logger.debug("%s hard-dep: %s", node, ", ".join(str(d) for d in hard))
        if soft:
            logger.debug("%s soft-dep: %s", node, ", ".join(str(d) for d in soft))
        # several specs may resolve to the same crate version; that is expected
        hard_nodes = [n for dep in hard for n in self._expand(dep, policy)]
        soft_nodes = [n for dep in soft for n in self._expand(dep, policy)]
        return hard_nodes, soft_nodes

    def _expand(self, dep: DependencySpec, policy: ResolvePolicy) -> list[GraphNode]:
        identity = self.resolve(dep)
        if policy.seed_features is SeedFeatures.ALL:
            return [GraphNode(identity, ALL_FEATURES)]
        return [GraphNode(identity, feature) for feature in dep.activations()]

    @staticmethod
    def _progress() -> Callable:
        count = 0

        def progress(remaining, graph) -> None:
            nonlocal count
            count += 1
            if count % PROGRESS_INTERVAL == 0:
                logger.info(
                    "resolving dependencies: done: %d, todo: %d",
                    len(graph),
                    len(remaining),
                )

        return progress


def build_order(
    registry: Registry,
    seed: DependencySpec,
    policy: ResolvePolicy | None = None,
    config_lookup: ConfigLookup | None = None,
) -> BuildOrder:
    """Convenience wrapper: one resolver, one run."""
    return BuildOrderResolver(registry, config_lookup).build_order(seed, policy)
