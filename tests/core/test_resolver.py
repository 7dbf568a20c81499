"""Tests for build-order resolution.

Validates ordering (dependencies first), cycle reporting, the per-spec
resolution cache, the hard/soft requirement split under both resolve types,
feature collapsing, the all-features seed policy, per-package config
overrides, and error propagation.
"""

from __future__ import annotations

import logging

import pytest

from debcrate.config import PackageConfig
from debcrate.core.graph import TopoSort, topo_sort
from debcrate.core.models import ALL_FEATURES, DependencySpec, GraphNode, PackageIdentity, seed_spec
from debcrate.core.resolver import (
    BuildOrderResolver,
    ResolvePolicy,
    ResolveType,
    SeedFeatures,
    build_order,
)
from debcrate.exceptions import UnresolvableRangeError
from debcrate.registry.static import StaticRegistry
from debcrate.semver import Version

TESTING = ResolvePolicy(resolve_type=ResolveType.SOURCE_FOR_DEBIAN_TESTING)


def _order(build) -> list[str]:
    return [str(pkg) for pkg in build.order]


@pytest.fixture
def featured() -> StaticRegistry:
    """``app`` has a default feature pulling libc and an unused optional dep."""
    reg = StaticRegistry()
    reg.add(
        "app", "2.1.0",
        deps=[
            {"name": "serde", "req": "^1"},
            {"name": "libc", "req": "^0.2", "optional": True},
            {"name": "rayon", "req": "^1.8", "optional": True},
            {"name": "proptest", "req": "^1", "kind": "dev"},
        ],
        features={"default": ["std"], "std": ["dep:libc"]},
    )
    reg.add("serde", "1.0.190", features={"derive": ["dep:serde_derive"]},
            deps=[{"name": "serde_derive", "req": "=1.0.190", "optional": True}])
    reg.add("serde_derive", "1.0.190")
    reg.add("libc", "0.2.150")
    reg.add("rayon", "1.8.0")
    reg.add("proptest", "1.4.0")
    return reg


# ===========================================================================
# Ordering
# ===========================================================================


class TestBuildOrder:
    """Tests for the basic build order."""

    def test_dependency_first(self, registry: StaticRegistry) -> None:
        build = build_order(registry, seed_spec("alpha"))
        assert build.success
        assert _order(build) == ["beta@0.3.4", "alpha@1.0.0"]
        assert str(build.seed) == "alpha@1.0.0"

    def test_no_bookkeeping_mismatch(self, registry: StaticRegistry) -> None:
        build = build_order(registry, seed_spec("alpha"))
        assert build.leftovers == []
        assert build.extras == []

    def test_exact_seed_version(self, registry: StaticRegistry) -> None:
        build = build_order(registry, seed_spec("beta", "0.3.1"))
        assert _order(build) == ["beta@0.3.1"]

    def test_leaf_crate(self, registry: StaticRegistry) -> None:
        build = build_order(registry, seed_spec("beta"))
        assert _order(build) == ["beta@0.4.0"]

    def test_dev_dependencies_not_built(self, featured: StaticRegistry) -> None:
        build = build_order(featured, seed_spec("app"))
        assert "proptest@1.4.0" not in _order(build)

    def test_default_features_are_build_requirements(self, featured: StaticRegistry) -> None:
        build = build_order(featured, seed_spec("app"))
        assert _order(build) == ["libc@0.2.150", "serde@1.0.190", "app@2.1.0"]

    def test_graph_nodes_carry_features(self, registry: StaticRegistry) -> None:
        build = build_order(registry, seed_spec("alpha"))
        nodes = {str(n) for n in build.graph.nodes}
        assert nodes == {"alpha@1.0.0/", "beta@0.3.4/default", "beta@0.3.4/"}

    def test_diamond(self) -> None:
        reg = StaticRegistry()
        reg.add("top", "1.0.0", deps=[{"name": "left", "req": "1"}, {"name": "right", "req": "1"}])
        reg.add("left", "1.0.0", deps=[{"name": "base", "req": "1"}])
        reg.add("right", "1.0.0", deps=[{"name": "base", "req": "1"}])
        reg.add("base", "1.0.0")
        build = build_order(reg, seed_spec("top"))
        assert _order(build) == ["base@1.0.0", "left@1.0.0", "right@1.0.0", "top@1.0.0"]


class TestCycles:
    """Tests for cyclic build graphs."""

    @pytest.fixture
    def cyclic(self) -> StaticRegistry:
        reg = StaticRegistry()
        reg.add("a", "1.0.0", deps=[{"name": "b", "req": "^1"}])
        reg.add("b", "1.0.0", deps=[{"name": "a", "req": "^1"}])
        return reg

    def test_cycle_reported(self, cyclic: StaticRegistry) -> None:
        build = build_order(cyclic, seed_spec("a"))
        assert not build.success
        assert build.order == []
        assert {p.name for p in build.cycle} == {"a", "b"}

    def test_cycle_edges(self, cyclic: StaticRegistry) -> None:
        build = build_order(cyclic, seed_spec("a"))
        assert build.cycle_edges() == ["a@1.0.0 -> b@1.0.0", "b@1.0.0 -> a@1.0.0"]

    def test_cycle_logged(self, cyclic: StaticRegistry, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.ERROR, logger="debcrate.core.resolver"):
            build_order(cyclic, seed_spec("a"))
        assert "cyclic build graph" in caplog.text


# ===========================================================================
# Sanity checks and progress
# ===========================================================================


class TestSanityChecks:
    """Tests for the order-versus-resolved bookkeeping check and progress logs."""

    def test_mismatch_logged_and_recorded(
        self,
        registry: StaticRegistry,
        monkeypatch: pytest.MonkeyPatch,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        ghost = PackageIdentity("ghost", Version.parse("9.9.9"))

        def lossy_sort(roots, succ, pred):
            result = topo_sort(roots, succ, pred)
            return TopoSort(order=result.order[1:] + [ghost])

        monkeypatch.setattr("debcrate.core.resolver.topo_sort", lossy_sort)
        with caplog.at_level(logging.ERROR, logger="debcrate.core.resolver"):
            build = build_order(registry, seed_spec("alpha"))
        assert build.success
        assert [str(p) for p in build.leftovers] == ["beta@0.3.4"]
        assert [str(p) for p in build.extras] == ["ghost@9.9.9"]
        assert "resolved package missing from build order: beta@0.3.4" in caplog.text
        assert "never resolved: ghost@9.9.9" in caplog.text

    def test_progress_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        reg = StaticRegistry()
        for i in range(20):
            deps = [{"name": f"c{i + 1:02d}", "req": "1"}] if i < 19 else []
            reg.add(f"c{i:02d}", "1.0.0", deps=deps)
        with caplog.at_level(logging.INFO, logger="debcrate.core.resolver"):
            build = build_order(reg, seed_spec("c00"))
        assert len(build.order) == 20
        progress = [r for r in caplog.records if r.getMessage().startswith("resolving dependencies: done:")]
        assert progress
        assert all(r.levelno == logging.INFO for r in progress)


# ===========================================================================
# Resolution cache
# ===========================================================================


class TestResolutionCache:
    """Tests for memoized registry lookups."""

    def test_identical_specs_resolved_once(self) -> None:
        reg = StaticRegistry()
        reg.add("alpha", "1.0.0", deps=[{"name": "beta", "req": "^0.3"}, {"name": "gamma", "req": "1"}])
        reg.add("gamma", "1.0.0", deps=[{"name": "beta", "req": "^0.3"}])
        reg.add("beta", "0.3.4")
        build_order(reg, seed_spec("alpha"))
        # seed, beta, gamma
        assert reg.lookups == 3

    def test_resolve_uses_cache(self, registry: StaticRegistry) -> None:
        resolver = BuildOrderResolver(registry)
        spec = DependencySpec("beta", "^0.3")
        first = resolver.resolve(spec)
        second = resolver.resolve(spec)
        assert first == second
        assert registry.lookups == 1

    def test_cache_reset_per_run(self, registry: StaticRegistry) -> None:
        resolver = BuildOrderResolver(registry)
        resolver.build_order(seed_spec("alpha"))
        resolver.build_order(seed_spec("alpha"))
        assert registry.lookups == 4

    def test_resolved_lists_identities(self, registry: StaticRegistry) -> None:
        resolver = BuildOrderResolver(registry)
        resolver.build_order(seed_spec("alpha"))
        assert [str(p) for p in resolver.resolved] == ["alpha@1.0.0", "beta@0.3.4"]


# ===========================================================================
# Policies
# ===========================================================================


class TestPolicies:
    """Tests for resolve types, seed features and collapsing."""

    def test_binary_skips_unused_optional(self, featured: StaticRegistry) -> None:
        build = build_order(featured, seed_spec("app"))
        assert "rayon@1.8.0" not in _order(build)

    def test_testing_follows_soft_deps(self, featured: StaticRegistry) -> None:
        build = build_order(featured, seed_spec("app"), TESTING)
        order = _order(build)
        assert "rayon@1.8.0" in order
        assert "serde_derive@1.0.190" in order
        assert order[-1] == "app@2.1.0"

    def test_soft_edges_recorded(self, featured: StaticRegistry) -> None:
        build = build_order(featured, seed_spec("app"), TESTING)
        soft = {
            str(n.identity)
            for node, succs in build.graph.soft.items()
            if node.identity.name == "app"
            for n in succs
        }
        assert "rayon@1.8.0" in soft

    def test_collapse_features(self, featured: StaticRegistry) -> None:
        policy = ResolvePolicy(collapse_features=True)
        order = _order(build_order(featured, seed_spec("app"), policy))
        assert "rayon@1.8.0" in order
        assert "serde_derive@1.0.190" in order

    def test_all_features_seed(self, featured: StaticRegistry) -> None:
        policy = ResolvePolicy(seed_features=SeedFeatures.ALL)
        build = build_order(featured, seed_spec("app"), policy)
        assert "rayon@1.8.0" in _order(build)
        assert all(node.feature == ALL_FEATURES for node in build.graph.nodes)

    def test_seed_feature_activation(self, featured: StaticRegistry) -> None:
        policy = ResolvePolicy(seed_features=SeedFeatures.DEFAULT)
        build = build_order(featured, seed_spec("app"), policy)
        assert any(
            node == GraphNode(build.seed, "default") for node in build.graph.nodes
        )

    def test_follows_soft(self) -> None:
        assert TESTING.follows_soft
        assert not ResolvePolicy().follows_soft


class TestPackageConfig:
    """Tests for per-package overrides."""

    def test_build_depends_excludes(self, registry: StaticRegistry) -> None:
        config = PackageConfig(build_depends_excludes=("beta",))
        build = build_order(
            registry,
            seed_spec("alpha"),
            config_lookup=lambda ident: config if ident.name == "alpha" else None,
        )
        assert _order(build) == ["alpha@1.0.0"]

    def test_collapse_features_from_config(self, featured: StaticRegistry) -> None:
        config = PackageConfig(collapse_features=True)
        build = build_order(
            featured,
            seed_spec("app"),
            config_lookup=lambda ident: config if ident.name == "app" else None,
        )
        assert "rayon@1.8.0" in _order(build)
        # serde itself is not collapsed
        assert "serde_derive@1.0.190" not in _order(build)


# ===========================================================================
# Errors
# ===========================================================================


class TestResolutionErrors:
    """Tests for unresolvable dependencies."""

    def test_missing_dependency_raises(self) -> None:
        reg = StaticRegistry()
        reg.add("broken", "1.0.0", deps=[{"name": "ghost", "req": "^3"}])
        with pytest.raises(UnresolvableRangeError) as exc_info:
            build_order(reg, seed_spec("broken"))
        assert exc_info.value.spec.name == "ghost"

    def test_unsatisfiable_range_raises(self, registry: StaticRegistry) -> None:
        registry.add("alpha", "2.0.0", deps=[{"name": "beta", "req": "^0.9"}])
        with pytest.raises(UnresolvableRangeError, match="beta"):
            build_order(registry, seed_spec("alpha"))

    def test_missing_seed_raises(self, registry: StaticRegistry) -> None:
        with pytest.raises(UnresolvableRangeError):
            build_order(registry, seed_spec("nope"))
