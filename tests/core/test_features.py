"""Tests for the feature-aware dependency index.

Validates how a crate's dependency list and [features] table become
FeatureIndex entries (required deps, implicit optional-dependency features,
dep: hiding, dep/feature references, default), and transitive closure.
"""

from __future__ import annotations

import pytest

from debcrate.core.features import FeatureIndex, transitive_deps
from debcrate.core.models import ALL_FEATURES, NO_FEATURES, DependencySpec, DepKind
from debcrate.exceptions import ManifestError

SERDE = DependencySpec("serde", "^1.0")
LIBC = DependencySpec("libc", "^0.2", optional=True)
LOG = DependencySpec("log", "^0.4", optional=True)
CRITERION = DependencySpec("criterion", "^0.5", kind=DepKind.DEV)
CC = DependencySpec("cc", "^1.0", kind=DepKind.BUILD)


def _names(deps: list[DependencySpec]) -> list[str]:
    return sorted(d.name for d in deps)


class TestFromManifest:
    """Tests for index construction."""

    def test_bare_library_holds_required_deps(self) -> None:
        index = FeatureIndex.from_manifest([SERDE, LIBC, CC], {})
        entry = index.entry(NO_FEATURES)
        assert entry is not None
        assert entry.features == ()
        assert _names(list(entry.dependencies)) == ["cc", "serde"]

    def test_dev_dependencies_excluded(self) -> None:
        index = FeatureIndex.from_manifest([SERDE, CRITERION], {})
        assert "criterion" not in _names(index.all_dependencies())

    def test_default_added_when_missing(self) -> None:
        index = FeatureIndex.from_manifest([SERDE], {})
        assert "default" in index
        assert index.entry("default").features == (NO_FEATURES,)

    def test_declared_feature_enables_bare_library(self) -> None:
        index = FeatureIndex.from_manifest([SERDE], {"default": ["std"], "std": []})
        assert index.entry("default").features == (NO_FEATURES, "std")
        assert index.entry("std").features == (NO_FEATURES,)

    def test_optional_dependency_is_implicit_feature(self) -> None:
        index = FeatureIndex.from_manifest([SERDE, LIBC], {})
        assert "libc" in index
        assert index.entry("libc").dependencies == (LIBC,)
        assert LIBC not in index.entry(NO_FEATURES).dependencies

    def test_dep_prefix_hides_implicit_feature(self) -> None:
        index = FeatureIndex.from_manifest([LIBC], {"unix": ["dep:libc"]})
        assert "libc" not in index
        assert index.entry("unix").dependencies == (LIBC,)

    def test_explicit_feature_shadows_implicit_one(self) -> None:
        index = FeatureIndex.from_manifest([LOG], {"log": ["dep:log", "std"], "std": []})
        assert index.entry("log").features == (NO_FEATURES, "std")

    def test_dependency_feature_reference(self) -> None:
        index = FeatureIndex.from_manifest([SERDE], {"derive": ["serde/derive"]})
        (dep,) = index.entry("derive").dependencies
        assert dep.name == "serde"
        assert dep.features == ("derive",)
        assert dep.default_features is False

    def test_weak_dependency_feature_reference(self) -> None:
        index = FeatureIndex.from_manifest([LOG], {"std": ["log?/std"]})
        (dep,) = index.entry("std").dependencies
        assert dep.name == "log"
        assert dep.features == ("std",)

    def test_renamed_dependency_found_by_alias(self) -> None:
        renamed = DependencySpec("serde_json", "^1", optional=True, alias="json")
        index = FeatureIndex.from_manifest([renamed], {"fmt": ["dep:json"]})
        assert index.entry("fmt").dependencies == (renamed,)

    def test_unknown_dependency_raises(self) -> None:
        with pytest.raises(ManifestError, match="ghost"):
            FeatureIndex.from_manifest([SERDE], {"x": ["ghost/feat"]}, crate="demo")

    def test_unknown_dep_prefix_raises(self) -> None:
        with pytest.raises(ManifestError):
            FeatureIndex.from_manifest([], {"x": ["dep:ghost"]})

    def test_features_sorted(self) -> None:
        index = FeatureIndex.from_manifest([LIBC], {"zed": [], "alpha": []})
        assert index.features == ["", "alpha", "default", "libc", "zed"]


class TestTransitiveDeps:
    """Tests for closing a feature over the index."""

    @pytest.fixture
    def index(self) -> FeatureIndex:
        return FeatureIndex.from_manifest(
            [SERDE, LIBC, LOG],
            {
                "default": ["std"],
                "std": ["dep:libc", "logging"],
                "logging": ["log"],
            },
        )

    def test_bare_library(self, index: FeatureIndex) -> None:
        features, deps = transitive_deps(index, NO_FEATURES)
        assert features == {NO_FEATURES}
        assert deps == [SERDE]

    def test_default_closure(self, index: FeatureIndex) -> None:
        features, deps = transitive_deps(index, "default")
        assert features == {"default", NO_FEATURES, "std", "logging", "log"}
        assert _names(deps) == ["libc", "log", "serde"]

    def test_no_duplicate_deps(self, index: FeatureIndex) -> None:
        _, deps = transitive_deps(index, "default")
        assert len(deps) == len(set(deps))

    def test_unknown_feature_is_leaf(self, index: FeatureIndex) -> None:
        features, deps = transitive_deps(index, "nonexistent")
        assert features == {"nonexistent"}
        assert deps == []

    def test_all_features(self, index: FeatureIndex) -> None:
        features, deps = transitive_deps(index, ALL_FEATURES)
        assert features == set(index.features)
        assert _names(deps) == ["libc", "log", "serde"]

    def test_method_delegates(self, index: FeatureIndex) -> None:
        assert index.transitive_deps("std") == transitive_deps(index, "std")
