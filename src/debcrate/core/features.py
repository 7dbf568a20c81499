"""Feature-aware dependency index for a single resolved crate.

Cargo features form a small graph inside each crate: a feature enables other
features of the same crate and activates dependencies, optionally with
features of their own. ``FeatureIndex`` stores that graph as one
``FeatureEntry`` per feature name and answers "which dependencies does
activating feature X pull in?" by closing it on demand.

Index layout:

- ``""`` (the bare library) activates every required dependency.
- Every declared feature enables ``""`` plus the features it lists.
- Every optional dependency that is not hidden behind ``dep:`` syntax, and
  not shadowed by an explicit feature, is an implicit feature of its own
  name.
- ``default`` exists even when the crate does not declare it.

Dev-dependencies never enter the index: they are not needed to build a
crate for a distribution.
"""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

from debcrate.core.models import (
    ALL_FEATURES,
    DEFAULT_FEATURE,
    NO_FEATURES,
    DependencySpec,
    DepKind,
)
from debcrate.exceptions import ManifestError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FeatureEntry:
    """What one feature of a crate switches on.

    Attributes:
        features: Sibling features of the same crate it enables.
        dependencies: Dependency specs it activates.
    """

    features: tuple[str, ...] = ()
    dependencies: tuple[DependencySpec, ...] = ()


class FeatureIndex:
    """Feature name -> ``FeatureEntry`` for one crate."""

    def __init__(self, entries: Mapping[str, FeatureEntry]) -> None:
        self._entries = dict(entries)

    @classmethod
    def from_manifest(
        cls,
        dependencies: Iterable[DependencySpec],
        features: Mapping[str, Iterable[str]],
        *,
        crate: str = "",
    ) -> FeatureIndex:
        """Build the index from a crate's dependency list and feature table.

        Args:
            dependencies: All declared dependencies, any kind.
            features: Cargo ``[features]`` table: feature -> feature values.
            crate: Crate name, used in error messages only.

        Raises:
            ManifestError: If a feature refers to an unknown dependency.
        """
        deps_by_alias: dict[str, list[DependencySpec]] = {}
        for dep in dependencies:
            # build-dependencies are build requirements in Debian too
            if dep.kind is not DepKind.DEV:
                deps_by_alias.setdefault(dep.alias, []).append(dep)

        entries: dict[str, FeatureEntry] = {}
        hidden_optionals: set[str] = set()

        for feature, values in features.items():
            enabled = [NO_FEATURES]
            activated: list[DependencySpec] = []
            for value in values:
                if value.startswith("dep:"):
                    name = value[4:]
                    hidden_optionals.add(name)
                    activated.extend(_lookup(deps_by_alias, name, crate, feature))
                elif "/" in value:
                    name, dep_feature = value.split("/", 1)
                    # weak "name?/feat" still needs name at build time
                    name = name.rstrip("?")
                    for dep in _lookup(deps_by_alias, name, crate, feature):
                        activated.append(dep.with_features((dep_feature,), False))
                else:
                    enabled.append(value)
            entries[feature] = FeatureEntry(tuple(enabled), tuple(activated))

        required: list[DependencySpec] = []
        for alias, deps in deps_by_alias.items():
            for dep in deps:
                if not dep.optional:
                    required.append(dep)
                elif alias not in hidden_optionals and alias not in features:
                    # every optional dependency is implicitly a feature
                    entries[alias] = FeatureEntry((NO_FEATURES,), (dep,))

        entries[NO_FEATURES] = FeatureEntry((), tuple(required))
        if DEFAULT_FEATURE not in entries:
            entries[DEFAULT_FEATURE] = FeatureEntry((NO_FEATURES,), ())
        return cls(entries)

    @property
    def features(self) -> list[str]:
        """Declared and implicit feature names, sorted; ``""`` included."""
        return sorted(self._entries)

    def entry(self, feature: str) -> FeatureEntry | None:
        return self._entries.get(feature)

    def all_dependencies(self) -> list[DependencySpec]:
        """Every dependency any feature of this crate can activate."""
        seen: dict[DependencySpec, None] = {}
        for feature in sorted(self._entries):
            for dep in self._entries[feature].dependencies:
                seen.setdefault(dep, None)
        return list(seen)

    def transitive_deps(self, feature: str) -> tuple[set[str], list[DependencySpec]]:
        """See :func:`transitive_deps`."""
        return transitive_deps(self, feature)

    def __contains__(self, feature: object) -> bool:
        return feature in self._entries

    def __repr__(self) -> str:
        return f"FeatureIndex({self.features!r})"


def _lookup(
    deps_by_alias: Mapping[str, list[DependencySpec]],
    name: str,
    crate: str,
    feature: str,
) -> list[DependencySpec]:
    deps = deps_by_alias.get(name)
    if not deps:
        raise ManifestError(
            f"Feature {feature!r} of crate {crate!r} refers to unknown dependency {name!r}"
        )
    return deps


def transitive_deps(
    index: FeatureIndex, feature: str
) -> tuple[set[str], list[DependencySpec]]:
    """Close a feature over the index.

    Starting from *feature*, repeatedly union in the sibling features and
    dependency specs of every known feature reached. A name without an entry
    (an optional dependency referenced implicitly, or an unknown feature
    requested by a dependent) is recorded as activated and not expanded.

    The closure is recomputed on every call; different dependents ask for
    different features of the same crate.

    Args:
        index: The crate's feature index.
        feature: Feature to close over, ``""`` for the bare library or
            ``ALL_FEATURES`` for everything.

    Returns:
        ``(features, deps)``: every activated feature name including
        *feature* itself, and the activated dependency specs in discovery
        order without duplicates.
    """
    if feature == ALL_FEATURES:
        return set(index.features), index.all_dependencies()

    features: set[str] = {feature}
    deps: dict[DependencySpec, None] = {}
    remaining = deque([feature])
    while remaining:
        name = remaining.popleft()
        entry = index.entry(name)
        if entry is None:
            logger.debug("feature %r has no entry; treating as activated leaf", name)
            continue
        for dep in entry.dependencies:
            deps.setdefault(dep, None)
        for sibling in entry.features:
            if sibling not in features:
                features.add(sibling)
                remaining.append(sibling)
    return features, list(deps)
