"""Base classes and data models for crate registries.

Defines the ``Registry`` abstract base class that every concrete registry
(crates.io sparse index, static in-memory index) implements, along with the
``CrateInfo`` model for one published crate version.

Registries speak the crates.io index record format: one JSON object per
published version with ``name``, ``vers``, ``deps``, ``features``,
``features2`` and ``yanked`` keys.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from debcrate.core.features import FeatureIndex
from debcrate.core.models import DependencySpec, DepKind, PackageIdentity
from debcrate.exceptions import RegistryError, UnresolvableRangeError, VersionParseError
from debcrate.semver import Version, VersionReq

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Data models
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CrateInfo:
    """One published version of a crate and its manifest metadata.

    Attributes:
        identity: Crate name and exact version.
        dependencies: Declared dependencies of every kind.
        features: Cargo feature table: feature -> feature values.
        yanked: Whether the version was yanked from the registry.
    """

    identity: PackageIdentity
    dependencies: tuple[DependencySpec, ...] = ()
    features: Mapping[str, tuple[str, ...]] = field(default_factory=dict)
    yanked: bool = False

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def version(self) -> Version:
        return self.identity.version

    def feature_index(self) -> FeatureIndex:
        """Build the feature-aware dependency index of this crate."""
        return FeatureIndex.from_manifest(
            self.dependencies, self.features, crate=self.name
        )


def parse_dependency(record: Mapping[str, Any]) -> DependencySpec:
    """Convert one ``deps`` entry of an index record to a ``DependencySpec``.

    The index stores the in-manifest name under ``name`` and the real crate
    name under ``package`` for renamed dependencies.
    """
    alias = record["name"]
    kind = record.get("kind") or "normal"
    req = record.get("req", "*")
    if not isinstance(req, str):
        raise TypeError(f"requirement of {alias!r} must be a string, got {req!r}")
    return DependencySpec(
        name=record.get("package") or alias,
        req=req,
        features=tuple(record.get("features") or ()),
        default_features=record.get("default_features", True),
        kind=DepKind(kind),
        optional=record.get("optional", False),
        alias=alias,
    )


def parse_index_record(record: Mapping[str, Any]) -> CrateInfo:
    """Convert one crates.io index record to a ``CrateInfo``.

    Raises:
        RegistryError: If the record is missing required keys or carries an
            invalid version.
    """
    try:
        version = Version.parse(record["vers"])
        features: dict[str, tuple[str, ...]] = {}
        for table in ("features", "features2"):
            for feature, values in (record.get(table) or {}).items():
                features[feature] = tuple(values)
        return CrateInfo(
            identity=PackageIdentity(record["name"], version),
            dependencies=tuple(parse_dependency(d) for d in record.get("deps") or ()),
            features=features,
            yanked=bool(record.get("yanked", False)),
        )
    except (KeyError, TypeError, ValueError, VersionParseError) as exc:
        raise RegistryError(f"Malformed index record {record!r}: {exc}") from exc


# ---------------------------------------------------------------------------
# Abstract base registry
# ---------------------------------------------------------------------------


class Registry(ABC):
    """Abstract base class for crate registries.

    Subclasses implement ``fetch_versions``; resolution and version listing
    are built on top of it. ``lookups`` counts ``resolve`` calls so callers
    can verify caching behaviour.
    """

    def __init__(self) -> None:
        self.lookups = 0

    @property
    @abstractmethod
    def registry_name(self) -> str:
        """Human-readable name of this registry."""

    @abstractmethod
    def fetch_versions(self, name: str) -> list[CrateInfo]:
        """Return every published version of *name*, yanked ones included.

        An unknown crate yields an empty list.

        Raises:
            RegistryError: If the registry cannot be queried.
        """

    def resolve(self, spec: DependencySpec) -> CrateInfo:
        """Return the highest non-yanked version satisfying *spec*.

        Args:
            spec: The dependency to resolve.

        Returns:
            Metadata of the selected version.

        Raises:
            UnresolvableRangeError: If no version satisfies the requirement.
            RegistryError: If the registry cannot be queried.
        """
        self.lookups += 1
        try:
            req = VersionReq.parse(spec.req)
        except VersionParseError as exc:
            raise UnresolvableRangeError(spec, str(exc)) from exc

        versions = self.fetch_versions(spec.name)
        if not versions:
            raise UnresolvableRangeError(spec, f"crate not found on {self.registry_name}")
        candidates = [
            info for info in versions if not info.yanked and req.matches(info.version)
        ]
        if not candidates:
            raise UnresolvableRangeError(spec)
        best = max(candidates, key=lambda info: info.version)
        logger.debug("resolved %s to %s", spec, best.identity)
        return best

    def list_versions(self, name: str) -> list[Version]:
        """Published, non-yanked, non-prerelease versions, newest first."""
        versions = {
            info.version
            for info in self.fetch_versions(name)
            if not info.yanked and not info.version.is_prerelease
        }
        return sorted(versions, reverse=True)

    def close(self) -> None:
        """Release any resources held by the registry."""

    def __enter__(self) -> Registry:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
