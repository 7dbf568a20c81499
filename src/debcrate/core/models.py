"""Value types shared by the graph engine, feature index and resolver.

All types here are frozen dataclasses: they are used as dictionary keys
(resolution cache, graph nodes) and must be hashable and totally ordered so
that graph traversal and topological sorting are reproducible.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field

from debcrate.semver import Version, VersionReq


# ---------------------------------------------------------------------------
# Feature keys
# ---------------------------------------------------------------------------

# The bare library: no optional features, no default features.
NO_FEATURES: str = ""

# The "default" feature, implicit when a crate does not declare one.
DEFAULT_FEATURE: str = "default"

# Every feature of a crate flattened into a single activation. "*" cannot be
# a Cargo feature name, so it never collides with a declared feature.
ALL_FEATURES: str = "*"


class DepKind(enum.Enum):
    """Section of the manifest a dependency is declared in."""

    NORMAL = "normal"
    BUILD = "build"
    DEV = "dev"


# ---------------------------------------------------------------------------
# PackageIdentity & DependencySpec
# ---------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class PackageIdentity:
    """A crate resolved to one exact published version."""

    name: str
    version: Version

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


@dataclass(frozen=True)
class DependencySpec:
    """An unresolved dependency declaration, as written in a manifest.

    This is the resolution cache key: two specs that compare equal resolve to
    the same ``PackageIdentity`` without a second registry lookup.

    Attributes:
        name: Crate name on the registry.
        req: Version requirement expression (e.g. ``"^0.3"``).
        features: Features explicitly requested from the dependency.
        default_features: Whether the dependency's default features are on.
        kind: Manifest section the dependency comes from.
        optional: Whether the dependency is only pulled in by a feature.
        alias: Name used for the dependency inside the depending manifest,
            which differs from ``name`` for renamed dependencies.
    """

    name: str
    req: str = "*"
    features: tuple[str, ...] = ()
    default_features: bool = True
    kind: DepKind = DepKind.NORMAL
    optional: bool = False
    alias: str = field(default="")

    def __post_init__(self) -> None:
        if not self.alias:
            object.__setattr__(self, "alias", self.name)

    @property
    def version_req(self) -> VersionReq:
        return VersionReq.parse(self.req)

    def activations(self) -> list[str]:
        """Feature keys this dependency activates on the depended-upon crate.

        The explicit feature list, ``default`` when default features are on,
        and always the bare library.
        """
        keys = list(self.features)
        if self.default_features:
            keys.append(DEFAULT_FEATURE)
        keys.append(NO_FEATURES)
        return keys

    def with_features(
        self, features: tuple[str, ...], default_features: bool
    ) -> DependencySpec:
        return DependencySpec(
            name=self.name,
            req=self.req,
            features=features,
            default_features=default_features,
            kind=self.kind,
            optional=self.optional,
            alias=self.alias,
        )

    def __str__(self) -> str:
        text = f"{self.name} {self.req}"
        extras = list(self.features)
        if not self.default_features:
            extras.append("no-default-features")
        if extras:
            text += f" [{', '.join(extras)}]"
        return text


def seed_spec(crate_name: str, version: str | None = None) -> DependencySpec:
    """Build the dependency spec for a crate requested on the command line.

    A version starting with a digit is an exact requirement; anything else
    is used as a requirement expression verbatim.
    """
    if version is None:
        req = "*"
    elif version[:1].isdigit():
        req = f"={version}"
    else:
        req = version
    return DependencySpec(name=crate_name, req=req)


# ---------------------------------------------------------------------------
# GraphNode
# ---------------------------------------------------------------------------


@dataclass(frozen=True, order=True)
class GraphNode:
    """A resolved crate paired with one feature activation."""

    identity: PackageIdentity
    feature: str = NO_FEATURES

    def __str__(self) -> str:
        return f"{self.identity}/{self.feature}"
