"""Translation of Cargo version requirements into Debian dependency relations.

Debian packages a crate once per *version line*: ``librust-foo-1-dev``
covers every 1.x release and ``librust-foo-0.3-dev`` every 0.3.x release.
A Cargo requirement therefore has to be rewritten as relations on those
line-named packages.

Translation works in three steps:

1. Each comparator of the requirement becomes a half-open interval
   ``[ge, lt)`` at the precision it was written with (``VersionPrefix``).
2. The comparators are ANDed by intersecting their intervals.
3. The interval is laid over the version lines it touches: one alternative
   per line, the first carrying the lower bound and the last the upper
   bound. Alternatives are ORed; one group is produced per feature package
   and the groups are ANDed.

Intervals without an upper bound cannot be covered by finitely many lines;
they are approximated by the first ``OPEN_RANGE_LINES`` lines. The result
may be stricter than the Cargo requirement, never looser. The bare ``*``
requirement has no lines at all and is approximated from the registry's
most recent releases.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from debcrate.core.models import DEFAULT_FEATURE, NO_FEATURES, DependencySpec
from debcrate.debian.naming import deb_package_name
from debcrate.exceptions import UnrepresentableConstraintError
from debcrate.semver import Comparator, Op, Version, VersionReq

if TYPE_CHECKING:
    from debcrate.registry.base import Registry

logger = logging.getLogger(__name__)

# Number of version lines an upward-open interval is expanded to.
OPEN_RANGE_LINES: int = 3

# Number of published releases consulted for a bare "*" requirement.
WILDCARD_RELEASES: int = 5


# ---------------------------------------------------------------------------
# VersionPrefix
# ---------------------------------------------------------------------------


@functools.total_ordering
@dataclass(frozen=True, eq=False)
class VersionPrefix:
    """A version written with one, two or three components.

    Prefixes compare by their zero-padded ``(major, minor, patch)``, so
    ``1`` equals ``1.0.0``; the written precision only decides what
    "the next version" means (see ``inclast``).
    """

    major: int
    minor: int | None = None
    patch: int | None = None

    @classmethod
    def from_comparator(cls, comparator: Comparator) -> VersionPrefix:
        if comparator.major is None:
            raise ValueError(f"comparator {comparator} has no major version")
        return cls(comparator.major, comparator.minor, comparator.patch)

    @classmethod
    def from_version(cls, version: Version) -> VersionPrefix:
        return cls(version.major, version.minor, version.patch)

    def mmp(self) -> tuple[int, int, int]:
        return (self.major, self.minor or 0, self.patch or 0)

    def inclast(self) -> VersionPrefix:
        """The next prefix at the same precision: ``1.2`` -> ``1.3``."""
        if self.minor is None:
            return VersionPrefix(self.major + 1)
        if self.patch is None:
            return VersionPrefix(self.major, self.minor + 1)
        return VersionPrefix(self.major, self.minor, self.patch + 1)

    def line(self) -> VersionPrefix:
        """The version line (package name granularity) containing this prefix."""
        if self.major >= 1:
            return VersionPrefix(self.major)
        return VersionPrefix(0, self.minor or 0)

    def next_line(self) -> VersionPrefix:
        """The line after this one; only meaningful on a line prefix."""
        if self.major >= 1:
            return VersionPrefix(self.major + 1)
        return VersionPrefix(0, (self.minor or 0) + 1)

    @property
    def full(self) -> str:
        return "{}.{}.{}".format(*self.mmp())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, VersionPrefix):
            return NotImplemented
        return self.mmp() == other.mmp()

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, VersionPrefix):
            return NotImplemented
        return self.mmp() < other.mmp()

    def __hash__(self) -> int:
        return hash(self.mmp())

    def __str__(self) -> str:
        parts = [self.major, self.minor, self.patch]
        return ".".join(str(p) for p in parts if p is not None)


# ---------------------------------------------------------------------------
# Translation results
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Alternative:
    """One package relation: a line-named package with optional bounds.

    Attributes:
        package: Debian package name.
        line: Version line encoded in the name; None for the unversioned
            package, which may hold any version.
        lower: Inclusive lower bound (``>=``), if any.
        upper: Exclusive upper bound (``<<``), if any.
    """

    package: str
    line: VersionPrefix | None = None
    lower: VersionPrefix | None = None
    upper: VersionPrefix | None = None

    def relations(self) -> list[str]:
        """Debian relations for this alternative; two when both bounds exist."""
        rels = []
        if self.lower is not None:
            rels.append(f"{self.package} (>= {self.lower.full}-~~)")
        if self.upper is not None:
            rels.append(f"{self.package} (<< {self.upper.full}-~~)")
        return rels or [self.package]

    def admits(self, version: Version | str) -> bool:
        """Whether a crate release *version* would satisfy this alternative."""
        if isinstance(version, str):
            version = Version.parse(version)
        prefix = VersionPrefix.from_version(version)
        if self.line is not None and prefix.line() != self.line:
            return False
        if self.lower is not None and prefix < self.lower:
            return False
        if self.upper is not None and not prefix < self.upper:
            return False
        return True


@dataclass(frozen=True)
class ConstraintGroup:
    """ORed alternatives for one feature package of one dependency."""

    feature: str
    alternatives: tuple[Alternative, ...]

    def admits(self, version: Version | str) -> bool:
        return any(alt.admits(version) for alt in self.alternatives)

    def render(self) -> list[str]:
        """ANDed relation strings.

        Only a lone alternative can carry both bounds, so only that case
        needs two relations.
        """
        if len(self.alternatives) == 1:
            return self.alternatives[0].relations()
        return [" | ".join(rel for alt in self.alternatives for rel in alt.relations())]


# ---------------------------------------------------------------------------
# Comparator -> interval
# ---------------------------------------------------------------------------

Bounds = tuple["VersionPrefix | None", "VersionPrefix | None"]


def _coerce(crate: str, comparator: Comparator) -> Op:
    """Reject unrepresentable comparators; tighten ``>=0`` to ``>0``."""
    if comparator.pre:
        raise UnrepresentableConstraintError(
            crate, comparator, "Cannot represent prerelease part of dependency"
        )
    if (
        comparator.op is Op.GREATER_EQ
        and comparator.major == 0
        and comparator.minor is None
    ):
        logger.warning(
            "Coercing unrepresentable dependency version predicate '>= 0' to '> 0': %s %s",
            crate,
            comparator,
        )
        return Op.GREATER
    return comparator.op


def comparator_bounds(crate: str, comparator: Comparator) -> Bounds:
    """Half-open interval ``[ge, lt)`` admitted by one comparator.

    Either end may be None (unbounded).

    Raises:
        UnrepresentableConstraintError: For prerelease comparators and upper
            bounds at ``0``, ``0.0`` or ``0.0.0``.
    """
    op = _coerce(crate, comparator)
    v = VersionPrefix.from_comparator(comparator)

    if op is Op.LESS:
        if v.mmp() == (0, 0, 0):
            raise UnrepresentableConstraintError(
                crate, comparator, "Unrepresentable dependency version predicate"
            )
        return None, v
    if op is Op.LESS_EQ:
        return None, v.inclast()
    if op is Op.GREATER:
        return v.inclast(), None
    if op is Op.GREATER_EQ:
        return v, None
    if op is Op.EXACT:
        return v, v.inclast()
    if op is Op.TILDE:
        if v.patch is None:
            return v, v.inclast()
        if v.major == 0:
            return v, v.inclast()
        return v, VersionPrefix(v.major, v.minor + 1)
    if op is Op.CARET:
        return v, _caret_upper(v)
    # wildcard in minor or patch position: caret at the written prefix,
    # capped at the next value of the wildcarded component
    return v, min(_caret_upper(v), v.inclast())


def _caret_upper(v: VersionPrefix) -> VersionPrefix:
    if v.major == 0 and v.minor is not None:
        if v.minor == 0 and v.patch is not None:
            return v.inclast()
        return VersionPrefix(0, v.minor + 1)
    return VersionPrefix(v.major + 1)


def requirement_bounds(crate: str, comparators: Sequence[Comparator]) -> Bounds:
    """Intersect the intervals of ANDed comparators.

    Raises:
        UnrepresentableConstraintError: If any comparator is unrepresentable
            or the intersection is empty.
    """
    ge: VersionPrefix | None = None
    lt: VersionPrefix | None = None
    for comparator in comparators:
        c_ge, c_lt = comparator_bounds(crate, comparator)
        if c_ge is not None and (ge is None or c_ge > ge):
            ge = c_ge
        if c_lt is not None and (lt is None or c_lt < lt):
            lt = c_lt
    if ge is not None and lt is not None and ge >= lt:
        raise UnrepresentableConstraintError(
            crate,
            ", ".join(str(c) for c in comparators),
            f"Empty version range >= {ge.full}, << {lt.full}",
        )
    return ge, lt


# ---------------------------------------------------------------------------
# Interval -> alternatives
# ---------------------------------------------------------------------------


def _interval_lines(ge: VersionPrefix, lt: VersionPrefix | None) -> list[VersionPrefix]:
    cur = ge.line()
    if lt is None:
        lines = [cur]
        while len(lines) < OPEN_RANGE_LINES:
            cur = cur.next_line()
            lines.append(cur)
        return lines

    lines = []
    zero_lines = OPEN_RANGE_LINES
    while cur < lt:
        lines.append(cur)
        if cur.major == 0 and lt.major >= 1:
            # the 0.x lines below a 1.x bound are unbounded in number
            zero_lines -= 1
            cur = cur.next_line() if zero_lines > 0 else VersionPrefix(1)
        else:
            cur = cur.next_line()
    return lines


def _alternatives(
    crate: str,
    feature: str,
    ge: VersionPrefix | None,
    lt: VersionPrefix | None,
) -> tuple[Alternative, ...]:
    if ge is None:
        return (Alternative(deb_package_name(crate, None, feature), upper=lt),)

    lines = _interval_lines(ge, lt)
    alts = []
    for i, line in enumerate(lines):
        alts.append(Alternative(
            package=deb_package_name(crate, str(line), feature),
            line=line,
            lower=ge if i == 0 else None,
            upper=lt if i == len(lines) - 1 else None,
        ))
    return tuple(alts)


def _wildcard_lines(crate: str, registry: Registry | None) -> list[VersionPrefix]:
    lines: list[VersionPrefix] = []
    if registry is None:
        logger.warning(
            "No registry consulted to bound '*' on %s; using the unversioned package",
            crate,
        )
        return lines
    recent = registry.list_versions(crate)[:WILDCARD_RELEASES]
    for version in sorted(recent, reverse=True):
        line = VersionPrefix.from_version(version).line()
        if not lines or lines[-1] != line:
            lines.append(line)
    if not lines:
        logger.warning(
            "No published releases of %s to bound '*'; using the unversioned package",
            crate,
        )
    return lines


def _wildcard_alternatives(
    crate: str, feature: str, lines: list[VersionPrefix]
) -> tuple[Alternative, ...]:
    if not lines:
        return (Alternative(deb_package_name(crate, None, feature)),)
    return tuple(
        Alternative(deb_package_name(crate, str(line), feature), line=line)
        for line in lines
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def translate_groups(
    crate: str,
    range_expr: str,
    features: Iterable[str] = (NO_FEATURES,),
    registry: Registry | None = None,
) -> list[ConstraintGroup]:
    """Translate a requirement into one constraint group per feature package.

    Args:
        crate: Name of the depended-upon crate.
        range_expr: Cargo version requirement, e.g. ``">=1.2, <2"``.
        features: Feature activations; ``""`` is the bare library package.
        registry: Consulted only for the bare ``*`` requirement.

    Returns:
        ANDed groups, one per feature, in the order given.

    Raises:
        UnrepresentableConstraintError: If the requirement has no Debian
            equivalent.
        VersionParseError: If *range_expr* is malformed.
    """
    req = VersionReq.parse(range_expr)
    comparators = [c for c in req.comparators if not c.is_any]

    ge = lt = None
    lines: list[VersionPrefix] = []
    if comparators:
        ge, lt = requirement_bounds(crate, comparators)
    else:
        lines = _wildcard_lines(crate, registry)

    groups = []
    for feature in features:
        if comparators:
            alts = _alternatives(crate, feature, ge, lt)
        else:
            alts = _wildcard_alternatives(crate, feature, lines)
        groups.append(ConstraintGroup(feature, alts))
    return groups


def translate(
    crate: str,
    range_expr: str,
    features: Iterable[str] = (NO_FEATURES,),
    registry: Registry | None = None,
) -> list[str]:
    """Translate a requirement into ANDed Debian relation strings.

    See :func:`translate_groups`.
    """
    return [
        rel
        for group in translate_groups(crate, range_expr, features, registry)
        for rel in group.render()
    ]


def dep_features(spec: DependencySpec) -> list[str]:
    """Feature packages a dependency needs: default, explicit, or bare."""
    features = []
    if spec.default_features:
        features.append(DEFAULT_FEATURE)
    features.extend(spec.features)
    return features or [NO_FEATURES]


def deb_dep(spec: DependencySpec, registry: Registry | None = None) -> list[str]:
    """ANDed Debian relations for one Cargo dependency."""
    return translate(spec.name, spec.req, dep_features(spec), registry)


def deb_deps(specs: Iterable[DependencySpec], registry: Registry | None = None) -> list[str]:
    """ANDed Debian relations for many dependencies, sorted and de-duplicated."""
    rels = set()
    for spec in specs:
        rels.update(deb_dep(spec, registry))
    return sorted(rels)


def add_nocheck(relation: str) -> str:
    """Mark every alternative of *relation* as needed only for tests."""
    return " | ".join(f"{alt.strip()} <!nocheck>" for alt in relation.split("|"))
