"""Semantic versions and Cargo version requirements.

This module provides the version types shared by the registry, the
build-order resolver and the Debian dependency translator:

- ``Version``: a concrete ``major.minor.patch[-pre][+build]`` version, ordered
  by SemVer 2.0.0 precedence.
- ``Comparator``: one clause of a requirement (``>=1.2``, ``~0.3.1``, ``1.*``).
  Components may be omitted; the omitted precision matters for translation.
- ``VersionReq``: a comma-separated conjunction of comparators.

Matching follows Cargo: a bare version is a caret requirement, and a
prerelease version only matches when some comparator names the same
``major.minor.patch`` with a prerelease tag of its own.

References
----------
.. [SemVer] Preston-Werner, T. (2013). "Semantic Versioning 2.0.0."
   https://semver.org/
.. [Cargo] "Specifying Dependencies", The Cargo Book.
   https://doc.rust-lang.org/cargo/reference/specifying-dependencies.html
"""

from __future__ import annotations

import enum
import functools
import re
from dataclasses import dataclass, field

from debcrate.exceptions import VersionParseError


# ---------------------------------------------------------------------------
# Version: a concrete published version
# ---------------------------------------------------------------------------

_VERSION_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z\-.]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-.]+))?$"
)


def _pre_key(pre: str) -> tuple:
    """Sort key for a prerelease tag; an empty tag sorts after every tag.

    Numeric identifiers compare numerically and sort before alphanumeric
    ones; a shorter identifier list sorts first when it is a prefix of the
    longer one (SemVer section 11).
    """
    if not pre:
        return (1, ())
    idents = []
    for ident in pre.split("."):
        if ident.isdigit():
            idents.append((0, int(ident), ""))
        else:
            idents.append((1, 0, ident))
    return (0, tuple(idents))


@functools.total_ordering
@dataclass(frozen=True)
class Version:
    """A semantic version. Build metadata is kept but ignored for ordering."""

    major: int
    minor: int
    patch: int
    pre: str = ""
    build: str = field(default="", compare=False)

    @classmethod
    def parse(cls, text: str) -> Version:
        """Parse a full semantic version string.

        Args:
            text: Version string such as ``"1.2.3"`` or ``"0.1.0-alpha.1"``.

        Returns:
            The parsed ``Version``.

        Raises:
            VersionParseError: If the string is not a full semantic version.
        """
        m = _VERSION_RE.match(text.strip())
        if not m:
            raise VersionParseError(f"Invalid semantic version: {text!r}")
        return cls(
            int(m.group("major")),
            int(m.group("minor")),
            int(m.group("patch")),
            m.group("pre") or "",
            m.group("build") or "",
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.pre)

    def _key(self) -> tuple:
        return (self.major, self.minor, self.patch, _pre_key(self.pre))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            text += f"-{self.pre}"
        if self.build:
            text += f"+{self.build}"
        return text


# ---------------------------------------------------------------------------
# Comparator: one clause of a version requirement
# ---------------------------------------------------------------------------


class Op(enum.Enum):
    """Comparison operator of a single requirement clause."""

    EXACT = "="
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="
    TILDE = "~"
    CARET = "^"
    WILDCARD = "*"


_COMPARATOR_RE = re.compile(
    r"^\s*(?P<op>>=|<=|=|>|<|~|\^)?\s*"
    r"(?P<major>\d+|[*xX])"
    r"(?:\.(?P<minor>\d+|[*xX]))?"
    r"(?:\.(?P<patch>\d+|[*xX]))?"
    r"(?:-(?P<pre>[0-9A-Za-z\-.]+))?"
    r"(?:\+(?P<build>[0-9A-Za-z\-.]+))?\s*$"
)

_WILDCARDS = frozenset({"*", "x", "X"})


@dataclass(frozen=True)
class Comparator:
    """A single requirement clause such as ``>=1.2`` or ``0.3.*``.

    ``major`` is None only for the any-version wildcard ``*``. ``minor`` and
    ``patch`` are None when the clause omits them (or wildcards them).

    Attributes:
        op: The comparison operator.
        major: Major component, None for a bare ``*``.
        minor: Minor component, if written.
        patch: Patch component, if written.
        pre: Prerelease tag, empty when absent.
    """

    op: Op
    major: int | None
    minor: int | None = None
    patch: int | None = None
    pre: str = ""

    @classmethod
    def parse(cls, text: str) -> Comparator:
        """Parse one comparator clause.

        A clause without an operator is a caret clause. A wildcard in any
        position turns an operator-less clause into a wildcard clause and
        truncates the clause at that position.

        Raises:
            VersionParseError: If the clause is malformed.
        """
        m = _COMPARATOR_RE.match(text)
        if not m:
            raise VersionParseError(f"Invalid version requirement clause: {text!r}")

        parts: list[int | None] = []
        wildcard = False
        for name in ("major", "minor", "patch"):
            raw = m.group(name)
            if raw is None or wildcard:
                if raw is not None and raw not in _WILDCARDS:
                    raise VersionParseError(
                        f"Version component after wildcard in {text!r}"
                    )
                parts.append(None)
            elif raw in _WILDCARDS:
                wildcard = True
                parts.append(None)
            else:
                parts.append(int(raw))

        major, minor, patch = parts
        pre = m.group("pre") or ""
        if wildcard and pre:
            raise VersionParseError(f"Wildcard with prerelease tag in {text!r}")

        op_text = m.group("op")
        if wildcard and op_text in (None, "="):
            op = Op.WILDCARD
        elif wildcard and major is None:
            raise VersionParseError(f"Operator applied to bare wildcard in {text!r}")
        elif op_text is None:
            op = Op.CARET
        else:
            op = Op(op_text)
        return cls(op, major, minor, patch, pre)

    @property
    def is_any(self) -> bool:
        """True for the bare ``*`` clause, which matches every version."""
        return self.op is Op.WILDCARD and self.major is None

    def matches(self, version: Version) -> bool:
        """Check whether *version* satisfies this clause (prerelease rules aside)."""
        op = self.op
        if op is Op.EXACT:
            return self._matches_exact(version)
        if op is Op.GREATER:
            return self._matches_greater(version)
        if op is Op.GREATER_EQ:
            return self._matches_exact(version) or self._matches_greater(version)
        if op is Op.LESS:
            return self._matches_less(version)
        if op is Op.LESS_EQ:
            return self._matches_exact(version) or self._matches_less(version)
        if op is Op.TILDE:
            return self._matches_tilde(version)
        if op is Op.CARET:
            return self._matches_caret(version)
        return self._matches_wildcard(version)

    def pre_is_compatible(self, version: Version) -> bool:
        """True if this clause opts in to prereleases of *version*'s release."""
        return (
            bool(self.pre)
            and version.major == self.major
            and version.minor == self.minor
            and version.patch == self.patch
        )

    def _matches_exact(self, v: Version) -> bool:
        if v.major != self.major:
            return False
        if self.minor is not None and v.minor != self.minor:
            return False
        if self.patch is not None and v.patch != self.patch:
            return False
        return v.pre == self.pre

    def _matches_greater(self, v: Version) -> bool:
        if v.major != self.major:
            return v.major > self.major
        if self.minor is None:
            return False
        if v.minor != self.minor:
            return v.minor > self.minor
        if self.patch is None:
            return False
        if v.patch != self.patch:
            return v.patch > self.patch
        return _pre_key(v.pre) > _pre_key(self.pre)

    def _matches_less(self, v: Version) -> bool:
        if v.major != self.major:
            return v.major < self.major
        if self.minor is None:
            return False
        if v.minor != self.minor:
            return v.minor < self.minor
        if self.patch is None:
            return False
        if v.patch != self.patch:
            return v.patch < self.patch
        return _pre_key(v.pre) < _pre_key(self.pre)

    def _matches_tilde(self, v: Version) -> bool:
        if v.major != self.major:
            return False
        if self.minor is not None and v.minor != self.minor:
            return False
        if self.patch is not None and v.patch != self.patch:
            return v.patch > self.patch
        return _pre_key(v.pre) >= _pre_key(self.pre)

    def _matches_caret(self, v: Version) -> bool:
        if v.major != self.major:
            return False
        if self.minor is None:
            return True
        if self.patch is None:
            if self.major > 0:
                return v.minor >= self.minor
            return v.minor == self.minor

        if self.major > 0:
            if v.minor != self.minor:
                return v.minor > self.minor
            if v.patch != self.patch:
                return v.patch > self.patch
        elif self.minor > 0:
            if v.minor != self.minor:
                return False
            if v.patch != self.patch:
                return v.patch > self.patch
        elif v.minor != self.minor or v.patch != self.patch:
            return False
        return _pre_key(v.pre) >= _pre_key(self.pre)

    def _matches_wildcard(self, v: Version) -> bool:
        if self.major is None:
            return True
        if v.major != self.major:
            return False
        return self.minor is None or v.minor == self.minor

    def __str__(self) -> str:
        if self.is_any:
            return "*"
        parts = [str(self.major)]
        for part in (self.minor, self.patch):
            if part is None:
                break
            parts.append(str(part))
        text = ".".join(parts)
        if self.op is Op.WILDCARD:
            return f"{text}.*"
        if self.pre:
            text += f"-{self.pre}"
        return f"{self.op.value}{text}"


# ---------------------------------------------------------------------------
# VersionReq: conjunction of comparators
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class VersionReq:
    """A Cargo version requirement: comma-separated comparators, all must hold.

    Attributes:
        comparators: The parsed clauses, in source order.
    """

    comparators: tuple[Comparator, ...]

    @classmethod
    def parse(cls, text: str) -> VersionReq:
        """Parse a requirement such as ``">=1.2, <2"``; empty means ``*``.

        Raises:
            VersionParseError: If any clause is malformed.
        """
        stripped = text.strip()
        if not stripped:
            return cls((Comparator(Op.WILDCARD, None),))
        atoms = [a for a in stripped.split(",")]
        if any(not a.strip() for a in atoms):
            raise VersionParseError(f"Empty clause in version requirement: {text!r}")
        return cls(tuple(Comparator.parse(a) for a in atoms))

    def matches(self, version: Version) -> bool:
        """Check whether *version* satisfies every comparator.

        Prerelease versions additionally need a comparator that names the
        same ``major.minor.patch`` with a prerelease tag.
        """
        if not all(c.matches(version) for c in self.comparators):
            return False
        if not version.is_prerelease:
            return True
        return any(c.pre_is_compatible(version) for c in self.comparators)

    def __str__(self) -> str:
        return ", ".join(str(c) for c in self.comparators)
