"""debcrate exception hierarchy.

All public exceptions inherit from DebcrateError, giving callers a single
base class to catch when they want to handle any debcrate-specific failure
without swallowing unrelated errors.

Cycles in the build graph are deliberately absent from this module: they are
reported through ``BuildOrder.cycle`` so callers can render the offending
subgraph and choose an exit code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from debcrate.core.models import DependencySpec
    from debcrate.semver import Comparator


class DebcrateError(Exception):
    """Base exception for all debcrate errors."""


class VersionParseError(DebcrateError, ValueError):
    """Raised when a version or version requirement string is malformed."""


class ResolutionError(DebcrateError):
    """Raised when a dependency cannot be resolved to a published crate.

    Resolution errors are fatal for a build-order run: discovery stops and no
    partial order is returned.
    """


class UnresolvableRangeError(ResolutionError):
    """Raised when no published version satisfies a declared dependency."""

    def __init__(self, spec: DependencySpec, reason: str = "") -> None:
        self.spec = spec
        msg = f"No published version of {spec.name!r} satisfies {spec.req!r}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class RegistryError(ResolutionError):
    """Raised when the registry cannot be queried or returns malformed data."""


class TranslationError(DebcrateError):
    """Raised when a Cargo dependency cannot be expressed as Debian relations."""


class UnrepresentableConstraintError(TranslationError):
    """Raised when a version predicate has no Debian package-name equivalent.

    Covers prerelease requirements, upper bounds below ``0.0.0``-style
    floors, and ranges whose comparators have an empty intersection.
    """

    def __init__(
        self, crate: str, comparator: Comparator | str, reason: str
    ) -> None:
        self.crate = crate
        self.comparator = comparator
        super().__init__(f"{reason}: {crate} {comparator}")


class ManifestError(DebcrateError):
    """Raised when a crate's dependency or feature table is inconsistent."""


class ConfigError(DebcrateError):
    """Raised when a per-package configuration file is invalid."""
