"""Debian package naming for Rust crates.

Library crates are packaged as ``librust-<crate>-<line><suffix>`` where
``<line>`` is the major version for 1.x and later, ``0.<minor>`` before 1.0,
and ``<suffix>`` is ``-dev`` for the bare library or ``+<feature>-dev`` for
one feature. The unversioned name ``librust-<crate><suffix>`` always refers
to the newest packaged line.
"""

from __future__ import annotations

from debcrate.core.models import NO_FEATURES
from debcrate.semver import Version

PKG_PREFIX: str = "librust"


def base_deb_name(crate: str) -> str:
    """Debian form of a crate or feature name: lowercase, ``_`` -> ``-``."""
    return crate.replace("_", "-").lower()


def deb_suffix(feature: str = NO_FEATURES) -> str:
    """Package suffix of a feature activation (``""`` is the bare library)."""
    if feature == NO_FEATURES:
        return "-dev"
    return f"+{base_deb_name(feature)}-dev"


def deb_package_name(crate: str, line: str | None = None, feature: str = NO_FEATURES) -> str:
    """Binary package name for *crate*, version line *line* and *feature*.

    Args:
        crate: Crate name.
        line: ``"1"``, ``"0.3"``, or None for the unversioned name.
        feature: Feature activation, ``""`` for the bare library.
    """
    name = f"{PKG_PREFIX}-{base_deb_name(crate)}"
    if line:
        name += f"-{line}"
    return name + deb_suffix(feature)


def semver_suffix(version: Version) -> str:
    """Version line suffix of a source package, e.g. ``-1`` or ``-0.3``."""
    if version.major == 0:
        return f"-0.{version.minor}"
    return f"-{version.major}"


def deb_version(version: Version) -> str:
    """Debian version of a crate version; prereleases sort before releases."""
    text = f"{version.major}.{version.minor}.{version.patch}"
    if version.pre:
        text += f"~{version.pre}"
    return text


def deb_source_name(crate: str, version: Version) -> str:
    """Source package name, e.g. ``rust-serde-1`` or ``rust-nom-0.7``."""
    return f"rust-{base_deb_name(crate)}{semver_suffix(version)}"
