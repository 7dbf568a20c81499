"""Debian packaging vocabulary for Rust crates.

Public API::

    from debcrate.debian import deb_package_name, translate, deb_deps
"""

from debcrate.debian.dependency import (
    Alternative,
    ConstraintGroup,
    VersionPrefix,
    add_nocheck,
    deb_dep,
    deb_deps,
    translate,
    translate_groups,
)
from debcrate.debian.naming import (
    base_deb_name,
    deb_package_name,
    deb_source_name,
    deb_version,
    semver_suffix,
)

__all__ = [
    "Alternative",
    "ConstraintGroup",
    "VersionPrefix",
    "add_nocheck",
    "base_deb_name",
    "deb_dep",
    "deb_deps",
    "deb_package_name",
    "deb_source_name",
    "deb_version",
    "semver_suffix",
    "translate",
    "translate_groups",
]
