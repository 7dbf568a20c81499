"""Per-package configuration overrides.

A configuration root holds one directory per packaged crate, each with a
``debcargo.yaml`` file. The directory for a crate is looked up with
decreasing specificity, so an override can target one release, one minor
series, one major series or every version::

    <root>/serde-1.0.190/debcargo.yaml
    <root>/serde-1.0/debcargo.yaml
    <root>/serde-1/debcargo.yaml
    <root>/serde/debcargo.yaml

A missing file is not an error; the crate simply uses the defaults.

The format is not debcargo's: a ``debcargo.toml`` in the same directory
is ignored, and the keys sit at the top level rather than under
``[source]``. An existing debcargo override tree must be converted::

    collapse_features: true
    build_depends_excludes: [winapi]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from debcrate.core.models import PackageIdentity
from debcrate.exceptions import ConfigError

logger = logging.getLogger(__name__)

CONFIG_FILENAME: str = "debcargo.yaml"


@dataclass(frozen=True)
class PackageConfig:
    """Override settings for one crate.

    Attributes:
        collapse_features: Build every feature into a single binary package,
            so every dependency the crate can activate becomes a build
            requirement.
        build_depends_excludes: Dependency names never treated as build
            requirements of this crate.
        source: Path the configuration was loaded from, if any.
    """

    collapse_features: bool = False
    build_depends_excludes: tuple[str, ...] = ()
    source: Path | None = field(default=None, compare=False)

    @classmethod
    def parse(cls, path: Path) -> PackageConfig:
        """Load and validate a configuration file.

        Raises:
            ConfigError: If the file cannot be read, is not a mapping, has
                unknown keys or values of the wrong type.
        """
        try:
            data = yaml.safe_load(Path(path).read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigError(f"Cannot load {path}: {exc}") from exc
        if data is None:
            return cls(source=path)
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: top level must be a mapping")

        known = {f.name for f in fields(cls)} - {"source"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"{path}: unknown keys {', '.join(unknown)}")

        collapse = data.get("collapse_features", False)
        if not isinstance(collapse, bool):
            raise ConfigError(f"{path}: collapse_features must be true or false")
        excludes = data.get("build_depends_excludes") or []
        if not isinstance(excludes, list) or not all(isinstance(e, str) for e in excludes):
            raise ConfigError(f"{path}: build_depends_excludes must be a list of names")

        return cls(
            collapse_features=collapse,
            build_depends_excludes=tuple(excludes),
            source=path,
        )


def config_dir_candidates(identity: PackageIdentity) -> list[str]:
    """Directory names to try for *identity*, most specific first."""
    v = identity.version
    name = identity.name
    return [
        f"{name}-{v.major}.{v.minor}.{v.patch}",
        f"{name}-{v.major}.{v.minor}",
        f"{name}-{v.major}",
        name,
    ]


def find_package_config(root: Path | None, identity: PackageIdentity) -> PackageConfig | None:
    """Locate and load the configuration for *identity* under *root*.

    Returns:
        The first configuration found, or None when *root* is None or no
        candidate directory holds a configuration file.

    Raises:
        ConfigError: If a configuration file exists but is invalid.
    """
    if root is None:
        return None
    for dirname in config_dir_candidates(identity):
        path = Path(root) / dirname / CONFIG_FILENAME
        if path.is_file():
            logger.debug("using config %s for %s", path, identity)
            return PackageConfig.parse(path)
    return None
