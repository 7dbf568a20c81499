"""Options and helpers shared by the debcrate subcommands."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import click

from debcrate.config import find_package_config
from debcrate.core.resolver import ConfigLookup
from debcrate.registry.base import Registry
from debcrate.registry.crates_io import SPARSE_INDEX_URL, CratesIoRegistry
from debcrate.registry.static import StaticRegistry


def registry_options(func: Callable) -> Callable:
    """Add ``--index-file`` and ``--registry-url`` to a command."""
    func = click.option(
        "--registry-url",
        default=SPARSE_INDEX_URL,
        show_default=True,
        help="Base URL of a Cargo sparse index.",
    )(func)
    return click.option(
        "--index-file",
        type=click.Path(exists=True, dir_okay=False),
        default=None,
        help="Resolve against a local YAML index instead of crates.io.",
    )(func)


def open_registry(index_file: str | None, registry_url: str) -> Registry:
    """Create the registry selected on the command line.

    Raises:
        RegistryError: If the index file cannot be loaded.
    """
    if index_file:
        return StaticRegistry.from_yaml(Path(index_file))
    return CratesIoRegistry(registry_url)


def config_lookup(config_dir: str | None) -> ConfigLookup | None:
    """Per-crate configuration lookup rooted at *config_dir*, if given."""
    if not config_dir:
        return None
    root = Path(config_dir)
    return lambda identity: find_package_config(root, identity)
