"""Smoke tests: the package and its public entry points import cleanly."""

from __future__ import annotations


def test_version() -> None:
    import debcrate

    assert debcrate.__version__ == "0.1.0"


def test_public_api_importable() -> None:
    from debcrate.core import BuildOrderResolver, build_order, topo_sort  # noqa: F401
    from debcrate.debian import deb_deps, translate  # noqa: F401
    from debcrate.registry import StaticRegistry  # noqa: F401
    from debcrate.registry.crates_io import CratesIoRegistry  # noqa: F401


def test_cli_importable() -> None:
    from debcrate.cli.main import cli

    assert {"build-order", "deb-deps", "translate"} <= set(cli.commands)
