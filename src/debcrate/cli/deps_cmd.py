"""``debcrate deb-deps`` and ``debcrate translate``: Debian relations.

``deb-deps`` resolves a crate and prints the Debian relation of every
dependency it declares; ``translate`` converts one version requirement
without touching a crate manifest.

Exit Codes:
    0: Relations printed.
    2: A requirement has no Debian equivalent, or the crate could not be
        resolved.
"""

from __future__ import annotations

import json
import sys

import click

from debcrate.cli.common import open_registry, registry_options
from debcrate.cli.output import print_error
from debcrate.core.models import DEFAULT_FEATURE, NO_FEATURES, DepKind, seed_spec
from debcrate.debian.dependency import add_nocheck, deb_dep, translate
from debcrate.exceptions import DebcrateError


@click.command("deb-deps")
@click.argument("crate")
@click.argument("version", required=False)
@registry_options
@click.option("--json", "as_json", is_flag=True, help="Print relations grouped by dependency.")
def deb_deps_command(
    crate: str,
    version: str | None,
    index_file: str | None,
    registry_url: str,
    as_json: bool,
) -> None:
    """Print the Debian relations of CRATE's dependencies.

    Normal and build dependencies come first; dev dependencies follow,
    marked <!nocheck> since only the test suite needs them.
    """
    try:
        with open_registry(index_file, registry_url) as registry:
            info = registry.resolve(seed_spec(crate, version))
            deps = sorted(info.dependencies, key=lambda d: (d.kind is DepKind.DEV, d.name, d.req))
            relations = []
            for dep in deps:
                rels = deb_dep(dep, registry)
                if dep.kind is DepKind.DEV:
                    rels = [add_nocheck(rel) for rel in rels]
                relations.append((dep, rels))
    except DebcrateError as exc:
        print_error(str(exc))
        sys.exit(2)

    if as_json:
        data = {
            "crate": str(info.identity),
            "dependencies": [
                {
                    "name": dep.name,
                    "req": dep.req,
                    "kind": dep.kind.value,
                    "optional": dep.optional,
                    "relations": rels,
                }
                for dep, rels in relations
            ],
        }
        click.echo(json.dumps(data, indent=2))
        return

    seen: set[str] = set()
    for _, rels in relations:
        for rel in rels:
            if rel not in seen:
                seen.add(rel)
                click.echo(rel)


@click.command("translate")
@click.argument("name")
@click.argument("range_expr", metavar="RANGE")
@click.option(
    "--feature", "-f", "features",
    multiple=True,
    help="Depend on this feature's package (repeatable).",
)
@click.option(
    "--no-default-features",
    is_flag=True,
    help="Do not depend on the +default package.",
)
@registry_options
def translate_command(
    name: str,
    range_expr: str,
    features: tuple[str, ...],
    no_default_features: bool,
    index_file: str | None,
    registry_url: str,
) -> None:
    """Translate the Cargo requirement RANGE on crate NAME into Debian relations.

    The registry is consulted only for the bare * requirement, whose
    alternatives are the lines of the most recent releases.

    Examples:

        debcrate translate serde ^1.0.100

        debcrate translate nom ">=7.1, <8" --feature alloc --no-default-features
    """
    activations = [] if no_default_features else [DEFAULT_FEATURE]
    activations.extend(features)
    try:
        with open_registry(index_file, registry_url) as registry:
            relations = translate(name, range_expr, activations or [NO_FEATURES], registry)
    except DebcrateError as exc:
        print_error(str(exc))
        sys.exit(2)
    for rel in relations:
        click.echo(rel)
