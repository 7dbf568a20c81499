"""``debcrate build-order CRATE [VERSION]``: Compute a packaging order.

Resolves CRATE (and VERSION, if given) against the registry, discovers
every crate and feature needed to build it, and prints the crates in the
order they must be packaged, dependencies first.

Exit Codes:
    0: Build order computed.
    1: The build graph is cyclic; the cycle is printed.
    2: A dependency could not be resolved, or a configuration or index
        file is invalid.
"""

from __future__ import annotations

import json
import sys

import click

from debcrate.cli.common import config_lookup, open_registry, registry_options
from debcrate.cli.output import (
    build_order_json,
    print_build_order,
    print_cycle,
    print_error,
)
from debcrate.core.models import seed_spec
from debcrate.core.resolver import (
    BuildOrderResolver,
    ResolvePolicy,
    ResolveType,
    SeedFeatures,
)
from debcrate.exceptions import DebcrateError


@click.command("build-order")
@click.argument("crate")
@click.argument("version", required=False)
@click.option(
    "--resolve-type",
    type=click.Choice([t.value for t in ResolveType]),
    default=ResolveType.BINARY_FOR_DEBIAN_UNSTABLE.value,
    show_default=True,
    help="Follow build requirements only, or everything needed for testing migration.",
)
@click.option(
    "--seed-features",
    type=click.Choice([f.name.lower() for f in SeedFeatures]),
    default=SeedFeatures.LIBRARY.name.lower(),
    show_default=True,
    help="Features the seed crate is built with.",
)
@click.option(
    "--collapse-features",
    is_flag=True,
    help="Treat every crate as one package with all features enabled.",
)
@click.option(
    "--config-dir",
    type=click.Path(exists=True, file_okay=False),
    default=None,
    help="Directory of per-crate debcargo.yaml overrides.",
)
@registry_options
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON.")
def build_order_command(
    crate: str,
    version: str | None,
    resolve_type: str,
    seed_features: str,
    collapse_features: bool,
    config_dir: str | None,
    index_file: str | None,
    registry_url: str,
    as_json: bool,
) -> None:
    """Compute the order in which CRATE and its dependencies must be packaged.

    VERSION is a Cargo version requirement; a plain version such as 1.2.3
    selects that exact release. Without it the newest release is used.

    Examples:

        debcrate build-order serde

        debcrate build-order --seed-features all tokio 1.35.0

        debcrate build-order --index-file index.yaml --json alpha
    """
    policy = ResolvePolicy(
        resolve_type=ResolveType(resolve_type),
        seed_features=SeedFeatures[seed_features.upper()],
        collapse_features=collapse_features,
    )
    try:
        with open_registry(index_file, registry_url) as registry:
            resolver = BuildOrderResolver(registry, config_lookup(config_dir))
            build = resolver.build_order(seed_spec(crate, version), policy)
    except DebcrateError as exc:
        print_error(str(exc))
        sys.exit(2)

    if as_json:
        click.echo(json.dumps(build_order_json(build), indent=2))
    elif build.success:
        print_build_order(build)
    else:
        print_cycle(build)
    sys.exit(0 if build.success else 1)
