"""debcrate CLI: build-order planning and Debian dependency translation.

Entry point for the ``debcrate`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    build-order  Compute the order in which a crate's dependencies must be
                 packaged.
    deb-deps     Print the Debian relations of a crate's dependencies.
    translate    Translate one Cargo version requirement.

Usage::

    debcrate build-order serde
    debcrate build-order --resolve-type SourceForDebianTesting tokio 1.35.0
    debcrate build-order --index-file index.yaml --json alpha
    debcrate deb-deps clap
    debcrate translate nom ">=7.1, <8" --feature alloc
"""

from __future__ import annotations

import logging

import click
from rich.logging import RichHandler

from debcrate import __version__
from debcrate.cli.build_order_cmd import build_order_command
from debcrate.cli.deps_cmd import deb_deps_command, translate_command
from debcrate.cli.output import err_console


def _configure_logging(verbose: bool, quiet: bool) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logger = logging.getLogger("debcrate")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    handler = RichHandler(console=err_console, show_path=False)
    handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(handler)
    logger.setLevel(level)


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Log debug output, including every dependency edge.")
@click.option("-q", "--quiet", is_flag=True, help="Log warnings and errors only.")
def cli(verbose: bool, quiet: bool) -> None:
    """debcrate: package Rust crates for Debian.

    Resolve a crate's dependency graph against crates.io (or a local
    index file), compute a build order, and translate Cargo version
    requirements into Debian package relations.
    """
    _configure_logging(verbose, quiet)


cli.add_command(build_order_command)
cli.add_command(deb_deps_command)
cli.add_command(translate_command)
