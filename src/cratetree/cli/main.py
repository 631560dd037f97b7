"""cratetree: Transitive dependency trees for registry packages.

Entry point for the ``cratetree`` command-line tool. Registers all
subcommands under a single Click group.

Commands:
    deps: Resolve and print the dependency tree of a package.

Usage::

    cratetree deps serde
    cratetree deps demo --features net --registry-file registry.yaml
"""

from __future__ import annotations

import click

from cratetree import __version__
from cratetree.cli.deps_cmd import deps_command


@click.group()
@click.version_option(version=__version__, prog_name="cratetree")
def cli() -> None:
    """cratetree: Transitive dependency trees for registry packages.

    Resolves a package's dependencies, expands feature-gated optional
    dependencies and reports the features whose subtrees failed to
    resolve without aborting the rest of the tree.
    """


# Register all subcommands
cli.add_command(deps_command)
