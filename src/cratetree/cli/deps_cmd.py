"""``cratetree deps NAME``: Resolve the transitive dependencies of a package.

Resolves NAME against the crates.io sparse index (or a local registry
snapshot given with ``--registry-file``) and prints every package version
in its dependency tree, followed by the features whose subtrees failed.

Exit Codes:
    0: Resolution completed (feature errors are reported, not fatal).
    1: The root or a required dependency could not be resolved, or the
        configuration is invalid.
    2: Invalid command-line usage, including a malformed ``--version``.
    3: ``--strict`` was given and at least one feature failed.

Usage::

    cratetree deps serde
    cratetree deps demo --version "^1.0" --features net,tls
    cratetree deps demo --registry-file registry.yaml --format json
"""

from __future__ import annotations

import logging
import sys

import click

from cratetree.config import load_config
from cratetree.core.dependency import Resolver, as_constraint
from cratetree.exceptions import CrateTreeError

logger = logging.getLogger(__name__)

_LOG_LEVELS = ["debug", "info", "warning", "error"]


def _split_features(raw: tuple[str, ...]) -> list[str]:
    """Flatten repeated and comma-separated ``--features`` values."""
    features: list[str] = []
    for chunk in raw:
        for name in chunk.replace(" ", ",").split(","):
            if name and name not in features:
                features.append(name)
    return features


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="[%(levelname)s] %(message)s",
    )


@click.command("deps")
@click.argument("name")
@click.option(
    "--version", "-V", "version_req",
    default=None,
    help="Version requirement for NAME (default: latest release).",
)
@click.option(
    "--features", "-F",
    multiple=True,
    help="Comma-separated features to activate on NAME (repeatable).",
)
@click.option(
    "--all-features", is_flag=True, default=False,
    help="Activate every feature of NAME that enables a dependency.",
)
@click.option(
    "--no-default-features", is_flag=True, default=False,
    help="Do not activate the default feature of NAME.",
)
@click.option(
    "--registry-file",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Resolve against a JSON/YAML registry snapshot instead of the index.",
)
@click.option(
    "--config", "config_path",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="YAML configuration file.",
)
@click.option(
    "--format", "output_format",
    type=click.Choice(["text", "json"]),
    default="text",
    help="Output format (default: text).",
)
@click.option(
    "--strict", is_flag=True, default=False,
    help="Exit with code 3 if any feature failed to resolve.",
)
@click.option(
    "--log-level",
    type=click.Choice(_LOG_LEVELS, case_sensitive=False),
    default="warning",
    help="Logging verbosity (default: warning).",
)
def deps_command(
    name: str,
    version_req: str | None,
    features: tuple[str, ...],
    all_features: bool,
    no_default_features: bool,
    registry_file: str | None,
    config_path: str | None,
    output_format: str,
    strict: bool,
    log_level: str,
) -> None:
    """Resolve the transitive dependency tree of NAME.

    Feature failures are reported alongside the resolved packages; only a
    failure of NAME itself or of a required dependency aborts the run.

    Examples:

        cratetree deps demo --features net

        cratetree deps demo --registry-file registry.yaml --format json
    """
    _configure_logging(log_level)

    from cratetree.cli.output import print_error, print_tree, print_tree_json

    if version_req is not None:
        try:
            as_constraint(version_req).validate()
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint="'--version'") from exc

    resolver: Resolver | None = None
    try:
        config = load_config(config_path).with_overrides(registry_file=registry_file)
        resolver = Resolver.from_config(config)
        tree = resolver.dependencies(
            name,
            version_req,
            features=_split_features(features),
            all_features=all_features,
            default_features=not no_default_features,
        )
    except CrateTreeError as exc:
        logger.debug("Resolution of %s aborted", name, exc_info=True)
        print_error(str(exc))
        sys.exit(1)
    finally:
        if resolver is not None:
            resolver.provider.close()

    if output_format == "json":
        print_tree_json(tree)
    else:
        print_tree(tree)

    if strict and tree.errors:
        sys.exit(3)
