"""Transitive traversal of the dependency graph.

The ``GraphWalker`` performs a depth-first, first-encountered-wins walk from
a root package. At every node it asks the ``FeatureActivator`` which edges
are enabled, resolves each edge's target through the ``VersionSelector``
and recurses into packages it has not seen before.

All mutable bookkeeping lives in a ``ResolutionState`` created per walk and
threaded through every call. Updates happen in one deterministic order:
edges are visited in manifest declaration order, depth first, and the first
constraint recorded for a package name decides its version. Later edges that
reach the same name must be satisfied by that version or fail with a
``VersionConflict``.

Failure attribution
-------------------
Every frame carries an optional *attribution*: the (feature, package) pair
responsible for the subtree being walked. Frames reached only through
required edges have none; a failure there is fatal and raised to the caller.
The first optional edge on a path sets the attribution to the feature that
enabled it, and everything beneath inherits it, so a failure deep inside an
optional subtree is reported against the feature the caller (or a
dependent) turned on.

A package first expanded under an attribution is walked again, without
one, when a required path later reaches it, so a required failure below it
still propagates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Iterable, Mapping

from cratetree.core.dependency.aggregator import Attribution, ResolutionAggregator
from cratetree.core.dependency.constraints import (
    ConstraintLike,
    VersionConstraint,
    as_constraint,
)
from cratetree.core.dependency.features import (
    DEFAULT_FEATURE,
    Activation,
    FeatureActivator,
)
from cratetree.core.dependency.models import (
    DependencyEdge,
    Manifest,
    PackageVersion,
    ResolvedTree,
)
from cratetree.core.dependency.selector import VersionSelector
from cratetree.exceptions import (
    DependencyCycle,
    ResolutionError,
    UnknownFeature,
    VersionConflict,
)

if TYPE_CHECKING:
    from cratetree.registry.base import MetadataProvider

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# ResolutionState: Per-walk mutable bookkeeping
# ---------------------------------------------------------------------------


@dataclass
class ResolutionState:
    """Mutable state of one top-level resolution.

    Created by ``GraphWalker.walk`` and discarded when it returns; nothing
    is shared between walks, so abandoning a walk has no side effects.

    Attributes:
        chosen: Package name -> version committed for it.
        constraints: Package name -> constraints of every edge that reached
            it, in the order they were recorded.
        manifests: Manifests of committed package versions.
        activations: Current feature activation per package version.
        required: Package version -> edges walked with no attribution.
            A package first expanded inside an optional subtree has its
            edges walked again when a required path reaches it.
        path: Package versions on the active traversal path, root first.
    """

    chosen: dict[str, PackageVersion] = field(default_factory=dict)
    constraints: dict[str, list[VersionConstraint]] = field(default_factory=dict)
    manifests: dict[PackageVersion, Manifest] = field(default_factory=dict)
    activations: dict[PackageVersion, Activation] = field(default_factory=dict)
    required: dict[PackageVersion, set[DependencyEdge]] = field(default_factory=dict)
    path: list[PackageVersion] = field(default_factory=list)

    def commit(
        self, package: PackageVersion, constraint: VersionConstraint, manifest: Manifest
    ) -> None:
        """Commit *package* as the version of its name."""
        self.chosen[package.name] = package
        self.constraints[package.name] = [constraint]
        self.manifests[package] = manifest

    def constrain(self, name: str, constraint: VersionConstraint) -> None:
        self.constraints[name].append(constraint)

    def on_path(self, package: PackageVersion) -> bool:
        return package in self.path

    def cycle(self, package: PackageVersion) -> list[str]:
        """The active path from *package* back to itself, as strings."""
        start = self.path.index(package)
        return [str(p) for p in self.path[start:]] + [str(package)]


# ---------------------------------------------------------------------------
# GraphWalker
# ---------------------------------------------------------------------------


class GraphWalker:
    """Depth-first resolver of one root package.

    Args:
        provider: Metadata provider for version lists and manifests.
        selector: Version selector; built over *provider* if omitted.
        activator: Feature activator; a default one if omitted.
        prefetch_workers: When greater than 1, version lists of sibling
            edges are fetched concurrently through ``provider.prefetch``
            before they are walked. Walk order is unaffected.
    """

    def __init__(
        self,
        provider: MetadataProvider,
        selector: VersionSelector | None = None,
        activator: FeatureActivator | None = None,
        prefetch_workers: int = 0,
    ) -> None:
        self._provider = provider
        self._selector = selector or VersionSelector(provider)
        self._activator = activator or FeatureActivator()
        self._prefetch_workers = prefetch_workers

    def walk(
        self,
        root_name: str,
        root_constraint: ConstraintLike = None,
        features: Iterable[str] = (),
        default_features: bool = True,
        all_features: bool = False,
    ) -> ResolvedTree:
        """Resolve the transitive dependency tree of *root_name*.

        Args:
            root_name: Registry name of the root package.
            root_constraint: Version constraint on the root, None for latest.
            features: Features to activate on the root.
            default_features: Activate the root's ``default`` feature.
            all_features: After the requested features, activate every root
                feature that enables a dependency, one at a time, so that
                each one's failures are reported separately.

        Returns:
            The ``ResolvedTree``; the root is its first package.

        Raises:
            ResolutionError: If the root, or an edge reachable from it through
                required edges only, cannot be resolved.
        """
        constraint = as_constraint(root_constraint)
        state = ResolutionState()
        aggregator = ResolutionAggregator()

        root = self._selector.select(root_name, constraint)
        manifest = self._provider.get_manifest(root.name, root.version)
        state.commit(root, constraint, manifest)
        aggregator.add_package(root)
        logger.info("Resolving %s (requested %s)", root, constraint)

        requests = {feature: feature for feature in features}
        self._expand(state, aggregator, root, requests, default_features, None, None)

        if all_features:
            for feature in dependency_features(manifest):
                self._expand(
                    state, aggregator, root, {feature: feature}, default_features, None, None
                )

        tree = aggregator.build()
        logger.info(
            "Resolved %s: %d packages, %d feature errors",
            root,
            len(tree.packages),
            len(tree.errors),
        )
        return tree

    # -- traversal ----------------------------------------------------------

    def _expand(
        self,
        state: ResolutionState,
        aggregator: ResolutionAggregator,
        package: PackageVersion,
        requests: Mapping[str, str],
        default_features: bool,
        attribution: Attribution | None,
        parent: PackageVersion | None,
    ) -> None:
        """Activate *requests* on *package* and walk the edges that changed.

        *requests* maps each requested feature to the feature of *parent*
        that asked for it, so an undefined feature can be reported against
        the dependent that requested it.
        """
        manifest = state.manifests[package]
        previous = state.activations.get(package)
        activation = self._activator.activate(
            manifest, requests, default_features, previous
        )
        state.activations[package] = activation

        for value, origin in activation.new_unknown(previous):
            cause = UnknownFeature(str(package), value)
            if attribution is not None:
                aggregator.add_error(attribution, cause)
            elif parent is not None and value == origin and value in requests:
                aggregator.add_error((requests[value], parent), cause)
            else:
                aggregator.add_error((origin, package), cause)

        edges = activation.changed_edges(previous)
        if attribution is None:
            walked = state.required.get(package, set())
            edges = [e for e in activation.edges if e in edges or e not in walked]
            state.required[package] = set(activation.edges)
        else:
            walked = set(previous.edges) if previous else set()
        if not edges:
            return
        self._prefetch(state, edges)

        state.path.append(package)
        try:
            for edge in edges:
                self._visit(
                    state,
                    aggregator,
                    package,
                    activation,
                    edge,
                    attribution,
                    revisit=edge in walked,
                )
        finally:
            state.path.pop()

    def _visit(
        self,
        state: ResolutionState,
        aggregator: ResolutionAggregator,
        parent: PackageVersion,
        activation: Activation,
        edge: DependencyEdge,
        attribution: Attribution | None,
        revisit: bool,
    ) -> None:
        if attribution is None and edge.optional:
            attribution = (activation.activating.get(edge.name, DEFAULT_FEATURE), parent)

        try:
            target = self._resolve_target(state, aggregator, parent, edge, revisit)
        except ResolutionError as exc:
            if attribution is None:
                raise
            aggregator.add_error(attribution, exc)
            return

        self._expand(
            state,
            aggregator,
            target,
            activation.requests_for(edge),
            edge.default_features,
            attribution,
            parent,
        )

    def _resolve_target(
        self,
        state: ResolutionState,
        aggregator: ResolutionAggregator,
        parent: PackageVersion,
        edge: DependencyEdge,
        revisit: bool,
    ) -> PackageVersion:
        """Commit or check the version of *edge*'s target.

        Raises:
            NoSatisfyingVersion: No version meets the edge's constraint.
            VersionConflict: The name is already committed to a version the
                edge's constraint rejects.
            DependencyCycle: The committed version is on the active path.
            ProviderUnavailable: Passed through from the provider.
        """
        name = edge.target
        chosen = state.chosen.get(name)

        if chosen is None:
            package = self._selector.select(name, [edge.constraint])
            manifest = self._provider.get_manifest(package.name, package.version)
            state.commit(package, edge.constraint, manifest)
            aggregator.add_package(package)
            return package

        if not edge.constraint.satisfies(chosen.version):
            raise VersionConflict(
                name, chosen.version, str(edge.constraint), str(parent)
            )
        if not revisit and state.on_path(chosen):
            raise DependencyCycle(state.cycle(chosen))
        if not revisit:
            state.constrain(name, edge.constraint)
        return chosen

    def _prefetch(self, state: ResolutionState, edges: list[DependencyEdge]) -> None:
        if self._prefetch_workers < 2:
            return
        names = sorted({e.target for e in edges if e.target not in state.chosen})
        if len(names) > 1:
            self._provider.prefetch(names, workers=self._prefetch_workers)


def dependency_features(manifest: Manifest) -> list[str]:
    """Features of *manifest* that enable at least one dependency.

    Explicit features come first in declaration order, followed by the
    implicit features of optional dependencies. Features that only name
    other features are skipped; the features they name are listed on their
    own.
    """
    names: list[str] = []
    for feature, values in manifest.features.items():
        if any(v.startswith("dep:") or "/" in v for v in values):
            names.append(feature)
    implicit = manifest.implicit_features()
    for edge in manifest.optional_edges:
        if edge.name in implicit and edge.name not in names:
            names.append(edge.name)
    return names
