"""Public resolution entry point.

``Resolver`` wires a metadata provider to the graph walker and exposes the
``dependencies`` operation: given a package name and an optional version
constraint, return every package version in its transitive dependency tree
together with the features whose subtrees could not be resolved.

Usage::

    resolver = Resolver(StaticProvider.from_file("registry.yaml"))
    packages, errors = resolver.dependencies("demo", features=["net"])
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

from cratetree.core.dependency.aggregator import ResolutionAggregator
from cratetree.core.dependency.constraints import ConstraintLike
from cratetree.core.dependency.graph import GraphWalker
from cratetree.core.dependency.models import ResolvedTree

if TYPE_CHECKING:
    from cratetree.config import ResolverConfig
    from cratetree.registry.base import MetadataProvider

logger = logging.getLogger(__name__)


class Resolver:
    """Transitive dependency resolver over a metadata provider.

    Each call resolves independently: no decision made for one root is
    reused for another. Registry metadata may still be cached by the
    provider (see ``CachingProvider``).

    Args:
        provider: Source of version lists and manifests.
        prefetch_workers: Concurrency for sibling version-list prefetching.
            0 or 1 disables prefetching.
    """

    def __init__(self, provider: MetadataProvider, prefetch_workers: int = 0) -> None:
        self._provider = provider
        self._walker = GraphWalker(provider, prefetch_workers=prefetch_workers)

    @classmethod
    def from_config(cls, config: ResolverConfig) -> Resolver:
        """Build a resolver over the provider described by *config*."""
        from cratetree.registry import provider_from_config

        return cls(
            provider_from_config(config),
            prefetch_workers=config.prefetch_workers,
        )

    @property
    def provider(self) -> MetadataProvider:
        return self._provider

    def dependencies(
        self,
        name: str,
        version: ConstraintLike = None,
        *,
        features: Iterable[str] = (),
        all_features: bool = False,
        default_features: bool = True,
    ) -> ResolvedTree:
        """Get the transitive dependencies of a single package.

        Args:
            name: Registry name of the root package.
            version: Version constraint on the root; None selects the latest.
            features: Features to activate on the root.
            all_features: Also try every root feature that enables a
                dependency, each reported separately on failure.
            default_features: Activate the root's ``default`` feature.

        Returns:
            ``ResolvedTree`` of resolved packages (root first) and feature
            errors. Unpacks as ``(packages, errors)``.

        Raises:
            ResolutionError: If the root, or a dependency it requires
                unconditionally, cannot be resolved.
        """
        return self._walker.walk(
            name,
            version,
            features=features,
            default_features=default_features,
            all_features=all_features,
        )

    def merge_dependencies(
        self,
        name: str,
        version: ConstraintLike,
        into: ResolutionAggregator,
        **options: bool | Iterable[str],
    ) -> ResolvedTree:
        """Resolve *name* and fold the result into *into*.

        Lets callers build one flattened list for several roots. Each root is
        still resolved independently; the aggregator only unions the results.

        Returns:
            The tree for *name* alone.
        """
        tree = self.dependencies(name, version, **options)  # type: ignore[arg-type]
        into.merge(tree)
        return tree
