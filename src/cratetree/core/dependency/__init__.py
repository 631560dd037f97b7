"""Dependency resolution core.

Resolves the transitive dependency tree of one root package: version
selection over SemVer constraints, feature activation, a depth-first graph
walk with cycle and conflict detection, and aggregation of partial failures.
All public names are re-exported here, so callers can write
``from cratetree.core.dependency import X``.

Components, leaves first:

- **constraints** -- SemVer precedence and constraint matching
- **selector** -- highest version satisfying the constraints
- **features** -- closure of requested features over a manifest
- **graph** -- traversal and per-walk ``ResolutionState``
- **aggregator** -- ordered, de-duplicated output
- **resolver** -- the public ``Resolver.dependencies`` operation
"""

from cratetree.core.dependency.aggregator import ResolutionAggregator
from cratetree.core.dependency.constraints import (
    ANY,
    SemVer,
    VersionConstraint,
    as_constraint,
    max_version,
    parse_version,
    satisfies,
    sort_versions,
)
from cratetree.core.dependency.features import (
    DEFAULT_FEATURE,
    Activation,
    FeatureActivator,
)
from cratetree.core.dependency.graph import (
    GraphWalker,
    ResolutionState,
    dependency_features,
)
from cratetree.core.dependency.models import (
    DependencyEdge,
    DependencyKind,
    FeatureResolutionError,
    Manifest,
    PackageVersion,
    ResolvedTree,
)
from cratetree.core.dependency.resolver import Resolver
from cratetree.core.dependency.selector import VersionSelector

__all__ = [
    "ANY",
    "Activation",
    "DEFAULT_FEATURE",
    "DependencyEdge",
    "DependencyKind",
    "FeatureActivator",
    "FeatureResolutionError",
    "GraphWalker",
    "Manifest",
    "PackageVersion",
    "ResolutionAggregator",
    "ResolutionState",
    "ResolvedTree",
    "Resolver",
    "SemVer",
    "VersionConstraint",
    "VersionSelector",
    "as_constraint",
    "dependency_features",
    "max_version",
    "parse_version",
    "satisfies",
    "sort_versions",
]
