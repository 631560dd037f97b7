"""cratetree: transitive dependency trees for packages in a versioned registry."""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

from cratetree.core.dependency import (  # noqa: E402
    FeatureResolutionError,
    PackageVersion,
    ResolvedTree,
    Resolver,
    VersionConstraint,
)

__all__ = [
    "FeatureResolutionError",
    "PackageVersion",
    "ResolvedTree",
    "Resolver",
    "VersionConstraint",
    "__version__",
]
