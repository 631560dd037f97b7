"""cratetree exception hierarchy.

All public exceptions inherit from CrateTreeError, giving callers a single
base class to catch when they want to handle any cratetree-specific failure
without swallowing unrelated errors.

The ``ResolutionError`` subclasses double as *values*: when a failure is
contained inside an optional feature's subtree, the exception instance is
stored as the ``cause`` of a ``FeatureResolutionError`` instead of being
raised.
"""

from __future__ import annotations

from typing import Sequence


class CrateTreeError(Exception):
    """Base exception for all cratetree errors."""


class ConfigError(CrateTreeError):
    """Raised when a configuration file or value is invalid."""


class ResolutionError(CrateTreeError):
    """Raised when dependency resolution fails.

    Covers unsatisfiable version constraints, unknown features, circular
    dependencies, version conflicts and metadata provider failures.
    """

    kind = "resolution-error"


class NoSatisfyingVersion(ResolutionError):
    """No available version of a package meets the combined constraint."""

    kind = "no-satisfying-version"

    def __init__(
        self, name: str, constraint: str, available: Sequence[str] = ()
    ) -> None:
        self.name = name
        self.constraint = constraint
        self.available = tuple(available)
        if self.available:
            detail = f"available: {', '.join(self.available)}"
        else:
            detail = "no versions available"
        super().__init__(
            f"no version of {name!r} satisfies {constraint!r} ({detail})"
        )


class UnknownFeature(ResolutionError):
    """A requested feature is not defined by the package version."""

    kind = "unknown-feature"

    def __init__(self, package: str, feature: str) -> None:
        self.package = package
        self.feature = feature
        super().__init__(f"package {package} has no feature {feature!r}")


class DependencyCycle(ResolutionError):
    """A package version was reached again while still on the active path."""

    kind = "dependency-cycle"

    def __init__(self, path: Sequence[str]) -> None:
        self.path = tuple(path)
        super().__init__(f"dependency cycle: {' -> '.join(self.path)}")


class VersionConflict(ResolutionError):
    """Two edges demand incompatible versions of the same package name."""

    kind = "version-conflict"

    def __init__(
        self, name: str, chosen: str, constraint: str, required_by: str
    ) -> None:
        self.name = name
        self.chosen = chosen
        self.constraint = constraint
        self.required_by = required_by
        super().__init__(
            f"{required_by} requires {name} {constraint!r} but "
            f"{name}@{chosen} was already selected"
        )


class ProviderUnavailable(ResolutionError):
    """The metadata provider could not answer a query.

    Network, storage and decoding failures of the registry collaborator are
    wrapped in this type and passed through the resolver unchanged.
    """

    kind = "provider-unavailable"


class PackageNotFound(ProviderUnavailable):
    """The registry does not know the package (or package version)."""

    kind = "package-not-found"

    def __init__(self, name: str, version: str | None = None) -> None:
        self.name = name
        self.version = version
        if version is None:
            message = f"couldn't find package: {name}"
        else:
            message = f"couldn't find package: {name} ({version})"
        super().__init__(message)
