"""Data types for manifests, resolved packages and resolution output.

These are pure data holders (dataclasses) with no resolution logic, making
them safe to import from the registry layer without circular imports.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Mapping

from cratetree.core.dependency.constraints import VersionConstraint, _version_key
from cratetree.exceptions import ResolutionError


class DependencyKind(str, Enum):
    """Which build phase a dependency edge belongs to."""

    NORMAL = "normal"
    BUILD = "build"
    DEV = "dev"


# ---------------------------------------------------------------------------
# PackageVersion: A resolved node
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PackageVersion:
    """A package committed to one concrete version.

    Identity is the (name, version) pair. Instances sort by name and then
    by SemVer precedence.
    """

    name: str
    version: str

    def __lt__(self, other: PackageVersion) -> bool:
        if not isinstance(other, PackageVersion):
            return NotImplemented
        return (self.name, _version_key(self.version)) < (
            other.name, _version_key(other.version)
        )

    def __str__(self) -> str:
        return f"{self.name}@{self.version}"


# ---------------------------------------------------------------------------
# DependencyEdge & Manifest: Registry declarations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class DependencyEdge:
    """A dependency declared by one package version.

    Attributes:
        name: Name the dependent uses for the dependency. Feature values
            such as ``dep:name`` and ``name/feat`` refer to this name.
        constraint: Version requirement the target must satisfy.
        optional: True if the edge is only enabled through a feature.
        features: Features the dependent requests on the target.
        default_features: Whether the target's ``default`` feature is
            requested along with ``features``.
        kind: Build phase of the edge; dev edges are never resolved.
        package: Registry name of the target when the dependency is
            renamed. Defaults to ``name``.
    """

    name: str
    constraint: VersionConstraint = field(default_factory=lambda: VersionConstraint("*"))
    optional: bool = False
    features: tuple[str, ...] = ()
    default_features: bool = True
    kind: DependencyKind = DependencyKind.NORMAL
    package: str = ""

    @property
    def target(self) -> str:
        """Registry name of the dependency."""
        return self.package or self.name

    def __str__(self) -> str:
        text = f"{self.target} {self.constraint}"
        if self.optional:
            text += " (optional)"
        return text


@dataclass(frozen=True)
class Manifest:
    """Declaration of one package version.

    Attributes:
        name: Package name.
        version: Package version.
        dependencies: Declared edges, in declaration order.
        features: Feature name -> feature values it activates. A value is
            another feature name, ``dep:name``, ``name/feat`` or
            ``name?/feat``.
    """

    name: str
    version: str
    dependencies: tuple[DependencyEdge, ...] = ()
    features: Mapping[str, tuple[str, ...]] = field(default_factory=dict)

    @property
    def package(self) -> PackageVersion:
        return PackageVersion(self.name, self.version)

    @property
    def required_edges(self) -> tuple[DependencyEdge, ...]:
        return tuple(d for d in self.dependencies if not d.optional)

    @property
    def optional_edges(self) -> tuple[DependencyEdge, ...]:
        return tuple(d for d in self.dependencies if d.optional)

    def has_feature(self, feature: str) -> bool:
        """True for an explicit feature or an implicit optional-dependency one."""
        if feature in self.features:
            return True
        return feature in self.implicit_features()

    def implicit_features(self) -> set[str]:
        # An optional dependency named in a "dep:" value loses its implicit feature.
        hidden = {
            value[4:]
            for values in self.features.values()
            for value in values
            if value.startswith("dep:")
        }
        return {d.name for d in self.optional_edges if d.name not in hidden}


# ---------------------------------------------------------------------------
# Resolution output
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FeatureResolutionError:
    """A feature whose activation could not be fully satisfied.

    Attributes:
        feature: Name of the feature that caused the failing subtree, or
            ``"default"`` when the failing edge was unconditional.
        package: The package version declaring that feature.
        cause: The underlying resolution failure.
    """

    feature: str
    package: PackageVersion
    cause: ResolutionError = field(compare=False)
    message: str = field(init=False, default="")

    def __post_init__(self) -> None:
        object.__setattr__(self, "message", str(self.cause))

    @property
    def kind(self) -> str:
        return self.cause.kind

    def __str__(self) -> str:
        return f"{self.package} feature {self.feature!r}: {self.cause}"


@dataclass(frozen=True)
class ResolvedTree:
    """Flattened resolution result.

    Iterating yields ``(packages, errors)`` so callers can unpack it.

    Attributes:
        packages: Resolved package versions in first-resolved order,
            root first. Each (name, version) appears once.
        errors: One entry per failing feature, in the order the failures
            were first encountered.
    """

    packages: tuple[PackageVersion, ...] = ()
    errors: tuple[FeatureResolutionError, ...] = ()

    @property
    def root(self) -> PackageVersion | None:
        return self.packages[0] if self.packages else None

    @property
    def ok(self) -> bool:
        return not self.errors

    def version_of(self, name: str) -> str | None:
        for package in self.packages:
            if package.name == name:
                return package.version
        return None

    def __iter__(self) -> Iterator:
        return iter((self.packages, self.errors))
