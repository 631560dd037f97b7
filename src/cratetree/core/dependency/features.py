"""Feature activation: the closure of requested features over one manifest.

Feature values use the registry's grammar:

- ``other``      -- activate another feature of the same package (or the
  implicit feature of an optional dependency called ``other``)
- ``dep:name``   -- enable optional dependency ``name``
- ``name/feat``  -- enable dependency ``name`` and request ``feat`` on it
- ``name?/feat`` -- request ``feat`` on ``name`` only if ``name`` is
  enabled by something else

Activation is monotonic: requesting more features never removes a feature
or an edge, so the closure is computed as a fixed point over a work queue.
Every enabled edge remembers the *requested* feature that led to it, which
is the name failures in its subtree are reported under.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, Mapping

from cratetree.core.dependency.models import (
    DependencyEdge,
    DependencyKind,
    Manifest,
    PackageVersion,
)

logger = logging.getLogger(__name__)

DEFAULT_FEATURE = "default"


@dataclass(frozen=True)
class Activation:
    """Activated features and enabled edges of one package version.

    Attributes:
        package: The package version the activation belongs to.
        requested: Features requested so far, in request order.
        default_features: Whether the ``default`` feature was requested.
        features: Every activated feature (explicit and implicit).
        edges: Enabled dependency edges, in manifest declaration order.
            Dev edges are never enabled.
        activating: Optional dependency name -> requested feature that
            first enabled it.
        dependency_features: Dependency name -> {feature requested on it ->
            requested feature of this package that asked for it}.
        unknown: ``(value, origin)`` pairs for feature names or values that
            the manifest does not define, in discovery order.
    """

    package: PackageVersion
    requested: tuple[str, ...] = ()
    default_features: bool = True
    features: frozenset[str] = frozenset()
    edges: tuple[DependencyEdge, ...] = ()
    activating: Mapping[str, str] = field(default_factory=dict)
    dependency_features: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    unknown: tuple[tuple[str, str], ...] = ()

    def requests_for(self, edge: DependencyEdge) -> dict[str, str]:
        """Features to request on *edge*'s target, mapped to their origin.

        Features declared on the edge itself are unconditional and carry the
        ``default`` pseudo-feature as origin.
        """
        requests = {feature: DEFAULT_FEATURE for feature in edge.features}
        for feature, origin in self.dependency_features.get(edge.name, {}).items():
            requests.setdefault(feature, origin)
        return requests

    def changed_edges(self, previous: Activation | None) -> list[DependencyEdge]:
        """Edges that are new, or request new features, since *previous*."""
        if previous is None:
            return list(self.edges)
        before = set(previous.edges)
        changed: list[DependencyEdge] = []
        for edge in self.edges:
            if edge not in before:
                changed.append(edge)
            elif set(self.requests_for(edge)) - set(previous.requests_for(edge)):
                changed.append(edge)
        return changed

    def new_unknown(self, previous: Activation | None) -> list[tuple[str, str]]:
        if previous is None:
            return list(self.unknown)
        seen = set(previous.unknown)
        return [u for u in self.unknown if u not in seen]


class FeatureActivator:
    """Computes feature closures over manifests.

    Stateless; one instance can serve every package of a resolution.
    """

    def activate(
        self,
        manifest: Manifest,
        requested: Iterable[str] = (),
        default_features: bool = True,
        previous: Activation | None = None,
    ) -> Activation:
        """Activate *requested* features on *manifest*.

        Required (non-optional) edges are always enabled. When *previous* is
        given the new request is merged into it, so the result is a superset
        of *previous*.

        Args:
            manifest: Declaration of the package version.
            requested: Feature names requested by the caller or a dependent.
            default_features: Request the ``default`` feature if defined.
            previous: Earlier activation of the same package version.

        Returns:
            The resulting ``Activation``. Undefined features are reported in
            ``unknown`` rather than raised.
        """
        requests: list[str] = list(previous.requested) if previous else []
        for feature in requested:
            if feature not in requests:
                requests.append(feature)
        use_default = default_features or bool(previous and previous.default_features)

        order: list[str] = []
        if use_default and DEFAULT_FEATURE in manifest.features:
            order.append(DEFAULT_FEATURE)
        order.extend(f for f in requests if f not in order)

        closure = _Closure(manifest)
        # Each request is closed before the next so that edges are attributed
        # to the earliest requested feature that reaches them.
        for feature in order:
            closure.request(feature)
            closure.run()
        closure.finish()

        edges = tuple(
            edge
            for edge in manifest.dependencies
            if edge.kind is not DependencyKind.DEV
            and (not edge.optional or edge.name in closure.enabled)
        )
        logger.debug(
            "Activated %s on %s@%s (%d edges)",
            sorted(closure.features) or "no features",
            manifest.name,
            manifest.version,
            len(edges),
        )
        return Activation(
            package=manifest.package,
            requested=tuple(requests),
            default_features=use_default,
            features=frozenset(closure.features),
            edges=edges,
            activating=dict(closure.enabled),
            dependency_features={k: dict(v) for k, v in closure.dep_features.items()},
            unknown=tuple(closure.unknown),
        )


class _Closure:
    """Work-queue fixed point over one manifest's feature table."""

    def __init__(self, manifest: Manifest) -> None:
        self.manifest = manifest
        deps = [d for d in manifest.dependencies if d.kind is not DependencyKind.DEV]
        self.dep_names = {d.name for d in deps}
        self.optional_names = {d.name for d in deps if d.optional}
        self.implicit = manifest.implicit_features()
        self.features: set[str] = set()
        self.enabled: dict[str, str] = {}
        self.dep_features: dict[str, dict[str, str]] = {}
        self.unknown: list[tuple[str, str]] = []
        self._weak: list[tuple[str, str, str]] = []
        self._pending: deque[tuple[str, str]] = deque()

    def request(self, feature: str) -> None:
        self._pending.append((feature, feature))

    def run(self) -> None:
        while self._pending:
            feature, origin = self._pending.popleft()
            if feature in self.features:
                continue
            if feature in self.manifest.features:
                self.features.add(feature)
                for value in self.manifest.features[feature]:
                    self._apply(value, origin)
            elif feature in self.implicit:
                self.features.add(feature)
                self.enabled.setdefault(feature, origin)
            else:
                self._unknown(feature, origin)

    def finish(self) -> None:
        # Weak dependency features apply only once the closure is complete.
        for dep, feature, origin in self._weak:
            if dep not in self.dep_names:
                self._unknown(f"{dep}?/{feature}", origin)
            elif dep not in self.optional_names or dep in self.enabled:
                self.dep_features.setdefault(dep, {}).setdefault(feature, origin)

    def _apply(self, value: str, origin: str) -> None:
        if value.startswith("dep:"):
            name = value[4:]
            if name in self.optional_names:
                self.enabled.setdefault(name, origin)
            elif name not in self.dep_names:
                self._unknown(value, origin)
            return

        if "/" in value:
            dep, feature = value.split("/", 1)
            if dep.endswith("?"):
                self._weak.append((dep[:-1], feature, origin))
                return
            if dep not in self.dep_names:
                self._unknown(value, origin)
                return
            if dep in self.optional_names:
                self.enabled.setdefault(dep, origin)
                if dep in self.manifest.features:
                    self._pending.append((dep, origin))
                elif dep in self.implicit:
                    self.features.add(dep)
            self.dep_features.setdefault(dep, {}).setdefault(feature, origin)
            return

        self._pending.append((value, origin))

    def _unknown(self, value: str, origin: str) -> None:
        if (value, origin) not in self.unknown:
            self.unknown.append((value, origin))
