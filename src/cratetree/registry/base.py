"""Metadata provider interface and shared helpers.

Defines the ``MetadataProvider`` abstract base class every registry source
implements, the ``CachingProvider`` wrapper that memoizes registry metadata
(never resolution decisions), and the parsing helpers that turn raw
dependency and feature declarations into ``DependencyEdge`` and
``Manifest`` objects.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Iterable, Mapping

from cratetree.core.dependency.constraints import VersionConstraint
from cratetree.core.dependency.models import DependencyEdge, DependencyKind, Manifest
from cratetree.exceptions import ProviderUnavailable

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Abstract provider
# ---------------------------------------------------------------------------


class MetadataProvider(ABC):
    """Source of package metadata for the resolver.

    Subclasses must implement ``list_versions`` and ``get_manifest``. Both
    raise ``PackageNotFound`` for unknown names and ``ProviderUnavailable``
    for any other failure; the resolver passes these through unchanged.
    """

    @property
    @abstractmethod
    def registry_name(self) -> str:
        """Human-readable name of this registry (e.g. 'crates.io')."""

    @abstractmethod
    def list_versions(self, name: str) -> list[str]:
        """Return every known version of *name*.

        Raises:
            PackageNotFound: If the registry does not know *name*.
            ProviderUnavailable: On any other failure.
        """

    @abstractmethod
    def get_manifest(self, name: str, version: str) -> Manifest:
        """Return the manifest of *name* at *version*.

        Raises:
            PackageNotFound: If the package or version is unknown.
            ProviderUnavailable: On any other failure.
        """

    def prefetch(self, names: Iterable[str], *, workers: int = 4) -> None:
        """Warm any cache for *names*. The base provider has none."""

    def close(self) -> None:
        """Release network clients or other resources. A no-op by default."""


# ---------------------------------------------------------------------------
# CachingProvider
# ---------------------------------------------------------------------------


class CachingProvider(MetadataProvider):
    """Memoizes another provider's answers for the lifetime of this object.

    Only successful answers are cached, so a failure is raised again (and
    the registry asked again) on the next call.

    Args:
        inner: The provider to wrap.
    """

    def __init__(self, inner: MetadataProvider) -> None:
        self._inner = inner
        self._versions: dict[str, list[str]] = {}
        self._manifests: dict[tuple[str, str], Manifest] = {}
        self._lock = threading.Lock()

    @property
    def registry_name(self) -> str:
        return self._inner.registry_name

    @property
    def inner(self) -> MetadataProvider:
        return self._inner

    def close(self) -> None:
        self._inner.close()

    def list_versions(self, name: str) -> list[str]:
        with self._lock:
            cached = self._versions.get(name)
        if cached is not None:
            return list(cached)
        versions = list(self._inner.list_versions(name))
        with self._lock:
            self._versions[name] = versions
        return list(versions)

    def get_manifest(self, name: str, version: str) -> Manifest:
        key = (name, version)
        with self._lock:
            cached = self._manifests.get(key)
        if cached is not None:
            return cached
        manifest = self._inner.get_manifest(name, version)
        with self._lock:
            self._manifests[key] = manifest
        return manifest

    def prefetch(self, names: Iterable[str], *, workers: int = 4) -> None:
        """Fetch version lists for *names* concurrently.

        Failures are logged and left uncached; the resolver meets them again
        when it asks for the name itself.
        """
        with self._lock:
            missing = [n for n in dict.fromkeys(names) if n not in self._versions]
        if not missing:
            return
        with ThreadPoolExecutor(max_workers=max(1, workers)) as pool:
            futures = {name: pool.submit(self.list_versions, name) for name in missing}
        for name, future in futures.items():
            exc = future.exception()
            if exc is None:
                continue
            if not isinstance(exc, ProviderUnavailable):
                raise exc
            logger.debug("Prefetch of %s failed: %s", name, exc)


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------


def parse_edge(data: Mapping[str, Any], name: str | None = None) -> DependencyEdge:
    """Build a ``DependencyEdge`` from a declaration mapping.

    Accepts both index-style keys (``req``, ``default_features``) and
    manifest-style keys (``version``, ``default-features``). ``kind`` may be
    missing or null for a normal dependency.

    Raises:
        ValueError: If the declaration has no name or an unknown kind.
    """
    dep_name = name or data.get("name")
    if not dep_name:
        raise ValueError(f"Dependency declaration without a name: {dict(data)!r}")
    req = data.get("req", data.get("version", "*"))
    default_features = data.get("default_features", data.get("default-features", True))
    return DependencyEdge(
        name=str(dep_name),
        constraint=VersionConstraint(str(req)).validate(),
        optional=bool(data.get("optional", False)),
        features=tuple(str(f) for f in data.get("features") or ()),
        default_features=bool(default_features),
        kind=DependencyKind(data.get("kind") or "normal"),
        package=str(data.get("package") or ""),
    )


def parse_dependencies(raw: Any) -> tuple[DependencyEdge, ...]:
    """Parse a dependency list, or a ``{name: req-or-mapping}`` table."""
    if not raw:
        return ()
    if isinstance(raw, Mapping):
        edges = []
        for dep_name, spec in raw.items():
            if isinstance(spec, Mapping):
                edges.append(parse_edge(spec, name=str(dep_name)))
            else:
                edges.append(parse_edge({"req": spec}, name=str(dep_name)))
        return tuple(edges)
    return tuple(parse_edge(item) for item in raw)


def parse_features(*tables: Mapping[str, Any] | None) -> dict[str, tuple[str, ...]]:
    """Merge feature tables, keeping declaration order."""
    features: dict[str, tuple[str, ...]] = {}
    for table in tables:
        for feature, values in (table or {}).items():
            features[str(feature)] = tuple(str(v) for v in values or ())
    return features


def build_manifest(name: str, version: str, data: Mapping[str, Any]) -> Manifest:
    """Assemble a ``Manifest`` from a per-version declaration mapping."""
    return Manifest(
        name=name,
        version=version,
        dependencies=parse_dependencies(data.get("deps", data.get("dependencies"))),
        features=parse_features(data.get("features"), data.get("features2")),
    )
