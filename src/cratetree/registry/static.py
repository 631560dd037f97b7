"""In-memory registry snapshot, loadable from JSON or YAML.

A snapshot maps package names to versions and each version to its
declaration::

    packages:
      demo:
        "1.0.0":
          dependencies:
            core: "^1.0"
            sockets: {req: "^2.0", optional: true}
          features:
            net: ["dep:sockets"]
      core:
        "1.0.0": {}
        "1.2.0": {}
      sockets: {}

A name listed with no versions is known to the registry but has nothing to
offer, which the resolver reports as ``NoSatisfyingVersion``. A name that is
not listed at all raises ``PackageNotFound``.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

import yaml

from cratetree.core.dependency.models import Manifest
from cratetree.exceptions import PackageNotFound, ProviderUnavailable
from cratetree.registry.base import MetadataProvider, build_manifest

logger = logging.getLogger(__name__)


class StaticProvider(MetadataProvider):
    """Metadata provider over a fixed set of manifests.

    Args:
        manifests: Package name -> {version -> Manifest}.
        name: Registry name reported by ``registry_name``.
    """

    def __init__(
        self,
        manifests: Mapping[str, Mapping[str, Manifest]] | None = None,
        name: str = "static",
    ) -> None:
        self._manifests: dict[str, dict[str, Manifest]] = {
            pkg: dict(versions) for pkg, versions in (manifests or {}).items()
        }
        self._name = name

    @property
    def registry_name(self) -> str:
        return self._name

    def add(self, manifest: Manifest) -> None:
        """Add or replace one package version."""
        self._manifests.setdefault(manifest.name, {})[manifest.version] = manifest

    def declare(self, name: str) -> None:
        """Make *name* known to the registry, with no versions."""
        self._manifests.setdefault(name, {})

    def list_versions(self, name: str) -> list[str]:
        versions = self._manifests.get(name)
        if versions is None:
            raise PackageNotFound(name)
        return list(versions)

    def get_manifest(self, name: str, version: str) -> Manifest:
        manifest = self._manifests.get(name, {}).get(version)
        if manifest is None:
            raise PackageNotFound(name, version)
        return manifest

    # -- loading ------------------------------------------------------------

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], name: str = "static") -> StaticProvider:
        """Build a provider from a snapshot mapping.

        Raises:
            ProviderUnavailable: If the snapshot is malformed.
        """
        packages = data.get("packages", data)
        if not isinstance(packages, Mapping):
            raise ProviderUnavailable("registry snapshot must map package names to versions")
        provider = cls(name=name)
        for pkg_name, versions in packages.items():
            provider.declare(str(pkg_name))
            if not versions:
                continue
            if not isinstance(versions, Mapping):
                raise ProviderUnavailable(
                    f"versions of {pkg_name!r} must be a mapping, got {type(versions).__name__}"
                )
            for version, decl in versions.items():
                try:
                    manifest = build_manifest(str(pkg_name), str(version), decl or {})
                except (ValueError, TypeError, AttributeError) as exc:
                    raise ProviderUnavailable(
                        f"invalid declaration for {pkg_name}@{version}: {exc}"
                    ) from exc
                provider.add(manifest)
        logger.debug("Loaded %d packages into %s registry", len(provider._manifests), name)
        return provider

    @classmethod
    def from_file(cls, path: str | Path) -> StaticProvider:
        """Load a snapshot from a ``.json``, ``.yaml`` or ``.yml`` file.

        Raises:
            ProviderUnavailable: If the file cannot be read or parsed.
        """
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except OSError as exc:
            raise ProviderUnavailable(f"cannot read registry file {path}: {exc}") from exc
        try:
            if path.suffix.lower() == ".json":
                data = json.loads(text)
            else:
                data = yaml.safe_load(text)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise ProviderUnavailable(f"cannot parse registry file {path}: {exc}") from exc
        if not isinstance(data, Mapping):
            raise ProviderUnavailable(f"registry file {path} must contain a mapping")
        return cls.from_dict(data, name=path.name)
