"""crates.io sparse index provider.

Reads package metadata from a sparse registry index over HTTP. Each package
has one index file at ``<index_url>/<prefix>/<name>`` holding one JSON
object per published version::

    {"name": "demo", "vers": "1.0.0",
     "deps": [{"name": "core", "req": "^1.0", "features": [],
               "optional": false, "default_features": true,
               "target": null, "kind": "normal"}],
     "features": {"net": ["dep:sockets"]}, "features2": {},
     "yanked": false}

Usage::

    provider = CratesIndexProvider()
    provider.list_versions("serde")
"""

from __future__ import annotations

import json
import logging
import threading
from typing import Any

from cratetree.config import DEFAULT_INDEX_URL, DEFAULT_TIMEOUT, USER_AGENT
from cratetree.core.dependency.models import Manifest
from cratetree.exceptions import PackageNotFound, ProviderUnavailable
from cratetree.registry.base import MetadataProvider, build_manifest
from cratetree.registry.http_client import fetch_text, make_client

logger = logging.getLogger(__name__)


def index_path(name: str) -> str:
    """Relative index path of *name* (``se/rd/serde``, ``3/s/syn``, ...)."""
    lowered = name.lower()
    if len(lowered) <= 2:
        return f"{len(lowered)}/{lowered}"
    if len(lowered) == 3:
        return f"3/{lowered[0]}/{lowered}"
    return f"{lowered[:2]}/{lowered[2:4]}/{lowered}"


class CratesIndexProvider(MetadataProvider):
    """Metadata provider reading a sparse registry index.

    Index files are fetched once per provider instance; both version
    listing and manifest lookup are answered from the same file.

    Args:
        index_url: Base URL of the sparse index.
        timeout: HTTP timeout in seconds.
        user_agent: User-Agent header.
        include_yanked: List yanked versions as candidates.
        client: Pre-built ``httpx.Client``; created lazily when omitted.
    """

    def __init__(
        self,
        index_url: str = DEFAULT_INDEX_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        user_agent: str = USER_AGENT,
        include_yanked: bool = False,
        client: Any = None,  # noqa: ANN401
    ) -> None:
        self._index_url = index_url.rstrip("/")
        self._timeout = timeout
        self._user_agent = user_agent
        self._include_yanked = include_yanked
        self._client = client
        self._entries: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = threading.Lock()

    @property
    def registry_name(self) -> str:
        if self._index_url == DEFAULT_INDEX_URL:
            return "crates.io"
        return self._index_url

    def list_versions(self, name: str) -> list[str]:
        entries = self._index_entries(name)
        return [
            version
            for version, entry in entries.items()
            if self._include_yanked or not entry.get("yanked", False)
        ]

    def get_manifest(self, name: str, version: str) -> Manifest:
        entry = self._index_entries(name).get(version)
        if entry is None:
            raise PackageNotFound(name, version)
        try:
            return build_manifest(str(entry.get("name", name)), version, entry)
        except (ValueError, TypeError, AttributeError) as exc:
            raise ProviderUnavailable(
                f"invalid index entry for {name}@{version}: {exc}"
            ) from exc

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    # -- internal -----------------------------------------------------------

    def _http(self) -> Any:  # noqa: ANN401
        with self._lock:
            if self._client is None:
                self._client = make_client(
                    timeout=self._timeout, user_agent=self._user_agent
                )
            return self._client

    def _index_entries(self, name: str) -> dict[str, dict[str, Any]]:
        with self._lock:
            cached = self._entries.get(name)
        if cached is not None:
            return cached

        url = f"{self._index_url}/{index_path(name)}"
        logger.debug("Fetching index file %s", url)
        text = fetch_text(self._http(), url)
        if text is None:
            raise PackageNotFound(name)

        entries = parse_index_file(name, text)
        with self._lock:
            self._entries[name] = entries
        return entries


def parse_index_file(name: str, text: str) -> dict[str, dict[str, Any]]:
    """Parse newline-delimited index JSON into ``{version: entry}``.

    Raises:
        ProviderUnavailable: If a line is not a JSON object with ``vers``.
    """
    entries: dict[str, dict[str, Any]] = {}
    for lineno, line in enumerate(text.splitlines(), start=1):
        line = line.strip()
        if not line:
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError as exc:
            raise ProviderUnavailable(
                f"malformed index file for {name} (line {lineno}): {exc}"
            ) from exc
        if not isinstance(entry, dict) or "vers" not in entry:
            raise ProviderUnavailable(
                f"malformed index file for {name} (line {lineno}): missing 'vers'"
            )
        entries[str(entry["vers"])] = entry
    return entries
