"""Metadata providers for package registries.

Provides the abstract provider interface, an in-memory snapshot provider,
the crates.io sparse index provider and a caching wrapper.

Public API::

    from cratetree.registry import MetadataProvider, StaticProvider
    from cratetree.registry import CratesIndexProvider, CachingProvider
    from cratetree.registry import provider_from_config
"""

from __future__ import annotations

import logging

from cratetree.config import ResolverConfig
from cratetree.registry.base import CachingProvider, MetadataProvider
from cratetree.registry.crates_index import CratesIndexProvider
from cratetree.registry.static import StaticProvider

logger = logging.getLogger(__name__)


def provider_from_config(config: ResolverConfig) -> MetadataProvider:
    """Build the provider described by *config*, wrapped in a cache.

    A ``registry_file`` selects a ``StaticProvider`` snapshot; otherwise the
    sparse index at ``index_url`` is used.
    """
    if config.registry_file:
        logger.debug("Using registry snapshot %s", config.registry_file)
        inner: MetadataProvider = StaticProvider.from_file(config.registry_file)
    else:
        logger.debug("Using sparse index %s", config.index_url)
        inner = CratesIndexProvider(
            config.index_url,
            timeout=config.timeout,
            user_agent=config.user_agent,
            include_yanked=config.include_yanked,
        )
    return CachingProvider(inner)


__all__ = [
    "CachingProvider",
    "CratesIndexProvider",
    "MetadataProvider",
    "StaticProvider",
    "provider_from_config",
]
