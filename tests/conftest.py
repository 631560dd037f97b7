"""Shared fixtures for cratetree tests."""

from __future__ import annotations

from typing import Any, Callable

import pytest

from cratetree.core.dependency import Resolver
from cratetree.registry import StaticProvider


def _demo_registry() -> dict[str, Any]:
    """demo@1.0.0 requires core ^1.0; feature ``net`` enables sockets ^2.0.

    ``sockets`` is known to the registry but has no versions.
    """
    return {
        "demo": {
            "1.0.0": {
                "dependencies": {
                    "core": "^1.0",
                    "sockets": {"req": "^2.0", "optional": True},
                },
                "features": {"net": ["dep:sockets"]},
            },
        },
        "core": {"1.0.0": {}, "1.2.0": {}},
        "sockets": {},
    }


@pytest.fixture
def demo_registry() -> dict[str, Any]:
    """Raw snapshot of the demo registry."""
    return _demo_registry()


@pytest.fixture
def demo_provider(demo_registry: dict[str, Any]) -> StaticProvider:
    return StaticProvider.from_dict(demo_registry, name="demo")


@pytest.fixture
def make_resolver() -> Callable[[dict[str, Any]], Resolver]:
    """Factory building a ``Resolver`` over a registry snapshot dict."""

    def _make(data: dict[str, Any], **kwargs: Any) -> Resolver:
        return Resolver(StaticProvider.from_dict(data), **kwargs)

    return _make
