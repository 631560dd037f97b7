"""Tests for GraphWalker traversal order, sharing and per-walk state.

Validates pre-order depth-first output, collapsing of shared dependencies,
renamed and dev dependencies, incremental feature activation on packages
that were already visited, and the ``all_features`` walk.
"""

from __future__ import annotations

from typing import Any

import pytest

from cratetree.core.dependency import (
    DependencyEdge,
    GraphWalker,
    Manifest,
    PackageVersion,
    ResolutionState,
    VersionConstraint,
    dependency_features,
)
from cratetree.exceptions import NoSatisfyingVersion
from cratetree.registry import StaticProvider


# ===========================================================================
# Helpers
# ===========================================================================


def _walker(data: dict[str, Any]) -> GraphWalker:
    return GraphWalker(StaticProvider.from_dict(data))


def _names(data: dict[str, Any], root: str, **kwargs: Any) -> list[str]:
    tree = _walker(data).walk(root, **kwargs)
    return [str(p) for p in tree.packages]


def _chain() -> dict[str, Any]:
    """a -> b -> c."""
    return {
        "a": {"1.0.0": {"dependencies": {"b": "^1"}}},
        "b": {"1.0.0": {"dependencies": {"c": "^1"}}},
        "c": {"1.0.0": {}},
    }


def _diamond() -> dict[str, Any]:
    """a -> b, a -> c, b -> d ^1, c -> d ^1.1."""
    return {
        "a": {"1.0.0": {"dependencies": {"b": "^1", "c": "^1"}}},
        "b": {"1.0.0": {"dependencies": {"d": "^1"}}},
        "c": {"1.0.0": {"dependencies": {"d": "^1.1"}}},
        "d": {"1.0.0": {}, "1.1.0": {}, "1.2.0": {}, "2.0.0": {}},
    }


# ===========================================================================
# Traversal order and sharing
# ===========================================================================


class TestTraversal:
    """Pre-order depth-first traversal with first-encountered-wins."""

    def test_chain(self) -> None:
        assert _names(_chain(), "a") == ["a@1.0.0", "b@1.0.0", "c@1.0.0"]

    def test_diamond_shared_dependency_once(self) -> None:
        assert _names(_diamond(), "a") == [
            "a@1.0.0", "b@1.0.0", "d@1.2.0", "c@1.0.0",
        ]

    def test_leaf_root(self) -> None:
        assert _names({"solo": {"0.1.0": {}}}, "solo") == ["solo@0.1.0"]

    def test_manifest_order_not_alphabetical(self) -> None:
        data = {
            "root": {"1.0.0": {"dependencies": {"zeta": "*", "alpha": "*"}}},
            "zeta": {"1.0.0": {}},
            "alpha": {"1.0.0": {}},
        }
        assert _names(data, "root") == ["root@1.0.0", "zeta@1.0.0", "alpha@1.0.0"]

    def test_renamed_dependency_resolves_registry_name(self) -> None:
        data = {
            "app": {
                "1.0.0": {
                    "dependencies": {"json": {"req": "^1", "package": "serde_json"}},
                    "features": {"pretty": ["json/pretty"]},
                }
            },
            "serde_json": {
                "1.0.100": {"features": {"pretty": []}},
            },
        }
        tree = _walker(data).walk("app", features=["pretty"])
        assert [str(p) for p in tree.packages] == ["app@1.0.0", "serde_json@1.0.100"]
        assert tree.ok

    def test_dev_dependencies_ignored(self) -> None:
        data = {
            "lib": {
                "1.0.0": {
                    "dependencies": [
                        {"name": "core", "req": "^1"},
                        {"name": "proptest", "req": "^99", "kind": "dev"},
                    ]
                }
            },
            "core": {"1.0.0": {}},
        }
        tree = _walker(data).walk("lib")
        assert [p.name for p in tree.packages] == ["lib", "core"]
        assert tree.ok

    def test_build_dependencies_resolved(self) -> None:
        data = {
            "sys": {
                "1.0.0": {"dependencies": [{"name": "cc", "req": "^1", "kind": "build"}]}
            },
            "cc": {"1.0.83": {}},
        }
        assert _names(data, "sys") == ["sys@1.0.0", "cc@1.0.83"]


# ===========================================================================
# Incremental feature activation
# ===========================================================================


class TestIncrementalFeatures:
    """A package reached again with new features gains their edges."""

    def _registry(self) -> dict[str, Any]:
        return {
            "a": {"1.0.0": {"dependencies": {"b": "^1", "c": "^1"}}},
            "b": {
                "1.0.0": {
                    "dependencies": {"d": {"req": "^1", "optional": True}},
                    "features": {"fast": ["dep:d"]},
                }
            },
            "c": {
                "1.0.0": {
                    "dependencies": {"b": {"req": "^1", "features": ["fast"]}}
                }
            },
            "d": {"1.0.0": {}},
        }

    def test_later_feature_request_walks_new_edges(self) -> None:
        assert _names(self._registry(), "a") == [
            "a@1.0.0", "b@1.0.0", "c@1.0.0", "d@1.0.0",
        ]

    def test_failure_attributed_to_feature_of_revisited_package(self) -> None:
        data = self._registry()
        data["d"] = {}
        tree = _walker(data).walk("a")
        assert [p.name for p in tree.packages] == ["a", "b", "c"]
        assert [(e.feature, str(e.package)) for e in tree.errors] == [
            ("fast", "b@1.0.0"),
        ]

    def test_unknown_feature_requested_by_edge(self) -> None:
        data = self._registry()
        data["c"]["1.0.0"]["dependencies"]["b"]["features"] = ["turbo"]
        tree = _walker(data).walk("a")
        assert [(e.feature, str(e.package), e.kind) for e in tree.errors] == [
            ("default", "c@1.0.0", "unknown-feature"),
        ]

    def test_unknown_feature_requested_by_parent_feature(self) -> None:
        data = {
            "a": {
                "1.0.0": {
                    "dependencies": {"b": "^1"},
                    "features": {"x": ["b/nope"]},
                }
            },
            "b": {"1.0.0": {}},
        }
        tree = _walker(data).walk("a", features=["x"])
        assert [p.name for p in tree.packages] == ["a", "b"]
        assert [(e.feature, str(e.package)) for e in tree.errors] == [("x", "a@1.0.0")]

    def test_dependency_feature_enables_nested_optional(self) -> None:
        data = {
            "a": {
                "1.0.0": {
                    "dependencies": {"b": "^1"},
                    "features": {"serde": ["b/serde"]},
                }
            },
            "b": {
                "1.0.0": {
                    "dependencies": {"serde": {"req": "^1", "optional": True}},
                }
            },
            "serde": {"1.0.190": {}},
        }
        assert _names(data, "a", features=["serde"]) == [
            "a@1.0.0", "b@1.0.0", "serde@1.0.190",
        ]
        assert _names(data, "a") == ["a@1.0.0", "b@1.0.0"]


# ===========================================================================
# all_features
# ===========================================================================


class TestAllFeatures:
    """Every dependency-enabling root feature is tried on its own."""

    def _registry(self) -> dict[str, Any]:
        return {
            "r": {
                "1.0.0": {
                    "dependencies": {
                        "x": {"req": "^1", "optional": True},
                        "y": {"req": "^1", "optional": True},
                        "z": {"req": "^1", "optional": True},
                    },
                    "features": {
                        "full": ["fx", "fy"],
                        "fx": ["dep:x"],
                        "fy": ["dep:y"],
                    },
                }
            },
            "x": {"1.0.0": {}},
            "y": {},
            "z": {"1.3.0": {}},
        }

    def test_dependency_features_listing(self) -> None:
        manifest = StaticProvider.from_dict(self._registry()).get_manifest("r", "1.0.0")
        assert dependency_features(manifest) == ["fx", "fy", "z"]

    def test_all_features_walk(self) -> None:
        tree = _walker(self._registry()).walk("r", all_features=True)
        assert [str(p) for p in tree.packages] == ["r@1.0.0", "x@1.0.0", "z@1.3.0"]
        assert [e.feature for e in tree.errors] == ["fy"]
        assert isinstance(tree.errors[0].cause, NoSatisfyingVersion)

    def test_requested_features_attributed_first(self) -> None:
        tree = _walker(self._registry()).walk(
            "r", features=["full"], all_features=True
        )
        assert [e.feature for e in tree.errors] == ["full"]

    def test_without_all_features(self) -> None:
        assert _names(self._registry(), "r") == ["r@1.0.0"]


# ===========================================================================
# ResolutionState
# ===========================================================================


class TestResolutionState:
    """Per-walk bookkeeping."""

    def test_commit_and_constrain(self) -> None:
        state = ResolutionState()
        pkg = PackageVersion("a", "1.0.0")
        state.commit(pkg, VersionConstraint("^1"), Manifest("a", "1.0.0"))
        state.constrain("a", VersionConstraint("<2"))
        assert state.chosen == {"a": pkg}
        assert [str(c) for c in state.constraints["a"]] == ["^1", "<2"]
        assert state.manifests[pkg].name == "a"

    def test_cycle_path(self) -> None:
        state = ResolutionState()
        a, b, c = (PackageVersion(n, "1.0.0") for n in "abc")
        state.path.extend([a, b, c])
        assert state.on_path(b)
        assert state.cycle(b) == ["b@1.0.0", "c@1.0.0", "b@1.0.0"]

    def test_walks_do_not_share_state(self) -> None:
        walker = _walker(_diamond())
        first = walker.walk("a")
        second = walker.walk("d", "=1.0.0")
        assert first.version_of("d") == "1.2.0"
        assert second.packages == (PackageVersion("d", "1.0.0"),)


class TestWalkerCollaborators:
    """Custom collaborators are honoured."""

    def test_custom_edge_objects(self) -> None:
        provider = StaticProvider()
        provider.add(
            Manifest(
                "a",
                "1.0.0",
                (DependencyEdge("b", VersionConstraint("=1.0.0")),),
            )
        )
        provider.add(Manifest("b", "1.0.0"))
        provider.add(Manifest("b", "1.1.0"))
        tree = GraphWalker(provider).walk("a")
        assert tree.version_of("b") == "1.0.0"

    def test_unknown_version_constraint_for_root(self) -> None:
        with pytest.raises(NoSatisfyingVersion):
            _walker(_chain()).walk("a", ">=2")
