"""Shared fixtures for CLI tests.

Provides a CliRunner and registry snapshot files in JSON and YAML form so
the ``deps`` command can run without network access.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import yaml
from click.testing import CliRunner


@pytest.fixture
def runner(monkeypatch: pytest.MonkeyPatch) -> CliRunner:
    """CliRunner with no ``CRATETREE_*`` variables leaking in."""
    for key in ("INDEX_URL", "TIMEOUT", "INCLUDE_YANKED", "PREFETCH_WORKERS", "REGISTRY_FILE"):
        monkeypatch.delenv(f"CRATETREE_{key}", raising=False)
    return CliRunner()


@pytest.fixture
def registry_yaml(tmp_path: Path, demo_registry: dict[str, Any]) -> Path:
    path = tmp_path / "registry.yaml"
    path.write_text(yaml.safe_dump({"packages": demo_registry}))
    return path


@pytest.fixture
def registry_json(tmp_path: Path, demo_registry: dict[str, Any]) -> Path:
    path = tmp_path / "registry.json"
    path.write_text(json.dumps(demo_registry))
    return path
