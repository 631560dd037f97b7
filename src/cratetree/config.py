"""Runtime configuration for cratetree.

Values are layered, later layers winning:

1. Built-in defaults (``ResolverConfig`` field defaults)
2. A YAML file, either flat or under a top-level ``cratetree:`` key
3. ``CRATETREE_*`` environment variables
4. Explicit overrides (CLI options)

Example file::

    cratetree:
      index_url: https://index.crates.io
      timeout: 10
      prefetch_workers: 8
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping

import yaml

from cratetree import __version__
from cratetree.exceptions import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_INDEX_URL = "https://index.crates.io"
DEFAULT_TIMEOUT = 30.0
USER_AGENT = f"cratetree/{__version__}"

_ENV_PREFIX = "CRATETREE_"
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class ResolverConfig:
    """Settings for the metadata provider and the walker.

    Attributes:
        index_url: Base URL of the sparse registry index.
        timeout: HTTP timeout in seconds.
        user_agent: User-Agent header sent to the index.
        include_yanked: Offer yanked versions as resolution candidates.
        prefetch_workers: Threads used to prefetch sibling version lists;
            0 or 1 disables prefetching.
        registry_file: JSON or YAML registry snapshot to resolve against
            instead of the HTTP index.
    """

    index_url: str = DEFAULT_INDEX_URL
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = USER_AGENT
    include_yanked: bool = False
    prefetch_workers: int = 0
    registry_file: str | None = None

    def with_overrides(self, **overrides: Any) -> ResolverConfig:
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return _coerce(self, values, source="overrides")


def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> ResolverConfig:
    """Build a ``ResolverConfig`` from defaults, *path* and *env*.

    Args:
        path: Optional YAML config file.
        env: Environment mapping; ``os.environ`` when None.

    Raises:
        ConfigError: If the file is unreadable or a value is invalid.
    """
    config = ResolverConfig()
    if path is not None:
        config = _coerce(config, _read_file(Path(path)), source=str(path))

    env = os.environ if env is None else env
    from_env = {
        f.name: env[_ENV_PREFIX + f.name.upper()]
        for f in fields(ResolverConfig)
        if _ENV_PREFIX + f.name.upper() in env
    }
    if from_env:
        logger.debug("Config from environment: %s", sorted(from_env))
        config = _coerce(config, from_env, source="environment")
    return config


def _read_file(path: Path) -> dict[str, Any]:
    try:
        with path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in config file {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    section = data.get("cratetree", data)
    if not isinstance(section, dict):
        raise ConfigError(f"'cratetree' section of {path} must be a mapping")
    return section


def _coerce(base: ResolverConfig, values: Mapping[str, Any], source: str) -> ResolverConfig:
    known = {f.name: f for f in fields(ResolverConfig)}
    updates: dict[str, Any] = {}
    for key, raw in values.items():
        if key not in known:
            raise ConfigError(f"Unknown config key {key!r} in {source}")
        default = getattr(ResolverConfig(), key)
        try:
            if isinstance(default, bool):
                updates[key] = _as_bool(raw)
            elif isinstance(default, int):
                updates[key] = int(raw)
            elif isinstance(default, float):
                updates[key] = float(raw)
            else:
                updates[key] = None if raw is None else str(raw)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid value for {key!r} in {source}: {raw!r}") from exc

    config = replace(base, **updates)
    if config.timeout <= 0:
        raise ConfigError(f"timeout must be positive, got {config.timeout}")
    if config.prefetch_workers < 0:
        raise ConfigError(
            f"prefetch_workers must be >= 0, got {config.prefetch_workers}"
        )
    return config


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(value)
