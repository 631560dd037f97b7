"""Shared HTTP client utilities for registry providers.

Provides a thin wrapper around ``httpx.Client`` with standardised timeouts,
user-agent headers, and error handling, so HTTP behaviour is consistent and
easy to stub in tests.

A 404 is reported as ``None`` (the caller decides what "missing" means);
every other failure raises ``ProviderUnavailable``.
"""

from __future__ import annotations

import logging
from typing import Any

from cratetree.config import DEFAULT_TIMEOUT, USER_AGENT
from cratetree.exceptions import ProviderUnavailable

logger = logging.getLogger(__name__)


def _ensure_httpx() -> Any:  # noqa: ANN401
    """Lazily import httpx and raise a friendly error if missing.

    Returns:
        The ``httpx`` module.

    Raises:
        ProviderUnavailable: If httpx is not installed.
    """
    try:
        import httpx  # noqa: F811

        return httpx
    except ImportError as exc:
        raise ProviderUnavailable(
            "httpx is required for registry access.\n"
            "Install it with: pip install cratetree[registry]"
        ) from exc


def make_client(
    *,
    timeout: float = DEFAULT_TIMEOUT,
    user_agent: str = USER_AGENT,
) -> Any:  # noqa: ANN401
    """Create an ``httpx.Client`` with the standard headers and timeout."""
    httpx = _ensure_httpx()
    return httpx.Client(
        timeout=timeout,
        headers={"User-Agent": user_agent},
        follow_redirects=True,
    )


def fetch_text(client: Any, url: str) -> str | None:  # noqa: ANN401
    """Fetch *url* and return the response body as text.

    Args:
        client: An ``httpx.Client`` from ``make_client``.
        url: The URL to fetch.

    Returns:
        Response body text, or None if the server answered 404 or 410.

    Raises:
        ProviderUnavailable: On timeouts, transport errors and any other
            non-success status.
    """
    httpx = _ensure_httpx()
    try:
        resp = client.get(url)
    except httpx.TimeoutException as exc:
        logger.warning("Timeout fetching %s", url)
        raise ProviderUnavailable(f"timeout fetching {url}") from exc
    except httpx.RequestError as exc:
        logger.warning("Request error for %s: %s", url, exc)
        raise ProviderUnavailable(f"request error for {url}: {exc}") from exc

    if resp.status_code in (404, 410):
        return None
    if resp.status_code != 200:
        logger.warning("HTTP %d from %s", resp.status_code, url)
        raise ProviderUnavailable(f"HTTP {resp.status_code} from {url}")
    return resp.text
