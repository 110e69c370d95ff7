"""autositemap bootstrap.

Builds a ``SitemapManager`` for one scope from validated settings. Wiring the
manager's trigger inputs to the platform's event stream and to a scheduled
refresh is left to the hosting process.
"""

from __future__ import annotations

import logging

from .config import Settings, settings_from_env
from .const import DOMAIN, INTEGRATION_VERSION
from .manager import SitemapManager
from .platform import SitemapPlatform

__all__ = [
    "INTEGRATION_VERSION",
    "Settings",
    "SitemapManager",
    "SitemapPlatform",
    "async_setup",
    "async_unload",
    "settings_from_env",
]

LOGGER = logging.getLogger(__name__)


async def async_setup(platform: SitemapPlatform, settings: Settings) -> SitemapManager:
    """Create the manager for ``settings.scope_id``.

    Enables debug logging for the package when ``settings.debug`` is set.
    """

    if settings.debug:
        LOGGER.setLevel(logging.DEBUG)
        LOGGER.debug("Debug mode", extra={"domain": DOMAIN, "op": "setup"})

    manager = SitemapManager(platform, settings)
    LOGGER.info(
        "Sitemap manager ready",
        extra={
            "domain": DOMAIN,
            "op": "setup",
            "scope_id": settings.scope_id,
            "index_root_id": settings.index_root_id,
            "ignored_containers": len(settings.ignored_container_ids),
        },
    )
    return manager


async def async_unload(manager: SitemapManager) -> None:
    """Stop the manager after running any pending batch."""

    # Run pending notifications now instead of dropping them with the timer
    try:
        await manager.async_flush()
    except Exception:  # pragma: no cover - defensive
        LOGGER.warning(
            "Failed to flush pending sitemap work during unload",
            extra={"domain": DOMAIN, "op": "unload"},
            exc_info=True,
        )

    try:
        await manager.async_shutdown()
    except Exception:  # pragma: no cover - defensive
        LOGGER.warning(
            "Failed to shut down sitemap manager",
            extra={"domain": DOMAIN, "op": "unload"},
            exc_info=True,
        )
