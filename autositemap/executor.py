"""Best-effort execution of planned actions against the platform.

Actions run sequentially in plan order. A failing platform call is logged and
the executor moves on to the next action; there is no retry and no rollback.
The next pass (triggered by any later event or by the scheduled refresh)
heals whatever was left behind.
"""

from __future__ import annotations

import logging
from typing import Any

from .const import DOMAIN, MESSAGE_PAGE_SIZE
from .content import content_fingerprint
from .models import Action, ActionType, ExecutionReport
from .platform import SitemapPlatform

_LOGGER = logging.getLogger(__name__)

# Outcome markers returned by the per-action handlers
APPLIED = "applied"
SKIPPED = "skipped"
FAILED = "failed"


class ActionExecutor:
    """Applies actions for one index root."""

    def __init__(self, platform: SitemapPlatform, index_root_id: str) -> None:
        self._platform = platform
        self._index_root_id = index_root_id

    def _log_failure(self, message: str, op: str, **context: Any) -> None:
        _LOGGER.warning(
            message,
            exc_info=True,
            extra={"domain": DOMAIN, "op": op, **context},
        )

    async def async_execute(self, actions: list[Action]) -> ExecutionReport:
        report = ExecutionReport()
        for action in actions:
            if action.type is ActionType.CREATE:
                outcome = await self._async_create(action)
            elif action.type is ActionType.DELETE:
                outcome = await self._async_delete(action)
            elif action.type is ActionType.MOVE:
                outcome = await self._async_move(action)
            else:
                outcome = await self._async_refresh(action)

            if outcome == APPLIED:
                report.applied += 1
            elif outcome == SKIPPED:
                report.skipped += 1
            else:
                report.failed += 1
        return report

    async def _async_create(self, action: Action) -> str:
        op = "entry_create"
        try:
            item = await self._platform.async_create_item(
                self._index_root_id, action.name or "", action.position or 0
            )
        except Exception:
            self._log_failure("Failed to create sitemap entry", op, entry_name=action.name)
            return FAILED
        try:
            await self._platform.async_send_message(item.id, action.content or "")
        except Exception:
            self._log_failure(
                "Failed to send sitemap message", op, entry_name=action.name, item_id=item.id
            )
            return FAILED
        _LOGGER.debug(
            "Created sitemap entry",
            extra={"domain": DOMAIN, "op": op, "entry_name": action.name, "item_id": item.id},
        )
        return APPLIED

    async def _async_delete(self, action: Action) -> str:
        try:
            await self._platform.async_delete_item(action.item_id or "")
        except Exception:
            self._log_failure(
                "Failed to delete sitemap entry", "entry_delete", item_id=action.item_id
            )
            return FAILED
        return APPLIED

    async def _async_move(self, action: Action) -> str:
        try:
            await self._platform.async_set_position(action.item_id or "", action.position or 0)
        except Exception:
            self._log_failure(
                "Failed to move sitemap entry",
                "entry_move",
                item_id=action.item_id,
                position=action.position,
            )
            return FAILED
        return APPLIED

    async def _async_clear_older_messages(self, item_id: str, latest_id: str) -> None:
        """Bulk-delete everything older than ``latest_id`` page by page."""

        while True:
            try:
                page = await self._platform.async_list_messages(
                    item_id, MESSAGE_PAGE_SIZE, before=latest_id
                )
            except Exception:
                self._log_failure("Failed to list messages", "entry_refresh", item_id=item_id)
                return
            if page:
                try:
                    await self._platform.async_bulk_delete(item_id, [m.id for m in page])
                except Exception:
                    self._log_failure(
                        "Failed to delete messages", "entry_refresh", item_id=item_id
                    )
                    return
            if len(page) < MESSAGE_PAGE_SIZE:
                return

    async def _async_refresh(self, action: Action) -> str:
        op = "entry_refresh"
        item_id = action.item_id or ""
        content = action.content or ""
        try:
            latest = await self._platform.async_latest_message(item_id)
        except Exception:
            self._log_failure("Failed to get messages", op, item_id=item_id)
            return FAILED

        if latest is not None:
            await self._async_clear_older_messages(item_id, latest.id)
            current = content_fingerprint(latest.content)
            if current is not None and current == content_fingerprint(content):
                _LOGGER.debug(
                    "Sitemap entry unchanged",
                    extra={
                        "domain": DOMAIN,
                        "op": op,
                        "entry_name": action.name,
                        "item_id": item_id,
                    },
                )
                return SKIPPED
            try:
                await self._platform.async_delete_message(item_id, latest.id)
            except Exception:
                self._log_failure(
                    "Failed to delete stale message", op, item_id=item_id, message_id=latest.id
                )

        try:
            await self._platform.async_send_message(item_id, content)
        except Exception:
            self._log_failure("Failed to send sitemap message", op, item_id=item_id)
            return FAILED
        _LOGGER.debug(
            "Refreshed sitemap entry",
            extra={"domain": DOMAIN, "op": op, "entry_name": action.name, "item_id": item_id},
        )
        return APPLIED
