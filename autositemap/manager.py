"""Sitemap manager: notification debouncing and reconciliation passes.

Change notifications (one per changed item, or a full refresh) accumulate in
a pending batch guarded by an ``asyncio.Lock``. Every notification re-arms a
single-shot timer; when the quiet window elapses the batch is swapped for an
empty one and handed to a reconciliation pass.

A pass fetches the item tree once, derives the desired index entries, diffs
them against the entries under the index root and executes the resulting
actions. Passes are serialized: a pass scheduled while another one is still
issuing API calls waits for it and then plans from a fresh snapshot.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Iterable

from .config import Settings
from .const import DOMAIN
from .content import content_fingerprint
from .exceptions import SitemapError, SnapshotError
from .executor import ActionExecutor
from .models import FULL_BATCH, Batch, ExecutionReport, ExistingEntry, Plan
from .planner import filter_actions, plan_actions, resolve_related_names
from .platform import SitemapPlatform
from .snapshot import build_desired_entries, build_related_names, partition_items

LOGGER = logging.getLogger(__name__)


class SitemapManager:
    """Keeps the index entries under one index root in sync with the tree."""

    def __init__(self, platform: SitemapPlatform, settings: Settings) -> None:
        self._platform = platform
        self._settings = settings
        self._executor = ActionExecutor(platform, settings.index_root_id)

        # Pending batch state, only touched under _batch_lock
        self._batch_lock = asyncio.Lock()
        self._pending_full = False
        self._pending_ids: set[str] = set()
        self._pending = False
        self._timer: asyncio.Task[None] | None = None

        # Single-flight guard for passes
        self._pass_lock = asyncio.Lock()
        self._passes: set[asyncio.Task[ExecutionReport | None]] = set()

        # Caches rebuilt by every pass
        self._entry_ids: set[str] = set()
        self._id2related_name: dict[str, str] = {}

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def related_names(self) -> dict[str, str]:
        """Copy of the id -> entry name association from the last pass."""
        return dict(self._id2related_name)

    @property
    def known_entry_ids(self) -> frozenset[str]:
        return frozenset(self._entry_ids)

    # -----------------------------
    # Debouncing
    # -----------------------------

    async def async_notify(self, targets: Iterable[str] | None) -> None:
        """Record changed ids (or a full refresh when ``targets`` is None).

        A full refresh supersedes accumulated ids; ids arriving while a full
        refresh is pending are dropped. The quiet window restarts on every call.
        """

        async with self._batch_lock:
            if targets is None:
                self._pending_full = True
                self._pending_ids.clear()
            elif not self._pending_full:
                self._pending_ids.update(targets)
            self._pending = True
            self._arm_timer()

    def _arm_timer(self) -> None:
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
            LOGGER.debug(
                "Cancelled pending sitemap timer",
                extra={"domain": DOMAIN, "op": "debounce_cancel"},
            )
        LOGGER.debug(
            "Sitemap update requested, debouncing",
            extra={
                "domain": DOMAIN,
                "op": "debounce_request",
                "delay_s": self._settings.debounce_delay,
                "full": self._pending_full,
                "targets": len(self._pending_ids),
            },
        )
        self._timer = asyncio.create_task(self._async_delayed_fire())

    def _take_batch(self) -> Batch | None:
        """Swap the pending batch for an empty one. Caller holds _batch_lock."""

        if not self._pending:
            return None
        batch = FULL_BATCH if self._pending_full else Batch(ids=frozenset(self._pending_ids))
        self._pending_full = False
        self._pending_ids = set()
        self._pending = False
        return batch

    async def _async_delayed_fire(self) -> None:
        """Hand the pending batch to a pass once the quiet window elapses."""
        try:
            await asyncio.sleep(self._settings.debounce_delay)
            async with self._batch_lock:
                batch = self._take_batch()
        except asyncio.CancelledError:
            LOGGER.debug(
                "Debounced sitemap timer cancelled",
                extra={"domain": DOMAIN, "op": "debounce_cancelled"},
            )
            return
        if batch is not None:
            self._start_pass(batch)

    def _start_pass(self, batch: Batch) -> None:
        task = asyncio.create_task(self._async_run_pass(batch))
        self._passes.add(task)
        task.add_done_callback(self._passes.discard)

    # -----------------------------
    # Trigger inputs
    # -----------------------------

    async def async_on_item_created(self, item_id: str) -> None:
        await self.async_notify([item_id])

    async def async_on_item_updated(self, item_id: str) -> None:
        await self.async_notify([item_id])

    async def async_on_item_deleted(self, item_id: str) -> None:
        await self.async_notify([item_id])

    async def async_on_scope_joined(self) -> None:
        await self.async_notify(None)

    async def async_on_scope_updated(self) -> None:
        await self.async_notify(None)

    async def async_refresh(self) -> None:
        """Request a full reconciliation (used by the scheduled refresh)."""
        LOGGER.info("Refreshing sitemaps", extra={"domain": DOMAIN, "op": "refresh"})
        await self.async_notify(None)

    async def async_flush(self) -> ExecutionReport | None:
        """Run the pending batch now, bypassing the quiet window.

        Returns None when nothing was pending or the pass did nothing.
        """

        async with self._batch_lock:
            if self._timer is not None and not self._timer.done():
                self._timer.cancel()
            batch = self._take_batch()
        if batch is None:
            return None
        return await self._async_run_pass(batch)

    async def async_shutdown(self) -> None:
        """Cancel the armed timer and wait for in-flight passes."""

        async with self._batch_lock:
            if self._timer is not None and not self._timer.done():
                self._timer.cancel()
            self._timer = None
        if self._passes:
            await asyncio.gather(*list(self._passes), return_exceptions=True)

    # -----------------------------
    # Reconciliation
    # -----------------------------

    async def _async_run_pass(self, batch: Batch) -> ExecutionReport | None:
        """Run one pass, logging fatal errors instead of raising them."""

        async with self._pass_lock:
            try:
                return await self.async_reconcile(batch)
            except SitemapError:
                LOGGER.error(
                    "Sitemap pass aborted",
                    exc_info=True,
                    extra={"domain": DOMAIN, "op": "reconcile", "full": batch.is_full},
                )
            except Exception:  # pragma: no cover - defensive
                LOGGER.error(
                    "Unhandled sitemap pass error",
                    exc_info=True,
                    extra={"domain": DOMAIN, "op": "reconcile", "full": batch.is_full},
                )
        return None

    def _only_index_changes(self, batch: Batch) -> bool:
        """True when every target is the index root or one of its entries.

        Such batches come from the engine's own writes and never need a pass.
        """

        if batch.is_full:
            return False
        root_id = self._settings.index_root_id
        return all(target == root_id or target in self._entry_ids for target in batch.ids)

    async def async_plan(self, batch: Batch = FULL_BATCH) -> Plan | None:
        """Build the action plan for ``batch`` without executing it.

        Returns None when the fast path applies. Raises SnapshotError,
        NameCollisionError or FingerprintError when the pass must abort.
        """

        op = "plan"
        if self._only_index_changes(batch):
            LOGGER.debug(
                "Only sitemap entries changed, skipping pass",
                extra={"domain": DOMAIN, "op": op, "targets": len(batch.ids)},
            )
            return None

        try:
            items = await self._platform.async_list_items(self._settings.scope_id)
        except Exception as exc:
            raise SnapshotError("failed to fetch items") from exc

        snapshot = partition_items(
            items,
            index_root_id=self._settings.index_root_id,
            ignored_container_ids=self._settings.ignored_container_ids,
        )
        self._entry_ids = {entry.id for entry in snapshot.existing}
        if self._only_index_changes(batch):
            LOGGER.debug(
                "Only sitemap entries changed, skipping pass",
                extra={"domain": DOMAIN, "op": op, "targets": len(batch.ids)},
            )
            return None

        desired = build_desired_entries(
            snapshot.groups,
            prefix=self._settings.name_prefix,
            strip_pattern=self._settings.strip_name_prefix,
        )
        self._id2related_name = build_related_names(desired)

        plan = Plan(
            desired=desired,
            existing=snapshot.existing,
            actions=plan_actions(desired, snapshot.existing),
        )
        if not batch.is_full:
            plan.related_names = await self._async_related_names(batch.ids, snapshot.existing)
            plan.actions = filter_actions(plan.actions, plan.related_names)
        return plan

    async def _async_related_names(
        self, targets: Iterable[str], existing: list[ExistingEntry]
    ) -> set[str]:
        targets = list(targets)
        contents: dict[str, str] = {}
        if any(target not in self._id2related_name for target in targets):
            # Unknown ids are usually deleted items; look for them in entry bodies
            for entry in existing:
                try:
                    message = await self._platform.async_latest_message(entry.id)
                except Exception:
                    LOGGER.debug(
                        "Failed to read sitemap entry",
                        exc_info=True,
                        extra={"domain": DOMAIN, "op": "resolve_related", "item_id": entry.id},
                    )
                    continue
                if message is None:
                    continue
                entry.fingerprint = content_fingerprint(message.content)
                contents[entry.name] = message.content
        return resolve_related_names(targets, self._id2related_name, contents)

    async def async_reconcile(self, batch: Batch = FULL_BATCH) -> ExecutionReport | None:
        """Plan and execute one pass. Fatal errors propagate to the caller."""

        start_time = time.monotonic()
        plan = await self.async_plan(batch)
        if plan is None:
            return None
        report = await self._executor.async_execute(plan.actions)
        LOGGER.info(
            "Sitemap pass finished",
            extra={
                "domain": DOMAIN,
                "op": "reconcile",
                "full": batch.is_full,
                "entries": len(plan.desired),
                "actions": plan.counts(),
                "applied": report.applied,
                "skipped": report.skipped,
                "failed": report.failed,
                "elapsed_ms": int((time.monotonic() - start_time) * 1000),
            },
        )
        return report
