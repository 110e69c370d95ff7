"""Tests for notification debouncing and pass serialization."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest
from autositemap.manager import SitemapManager
from autositemap.models import FULL_BATCH, Batch


@pytest.mark.asyncio
async def test_burst_of_notifications_runs_one_pass(platform, settings) -> None:
    manager = SitemapManager(platform, settings)

    for item_id in ("ch-rules", "ch-intro", "cat-general"):
        await manager.async_notify([item_id])
        await asyncio.sleep(0.01)

    await asyncio.sleep(settings.debounce_delay + 0.2)

    assert len(platform.calls_named("list_items")) == 1
    assert len(platform.calls_named("create_item")) == 1
    await manager.async_shutdown()


@pytest.mark.asyncio
async def test_ids_accumulate_into_one_batch(platform, settings) -> None:
    manager = SitemapManager(platform, settings)
    manager.async_reconcile = AsyncMock(return_value=None)

    await manager.async_on_item_created("a")
    await manager.async_on_item_updated("b")
    await manager.async_on_item_deleted("a")
    await manager.async_flush()

    manager.async_reconcile.assert_awaited_once_with(Batch(ids=frozenset({"a", "b"})))


@pytest.mark.asyncio
async def test_full_refresh_supersedes_ids(platform, settings) -> None:
    manager = SitemapManager(platform, settings)
    manager.async_reconcile = AsyncMock(return_value=None)

    await manager.async_notify(["a"])
    await manager.async_refresh()
    await manager.async_notify(["b"])
    await manager.async_flush()

    manager.async_reconcile.assert_awaited_once_with(FULL_BATCH)


@pytest.mark.asyncio
async def test_scope_events_request_full_pass(platform, settings) -> None:
    manager = SitemapManager(platform, settings)
    manager.async_reconcile = AsyncMock(return_value=None)

    await manager.async_on_scope_joined()
    await manager.async_flush()
    await manager.async_on_scope_updated()
    await manager.async_flush()

    assert [c.args[0] for c in manager.async_reconcile.await_args_list] == [FULL_BATCH, FULL_BATCH]


@pytest.mark.asyncio
async def test_flush_without_pending_batch_does_nothing(platform, settings) -> None:
    manager = SitemapManager(platform, settings)
    manager.async_reconcile = AsyncMock(return_value=None)

    assert await manager.async_flush() is None
    manager.async_reconcile.assert_not_awaited()


@pytest.mark.asyncio
async def test_batch_is_reset_after_handoff(platform, settings) -> None:
    manager = SitemapManager(platform, settings)
    manager.async_reconcile = AsyncMock(return_value=None)

    await manager.async_notify(None)
    await manager.async_flush()
    await manager.async_notify(["x"])
    await manager.async_flush()

    assert manager.async_reconcile.await_args_list[-1].args[0] == Batch(ids=frozenset({"x"}))


@pytest.mark.asyncio
async def test_rearm_cancels_previous_timer(platform, settings) -> None:
    manager = SitemapManager(platform, settings)
    manager.async_reconcile = AsyncMock(return_value=None)

    await manager.async_notify(["a"])
    first = manager._timer
    await manager.async_notify(["b"])
    await asyncio.sleep(0.01)

    assert first is not None and first.done()
    assert manager._timer is not first
    await asyncio.sleep(settings.debounce_delay + 0.1)
    manager.async_reconcile.assert_awaited_once_with(Batch(ids=frozenset({"a", "b"})))


@pytest.mark.asyncio
async def test_overlapping_passes_are_serialized(platform, settings) -> None:
    manager = SitemapManager(platform, settings)
    platform.list_delay = 0.05

    await asyncio.gather(
        manager._async_run_pass(FULL_BATCH),
        manager._async_run_pass(FULL_BATCH),
    )

    assert platform.events == ["list_start", "list_end", "list_start", "list_end"]
    # The second pass saw the entry created by the first one
    assert len(platform.calls_named("create_item")) == 1


@pytest.mark.asyncio
async def test_shutdown_cancels_armed_timer(platform, settings) -> None:
    manager = SitemapManager(platform, settings)

    await manager.async_notify(None)
    await manager.async_shutdown()
    await asyncio.sleep(settings.debounce_delay + 0.1)

    assert platform.calls == []
