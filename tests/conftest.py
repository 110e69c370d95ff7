"""Shared fixtures for offline tests.

Provides an in-memory platform that records every call, plus helpers to build
item trees. Tests mutate ``FakePlatform.items`` directly to simulate changes
made by users of the chat platform between passes.
"""

import asyncio
import itertools
import os
import sys
from collections.abc import Sequence
from dataclasses import replace
from pathlib import Path

# Only load pytest-asyncio explicitly when plugin auto-loading is disabled.
# This avoids duplicate plugin registration under IDE test discovery.
if os.environ.get("PYTEST_DISABLE_PLUGIN_AUTOLOAD") == "1":
    pytest_plugins = ("pytest_asyncio.plugin",)

# Ensure project root is on sys.path for module imports
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest  # noqa: E402
from autositemap.config import Settings  # noqa: E402
from autositemap.exceptions import PlatformError  # noqa: E402
from autositemap.models import Item, ItemKind, Message  # noqa: E402

SCOPE_ID = "guild"
ROOT_ID = "root"

# Platform calls that change remote state
MUTATING_CALLS = frozenset(
    {
        "create_item",
        "set_position",
        "delete_item",
        "bulk_delete",
        "send_message",
        "delete_message",
    }
)


def container(item_id: str, name: str, position: int = 0) -> Item:
    return Item(id=item_id, name=name, kind=ItemKind.CONTAINER, position=position)


def leaf(
    item_id: str, parent_id: str | None, position: int = 0, description: str | None = None
) -> Item:
    return Item(
        id=item_id,
        name=item_id,
        kind=ItemKind.LEAF,
        position=position,
        parent_id=parent_id,
        description=description,
    )


class FakePlatform:
    """In-memory implementation of the SitemapPlatform protocol."""

    def __init__(self, items: Sequence[Item] = ()) -> None:
        self.items: dict[str, Item] = {item.id: item for item in items}
        # Messages per item, oldest first
        self.messages: dict[str, list[Message]] = {}
        self.calls: list[tuple] = []
        self.fail: set[str] = set()
        self.list_delay: float = 0.0
        self.events: list[str] = []
        self._ids = itertools.count(1000)

    def _record(self, call: str, *args) -> None:
        self.calls.append((call, *args))
        if call in self.fail:
            raise PlatformError(f"{call} failed")

    def _new_id(self, prefix: str) -> str:
        return f"{prefix}-{next(self._ids)}"

    def calls_named(self, call: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == call]

    def mutations(self) -> list[tuple]:
        return [c for c in self.calls if c[0] in MUTATING_CALLS]

    def put(self, item: Item) -> None:
        self.items[item.id] = item

    def remove(self, *item_ids: str) -> None:
        for item_id in item_ids:
            self.items.pop(item_id, None)

    def children_of(self, parent_id: str) -> list[Item]:
        return sorted(
            (i for i in self.items.values() if i.parent_id == parent_id),
            key=lambda i: (i.position, i.id),
        )

    def entry_named(self, name: str) -> Item:
        return next(i for i in self.children_of(ROOT_ID) if i.name == name)

    def seed_messages(self, item_id: str, contents: Sequence[str]) -> None:
        self.messages[item_id] = [Message(id=self._new_id("msg"), content=c) for c in contents]

    # SitemapPlatform

    async def async_list_items(self, scope_id: str) -> list[Item]:
        self.events.append("list_start")
        self._record("list_items", scope_id)
        if self.list_delay:
            await asyncio.sleep(self.list_delay)
        self.events.append("list_end")
        return list(self.items.values())

    async def async_create_item(self, parent_id: str, name: str, position: int) -> Item:
        self._record("create_item", parent_id, name, position)
        item = Item(
            id=self._new_id("entry"),
            name=name,
            kind=ItemKind.LEAF,
            position=position,
            parent_id=parent_id,
        )
        self.items[item.id] = item
        return item

    async def async_set_position(self, item_id: str, position: int) -> None:
        self._record("set_position", item_id, position)
        self.items[item_id] = replace(self.items[item_id], position=position)

    async def async_delete_item(self, item_id: str) -> None:
        self._record("delete_item", item_id)
        self.items.pop(item_id)
        self.messages.pop(item_id, None)

    async def async_latest_message(self, item_id: str) -> Message | None:
        self._record("latest_message", item_id)
        messages = self.messages.get(item_id) or []
        return messages[-1] if messages else None

    async def async_list_messages(
        self, item_id: str, limit: int, before: str | None = None
    ) -> list[Message]:
        self._record("list_messages", item_id, limit, before)
        messages = self.messages.get(item_id) or []
        if before is not None:
            ids = [m.id for m in messages]
            messages = messages[: ids.index(before)] if before in ids else messages
        return list(reversed(messages))[:limit]

    async def async_bulk_delete(self, item_id: str, message_ids: Sequence[str]) -> None:
        self._record("bulk_delete", item_id, tuple(message_ids))
        drop = set(message_ids)
        self.messages[item_id] = [m for m in self.messages.get(item_id, []) if m.id not in drop]

    async def async_send_message(self, item_id: str, text: str) -> Message:
        self._record("send_message", item_id, text)
        message = Message(id=self._new_id("msg"), content=text)
        self.messages.setdefault(item_id, []).append(message)
        return message

    async def async_delete_message(self, item_id: str, message_id: str) -> None:
        self._record("delete_message", item_id, message_id)
        self.messages[item_id] = [m for m in self.messages.get(item_id, []) if m.id != message_id]


@pytest.fixture
def settings() -> Settings:
    return Settings(scope_id=SCOPE_ID, index_root_id=ROOT_ID, debounce_delay=0.05)


@pytest.fixture
def general_tree() -> list[Item]:
    """Index root plus one category "General" holding two channels."""

    return [
        container(ROOT_ID, "Sitemap", position=0),
        container("cat-general", "General", position=1),
        leaf("ch-rules", "cat-general", position=0),
        leaf("ch-intro", "cat-general", position=1, description="Say hello"),
    ]


@pytest.fixture
def platform(general_tree) -> FakePlatform:
    return FakePlatform(general_tree)
