"""Contract of the chat platform consumed by the reconciliation engine.

The engine never talks to the network itself. An adapter implementing
``SitemapPlatform`` wraps the platform client (pagination, rate limiting,
authentication) and is expected to raise on a failed call; ``PlatformError``
is provided for that purpose.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from .models import Item, Message


@runtime_checkable
class SitemapPlatform(Protocol):
    """Item tree and message store of one chat platform scope."""

    async def async_list_items(self, scope_id: str) -> list[Item]:
        """Return every item of the scope."""

    async def async_create_item(self, parent_id: str, name: str, position: int) -> Item:
        """Create a container entry under ``parent_id``."""

    async def async_set_position(self, item_id: str, position: int) -> None: ...

    async def async_delete_item(self, item_id: str) -> None: ...

    async def async_latest_message(self, item_id: str) -> Message | None:
        """Return the most recent message of ``item_id`` or None when empty."""

    async def async_list_messages(
        self, item_id: str, limit: int, before: str | None = None
    ) -> list[Message]:
        """Return up to ``limit`` messages older than ``before``, newest first."""

    async def async_bulk_delete(self, item_id: str, message_ids: Sequence[str]) -> None: ...

    async def async_send_message(self, item_id: str, text: str) -> Message: ...

    async def async_delete_message(self, item_id: str, message_id: str) -> None: ...
