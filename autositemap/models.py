"""Typed models for autositemap.

This module defines the shapes exchanged between the reconciliation stages:
items of the external tree, messages, the desired and existing index entries,
planned actions and the batch handed from the debouncer to a pass.

The intent is to keep these models framework-agnostic and free of I/O. The
platform adapter produces ``Item`` and ``Message`` values; everything else is
derived from them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class ItemKind(str, Enum):
    """Kind of node in the external tree."""

    CONTAINER = "container"
    LEAF = "leaf"


@dataclass(frozen=True)
class Item:
    """A node of the external tree as reported by the platform."""

    id: str
    name: str
    kind: ItemKind
    position: int = 0
    parent_id: str | None = None
    description: str | None = None

    @property
    def is_container(self) -> bool:
        return self.kind is ItemKind.CONTAINER


@dataclass(frozen=True)
class Message:
    """A message posted inside an item. The latest one is the index entry body."""

    id: str
    content: str


@dataclass(frozen=True)
class ContainerGroup:
    """A container together with its leaf children ordered by position."""

    container: Item
    children: tuple[Item, ...]


@dataclass(frozen=True)
class DesiredEntry:
    """Index entry derived from a non-empty container group."""

    name: str
    content: str
    fingerprint: str
    container_id: str
    member_ids: tuple[str, ...] = ()


@dataclass
class ExistingEntry:
    """An item currently materialized under the index root.

    ``fingerprint`` is only known once the entry's latest message was read.
    """

    id: str
    name: str
    position: int
    fingerprint: str | None = None


class ActionType(str, Enum):
    """Mutations the planner can emit."""

    CREATE = "create"
    MOVE = "move"
    DELETE = "delete"
    REFRESH_MESSAGE = "refresh_message"


@dataclass(frozen=True)
class Action:
    """A planned mutation against the platform.

    ``name`` is carried by every action derived from a desired entry so the
    incremental filter can match it; ``item_id`` is set for actions on an
    existing entry.
    """

    type: ActionType
    name: str | None = None
    item_id: str | None = None
    content: str | None = None
    position: int | None = None


@dataclass(frozen=True)
class Batch:
    """Targets captured from the pending batch when the quiet window ends.

    An empty ``ids`` set is treated as a full pass.
    """

    full: bool = False
    ids: frozenset[str] = frozenset()

    @property
    def is_full(self) -> bool:
        return self.full or not self.ids


FULL_BATCH = Batch(full=True)


@dataclass
class Snapshot:
    """Partitioned view of the tree used by one reconciliation pass."""

    root: Item
    existing: list[ExistingEntry] = field(default_factory=list)
    groups: list[ContainerGroup] = field(default_factory=list)


@dataclass
class Plan:
    """Outcome of planning one pass, before execution."""

    desired: list[DesiredEntry] = field(default_factory=list)
    existing: list[ExistingEntry] = field(default_factory=list)
    actions: list[Action] = field(default_factory=list)
    related_names: set[str] | None = None

    def counts(self) -> dict[str, int]:
        result = {t.value: 0 for t in ActionType}
        for action in self.actions:
            result[action.type.value] += 1
        return result


@dataclass
class ExecutionReport:
    """Per-pass execution counters."""

    applied: int = 0
    skipped: int = 0
    failed: int = 0

    @property
    def total(self) -> int:
        return self.applied + self.skipped + self.failed
