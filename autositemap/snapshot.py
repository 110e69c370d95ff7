"""Snapshot partitioning and desired-state derivation.

Functions in this module are pure: they receive the flat item list fetched by
the manager and produce the pieces a pass needs: the index root, the entries
already materialized under it, the container groups to index, the desired
entries derived from them and the id -> entry name association.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from .const import DEFAULT_NAME_PREFIX, DOMAIN
from .content import derive_entry
from .exceptions import NameCollisionError, SnapshotError
from .models import ContainerGroup, DesiredEntry, ExistingEntry, Item, ItemKind, Snapshot

LOGGER = logging.getLogger(__name__)


def _by_position(item: Item) -> tuple[int, str]:
    return (item.position, item.id)


def partition_items(
    items: Iterable[Item],
    *,
    index_root_id: str,
    ignored_container_ids: Iterable[str] = (),
) -> Snapshot:
    """Split the flat item list into root, existing entries and container groups.

    Raises SnapshotError when the index root is not part of ``items``.
    Groups are ordered by container position; children by their own position.
    Groups may be empty here; see ``non_empty_groups``.
    """

    ignored = set(ignored_container_ids)
    root: Item | None = None
    existing: list[ExistingEntry] = []
    containers: list[Item] = []
    children_by_parent: dict[str, list[Item]] = {}

    for item in items:
        if item.id == index_root_id:
            root = item
        elif item.parent_id == index_root_id:
            existing.append(ExistingEntry(id=item.id, name=item.name, position=item.position))
        elif item.kind is ItemKind.CONTAINER:
            if item.id not in ignored:
                containers.append(item)
        elif item.parent_id is not None:
            children_by_parent.setdefault(item.parent_id, []).append(item)

    if root is None:
        raise SnapshotError(f"index root {index_root_id} not found in scope")

    containers.sort(key=_by_position)
    groups = [
        ContainerGroup(
            container=container,
            children=tuple(sorted(children_by_parent.get(container.id, []), key=_by_position)),
        )
        for container in containers
    ]
    existing.sort(key=lambda entry: (entry.position, entry.id))
    return Snapshot(root=root, existing=existing, groups=groups)


def non_empty_groups(groups: Iterable[ContainerGroup]) -> list[ContainerGroup]:
    return [group for group in groups if group.children]


def build_desired_entries(
    groups: Iterable[ContainerGroup],
    *,
    prefix: str = DEFAULT_NAME_PREFIX,
    strip_pattern: re.Pattern[str] | None = None,
) -> list[DesiredEntry]:
    """Derive one entry per non-empty group, preserving group order.

    Raises NameCollisionError when two groups derive the same name, and lets
    FingerprintError propagate; both abort the pass.
    """

    entries: list[DesiredEntry] = []
    seen: dict[str, str] = {}
    for group in non_empty_groups(groups):
        entry = derive_entry(group, prefix=prefix, strip_pattern=strip_pattern)
        if entry.name in seen:
            LOGGER.error(
                "Duplicate sitemap entry name",
                extra={
                    "domain": DOMAIN,
                    "op": "derive_entries",
                    "entry_name": entry.name,
                    "container_ids": [seen[entry.name], entry.container_id],
                },
            )
            raise NameCollisionError(f"duplicate sitemap entry name: {entry.name}", name=entry.name)
        seen[entry.name] = entry.container_id
        entries.append(entry)
    return entries


def build_related_names(entries: Iterable[DesiredEntry]) -> dict[str, str]:
    """Map every container id and member id to its entry name."""

    related: dict[str, str] = {}
    for entry in entries:
        related[entry.container_id] = entry.name
        for member_id in entry.member_ids:
            related[member_id] = entry.name
    return related
