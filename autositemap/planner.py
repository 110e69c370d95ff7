"""Action planning for a reconciliation pass.

Turns the desired entries and the entries currently under the index root into
an ordered action list: creates, message refreshes, deletes, then moves. The
incremental filter narrows creates and refreshes to entries related to the
ids that triggered the pass; structural deletes and moves always proceed.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence

from .const import DOMAIN
from .models import Action, ActionType, DesiredEntry, ExistingEntry
from .positions import target_positions

LOGGER = logging.getLogger(__name__)

# Action types subject to the incremental filter
FILTERED_TYPES: frozenset[ActionType] = frozenset({ActionType.CREATE, ActionType.REFRESH_MESSAGE})


def split_names(
    desired: Sequence[str], existing: Sequence[str]
) -> tuple[list[str], list[str], list[str]]:
    """Return (desired only, both, existing only), each in input order."""

    existing_set = set(existing)
    desired_set = set(desired)
    create_only = [name for name in desired if name not in existing_set]
    keep = [name for name in desired if name in existing_set]
    delete_only = [name for name in existing if name not in desired_set]
    return create_only, keep, delete_only


def plan_actions(
    desired: Sequence[DesiredEntry], existing: Iterable[ExistingEntry]
) -> list[Action]:
    """Diff desired against existing entries.

    When several existing entries share a desired name, the first one (lowest
    position) is kept and the others are deleted.
    """

    desired_names = [entry.name for entry in desired]
    desired_set = set(desired_names)
    matched: dict[str, ExistingEntry] = {}
    extra: list[ExistingEntry] = []
    for entry in existing:
        if entry.name in desired_set and entry.name not in matched:
            matched[entry.name] = entry
        else:
            extra.append(entry)

    create_only, keep, _ = split_names(desired_names, list(matched))
    targets = target_positions(
        [matched[name].position if name in matched else None for name in desired_names]
    )
    target_by_name = dict(zip(desired_names, targets, strict=True))
    content_by_name = {entry.name: entry.content for entry in desired}

    actions: list[Action] = []
    for name in create_only:
        actions.append(
            Action(
                ActionType.CREATE,
                name=name,
                content=content_by_name[name],
                position=target_by_name[name],
            )
        )
    for name in keep:
        actions.append(
            Action(
                ActionType.REFRESH_MESSAGE,
                name=name,
                item_id=matched[name].id,
                content=content_by_name[name],
            )
        )
    for entry in extra:
        actions.append(Action(ActionType.DELETE, name=entry.name, item_id=entry.id))
    for name in keep:
        current = matched[name]
        if target_by_name[name] != current.position:
            actions.append(
                Action(
                    ActionType.MOVE,
                    name=name,
                    item_id=current.id,
                    position=target_by_name[name],
                )
            )
    return actions


def resolve_related_names(
    targets: Iterable[str],
    id2name: Mapping[str, str],
    entry_contents: Mapping[str, str] | None = None,
) -> set[str]:
    """Resolve changed ids to the entry names they affect.

    Ids missing from ``id2name`` (usually deleted items) are looked up as a
    literal substring of the existing entry bodies in ``entry_contents``
    (entry name -> latest message content); the first entry containing the
    id counts as related.
    """

    related: set[str] = set()
    unresolved: list[str] = []
    for target in targets:
        name = id2name.get(target)
        if name is not None:
            related.add(name)
        else:
            unresolved.append(target)

    if unresolved and entry_contents:
        for target in unresolved:
            for name, content in entry_contents.items():
                if target in content:
                    related.add(name)
                    break
    LOGGER.debug(
        "Resolved related sitemap entries",
        extra={
            "domain": DOMAIN,
            "op": "resolve_related",
            "related": sorted(related),
            "unresolved": len(unresolved),
        },
    )
    return related


def filter_actions(actions: Iterable[Action], related_names: set[str]) -> list[Action]:
    """Drop creates and refreshes of entries unrelated to the changed ids."""

    return [
        action
        for action in actions
        if action.type not in FILTERED_TYPES or action.name in related_names
    ]
