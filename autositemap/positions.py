"""Minimal-disruption reordering of index entries.

Given the current positions of entries listed in their desired order, keep the
longest strictly increasing run in place and only reassign the rest. Slots
without a current position (entries that do not exist yet) are never part of
that run and receive a free slot the same way, which is where creates land.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence


def find_lis(positions: Sequence[int | None]) -> list[int]:
    """Return indices of the longest strictly increasing subsequence.

    Quadratic DP. Predecessors are taken from the first longest chain found;
    among chains of equal length the one ending at the later index wins, so
    trailing entries stay put. ``None`` entries are skipped.
    """

    n = len(positions)
    length = [1] * n
    prev = [-1] * n
    for i in range(n):
        current = positions[i]
        if current is None:
            length[i] = 0
            continue
        for j in range(i):
            earlier = positions[j]
            if earlier is not None and earlier < current and length[j] + 1 > length[i]:
                length[i] = length[j] + 1
                prev[i] = j

    best_length = 0
    best_index = -1
    for i in range(n):
        if length[i] and length[i] >= best_length:
            best_length = length[i]
            best_index = i

    chain: list[int] = []
    while best_index != -1:
        chain.append(best_index)
        best_index = prev[best_index]
    chain.reverse()
    return chain


def target_positions(positions: Sequence[int | None]) -> list[int]:
    """Assign a target position to every slot.

    LIS members keep their value. Every other slot takes the smallest value
    greater than the last assigned one that no other entry occupies and no
    earlier slot was given. A slot's own current value does not block it, so
    an entry that already sits on a free slot stays there.
    """

    keep = set(find_lis(positions))
    retained = {positions[i] for i in keep}
    # Current values of entries that may move, counted per value for duplicates
    movable = Counter(p for i, p in enumerate(positions) if i not in keep and p is not None)
    assigned: set[int] = set()
    targets: list[int] = []
    last = -1
    for i, current in enumerate(positions):
        if i in keep and current is not None:
            last = current
        else:
            candidate = last + 1
            while (
                candidate in retained
                or candidate in assigned
                or movable[candidate] - (candidate == current) > 0
            ):
                candidate += 1
            assigned.add(candidate)
            last = candidate
        targets.append(last)
    return targets


def adjust_positions(positions: Sequence[int | None]) -> list[int]:
    """Return per-slot deltas; zero means the entry stays where it is.

    For slots without a current position the delta is the absolute target.
    """

    return [
        target - (current or 0)
        for target, current in zip(target_positions(positions), positions, strict=True)
    ]
