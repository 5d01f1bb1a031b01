"""
WHEEL GEOMETRY - circular adjacency and distance primitives

Positions are pocket labels; all math runs on their index in the sequence.
Distances for positions missing from the sequence are None, never a sentinel.
"""

from typing import Iterable, List, Optional, Sequence

from core.invariants import ROULETTE_WHEEL


def neighbors_of(position: int, count: int, sequence: Sequence[int] = ROULETTE_WHEEL) -> List[int]:
    """
    Positions reached stepping 1..count pockets each way around the wheel.

    Args:
        position: Pocket label
        count: Steps in each rotational direction (0 -> empty)
        sequence: Circular position ordering

    Returns:
        Deduplicated list, never containing position itself
    """
    if count <= 0 or position not in sequence:
        return []

    index = sequence.index(position)
    size = len(sequence)
    neighbours: List[int] = []
    for step in range(1, count + 1):
        for candidate in (sequence[(index - step) % size], sequence[(index + step) % size]):
            if candidate != position and candidate not in neighbours:
                neighbours.append(candidate)
    return neighbours


def pocket_distance(a: int, b: int, sequence: Sequence[int] = ROULETTE_WHEEL) -> Optional[int]:
    """Minimal step count between two pockets, or None if either is off-wheel."""
    if a not in sequence or b not in sequence:
        return None
    direct = abs(sequence.index(a) - sequence.index(b))
    return min(direct, len(sequence) - direct)


def min_pocket_distance(
    zone: Iterable[int],
    target: int,
    sequence: Sequence[int] = ROULETTE_WHEEL,
) -> Optional[int]:
    """Smallest pocket distance from any zone member to target."""
    best: Optional[int] = None
    for member in zone:
        distance = pocket_distance(member, target, sequence)
        if distance is not None and (best is None or distance < best):
            best = distance
    return best
