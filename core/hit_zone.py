"""
HIT ZONE RESOLVER
=================

A prediction group's hit zone is its wrapped base position plus the base's
terminals, each widened by wheel neighbours.

Neighbour counts depend ONLY on how many terminals the base has:

    terminals | base neighbours | terminal neighbours
    ----------+-----------------+--------------------
        0     |        0        |         0
        1     |        3        |         3
        2     |        1        |         3
       3+     |        1        |         1

Dynamic mode: when the last winning position is the base or one of its
terminals, terminal neighbours drop to 0 so a confirmed zone is not widened
again.

Base positions outside 0..36 are wrapped modulo 37, never discarded.
"""

from typing import Dict, List, Optional, Sequence, Tuple

from core.invariants import ROULETTE_WHEEL, TERMINAL_MAPPING, WHEEL_SIZE
from core.wheel_geometry import neighbors_of


def wrap_base(n: int) -> int:
    """Canonicalize any integer into 0..36."""
    return ((n % WHEEL_SIZE) + WHEEL_SIZE) % WHEEL_SIZE


def _base_neighbour_count(num_terminals: int) -> int:
    if num_terminals == 1:
        return 3
    if num_terminals >= 2:
        return 1
    return 0


def _terminal_neighbour_count(num_terminals: int) -> int:
    if num_terminals in (1, 2):
        return 3
    if num_terminals > 2:
        return 1
    return 0


def compute_hit_zone(
    base: int,
    terminals: Sequence[int],
    last_winning_position: Optional[int] = None,
    dynamic_terminal_neighbours: bool = False,
    sequence: Sequence[int] = ROULETTE_WHEEL,
) -> List[int]:
    """
    Build the hit zone for a base position.

    Args:
        base: Raw or wrapped base position
        terminals: Terminals of the wrapped base
        last_winning_position: Most recent confirmed winner (dynamic context)
        dynamic_terminal_neighbours: Enable the confirmed-zone rule
        sequence: Circular position ordering

    Returns:
        Insertion-ordered list of distinct positions, always containing the
        wrapped base
    """
    wrapped = wrap_base(base)
    terminals = list(terminals or [])
    zone: List[int] = [wrapped]

    def _add(position: int) -> None:
        if position not in zone:
            zone.append(position)

    for neighbour in neighbors_of(wrapped, _base_neighbour_count(len(terminals)), sequence):
        _add(neighbour)

    terminal_count = _terminal_neighbour_count(len(terminals))
    if (
        dynamic_terminal_neighbours
        and last_winning_position is not None
        and (last_winning_position == wrapped or last_winning_position in terminals)
    ):
        terminal_count = 0

    for terminal in terminals:
        _add(terminal)
        for neighbour in neighbors_of(terminal, terminal_count, sequence):
            _add(neighbour)

    return zone


def resolve_group_zone(
    type_def,
    operand_a: int,
    operand_b: int,
    terminal_mapping: Dict[int, Sequence[int]] = TERMINAL_MAPPING,
    last_winning_position: Optional[int] = None,
    dynamic_terminal_neighbours: bool = False,
    sequence: Sequence[int] = ROULETTE_WHEEL,
) -> Tuple[int, int, List[int]]:
    """
    Run the base -> wrap -> terminals -> zone pipeline for one prediction type.

    Returns:
        Tuple of (raw_base, wrapped_base, hit_zone)
    """
    raw_base = type_def.calculate_base(operand_a, operand_b)
    wrapped = wrap_base(raw_base)
    terminals = terminal_mapping.get(wrapped, ())
    zone = compute_hit_zone(
        wrapped, terminals, last_winning_position, dynamic_terminal_neighbours, sequence
    )
    return raw_base, wrapped, zone
