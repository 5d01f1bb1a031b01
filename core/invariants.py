"""
SYSTEM INVARIANTS - Single Source of Truth

This module defines the fixed wheel data every other module reads:
1. The circular position sequence (adjacency ordering)
2. The terminal mapping (base position -> terminal positions)
3. Range constants used to canonicalize base positions

Any code needing wheel layout or terminals MUST import from here rather than
redefining the tables.
"""

from typing import Dict, Iterable, List, Sequence, Tuple
import logging

logger = logging.getLogger(__name__)

# =============================================================================
# WHEEL LAYOUT
# =============================================================================

# 37 pockets, single zero
WHEEL_SIZE = 37
MIN_POSITION = 0
MAX_POSITION = 36

ROULETTE_WHEEL: Tuple[int, ...] = (
    0, 26, 3, 35, 12, 28, 7, 29, 18, 22, 9, 31, 14, 20, 1, 33, 16, 24, 5,
    10, 23, 8, 30, 11, 36, 13, 27, 6, 34, 17, 25, 2, 21, 4, 19, 15, 32,
)


# =============================================================================
# TERMINAL MAPPING
# =============================================================================

# Base position -> ordered terminals. Neighbour counts in the hit zone depend
# only on len(terminals), never on wheel adjacency of the base itself.
TERMINAL_MAPPING: Dict[int, Tuple[int, ...]] = {
    0: (4, 6), 1: (8,), 2: (7, 9), 3: (8,), 4: (11,), 5: (12, 10), 6: (11,),
    7: (14, 2), 8: (15, 13, 3, 1), 9: (14, 2), 10: (17, 5), 11: (18, 16, 6, 4),
    12: (17, 5), 13: (20, 23), 14: (9, 21, 7, 19), 15: (8, 20), 16: (11,),
    17: (12, 24, 10, 22), 18: (11, 23), 19: (14, 26), 20: (13, 25, 15, 27),
    21: (14, 26), 22: (17, 29), 23: (18, 30, 16, 28), 24: (17, 29),
    25: (20, 32), 26: (19, 31, 33, 21), 27: (20, 32), 28: (23, 35),
    29: (22, 34, 24, 36), 30: (23, 35), 31: (26,), 32: (25, 27), 33: (26,),
    34: (29,), 35: (28, 30), 36: (29,),
}


# =============================================================================
# VALIDATION FUNCTIONS
# =============================================================================

def validate_position_sequence(sequence: Sequence[int]) -> Tuple[bool, List[str]]:
    """
    Check a position sequence is a permutation of 0..36.

    Returns:
        Tuple of (is_valid, violations)
    """
    violations = []

    if len(sequence) != WHEEL_SIZE:
        violations.append(f"Sequence has {len(sequence)} positions, expected {WHEEL_SIZE}")

    if len(set(sequence)) != len(sequence):
        violations.append("Sequence contains duplicate positions")

    out_of_range = [p for p in sequence if p < MIN_POSITION or p > MAX_POSITION]
    if out_of_range:
        violations.append(f"Positions outside {MIN_POSITION}-{MAX_POSITION}: {out_of_range}")

    return len(violations) == 0, violations


def validate_terminal_mapping(mapping: Dict[int, Iterable[int]]) -> Tuple[bool, List[str]]:
    """
    Check every key and terminal of a mapping is a valid position.

    Returns:
        Tuple of (is_valid, violations)
    """
    violations = []

    for base, terminals in mapping.items():
        if base < MIN_POSITION or base > MAX_POSITION:
            violations.append(f"Base {base} outside {MIN_POSITION}-{MAX_POSITION}")
        for terminal in terminals:
            if terminal < MIN_POSITION or terminal > MAX_POSITION:
                violations.append(f"Terminal {terminal} of base {base} out of range")

    return len(violations) == 0, violations


def is_valid_position(position: int) -> bool:
    """True if position is a pocket label on the wheel."""
    return isinstance(position, int) and MIN_POSITION <= position <= MAX_POSITION


# Validate shipped tables on import
_ok, _violations = validate_position_sequence(ROULETTE_WHEEL)
assert _ok, f"ROULETTE_WHEEL invalid: {_violations}"
_ok, _violations = validate_terminal_mapping(TERMINAL_MAPPING)
assert _ok, f"TERMINAL_MAPPING invalid: {_violations}"
