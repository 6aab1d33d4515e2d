"""Musical key progression and harmonic compatibility scoring.

Keys advance one step at a time, forward (1 -> 2 -> ... -> 12 -> 1) or in
reverse (12 -> 11 -> ... -> 1 -> 12). Compatibility between two keys comes
from a fixed table built on the circle of fifths and relative major/minor
pairs:

    10      same key
    8-9     relative major/minor, adjacent on the circle of fifths
    5-7     nearby keys
    2-4     distant keys
    1       tritone, opposite side of the circle

Example:
    >>> progression = KeyProgression()
    >>> progression.next()
    2
    >>> progression.score_compatibility(1, 8)
    9
"""

import logging
from typing import Dict, List, Optional, Union

from .models import ALL_KEYS, Direction, parse_direction, validate_key

logger = logging.getLogger(__name__)


HARMONIC_SCORES: Dict[int, Dict[int, int]] = {
    1: {1: 10, 2: 7, 3: 5, 4: 3, 5: 2, 6: 1, 7: 2, 8: 9, 9: 6, 10: 4, 11: 3, 12: 8},
    2: {1: 7, 2: 10, 3: 8, 4: 6, 5: 4, 6: 2, 7: 1, 8: 3, 9: 9, 10: 7, 11: 5, 12: 4},
    3: {1: 5, 2: 8, 3: 10, 4: 9, 5: 7, 6: 4, 7: 2, 8: 1, 9: 4, 10: 9, 11: 8, 12: 6},
    4: {1: 3, 2: 6, 3: 9, 4: 10, 5: 9, 6: 7, 7: 4, 8: 2, 9: 1, 10: 5, 11: 9, 12: 8},
    5: {1: 2, 2: 4, 3: 7, 4: 9, 5: 10, 6: 9, 7: 7, 8: 4, 9: 2, 10: 1, 11: 6, 12: 9},
    6: {1: 1, 2: 2, 3: 4, 4: 7, 5: 9, 6: 10, 7: 9, 8: 7, 9: 4, 10: 2, 11: 1, 12: 5},
    7: {1: 2, 2: 1, 3: 2, 4: 4, 5: 7, 6: 9, 7: 10, 8: 9, 9: 7, 10: 4, 11: 2, 12: 1},
    8: {1: 9, 2: 3, 3: 1, 4: 2, 5: 4, 6: 7, 7: 9, 8: 10, 9: 9, 10: 7, 11: 4, 12: 2},
    9: {1: 6, 2: 9, 3: 4, 4: 1, 5: 2, 6: 4, 7: 7, 8: 9, 9: 10, 10: 9, 11: 7, 12: 4},
    10: {1: 4, 2: 7, 3: 9, 4: 5, 5: 1, 6: 2, 7: 4, 8: 7, 9: 9, 10: 10, 11: 9, 12: 7},
    11: {1: 3, 2: 5, 3: 8, 4: 9, 5: 6, 6: 1, 7: 2, 8: 4, 9: 7, 10: 9, 11: 10, 12: 9},
    12: {1: 8, 2: 4, 3: 6, 4: 8, 5: 9, 6: 5, 7: 1, 8: 2, 9: 4, 10: 7, 11: 9, 12: 10},
}

HIGHLY_COMPATIBLE_SCORE = 8


class KeyProgression:
    """Tracks the current key and direction, and scores key pairs."""

    def __init__(self, start_key: int = 1, direction: Union[Direction, str] = Direction.FORWARD):
        """
        Args:
            start_key: Starting key (1-12)
            direction: Initial traversal direction

        Raises:
            InvalidArgumentError: If start_key or direction is invalid
        """
        self._current_key = validate_key(start_key)
        self._direction = parse_direction(direction)

    @property
    def current_key(self) -> int:
        return self._current_key

    @property
    def direction(self) -> Direction:
        return self._direction

    def get_current_key(self) -> int:
        return self._current_key

    def get_direction(self) -> Direction:
        return self._direction

    def set_direction(self, direction: Union[Direction, str]) -> None:
        self._direction = parse_direction(direction)

    def toggle_direction(self) -> None:
        self._direction = (
            Direction.REVERSE if self._direction is Direction.FORWARD else Direction.FORWARD
        )
        logger.debug(f"Key direction toggled to {self._direction.value}")

    def set_key(self, key: int) -> None:
        """Jump directly to a key."""
        self._current_key = validate_key(key)

    def next(self) -> int:
        """Advance one step in the current direction and return the new key."""
        self._current_key = _step(self._current_key, self._direction)
        return self._current_key

    def peek_next(self) -> int:
        """The key next() would move to, without moving."""
        return _step(self._current_key, self._direction)

    def score_compatibility(self, from_key: int, to_key: int) -> int:
        """Harmonic compatibility from 1 (tritone) to 10 (same key)."""
        return HARMONIC_SCORES[from_key][to_key]

    def score_from_current(self, to_key: int) -> int:
        return self.score_compatibility(self._current_key, to_key)

    def get_compatible_keys(self, from_key: int) -> List[int]:
        """All keys ordered by descending score; equal scores by ascending key."""
        row = HARMONIC_SCORES[from_key]
        return sorted(ALL_KEYS, key=lambda key: (-row[key], key))

    def get_compatible_keys_from_current(self) -> List[int]:
        return self.get_compatible_keys(self._current_key)

    def is_highly_compatible(self, from_key: int, to_key: int) -> bool:
        return self.score_compatibility(from_key, to_key) >= HIGHLY_COMPATIBLE_SCORE

    def get_distance(
        self,
        from_key: int,
        to_key: int,
        direction: Optional[Union[Direction, str]] = None,
    ) -> int:
        """Number of next() steps from one key to another, with wraparound.

        Example:
            >>> progression.get_distance(3, 1, Direction.FORWARD)
            10
            >>> progression.get_distance(3, 1, Direction.REVERSE)
            2
        """
        dir_ = self._direction if direction is None else parse_direction(direction)
        if dir_ is Direction.FORWARD:
            return (to_key - from_key) % 12
        return (from_key - to_key) % 12

    def reset(self, start_key: int = 1, direction: Union[Direction, str] = Direction.FORWARD) -> None:
        self._current_key = validate_key(start_key)
        self._direction = parse_direction(direction)

    def __repr__(self) -> str:
        return f"KeyProgression(current_key={self._current_key}, direction={self._direction.value})"


def _step(key: int, direction: Direction) -> int:
    if direction is Direction.FORWARD:
        return 1 if key == 12 else key + 1
    return 12 if key == 1 else key - 1
