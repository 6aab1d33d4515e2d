"""
Core data models for harmonic track selection.

Keys are integers 1-12 (one bucket per note of the chromatic scale, 1 = C,
12 = B). Every track exists at a fixed set of tempos, and each is recorded as
a short "lead" intro and a longer "body" main segment.

Entities:
    - Track: Immutable catalogue entry
    - TrackFilter: AND-combined catalogue query
    - CatalogueStats: Aggregate catalogue counts
    - TrackRequest: Track plus the tempo/type it should be played at
    - SelectionResult: Outcome of a single selector decision
    - SelectorStats: Snapshot of selector counters
"""

from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, Dict, FrozenSet, Optional, Tuple, Union

from .exceptions import InvalidArgumentError


# ============================================================================
# Constants
# ============================================================================

ALL_KEYS: Tuple[int, ...] = tuple(range(1, 13))

ALLOWED_TEMPOS: Tuple[int, ...] = (84, 94, 102)

DEFAULT_TEMPO = 94


# ============================================================================
# Enumerations
# ============================================================================


class Direction(Enum):
    """Direction of key traversal."""
    FORWARD = "forward"   # 1 -> 2 -> ... -> 12 -> 1
    REVERSE = "reverse"   # 12 -> 11 -> ... -> 1 -> 12


class TrackType(Enum):
    """Lead (16-beat intro) or body (64-beat main segment)."""
    LEAD = "lead"
    BODY = "body"


BEAT_COUNTS: Dict[TrackType, int] = {
    TrackType.LEAD: 16,
    TrackType.BODY: 64,
}


class SelectionTier(Enum):
    """Which branch of the selection ladder produced a candidate set."""
    WILDCARD = "wildcard"
    CURRENT_KEY = "current_key"
    COMPATIBLE_KEYS = "compatible_keys"
    RESET_CURRENT_KEY = "reset_current_key"
    ANY_UNPLAYED = "any_unplayed"


# ============================================================================
# Validation helpers
# ============================================================================


def is_valid_key(value: object) -> bool:
    """Check if a value is a valid key (int 1-12, bools excluded)."""
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 12


def is_valid_tempo(value: object) -> bool:
    """Check if a value is one of the allowed tempos."""
    return isinstance(value, int) and not isinstance(value, bool) and value in ALLOWED_TEMPOS


def validate_key(value: object) -> int:
    """Return the key unchanged, or raise InvalidArgumentError if out of range."""
    if not is_valid_key(value):
        raise InvalidArgumentError(f"Invalid key: {value!r}. Must be an integer 1-12")
    return value  # type: ignore[return-value]


def validate_tempo(value: object) -> int:
    """Return the tempo unchanged, or raise InvalidArgumentError if not allowed."""
    if not is_valid_tempo(value):
        raise InvalidArgumentError(
            f"Invalid tempo: {value!r}. Must be one of {', '.join(map(str, ALLOWED_TEMPOS))}"
        )
    return value  # type: ignore[return-value]


def parse_direction(value: Union[str, Direction]) -> Direction:
    """Coerce 'forward'/'reverse' (any case) into a Direction."""
    if isinstance(value, Direction):
        return value
    try:
        return Direction(str(value).strip().lower())
    except ValueError:
        raise InvalidArgumentError(
            f"Invalid direction: {value!r}. Must be 'forward' or 'reverse'"
        ) from None


# ============================================================================
# Dataclasses
# ============================================================================


@dataclass(frozen=True)
class Track:
    """A track in the catalogue.

    Attributes:
        id: Unique positive identifier
        artist: Artist name
        title: Track title
        key: Musical key (1-12)
        native_tempo: Tempo the track was recorded at, before time-stretching
    """
    id: int
    artist: str
    title: str
    key: int
    native_tempo: int

    def __str__(self) -> str:
        return f"{self.artist} - {self.title}"


@dataclass(frozen=True)
class TrackFilter:
    """Catalogue query; every provided field narrows the result (AND)."""
    tempo: Optional[int] = None
    key: Optional[int] = None
    artist: Optional[str] = None
    exclude_ids: AbstractSet[int] = frozenset()


@dataclass(frozen=True)
class CatalogueStats:
    """Aggregate counts over the whole catalogue."""
    total_tracks: int
    tracks_by_tempo: Dict[int, int]
    tracks_by_key: Dict[int, int]
    unique_artists: int
    most_common_tempo: int
    most_common_key: int


@dataclass(frozen=True)
class TrackRequest:
    """A track together with the playback parameters chosen for it."""
    track: Track
    tempo: int
    type: TrackType

    @property
    def beat_count(self) -> int:
        return BEAT_COUNTS[self.type]


@dataclass(frozen=True)
class SelectionResult:
    """Outcome of one selector decision.

    Attributes:
        track: The chosen track
        type: Lead or body
        tempo: Output tempo the track was selected at
        was_wildcard: True if the periodic wildcard rule was used
        candidates_considered: Size of the candidate set before pool truncation
        compatibility_score: Score between the (advanced) current key and the track key
        tier: Branch of the selection ladder that produced the candidates
    """
    track: Track
    type: TrackType
    tempo: int
    was_wildcard: bool
    candidates_considered: int
    compatibility_score: int
    tier: SelectionTier

    @property
    def request(self) -> TrackRequest:
        """The track request to hand to a track-buffer loader."""
        return TrackRequest(track=self.track, tempo=self.tempo, type=self.type)


@dataclass(frozen=True)
class SelectorStats:
    """Snapshot of selector counters."""
    track_count: int
    current_key: int
    current_tempo: int
    songs_played: int
    songs_remaining: int
    last_track_type: TrackType


def frozen_ids(ids) -> FrozenSet[int]:
    """Normalise an id collection into a frozenset."""
    return ids if isinstance(ids, frozenset) else frozenset(ids)
