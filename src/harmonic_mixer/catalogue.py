"""
Track catalogue with filtering, searching and played-track bookkeeping.

The track list is validated once when the catalogue is built and never
changes afterwards. The only mutable state is the set of played ids.

Example:
    >>> catalogue = Catalogue([
    ...     Track(id=1, artist="Artist", title="Song", key=2, native_tempo=94),
    ... ])
    >>> catalogue.filter(tempo=94, key=2)
    [Track(id=1, artist='Artist', title='Song', key=2, native_tempo=94)]
    >>> catalogue.mark_played(1)
    >>> catalogue.remaining
    0
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from .exceptions import CatalogueValidationError
from .models import (
    ALL_KEYS,
    ALLOWED_TEMPOS,
    CatalogueStats,
    Track,
    TrackFilter,
    frozen_ids,
    is_valid_key,
    is_valid_tempo,
)

logger = logging.getLogger(__name__)


class Catalogue:
    """Immutable track collection plus a mutable played-id set."""

    def __init__(self, tracks: Sequence[Track]):
        """Create a catalogue.

        Args:
            tracks: All tracks available to the session

        Raises:
            CatalogueValidationError: If the list is empty or any track is malformed
        """
        if tracks is None or len(tracks) == 0:
            raise CatalogueValidationError("Track list must be non-empty")

        self._tracks: Tuple[Track, ...] = tuple(tracks)
        self._by_id: Dict[int, Track] = _validate_tracks(self._tracks)
        self._played: Set[int] = set()

        logger.debug(f"Catalogue loaded with {len(self._tracks)} tracks")

    @classmethod
    def from_records(cls, records: Iterable[Mapping[str, Any]]) -> "Catalogue":
        """Build a catalogue from JSON-like dictionaries.

        Each record needs ``id``, ``artist``, ``title``, ``key`` and either
        ``native_tempo`` or ``bpm``.

        Raises:
            CatalogueValidationError: If a record is missing fields or invalid
        """
        tracks = []
        for index, record in enumerate(records):
            if not isinstance(record, Mapping):
                raise CatalogueValidationError(f"Record {index} is not an object")
            tempo = record.get("native_tempo", record.get("bpm"))
            missing = [
                name for name in ("id", "artist", "title", "key")
                if name not in record
            ]
            if tempo is None:
                missing.append("native_tempo")
            if missing:
                raise CatalogueValidationError(
                    f"Record {index} is missing fields: {', '.join(missing)}",
                    track_id=record.get("id"),
                )
            tracks.append(
                Track(
                    id=record["id"],
                    artist=record["artist"],
                    title=record["title"],
                    key=record["key"],
                    native_tempo=tempo,
                )
            )
        return cls(tracks)

    # ------------------------------------------------------------------
    # Counts
    # ------------------------------------------------------------------

    @property
    def tracks(self) -> Tuple[Track, ...]:
        return self._tracks

    @property
    def total(self) -> int:
        return len(self._tracks)

    @property
    def played(self) -> int:
        return len(self._played)

    @property
    def remaining(self) -> int:
        return len(self._tracks) - len(self._played)

    @property
    def played_ids(self) -> frozenset:
        return frozenset(self._played)

    # ------------------------------------------------------------------
    # Played-state
    # ------------------------------------------------------------------

    def is_played(self, track_id: int) -> bool:
        return track_id in self._played

    def mark_played(self, track_id: int) -> None:
        """Mark a track as played. Unknown ids are ignored."""
        if track_id not in self._by_id:
            logger.debug(f"Ignoring unknown track id {track_id}")
            return
        self._played.add(track_id)

    def mark_many_played(self, track_ids: Iterable[int]) -> None:
        for track_id in track_ids:
            self.mark_played(track_id)

    def reset(self) -> None:
        """Forget every played track. The track list is untouched."""
        if self._played:
            logger.debug(f"Resetting catalogue ({len(self._played)} played tracks cleared)")
        self._played.clear()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, track_id: int) -> Optional[Track]:
        return self._by_id.get(track_id)

    def filter(self, criteria: Optional[TrackFilter] = None, **kwargs: Any) -> List[Track]:
        """Return tracks matching every provided criterion.

        Criteria can be passed as a TrackFilter or as keyword arguments
        (``tempo``, ``key``, ``artist``, ``exclude_ids``). Omitted criteria
        match everything.
        """
        if criteria is None:
            criteria = TrackFilter(**kwargs)
        elif kwargs:
            raise TypeError("Pass either a TrackFilter or keyword criteria, not both")

        exclude = frozen_ids(criteria.exclude_ids) if criteria.exclude_ids else frozenset()

        return [
            track for track in self._tracks
            if (criteria.tempo is None or track.native_tempo == criteria.tempo)
            and (criteria.key is None or track.key == criteria.key)
            and (criteria.artist is None or track.artist == criteria.artist)
            and track.id not in exclude
        ]

    def unplayed(
        self,
        tempo: Optional[int] = None,
        key: Optional[int] = None,
        artist: Optional[str] = None,
    ) -> List[Track]:
        """Tracks matching the criteria that have not been played yet."""
        return self.filter(
            TrackFilter(tempo=tempo, key=key, artist=artist, exclude_ids=frozenset(self._played))
        )

    def by_artist(self, artist: str) -> List[Track]:
        return self.filter(artist=artist)

    def by_tempo(self, tempo: int) -> List[Track]:
        return self.filter(tempo=tempo)

    def by_key(self, key: int) -> List[Track]:
        return self.filter(key=key)

    def artists(self) -> List[str]:
        """Unique artist names, sorted."""
        return sorted({track.artist for track in self._tracks})

    def search(self, text: str) -> List[Track]:
        """Case-insensitive substring search over artist and title."""
        needle = text.lower()
        return [
            track for track in self._tracks
            if needle in track.title.lower() or needle in track.artist.lower()
        ]

    def stats(self) -> CatalogueStats:
        """Aggregate counts per tempo and key.

        Most-common ties go to the first tempo/key in table order.
        """
        by_tempo = {tempo: 0 for tempo in ALLOWED_TEMPOS}
        by_key = {key: 0 for key in ALL_KEYS}
        for track in self._tracks:
            by_tempo[track.native_tempo] += 1
            by_key[track.key] += 1

        return CatalogueStats(
            total_tracks=len(self._tracks),
            tracks_by_tempo=by_tempo,
            tracks_by_key=by_key,
            unique_artists=len(self.artists()),
            most_common_tempo=_first_max(by_tempo),
            most_common_key=_first_max(by_key),
        )

    def __len__(self) -> int:
        return len(self._tracks)

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._by_id

    def __repr__(self) -> str:
        return f"Catalogue(total={self.total}, played={self.played})"


def load_catalogue(path: Union[str, Path]) -> Catalogue:
    """Load a catalogue from a JSON file holding a list of track records.

    Raises:
        CatalogueValidationError: If the file is unreadable, not a JSON list, or
            contains invalid tracks
    """
    path = Path(path)
    try:
        with path.open("r", encoding="utf-8") as handle:
            records = json.load(handle)
    except OSError as e:
        raise CatalogueValidationError(f"Cannot read catalogue file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise CatalogueValidationError(f"Catalogue file {path} is not valid JSON: {e}") from e

    if isinstance(records, dict) and "tracks" in records:
        records = records["tracks"]
    if not isinstance(records, list):
        raise CatalogueValidationError(f"Catalogue file {path} must contain a list of tracks")

    catalogue = Catalogue.from_records(records)
    logger.info(f"Loaded {catalogue.total} tracks from {path}")
    return catalogue


def _first_max(counts: Dict[int, int]) -> int:
    best, best_count = next(iter(counts)), 0
    for value, count in counts.items():
        if count > best_count:
            best, best_count = value, count
    return best


def _validate_tracks(tracks: Sequence[Track]) -> Dict[int, Track]:
    by_id: Dict[int, Track] = {}

    for track in tracks:
        track_id = getattr(track, "id", None)

        if not isinstance(track_id, int) or isinstance(track_id, bool) or track_id < 1:
            raise CatalogueValidationError(f"Invalid track ID: {track_id!r}", track_id=track_id)
        if track_id in by_id:
            raise CatalogueValidationError(f"Duplicate track ID: {track_id}", track_id=track_id)

        if not isinstance(track.artist, str) or not track.artist:
            raise CatalogueValidationError(f"Track {track_id} has invalid artist", track_id=track_id)
        if not isinstance(track.title, str) or not track.title:
            raise CatalogueValidationError(f"Track {track_id} has invalid title", track_id=track_id)
        if not is_valid_key(track.key):
            raise CatalogueValidationError(
                f"Track {track_id} has invalid key: {track.key!r}", track_id=track_id
            )
        if not is_valid_tempo(track.native_tempo):
            raise CatalogueValidationError(
                f"Track {track_id} has invalid tempo: {track.native_tempo!r}", track_id=track_id
            )

        by_id[track_id] = track

    return by_id
