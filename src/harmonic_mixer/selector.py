"""
Track Selector

Combines the catalogue, the key progression and the random source into a
single decision per call.

Algorithm:
    1. Count the call
    2. Every Nth call (wildcard), draw uniformly from all unplayed tracks
    3. Otherwise build candidates from the first non-empty tier:
       current key -> compatible keys -> reset + current key -> any track
       (the catalogue was just reset, so every track is unplayed)
    4. Score by compatibility, keep the top ``candidate_pool_size`` and draw
       one uniformly
    5. Decide lead/body, mark played, advance the key (except on the first call)

Selection pressure comes from the score filter and the pool cut-off; the draw
inside the pool is deliberately unweighted.
"""

import logging
import random
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .catalogue import Catalogue
from .exceptions import InvalidArgumentError
from .keys import KeyProgression
from .models import (
    DEFAULT_TEMPO,
    SelectionResult,
    SelectionTier,
    SelectorStats,
    Track,
    TrackType,
    validate_tempo,
)
from .random_source import RandomSource

logger = logging.getLogger(__name__)

# Probability of a second body in a row after a body
BODY_REPEAT_PROBABILITY = 0.3


@dataclass
class SelectorOptions:
    """Tuning for the TrackSelector.

    Attributes:
        candidate_pool_size: How many top-scored tracks the final draw picks from
        use_wildcard: Enable the periodic key-agnostic selection
        wildcard_interval: Every Nth selection is a wildcard
        min_compatibility_score: Tracks scoring below this are not considered
        default_tempo: Tempo for new sessions and after reset
    """
    candidate_pool_size: int = 5
    use_wildcard: bool = True
    wildcard_interval: int = 5
    min_compatibility_score: int = 5
    default_tempo: int = DEFAULT_TEMPO

    def __post_init__(self):
        if self.candidate_pool_size < 1:
            raise InvalidArgumentError(
                f"candidate_pool_size must be >= 1 (got {self.candidate_pool_size})"
            )
        if self.wildcard_interval < 1:
            raise InvalidArgumentError(
                f"wildcard_interval must be >= 1 (got {self.wildcard_interval})"
            )
        if not 1 <= self.min_compatibility_score <= 10:
            raise InvalidArgumentError(
                f"min_compatibility_score must be 1-10 (got {self.min_compatibility_score})"
            )
        validate_tempo(self.default_tempo)


class TrackSelector:
    """Stateful next-track chooser.

    Not safe for concurrent use; callers serialize select_track().

    Example:
        >>> selector = TrackSelector(catalogue, KeyProgression(), RandomSource.offline())
        >>> result = await selector.select_track()
        >>> print(f"{result.track} ({result.type.value} @ {result.tempo})")
    """

    def __init__(
        self,
        catalogue: Catalogue,
        key_progression: KeyProgression,
        random_source: RandomSource,
        options: Optional[SelectorOptions] = None,
        coin: Callable[[], float] = random.random,
    ):
        """
        Args:
            catalogue: Tracks and played-state
            key_progression: Current key and compatibility table
            random_source: Source used for every track draw
            options: Selection tuning
            coin: Fast [0, 1) generator for the lead/body decision
        """
        self.catalogue = catalogue
        self.key_progression = key_progression
        self.random_source = random_source
        self.options = options or SelectorOptions()
        self._coin = coin

        self._tempo = self.options.default_tempo
        self._track_count = 0
        self._last_track_type = TrackType.BODY

    async def select_track(self) -> SelectionResult:
        """Choose the next track and advance the session state."""
        self._track_count += 1

        is_wildcard = (
            self.options.use_wildcard
            and self._track_count % self.options.wildcard_interval == 0
        )

        if is_wildcard:
            track, considered, tier = await self._select_wildcard()
        else:
            track, considered, tier = await self._select_normal()

        track_type = self._next_track_type()

        self.catalogue.mark_played(track.id)

        if self._track_count > 1:
            self.key_progression.next()

        score = self.key_progression.score_from_current(track.key)

        logger.debug(
            f"Selection #{self._track_count}: {track} key={track.key} "
            f"type={track_type.value} tier={tier.value} candidates={considered} score={score}"
        )

        return SelectionResult(
            track=track,
            type=track_type,
            tempo=self._tempo,
            was_wildcard=is_wildcard,
            candidates_considered=considered,
            compatibility_score=score,
            tier=tier,
        )

    async def _select_wildcard(self) -> Tuple[Track, int, SelectionTier]:
        candidates = self.catalogue.unplayed()
        if not candidates:
            logger.info("Catalogue exhausted on wildcard selection, resetting played tracks")
            self.catalogue.reset()
            candidates = list(self.catalogue.tracks)

        track = await self.random_source.choice(candidates)
        return track, len(candidates), SelectionTier.WILDCARD

    async def _select_normal(self) -> Tuple[Track, int, SelectionTier]:
        tier, candidates = self._build_candidates()

        current_key = self.key_progression.current_key
        scored = sorted(
            (
                (self.key_progression.score_compatibility(current_key, track.key), track)
                for track in candidates
            ),
            key=lambda item: item[0],
            reverse=True,
        )
        pool = [
            track for score, track in scored
            if score >= self.options.min_compatibility_score
        ][: self.options.candidate_pool_size]

        if not pool:
            # Nothing in this tier clears the score bar; keep coverage by drawing from the tier
            logger.debug(f"No candidate above minimum score in tier {tier.value}")
            pool = candidates

        track = await self.random_source.choice(pool)
        return track, len(candidates), tier

    def _build_candidates(self) -> Tuple[SelectionTier, List[Track]]:
        current_key = self.key_progression.current_key

        candidates = self.catalogue.unplayed(key=current_key)
        if candidates:
            return SelectionTier.CURRENT_KEY, candidates

        candidates = self._compatible_candidates(current_key)
        if candidates:
            return SelectionTier.COMPATIBLE_KEYS, candidates

        logger.info(f"No compatible tracks left for key {current_key}, resetting played tracks")
        self.catalogue.reset()
        candidates = self.catalogue.filter(key=current_key)
        if candidates:
            return SelectionTier.RESET_CURRENT_KEY, candidates

        return SelectionTier.ANY_UNPLAYED, list(self.catalogue.tracks)

    def _compatible_candidates(self, current_key: int) -> List[Track]:
        wanted = self.options.candidate_pool_size * 2
        candidates: List[Track] = []

        for key in self.key_progression.get_compatible_keys(current_key):
            if self.key_progression.score_compatibility(current_key, key) < self.options.min_compatibility_score:
                break
            candidates.extend(self.catalogue.unplayed(key=key))
            if len(candidates) >= wanted:
                break

        return candidates

    def _next_track_type(self) -> TrackType:
        if self._track_count == 1:
            self._last_track_type = TrackType.LEAD
        elif self._last_track_type is TrackType.LEAD:
            self._last_track_type = TrackType.BODY
        elif self._coin() < BODY_REPEAT_PROBABILITY:
            self._last_track_type = TrackType.BODY
        else:
            self._last_track_type = TrackType.LEAD
        return self._last_track_type

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def track_count(self) -> int:
        return self._track_count

    @property
    def last_track_type(self) -> TrackType:
        return self._last_track_type

    def set_tempo(self, tempo: int) -> None:
        self._tempo = validate_tempo(tempo)

    def get_tempo(self) -> int:
        return self._tempo

    def get_current_key(self) -> int:
        return self.key_progression.current_key

    def reset(self, reset_catalogue: bool = True, reset_key_model: bool = True) -> None:
        """Return to a fresh session.

        Counters, track type and tempo always reset; the catalogue and key
        progression only when asked.
        """
        if reset_catalogue:
            self.catalogue.reset()
        if reset_key_model:
            self.key_progression.reset()

        self._track_count = 0
        self._last_track_type = TrackType.BODY
        self._tempo = self.options.default_tempo

    def get_stats(self) -> SelectorStats:
        return SelectorStats(
            track_count=self._track_count,
            current_key=self.key_progression.current_key,
            current_tempo=self._tempo,
            songs_played=self.catalogue.played,
            songs_remaining=self.catalogue.remaining,
            last_track_type=self._last_track_type,
        )
