"""
Mix session orchestration.

Wires a catalogue, key progression, random source and selector together for
one mixing session, and drives them through a small lifecycle:

    idle --start()--> running <--pause()/resume()--> paused
      ^                  |
      +---- reset() -----+--stop()--> stopped --start()--> running

Audio loading goes through an injected TrackBufferLoader.
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence, Union

from .catalogue import Catalogue
from .exceptions import SessionStateError, TrackLoadError
from .keys import KeyProgression
from .loader import LoadResult, TrackBufferLoader, build_load_request
from .models import Direction, SelectionResult, Track, TrackRequest, TrackType, validate_key
from .random_source import RandomSource
from .selector import SelectorOptions, TrackSelector

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Lifecycle state of a mix session."""
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class SessionStatistics:
    """Snapshot of a running session."""
    tracks_played: int
    session_duration: float
    current_key: int
    current_tempo: int
    songs_played: int
    songs_remaining: int
    direction: Direction
    last_track_type: TrackType


class MixSession:
    """One mixing session over a track catalogue.

    Example:
        >>> session = MixSession(tracks, random_source=RandomSource.offline())
        >>> first = await session.start()
        >>> following = await session.next()
        >>> session.set_tempo(102)
        >>> session.stop()
    """

    def __init__(
        self,
        tracks: Union[Catalogue, Sequence[Track]],
        random_source: RandomSource,
        loader: Optional[TrackBufferLoader] = None,
        start_key: int = 1,
        direction: Union[Direction, str] = Direction.FORWARD,
        tempo: Optional[int] = None,
        selector_options: Optional[SelectorOptions] = None,
        music_root: str = "/music",
    ):
        """Initialize session.

        Args:
            tracks: Catalogue, or track list to build one from
            random_source: Randomness for every track draw
            loader: Track-buffer loader used by load_track()
            start_key: Initial key (1-12)
            direction: Initial key direction
            tempo: Initial output tempo (selector default when omitted)
            selector_options: Selection tuning
            music_root: Root of the byte-source locators

        Raises:
            CatalogueValidationError: If tracks are empty or malformed
            InvalidArgumentError: If start_key, direction or tempo is invalid
        """
        self.catalogue = tracks if isinstance(tracks, Catalogue) else Catalogue(tracks)
        self.key_progression = KeyProgression(start_key, direction)
        self.selector = TrackSelector(
            self.catalogue, self.key_progression, random_source, selector_options
        )
        if tempo is not None:
            self.selector.set_tempo(tempo)

        self.loader = loader
        self.music_root = music_root

        self._state = SessionState.IDLE
        self._started_at: Optional[float] = None
        self._current_track: Optional[TrackRequest] = None

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def current_track(self) -> Optional[TrackRequest]:
        return self._current_track

    async def start(self) -> SelectionResult:
        """Begin the session and select its first track.

        Raises:
            SessionStateError: Unless the session is idle or stopped
        """
        if self._state not in (SessionState.IDLE, SessionState.STOPPED):
            raise SessionStateError(f"Cannot start from state: {self._state.value}")

        self._set_state(SessionState.RUNNING)
        self._started_at = time.monotonic()
        return await self.next()

    async def next(self) -> SelectionResult:
        """Select the next track.

        Raises:
            SessionStateError: Unless the session is running
        """
        if self._state is not SessionState.RUNNING:
            raise SessionStateError(f"Cannot select next track in state: {self._state.value}")

        selection = await self.selector.select_track()
        self._current_track = selection.request
        return selection

    async def load_track(self, request: TrackRequest) -> LoadResult:
        """Load audio for a track through the configured loader.

        Raises:
            SessionStateError: If no loader was configured
            TrackLoadError: If the loader fails
        """
        if self.loader is None:
            raise SessionStateError("No track-buffer loader configured")

        load_request = build_load_request(request, root=self.music_root)
        try:
            return await self.loader.load_single(load_request)
        except TrackLoadError as e:
            logger.error(f"Failed to load {load_request.locator}: {e}")
            raise

    def pause(self) -> None:
        if self._state is not SessionState.RUNNING:
            raise SessionStateError(f"Cannot pause from state: {self._state.value}")
        self._set_state(SessionState.PAUSED)

    def resume(self) -> None:
        if self._state is not SessionState.PAUSED:
            raise SessionStateError(f"Cannot resume from state: {self._state.value}")
        self._set_state(SessionState.RUNNING)

    def stop(self) -> None:
        self._set_state(SessionState.STOPPED)
        self._started_at = None
        self._current_track = None

    def reset(self, reset_catalogue: bool = True, reset_key_model: bool = True) -> None:
        """Return to idle with fresh selector counters."""
        self.selector.reset(reset_catalogue, reset_key_model)
        self._set_state(SessionState.IDLE)
        self._started_at = None
        self._current_track = None

    def set_tempo(self, tempo: int) -> None:
        previous = self.selector.get_tempo()
        if previous == tempo:
            return
        self.selector.set_tempo(tempo)
        logger.info(f"Tempo changed {previous} -> {tempo}")

    def set_key(self, key: int) -> None:
        previous = self.key_progression.current_key
        if previous == validate_key(key):
            return
        self.key_progression.set_key(key)
        logger.info(f"Key changed {previous} -> {key}")

    def set_direction(self, direction: Union[Direction, str]) -> None:
        self.key_progression.set_direction(direction)

    def toggle_direction(self) -> None:
        self.key_progression.toggle_direction()

    def get_statistics(self) -> SessionStatistics:
        stats = self.selector.get_stats()
        duration = 0.0 if self._started_at is None else time.monotonic() - self._started_at
        return SessionStatistics(
            tracks_played=stats.track_count,
            session_duration=duration,
            current_key=stats.current_key,
            current_tempo=stats.current_tempo,
            songs_played=stats.songs_played,
            songs_remaining=stats.songs_remaining,
            direction=self.key_progression.direction,
            last_track_type=stats.last_track_type,
        )

    def _set_state(self, state: SessionState) -> None:
        if state is self._state:
            return
        logger.info(f"Session state {self._state.value} -> {state.value}")
        self._state = state
