"""Harmonically-aware track selection for automated mixing sessions."""

__version__ = "1.0.0"

from .catalogue import Catalogue, load_catalogue
from .entropy import EntropyClient
from .exceptions import (
    CatalogueValidationError,
    ConfigurationError,
    EntropyServiceError,
    HarmonicMixerError,
    InvalidArgumentError,
    SessionStateError,
    TrackDecodeError,
    TrackLoadCancelledError,
    TrackLoadError,
    TrackNetworkError,
    TrackTimeoutError,
)
from .keys import HARMONIC_SCORES, KeyProgression
from .loader import LoadRequest, LoadResult, TrackBufferLoader, build_load_request, build_track_locator
from .models import (
    ALL_KEYS,
    ALLOWED_TEMPOS,
    CatalogueStats,
    Direction,
    SelectionResult,
    SelectionTier,
    SelectorStats,
    Track,
    TrackFilter,
    TrackRequest,
    TrackType,
)
from .random_source import CacheStats, RandomSource, RandomSourceOptions
from .selector import SelectorOptions, TrackSelector
from .session import MixSession, SessionState, SessionStatistics
from .storage import CacheStorage, JsonFileStorage, MemoryStorage, NullStorage

__all__ = [
    # Catalogue
    "Catalogue",
    "load_catalogue",
    # Keys
    "KeyProgression",
    "HARMONIC_SCORES",
    # Randomness
    "RandomSource",
    "RandomSourceOptions",
    "CacheStats",
    "EntropyClient",
    "CacheStorage",
    "NullStorage",
    "MemoryStorage",
    "JsonFileStorage",
    # Selection
    "TrackSelector",
    "SelectorOptions",
    "MixSession",
    "SessionState",
    "SessionStatistics",
    # Loader boundary
    "TrackBufferLoader",
    "LoadRequest",
    "LoadResult",
    "build_track_locator",
    "build_load_request",
    # Models
    "Track",
    "TrackFilter",
    "TrackRequest",
    "TrackType",
    "Direction",
    "SelectionResult",
    "SelectionTier",
    "SelectorStats",
    "CatalogueStats",
    "ALL_KEYS",
    "ALLOWED_TEMPOS",
    # Exceptions
    "HarmonicMixerError",
    "CatalogueValidationError",
    "InvalidArgumentError",
    "EntropyServiceError",
    "ConfigurationError",
    "SessionStateError",
    "TrackLoadError",
    "TrackNetworkError",
    "TrackTimeoutError",
    "TrackDecodeError",
    "TrackLoadCancelledError",
]
