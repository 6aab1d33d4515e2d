"""Custom exceptions for the harmonic mixer."""

from typing import Optional


class HarmonicMixerError(Exception):
    """Base exception for all harmonic mixer errors."""

    pass


class CatalogueValidationError(HarmonicMixerError, ValueError):
    """Raised when track data fails validation at catalogue build time.

    Attributes:
        track_id: Id of the offending track, when it could be read
    """

    def __init__(self, message: str, track_id: Optional[object] = None):
        """Initialize validation error.

        Args:
            message: Human-readable description of the problem
            track_id: Id of the offending track (optional)
        """
        self.track_id = track_id
        super().__init__(message)


class InvalidArgumentError(HarmonicMixerError, ValueError):
    """Raised when a caller passes an invalid range, length, key or collection."""

    pass


class EntropyServiceError(HarmonicMixerError):
    """Raised when the external entropy service fails or times out.

    Never escapes the random source; refills recover through the fallback.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class ConfigurationError(HarmonicMixerError, EnvironmentError):
    """Raised when environment configuration is missing or invalid."""

    pass


class SessionStateError(HarmonicMixerError):
    """Raised when a mix session is driven through an invalid transition."""

    pass


class TrackLoadError(HarmonicMixerError):
    """Base exception for the track-buffer loader boundary.

    Attributes:
        locator: Byte-source locator that failed to load
    """

    def __init__(self, message: str, locator: str):
        self.locator = locator
        super().__init__(message)


class TrackNetworkError(TrackLoadError):
    """Fetching track bytes failed (missing file, server error, no connection)."""

    def __init__(self, message: str, locator: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message, locator)


class TrackTimeoutError(TrackLoadError):
    """Fetching track bytes took longer than the configured timeout."""

    def __init__(self, locator: str, timeout: float):
        self.timeout = timeout
        super().__init__(f"Timed out after {timeout:.1f}s loading {locator}", locator)


class TrackDecodeError(TrackLoadError):
    """Track bytes were fetched but could not be decoded."""

    pass


class TrackLoadCancelledError(TrackLoadError):
    """Loading was cancelled before it completed."""

    def __init__(self, locator: str):
        super().__init__(f"Load cancelled: {locator}", locator)
