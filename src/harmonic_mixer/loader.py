"""
Track-buffer loader boundary.

Fetching and decoding audio is done by an external collaborator. This module
defines what that collaborator looks like and how a selected track turns
into a load request.

Locator format: ``/music/{tempo}/{id:08d}-{type}.mp3``
    e.g. ``/music/94/00000001-lead.mp3``
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

from .models import TrackRequest

DEFAULT_MUSIC_ROOT = "/music"


@dataclass
class LoadRequest:
    """A request to load one audio byte source.

    Attributes:
        id: Caller-chosen identifier
        locator: Where to fetch the bytes from
        metadata: Extra data echoed back in the result
        timeout: Seconds before the loader gives up
        retries: Attempts after the first failure
    """
    id: str
    locator: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    timeout: float = 10.0
    retries: int = 3


@dataclass
class LoadResult:
    """A successfully loaded and decoded buffer."""
    id: str
    locator: str
    buffer: Any
    load_time_ms: float
    metadata: Dict[str, Any] = field(default_factory=dict)


@runtime_checkable
class TrackBufferLoader(Protocol):
    """Loads and decodes audio for selected tracks.

    Implementations raise TrackNetworkError, TrackTimeoutError,
    TrackDecodeError or TrackLoadCancelledError, and apply their own bounded
    concurrency and retry policy.
    """

    async def load(self, requests: Sequence[LoadRequest]) -> List[LoadResult]:
        ...

    async def load_single(self, request: LoadRequest) -> LoadResult:
        ...


def build_track_locator(request: TrackRequest, root: str = DEFAULT_MUSIC_ROOT) -> str:
    """Byte-source locator for a track at a tempo and type."""
    return f"{root.rstrip('/')}/{request.tempo}/{request.track.id:08d}-{request.type.value}.mp3"


def build_load_request(
    request: TrackRequest,
    root: str = DEFAULT_MUSIC_ROOT,
    timeout: Optional[float] = None,
) -> LoadRequest:
    """Turn a track request into a loader request."""
    load_request = LoadRequest(
        id=f"{request.track.id}-{request.type.value}",
        locator=build_track_locator(request, root),
        metadata={"track": request.track, "type": request.type, "tempo": request.tempo},
    )
    if timeout is not None:
        load_request.timeout = timeout
    return load_request
