"""
Pytest configuration for the harmonic-mixer test suite.

Puts ``src`` on the Python path so tests run without an editable install,
and provides shared catalogue and random-source fixtures.
"""
import sys
from pathlib import Path

import pytest

project_root = Path(__file__).parent.parent
src_dir = project_root / "src"
if str(src_dir) not in sys.path:
    sys.path.insert(0, str(src_dir))

from harmonic_mixer.catalogue import Catalogue  # noqa: E402
from harmonic_mixer.models import Track  # noqa: E402
from harmonic_mixer.random_source import RandomSource  # noqa: E402


def make_tracks():
    """Three tracks per key, one at each tempo (36 tracks, 36 artists)."""
    tracks = []
    for key in range(1, 13):
        for suffix, tempo in (("A", 84), ("B", 94), ("C", 102)):
            tracks.append(
                Track(
                    id=key * 100 + ord(suffix) - ord("A") + 1,
                    artist=f"Artist {key}{suffix}",
                    title=f"Song {key}-{suffix}",
                    key=key,
                    native_tempo=tempo,
                )
            )
    return tracks


@pytest.fixture
def tracks():
    return make_tracks()


@pytest.fixture
def catalogue(tracks):
    return Catalogue(tracks)


@pytest.fixture
def random_source():
    """Network-free random source with in-memory-only caching."""
    return RandomSource.offline()


@pytest.fixture
def sample_catalogue_path():
    return project_root / "data" / "sample_catalogue.json"
