"""
Harmonic Mixer CLI - Command Line Interface

Runs a mixing session over a JSON track catalogue and prints each selection.
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import List, Optional

from . import __version__
from .catalogue import Catalogue, load_catalogue
from .config import MixerConfig
from .exceptions import (
    CatalogueValidationError,
    ConfigurationError,
    InvalidArgumentError,
)
from .logger import setup_logging
from .models import SelectionResult
from .random_source import RandomSource
from .session import MixSession, SessionStatistics
from .storage import CacheStorage, JsonFileStorage, NullStorage

logger = logging.getLogger(__name__)


def create_parser() -> argparse.ArgumentParser:
    """
    Create argument parser for CLI.

    Returns:
        Configured ArgumentParser instance
    """
    parser = argparse.ArgumentParser(
        prog="harmonic-mixer",
        description="Harmonically-aware track selection for automated mixing sessions",
        epilog="Example: harmonic-mixer --catalogue tracks.json --count 20 --tempo 102",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--catalogue",
        type=str,
        metavar="FILE",
        help="JSON file with a list of tracks (default: $MIXER_CATALOGUE)",
    )
    parser.add_argument(
        "--count",
        "-n",
        type=int,
        default=10,
        metavar="N",
        help="Number of tracks to select (default: 10)",
    )
    parser.add_argument("--tempo", type=int, metavar="BPM", help="Output tempo (84, 94 or 102)")
    parser.add_argument("--start-key", type=int, metavar="KEY", help="Starting key (1-12)")
    parser.add_argument(
        "--direction",
        choices=["forward", "reverse"],
        help="Key progression direction",
    )
    parser.add_argument(
        "--no-wildcard",
        action="store_true",
        help="Disable the periodic key-agnostic wildcard selection",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Never contact the entropy service; use local randomness only",
    )
    parser.add_argument(
        "--cache-file",
        type=str,
        metavar="FILE",
        help="Persist the random cache in this JSON file (default: $MIXER_CACHE_FILE)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose debug logging",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def build_config(args: argparse.Namespace, base: Optional[MixerConfig] = None) -> MixerConfig:
    """
    Merge CLI arguments over environment configuration.

    Raises:
        ConfigurationError: If the merged configuration is invalid
    """
    config = base if base is not None else MixerConfig.from_environment()

    overrides = {}
    if args.catalogue:
        overrides["catalogue_path"] = args.catalogue
    if args.tempo is not None:
        overrides["tempo"] = args.tempo
    if args.start_key is not None:
        overrides["start_key"] = args.start_key
    if args.direction:
        overrides["direction"] = args.direction
    if args.no_wildcard:
        overrides["use_wildcard"] = False
    if args.offline:
        overrides["offline"] = True
    if args.cache_file:
        overrides["cache_file"] = args.cache_file

    config = replace(config, **overrides)
    config.validate()

    if not config.catalogue_path:
        raise ConfigurationError("No catalogue given: pass --catalogue or set MIXER_CATALOGUE")
    if args.count < 1:
        raise ConfigurationError(f"--count must be >= 1 (got {args.count})")

    return config


def build_random_source(config: MixerConfig) -> RandomSource:
    storage: CacheStorage = JsonFileStorage(config.cache_file) if config.cache_file else NullStorage()
    options = config.to_random_source_options()
    if config.offline:
        return RandomSource.offline(options=options, storage=storage)
    return RandomSource(options=options, storage=storage)


async def run_session(
    config: MixerConfig,
    catalogue: Catalogue,
    count: int,
    random_source: Optional[RandomSource] = None,
) -> List[SelectionResult]:
    """
    Select ``count`` tracks, printing each one.

    Returns:
        The selections, in order
    """
    source = random_source or build_random_source(config)
    async with source:
        await source.prime()

        session = MixSession(
            catalogue,
            random_source=source,
            start_key=config.start_key,
            direction=config.direction,
            tempo=config.tempo,
            selector_options=config.to_selector_options(),
        )

        results = [await session.start()]
        display_selection(1, results[0])
        for position in range(2, count + 1):
            result = await session.next()
            results.append(result)
            display_selection(position, result)

        display_summary(session.get_statistics())
        session.stop()

    return results


def display_selection(position: int, result: SelectionResult) -> None:
    wildcard = " *" if result.was_wildcard else ""
    print(
        f"{position:>4}. [{result.type.value:<4}] key {result.track.key:>2} "
        f"@ {result.tempo} BPM  score {result.compatibility_score:>2}  "
        f"{result.track}{wildcard}"
    )


def display_summary(stats: SessionStatistics) -> None:
    print()
    print("=" * 70)
    print("SESSION SUMMARY")
    print("=" * 70)
    print(f"Tracks selected:  {stats.tracks_played}")
    print(f"Current key:      {stats.current_key} ({stats.direction.value})")
    print(f"Current tempo:    {stats.current_tempo}")
    print(f"Played/remaining: {stats.songs_played}/{stats.songs_remaining}")
    print("=" * 70)


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main CLI entry point.

    Returns:
        Exit code (0 success, 1 configuration or catalogue error, 130 interrupted)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    setup_logging("DEBUG" if args.verbose else None)

    try:
        config = build_config(args)
        catalogue = load_catalogue(config.catalogue_path)
        asyncio.run(run_session(config, catalogue, args.count))
        return 0
    except (ConfigurationError, CatalogueValidationError, InvalidArgumentError) as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        print()
        print("Mix cancelled by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
