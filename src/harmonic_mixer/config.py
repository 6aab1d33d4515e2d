"""Configuration management for the harmonic mixer.

All configuration is read from environment variables (NO .env files).
"""
import os
from dataclasses import dataclass
from typing import Dict, Optional

from .entropy import DEFAULT_ENTROPY_URL
from .exceptions import ConfigurationError, InvalidArgumentError
from .models import ALLOWED_TEMPOS, DEFAULT_TEMPO, Direction, is_valid_key
from .random_source import RandomSourceOptions
from .selector import SelectorOptions

_TRUE_VALUES = ("1", "true", "yes", "on")
_FALSE_VALUES = ("0", "false", "no", "off")


@dataclass
class MixerConfig:
    """Configuration for a mixing session (reads from environment)."""

    # Entropy service
    entropy_url: str = DEFAULT_ENTROPY_URL
    entropy_timeout: float = 5.0
    offline: bool = False

    # Random cache
    cache_size: int = 2048
    refill_threshold: float = 0.25
    cache_file: Optional[str] = None

    # Session
    catalogue_path: Optional[str] = None
    start_key: int = 1
    direction: str = "forward"
    tempo: int = DEFAULT_TEMPO

    # Selection
    candidate_pool_size: int = 5
    min_compatibility_score: int = 5
    use_wildcard: bool = True
    wildcard_interval: int = 5

    @classmethod
    def from_environment(cls, environ: Optional[Dict[str, str]] = None) -> 'MixerConfig':
        """Load configuration from environment variables (NO .env files).

        Args:
            environ: Mapping to read instead of os.environ (for tests)

        Returns:
            MixerConfig: Loaded configuration object

        Raises:
            ConfigurationError: If a variable cannot be parsed
        """
        env = os.environ if environ is None else environ
        defaults = cls()

        return cls(
            entropy_url=env.get('MIXER_ENTROPY_URL', defaults.entropy_url),
            entropy_timeout=_parse(env, 'MIXER_ENTROPY_TIMEOUT', float, defaults.entropy_timeout),
            offline=_parse_bool(env, 'MIXER_OFFLINE', defaults.offline),
            cache_size=_parse(env, 'MIXER_CACHE_SIZE', int, defaults.cache_size),
            refill_threshold=_parse(env, 'MIXER_REFILL_THRESHOLD', float, defaults.refill_threshold),
            cache_file=env.get('MIXER_CACHE_FILE') or None,
            catalogue_path=env.get('MIXER_CATALOGUE') or None,
            start_key=_parse(env, 'MIXER_START_KEY', int, defaults.start_key),
            direction=env.get('MIXER_DIRECTION', defaults.direction).strip().lower(),
            tempo=_parse(env, 'MIXER_TEMPO', int, defaults.tempo),
            candidate_pool_size=_parse(env, 'MIXER_CANDIDATE_POOL_SIZE', int, defaults.candidate_pool_size),
            min_compatibility_score=_parse(env, 'MIXER_MIN_COMPATIBILITY', int, defaults.min_compatibility_score),
            use_wildcard=_parse_bool(env, 'MIXER_USE_WILDCARD', defaults.use_wildcard),
            wildcard_interval=_parse(env, 'MIXER_WILDCARD_INTERVAL', int, defaults.wildcard_interval),
        )

    def validate(self) -> None:
        """Validate configuration values.

        Raises:
            ConfigurationError: If any value is out of range
        """
        errors = []
        if not is_valid_key(self.start_key):
            errors.append(f"start_key must be 1-12 (got {self.start_key})")
        if self.direction not in (d.value for d in Direction):
            errors.append(f"direction must be 'forward' or 'reverse' (got '{self.direction}')")
        if self.tempo not in ALLOWED_TEMPOS:
            errors.append(f"tempo must be one of {ALLOWED_TEMPOS} (got {self.tempo})")
        if not self.entropy_url.startswith(('http://', 'https://')):
            errors.append(f"entropy_url must be an HTTP/HTTPS URL (got '{self.entropy_url}')")

        # Option dataclasses validate their own ranges
        for build in (self.to_random_source_options, self.to_selector_options):
            try:
                build()
            except InvalidArgumentError as e:
                errors.append(str(e))

        if errors:
            raise ConfigurationError("Invalid mixer configuration:\n  " + "\n  ".join(errors))

    def to_random_source_options(self) -> RandomSourceOptions:
        return RandomSourceOptions(
            api_url=self.entropy_url,
            cache_size=self.cache_size,
            refill_threshold=self.refill_threshold,
            api_timeout=self.entropy_timeout,
        )

    def to_selector_options(self) -> SelectorOptions:
        return SelectorOptions(
            candidate_pool_size=self.candidate_pool_size,
            use_wildcard=self.use_wildcard,
            wildcard_interval=self.wildcard_interval,
            min_compatibility_score=self.min_compatibility_score,
            default_tempo=self.tempo,
        )


def _parse(env, name: str, cast, default):
    raw = env.get(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ConfigurationError(
            f"Environment variable {name}={raw!r} is not a valid {cast.__name__}"
        ) from None


def _parse_bool(env, name: str, default: bool) -> bool:
    raw = env.get(name)
    if raw is None or raw.strip() == '':
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ConfigurationError(f"Environment variable {name}={raw!r} is not a boolean")
