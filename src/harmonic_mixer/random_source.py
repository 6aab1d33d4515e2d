"""
Random source backed by an external entropy service with a local fallback.

Random hex digits are kept in a bounded cache. Consumers always take from
the cache first; any shortfall is synthesized on the spot from ``secrets``,
so no call ever waits on the network. When the cache drops below
``cache_size * refill_threshold`` a background task tops it up from the
entropy service, falling back to ``secrets`` when the service fails or
times out. At most one refill runs at a time.

The cache is hydrated from storage at construction and written back after
every consumption.

Example:
    >>> async with RandomSource(storage=JsonFileStorage("random.json")) as source:
    ...     await source.prime()
    ...     roll = await source.integer(1, 6)
    ...     pick = await source.choice(["rock", "paper", "scissors"])
"""

import asyncio
import logging
import re
import secrets
from dataclasses import dataclass
from typing import List, Optional, Sequence, TypeVar

from .entropy import DEFAULT_ENTROPY_URL, EntropyClient
from .exceptions import InvalidArgumentError
from .storage import CacheStorage, NullStorage

logger = logging.getLogger(__name__)

T = TypeVar("T")

_LOWER_HEX = re.compile(r"^[0-9a-f]*$")

# 16 hex digits = 64 bits; only the top 53 fit a double without rounding up to 1.0
_FLOAT_HEX_DIGITS = 16
_FLOAT_SHIFT = 64 - 53
_FLOAT_SCALE = 2.0 ** -53


@dataclass
class RandomSourceOptions:
    """Tuning for a RandomSource.

    Attributes:
        api_url: Entropy service endpoint
        cache_size: Maximum number of cached hex digits
        refill_threshold: Refill when the cache falls below this fraction of cache_size
        api_timeout: Seconds before a refill attempt is abandoned
        storage_key: Storage slot the cache is persisted under
    """
    api_url: str = DEFAULT_ENTROPY_URL
    cache_size: int = 2048
    refill_threshold: float = 0.25
    api_timeout: float = 5.0
    storage_key: str = "qrng-cache"

    def __post_init__(self):
        if not isinstance(self.cache_size, int) or self.cache_size <= 0:
            raise InvalidArgumentError(f"cache_size must be a positive integer (got {self.cache_size!r})")
        if not 0.0 <= self.refill_threshold <= 1.0:
            raise InvalidArgumentError(
                f"refill_threshold must be between 0 and 1 (got {self.refill_threshold!r})"
            )
        if self.api_timeout <= 0:
            raise InvalidArgumentError(f"api_timeout must be > 0 (got {self.api_timeout!r})")
        if not self.storage_key:
            raise InvalidArgumentError("storage_key must be non-empty")


@dataclass(frozen=True)
class CacheStats:
    """Snapshot of the random cache."""
    size: int
    max_size: int
    percentage: float
    is_refilling: bool


class RandomSource:
    """Cached entropy stream with cryptographic fallback."""

    def __init__(
        self,
        options: Optional[RandomSourceOptions] = None,
        storage: Optional[CacheStorage] = None,
        entropy_client: Optional[EntropyClient] = None,
        use_network: bool = True,
    ):
        """Initialize random source.

        Args:
            options: Cache and service tuning (defaults apply when omitted)
            storage: Durable storage for the cache; NullStorage when omitted
            entropy_client: Client for the entropy service; one is created from
                options when omitted and use_network is True
            use_network: When False, refills are synthesized locally and inline
        """
        self.options = options or RandomSourceOptions()
        self._storage: CacheStorage = storage or NullStorage()

        self._owns_client = False
        if entropy_client is None and use_network:
            entropy_client = EntropyClient(
                api_url=self.options.api_url, timeout=self.options.api_timeout
            )
            self._owns_client = True
        self._entropy: Optional[EntropyClient] = entropy_client if use_network else None

        self._cache = ""
        self._is_refilling = False
        self._refill_task: Optional[asyncio.Task] = None

        self._load_from_storage()

    @classmethod
    def offline(
        cls,
        options: Optional[RandomSourceOptions] = None,
        storage: Optional[CacheStorage] = None,
    ) -> "RandomSource":
        """A source that never touches the network; refills inline from secrets."""
        return cls(options=options, storage=storage, use_network=False)

    # ------------------------------------------------------------------
    # Random values
    # ------------------------------------------------------------------

    async def hexadecimal(self, length: int) -> str:
        """Return ``length`` lowercase hex digits.

        Raises:
            InvalidArgumentError: If length is not a positive integer
        """
        if not _is_int(length) or length <= 0:
            raise InvalidArgumentError("length must be a positive integer")

        digits = self._cache[:length]
        self._cache = self._cache[length:]

        shortfall = length - len(digits)
        if shortfall:
            logger.debug(f"Random cache short by {shortfall} digits, using local fallback")
            digits += _fallback_hex(shortfall)

        self._save_to_storage()
        self._refill_if_needed()
        return digits

    async def random_float(self) -> float:
        """Return a float in [0, 1) built from 16 hex digits."""
        value = int(await self.hexadecimal(_FLOAT_HEX_DIGITS), 16)
        return (value >> _FLOAT_SHIFT) * _FLOAT_SCALE

    async def integer(self, min_value: int, max_value: int) -> int:
        """Return an integer in [min_value, max_value], inclusive.

        Raises:
            InvalidArgumentError: If bounds are not integers or min_value > max_value
        """
        if not _is_int(min_value) or not _is_int(max_value):
            raise InvalidArgumentError("min and max must be integers")
        if min_value > max_value:
            raise InvalidArgumentError("min must be <= max")

        span = max_value - min_value + 1
        offset = int(await self.random_float() * span)
        return min(min_value + offset, max_value)

    async def choice(self, items: Sequence[T]) -> T:
        """Return one element chosen uniformly.

        Raises:
            InvalidArgumentError: If items is empty
        """
        if len(items) == 0:
            raise InvalidArgumentError("Cannot choose from an empty sequence")
        return items[await self.integer(0, len(items) - 1)]

    async def unique_choices(self, items: Sequence[T], count: int) -> List[T]:
        """Return ``count`` distinct elements (by position) in random order.

        Raises:
            InvalidArgumentError: If count is negative or larger than items
        """
        if not _is_int(count) or count < 0:
            raise InvalidArgumentError("count must be >= 0")
        if count > len(items):
            raise InvalidArgumentError("count must be <= number of items")
        if count == 0:
            return []
        shuffled = await self.shuffle(items)
        return shuffled[:count]

    async def shuffle(self, items: Sequence[T]) -> List[T]:
        """Return a shuffled copy (Fisher-Yates); the input is not modified."""
        result = list(items)
        for i in range(len(result) - 1, 0, -1):
            j = await self.integer(0, i)
            result[i], result[j] = result[j], result[i]
        return result

    async def boolean(self) -> bool:
        return await self.random_float() < 0.5

    # ------------------------------------------------------------------
    # Cache management
    # ------------------------------------------------------------------

    @property
    def is_refilling(self) -> bool:
        return self._is_refilling

    def get_cache_stats(self) -> CacheStats:
        size = len(self._cache)
        return CacheStats(
            size=size,
            max_size=self.options.cache_size,
            percentage=size / self.options.cache_size * 100,
            is_refilling=self._is_refilling,
        )

    def clear_cache(self) -> None:
        """Empty the cache in memory and in storage."""
        self._cache = ""
        self._storage.remove_item(self.options.storage_key)

    async def prime(self) -> None:
        """Fill the cache if it is below threshold and wait for the refill."""
        self._refill_if_needed()
        await self.wait_for_refill()

    async def wait_for_refill(self) -> None:
        """Wait for the in-flight background refill, if any."""
        task = self._refill_task
        if task is not None:
            await asyncio.shield(task)

    async def aclose(self) -> None:
        """Cancel any in-flight refill and release the HTTP client."""
        task = self._refill_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.debug("Background refill cancelled on close")
        # A task cancelled before it started never reaches its finally block
        self._is_refilling = False
        self._refill_task = None
        if self._owns_client and self._entropy is not None:
            await self._entropy.aclose()

    async def __aenter__(self) -> "RandomSource":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    def _refill_if_needed(self) -> None:
        threshold = self.options.cache_size * self.options.refill_threshold
        if len(self._cache) >= threshold or self._is_refilling:
            return

        if self._entropy is None:
            self._fill_from_fallback()
            return

        self._is_refilling = True
        self._refill_task = asyncio.get_running_loop().create_task(self._refill())

    async def _refill(self) -> None:
        try:
            needed = self.options.cache_size - len(self._cache)
            if needed <= 0:
                return
            try:
                digits = await asyncio.wait_for(
                    self._entropy.fetch_hex(needed), timeout=self.options.api_timeout
                )
            except asyncio.TimeoutError:
                logger.warning(
                    f"Entropy service timed out after {self.options.api_timeout}s, "
                    f"using local fallback"
                )
                self._fill_from_fallback()
            except Exception as e:
                logger.warning(f"Entropy service unavailable, using local fallback: {e}")
                self._fill_from_fallback()
            else:
                room = self.options.cache_size - len(self._cache)
                self._cache += digits[:room]
                self._save_to_storage()
                logger.debug(f"Random cache refilled to {len(self._cache)} digits")
        finally:
            self._is_refilling = False
            self._refill_task = None

    def _fill_from_fallback(self) -> None:
        needed = self.options.cache_size - len(self._cache)
        if needed > 0:
            self._cache += _fallback_hex(needed)
            self._save_to_storage()

    def _load_from_storage(self) -> None:
        stored = self._storage.get_item(self.options.storage_key)
        if not stored:
            return
        stored = stored[: self.options.cache_size]
        if not _LOWER_HEX.match(stored):
            logger.warning("Discarding stored random cache: not lowercase hexadecimal")
            self._storage.remove_item(self.options.storage_key)
            return
        self._cache = stored
        logger.debug(f"Hydrated random cache with {len(stored)} digits from storage")

    def _save_to_storage(self) -> None:
        if self._cache:
            self._storage.set_item(self.options.storage_key, self._cache)
        else:
            self._storage.remove_item(self.options.storage_key)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _fallback_hex(length: int) -> str:
    return secrets.token_hex((length + 1) // 2)[:length]
