"""
Tests for the cached random source.

Covers value ranges and argument errors, the local fallback, storage
hydration/persistence and the background refill protocol (success, failure,
timeout, single in-flight refill).
"""
import asyncio
import re

import pytest

from harmonic_mixer.exceptions import EntropyServiceError, InvalidArgumentError
from harmonic_mixer.random_source import RandomSource, RandomSourceOptions
from harmonic_mixer.storage import MemoryStorage

HEX = re.compile(r"^[0-9a-f]+$")


class StubEntropy:
    """Stands in for EntropyClient; records requested lengths."""

    def __init__(self, digits=None, error=None, gate=None, delay=0.0):
        self.digits = digits
        self.error = error
        self.gate = gate
        self.delay = delay
        self.calls = []
        self.started = asyncio.Event()

    async def fetch_hex(self, length):
        self.calls.append(length)
        self.started.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.digits if self.digits is not None else "0123456789abcdef" * (length // 16 + 1)

    async def aclose(self):
        pass


class TestRandomSourceOptions:

    @pytest.mark.parametrize("kwargs", [
        {"cache_size": 0},
        {"refill_threshold": 1.5},
        {"refill_threshold": -0.1},
        {"api_timeout": 0},
        {"storage_key": ""},
    ])
    def test_invalid_options_rejected(self, kwargs):
        with pytest.raises(InvalidArgumentError):
            RandomSourceOptions(**kwargs)


class TestHexadecimal:

    @pytest.mark.asyncio
    async def test_returns_lowercase_hex_of_requested_length(self, random_source):
        for length in (1, 7, 16, 100):
            value = await random_source.hexadecimal(length)
            assert len(value) == length
            assert HEX.match(value)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("length", [0, -1, 2.5])
    async def test_invalid_length_rejected(self, random_source, length):
        with pytest.raises(InvalidArgumentError):
            await random_source.hexadecimal(length)

    @pytest.mark.asyncio
    async def test_fallback_after_clear_cache(self, random_source):
        await random_source.hexadecimal(8)
        random_source.clear_cache()
        assert random_source.get_cache_stats().size == 0

        value = await random_source.hexadecimal(20)
        assert len(value) == 20
        assert HEX.match(value)

    @pytest.mark.asyncio
    async def test_request_larger_than_capacity(self):
        source = RandomSource.offline(RandomSourceOptions(cache_size=32))
        value = await source.hexadecimal(500)
        assert len(value) == 500
        assert source.get_cache_stats().size <= 32


class TestValues:

    @pytest.mark.asyncio
    async def test_float_range(self, random_source):
        values = [await random_source.random_float() for _ in range(200)]
        assert all(0.0 <= v < 1.0 for v in values)
        assert len(set(values)) > 1

    @pytest.mark.asyncio
    async def test_float_of_all_f_digits_stays_below_one(self):
        storage = MemoryStorage({"qrng-cache": "f" * 16})
        source = RandomSource.offline(RandomSourceOptions(cache_size=16, refill_threshold=0.0), storage)
        assert await source.random_float() < 1.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("low,high", [(1, 10), (0, 1), (-10, -1), (1, 1_000_000)])
    async def test_integer_range(self, random_source, low, high):
        for _ in range(1000):
            value = await random_source.integer(low, high)
            assert isinstance(value, int)
            assert low <= value <= high

    @pytest.mark.asyncio
    async def test_integer_single_value(self, random_source):
        for _ in range(20):
            assert await random_source.integer(5, 5) == 5

    @pytest.mark.asyncio
    @pytest.mark.parametrize("low,high", [(10, 1), (1.5, 10), (1, "9"), (True, 3)])
    async def test_integer_invalid_arguments(self, random_source, low, high):
        with pytest.raises(InvalidArgumentError):
            await random_source.integer(low, high)

    @pytest.mark.asyncio
    async def test_choice(self, random_source):
        items = ["a", "b", "c"]
        chosen = {await random_source.choice(items) for _ in range(200)}
        assert chosen == set(items)
        assert await random_source.choice(["only"]) == "only"

    @pytest.mark.asyncio
    async def test_choice_empty_rejected(self, random_source):
        with pytest.raises(InvalidArgumentError):
            await random_source.choice([])

    @pytest.mark.asyncio
    async def test_unique_choices(self, random_source):
        items = list(range(10))
        picked = await random_source.unique_choices(items, 4)
        assert len(picked) == 4
        assert len(set(picked)) == 4
        assert set(picked) <= set(items)
        assert await random_source.unique_choices(items, 0) == []
        assert sorted(await random_source.unique_choices(items, 10)) == items

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count", [3, -1])
    async def test_unique_choices_invalid_count(self, random_source, count):
        with pytest.raises(InvalidArgumentError):
            await random_source.unique_choices([1, 2], count)

    @pytest.mark.asyncio
    async def test_shuffle_is_permutation_and_copy(self, random_source):
        items = [1, 2, 2, 3, 4, 5, 6, 7, 8, 9]
        original = list(items)
        for _ in range(20):
            shuffled = await random_source.shuffle(items)
            assert len(shuffled) == len(items)
            assert sorted(shuffled) == sorted(items)
        assert items == original

    @pytest.mark.asyncio
    async def test_shuffle_produces_different_orders(self, random_source):
        items = list(range(10))
        orders = {tuple(await random_source.shuffle(items)) for _ in range(20)}
        assert len(orders) > 1

    @pytest.mark.asyncio
    async def test_shuffle_trivial_inputs(self, random_source):
        assert await random_source.shuffle([]) == []
        assert await random_source.shuffle(("x",)) == ["x"]

    @pytest.mark.asyncio
    async def test_boolean_yields_both_values(self, random_source):
        values = {await random_source.boolean() for _ in range(200)}
        assert values == {True, False}


class TestCacheAndStorage:

    def test_initial_stats(self):
        source = RandomSource.offline(RandomSourceOptions(cache_size=1000))
        stats = source.get_cache_stats()
        assert stats.max_size == 1000
        assert stats.size == 0
        assert stats.percentage == 0
        assert stats.is_refilling is False

    @pytest.mark.asyncio
    async def test_offline_refill_fills_to_capacity(self):
        source = RandomSource.offline(RandomSourceOptions(cache_size=100))
        await source.hexadecimal(16)
        stats = source.get_cache_stats()
        assert stats.size == 100
        assert stats.percentage == 100

    @pytest.mark.asyncio
    async def test_prime_fills_cache(self):
        source = RandomSource.offline(RandomSourceOptions(cache_size=64))
        await source.prime()
        assert source.get_cache_stats().size == 64

    @pytest.mark.asyncio
    async def test_hydrates_from_storage_and_consumes_in_order(self):
        storage = MemoryStorage({"qrng-cache": "abcdef0123"})
        options = RandomSourceOptions(cache_size=100, refill_threshold=0.0)
        source = RandomSource.offline(options, storage)

        assert source.get_cache_stats().size == 10
        assert await source.hexadecimal(6) == "abcdef"
        assert storage.get_item("qrng-cache") == "0123"

    @pytest.mark.asyncio
    async def test_storage_slot_removed_when_cache_drained(self):
        storage = MemoryStorage({"qrng-cache": "abcd"})
        options = RandomSourceOptions(cache_size=100, refill_threshold=0.0)
        source = RandomSource.offline(options, storage)

        assert await source.hexadecimal(4) == "abcd"
        assert storage.get_item("qrng-cache") is None
        assert len(await source.hexadecimal(8)) == 8

    def test_hydration_truncates_to_capacity(self):
        storage = MemoryStorage({"qrng-cache": "a" * 500})
        source = RandomSource.offline(RandomSourceOptions(cache_size=64), storage)
        assert source.get_cache_stats().size == 64

    def test_invalid_stored_cache_discarded(self):
        storage = MemoryStorage({"qrng-cache": "not-hex!"})
        source = RandomSource.offline(storage=storage)
        assert source.get_cache_stats().size == 0
        assert storage.get_item("qrng-cache") is None

    @pytest.mark.asyncio
    async def test_clear_cache_removes_stored_copy(self):
        storage = MemoryStorage()
        source = RandomSource.offline(RandomSourceOptions(cache_size=32), storage)
        await source.hexadecimal(4)
        assert storage.get_item("qrng-cache")

        source.clear_cache()
        assert storage.get_item("qrng-cache") is None


class TestBackgroundRefill:

    @pytest.mark.asyncio
    async def test_successful_refill_appends_service_digits(self):
        storage = MemoryStorage()
        entropy = StubEntropy()
        source = RandomSource(RandomSourceOptions(cache_size=64), storage, entropy_client=entropy)

        value = await source.hexadecimal(4)
        assert len(value) == 4
        assert source.is_refilling

        await source.wait_for_refill()
        assert entropy.calls == [64]
        assert source.get_cache_stats().size == 64
        assert source.is_refilling is False
        assert storage.get_item("qrng-cache") == ("0123456789abcdef" * 4)
        assert await source.hexadecimal(4) == "0123"

    @pytest.mark.asyncio
    async def test_refill_never_exceeds_capacity(self):
        entropy = StubEntropy(digits="ab" * 100)
        source = RandomSource(RandomSourceOptions(cache_size=32), entropy_client=entropy)
        await source.prime()
        assert source.get_cache_stats().size == 32

    @pytest.mark.asyncio
    async def test_service_failure_falls_back(self):
        entropy = StubEntropy(error=EntropyServiceError("down", status_code=503))
        source = RandomSource(RandomSourceOptions(cache_size=64), entropy_client=entropy)

        assert len(await source.hexadecimal(10)) == 10
        await source.wait_for_refill()

        assert entropy.calls == [64]
        stats = source.get_cache_stats()
        assert stats.size == 64
        assert stats.is_refilling is False

    @pytest.mark.asyncio
    async def test_timeout_falls_back(self):
        entropy = StubEntropy(delay=5.0)
        options = RandomSourceOptions(cache_size=48, api_timeout=0.05)
        source = RandomSource(options, entropy_client=entropy)

        await source.prime()
        assert source.get_cache_stats().size == 48
        assert source.is_refilling is False

    @pytest.mark.asyncio
    async def test_consumers_never_wait_and_only_one_refill_runs(self):
        gate = asyncio.Event()
        entropy = StubEntropy(gate=gate)
        source = RandomSource(RandomSourceOptions(cache_size=64), entropy_client=entropy)

        values = [await source.hexadecimal(16) for _ in range(5)]
        assert all(len(v) == 16 for v in values)
        await asyncio.wait_for(entropy.started.wait(), 1)
        assert entropy.calls == [64]
        assert source.get_cache_stats().is_refilling

        gate.set()
        await source.wait_for_refill()
        assert source.get_cache_stats().size == 64

    @pytest.mark.asyncio
    async def test_aclose_cancels_in_flight_refill(self):
        gate = asyncio.Event()
        entropy = StubEntropy(gate=gate)
        source = RandomSource(RandomSourceOptions(cache_size=64), entropy_client=entropy)

        await source.hexadecimal(4)
        assert source.is_refilling
        await source.aclose()
        assert source.is_refilling is False

    @pytest.mark.asyncio
    async def test_no_refill_above_threshold(self):
        storage = MemoryStorage({"qrng-cache": "a" * 60})
        entropy = StubEntropy()
        options = RandomSourceOptions(cache_size=64, refill_threshold=0.25)
        source = RandomSource(options, storage, entropy_client=entropy)

        await source.hexadecimal(4)
        assert entropy.calls == []
        assert source.is_refilling is False
