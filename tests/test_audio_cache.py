import pytest

from tts_stream.services.audio_cache import AudioCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_key_depends_on_all_parameters() -> None:
    base = AudioCache.key_for("Hello.", "sage", 1.0, "mp3")

    assert base.startswith("tts_")
    assert base.endswith("_sage_1_mp3")
    assert AudioCache.key_for("Hello.", "sage", 1.0, "mp3") == base
    assert AudioCache.key_for("Hello!", "sage", 1.0, "mp3") != base
    assert AudioCache.key_for("Hello.", "nova", 1.0, "mp3") != base
    assert AudioCache.key_for("Hello.", "sage", 1.25, "mp3") != base
    assert AudioCache.key_for("Hello.", "sage", 1.0, "wav") != base


def test_get_tracks_hits_and_misses() -> None:
    cache = AudioCache(max_entries=4)

    assert cache.get("a") is None
    cache.put("a", b"audio")
    assert cache.get("a") == b"audio"

    assert cache.stats() == {"entries": 1, "hits": 1, "misses": 1}


def test_least_recently_used_entry_is_evicted() -> None:
    cache = AudioCache(max_entries=2)
    cache.put("a", b"1")
    cache.put("b", b"2")
    cache.get("a")

    cache.put("c", b"3")

    assert "a" in cache
    assert "b" not in cache
    assert "c" in cache
    assert len(cache) == 2


def test_entries_expire_after_ttl() -> None:
    clock = FakeClock()
    cache = AudioCache(max_entries=4, ttl_seconds=60, clock=clock)
    cache.put("a", b"1")
    cache.put("b", b"2")

    clock.now += 61

    assert cache.get("a") is None
    assert cache.purge_expired() == 1
    assert len(cache) == 0


def test_zero_size_disables_cache() -> None:
    cache = AudioCache(max_entries=0)
    cache.put("a", b"1")

    assert not cache.enabled
    assert cache.get("a") is None
    assert len(cache) == 0


def test_empty_payload_is_not_cached() -> None:
    cache = AudioCache(max_entries=2)
    cache.put("a", b"")

    assert "a" not in cache


@pytest.mark.anyio
async def test_capture_stores_stream_after_completion() -> None:
    cache = AudioCache(max_entries=2)

    async def chunks():
        yield b"ab"
        assert "k" not in cache
        yield b"cd"

    received = [chunk async for chunk in cache.capture("k", chunks())]

    assert received == [b"ab", b"cd"]
    assert cache.get("k") == b"abcd"


@pytest.mark.anyio
async def test_capture_skips_incomplete_stream() -> None:
    cache = AudioCache(max_entries=2)

    async def chunks():
        yield b"ab"
        raise RuntimeError("connection dropped")

    with pytest.raises(RuntimeError):
        async for _ in cache.capture("k", chunks()):
            pass

    assert "k" not in cache


@pytest.mark.anyio
async def test_closing_capture_early_closes_upstream() -> None:
    cache = AudioCache(max_entries=2)
    closed: list[bool] = []

    async def chunks():
        try:
            yield b"ab"
            yield b"cd"
            yield b"ef"
        finally:
            closed.append(True)

    captured = cache.capture("k", chunks())
    assert await captured.__anext__() == b"ab"

    await captured.aclose()

    assert closed == [True]
    assert "k" not in cache


@pytest.mark.anyio
async def test_disabled_cache_passes_stream_through() -> None:
    cache = AudioCache(max_entries=0)

    async def chunks():
        yield b"ab"
        yield b"cd"

    received = [chunk async for chunk in cache.capture("k", chunks())]

    assert received == [b"ab", b"cd"]
    assert len(cache) == 0
    assert cache.stats() == {"entries": 0, "hits": 0, "misses": 0}
