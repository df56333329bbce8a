import pytest

from vocab.cache import ResponseCache, audio_key, text_key


@pytest.fixture
def cache(clock):
    return ResponseCache(ttl_seconds=300, sweep_interval_seconds=600, clock=clock)


@pytest.mark.unit
def test_entry_is_returned_within_ttl(cache, clock):
    cache.set("hello", "define", "D1")
    clock.advance(minutes=4)
    assert cache.get("hello", "define") == "D1"


@pytest.mark.unit
def test_entry_at_exact_ttl_is_still_fresh(cache, clock):
    cache.set("hello", "define", "D1")
    clock.advance(minutes=5)
    assert cache.get("hello", "define") == "D1"


@pytest.mark.unit
def test_expired_entry_is_absent_and_dropped(cache, clock):
    cache.set("hello", "define", "D1")
    clock.advance(minutes=6)
    assert cache.get("hello", "define") is None
    assert cache.stats()["text_entries"] == 0

    # A new set/get cycle works again
    cache.set("hello", "define", "D2")
    assert cache.get("hello", "define") == "D2"


@pytest.mark.unit
def test_keys_are_isolated_by_action_and_family(cache):
    cache.set("hello", "define", "X")
    assert cache.get("hello", "example") is None
    assert cache.get_audio("hello") is None

    cache.set_audio("hello", "AUDIO")
    assert cache.get("hello", "define") == "X"
    assert cache.get_audio("hello") == "AUDIO"
    assert text_key("hello", "define") != audio_key("hello")


@pytest.mark.unit
def test_keys_are_case_insensitive(cache):
    cache.set("Hello", "define", "X")
    assert cache.get("hello", "define") == "X"
    assert cache.get("HELLO", "define") == "X"

    cache.set_audio("Hello World", "A1")
    assert cache.get_audio("hello world") == "A1"


@pytest.mark.unit
def test_set_overwrites_with_fresh_timestamp(cache, clock):
    cache.set("hello", "define", "old")
    clock.advance(minutes=4)
    cache.set("hello", "define", "new")
    clock.advance(minutes=4)
    assert cache.get("hello", "define") == "new"


@pytest.mark.unit
def test_clear_drops_both_families(cache):
    cache.set("hello", "define", "X")
    cache.set_audio("hello", "A")
    cache.clear()
    assert cache.get("hello", "define") is None
    assert cache.get_audio("hello") is None
    assert cache.stats() == {"text_entries": 0, "audio_entries": 0}


@pytest.mark.unit
def test_sweep_removes_only_stale_entries(cache, clock):
    cache.set("old", "define", "1")
    cache.set_audio("old", "a")
    clock.advance(minutes=4)
    cache.set("new", "define", "2")
    clock.advance(minutes=2)

    assert cache.sweep() == 2
    assert cache.stats() == {"text_entries": 1, "audio_entries": 0}
    assert cache.get("new", "define") == "2"


@pytest.mark.unit
def test_sweeper_can_be_started_and_stopped(cache):
    cache.start_sweeper()
    assert cache._sweeper.active
    cache.stop_sweeper()
    assert not cache._sweeper.active
