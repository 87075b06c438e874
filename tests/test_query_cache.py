import threading

import pytest

from aisentinel.client.query_cache import QueryCache


class Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_second_fetch_is_served_from_cache():
    cache = QueryCache()
    calls = []

    def loader():
        calls.append(1)
        return "me"

    assert cache.fetch("k", loader) == "me"
    assert cache.fetch("k", loader) == "me"
    assert len(calls) == 1


def test_concurrent_fetches_share_one_load():
    cache = QueryCache()
    started = threading.Event()
    release = threading.Event()
    calls = []

    def loader():
        calls.append(1)
        started.set()
        release.wait(5)
        return "me"

    results = []
    owner = threading.Thread(target=lambda: results.append(cache.fetch("k", loader)))
    owner.start()
    assert started.wait(5)

    waiters = [threading.Thread(target=lambda: results.append(cache.fetch("k", loader))) for _ in range(3)]
    for t in waiters:
        t.start()
    assert cache.is_fetching("k")
    release.set()
    for t in [owner] + waiters:
        t.join(5)

    assert results == ["me"] * 4
    assert len(calls) == 1


def test_new_generation_drops_cached_entries():
    cache = QueryCache()
    cache.fetch("k", lambda: "old")

    cache.new_generation()

    assert cache.peek("k") == (False, None)
    assert cache.fetch("k", lambda: "new") == "new"


def test_load_started_in_an_old_generation_is_not_stored():
    cache = QueryCache()

    def loader():
        cache.new_generation()
        return "from-old-credential"

    assert cache.fetch("k", loader) == "from-old-credential"
    assert cache.peek("k") == (False, None)


def test_invalidated_load_is_not_stored():
    cache = QueryCache()

    def loader():
        cache.invalidate("k")
        return "detached"

    cache.fetch("k", loader)
    assert cache.peek("k") == (False, None)


def test_entries_go_stale():
    clock = Clock()
    cache = QueryCache(stale_time=10, clock=clock)
    cache.fetch("k", lambda: 1)

    clock.now = 9
    assert cache.peek("k") == (True, 1)
    clock.now = 10
    assert cache.peek("k") == (False, None)
    assert cache.fetch("k", lambda: 2) == 2


def test_failed_load_propagates_and_is_not_cached():
    cache = QueryCache()

    def boom():
        raise RuntimeError("down")

    with pytest.raises(RuntimeError):
        cache.fetch("k", boom)
    assert not cache.is_fetching("k")
    assert cache.fetch("k", lambda: "up") == "up"


def test_generation_counter_increases():
    cache = QueryCache()
    assert cache.generation == 0
    assert cache.new_generation() == 1
    assert cache.generation == 1
