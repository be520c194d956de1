from datetime import datetime, timedelta, timezone

import pytest

from sakuracloud_exporter.cloud.cache import Cache


class _Clock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


def test_new_cache():
    cleanup_interval = timedelta(minutes=10)
    cache = Cache(cleanup_interval)
    assert cache.cleanup_interval == cleanup_interval


def test_set():
    cache = Cache(timedelta(minutes=10))
    item = "dummy_item"
    expires_at = datetime.now(timezone.utc) + timedelta(hours=1)
    cache.set(item, expires_at)
    assert cache.item == item
    assert cache.expires_at == expires_at


def test_get_item_not_expired():
    cache = Cache(timedelta(minutes=10))
    item = "dummy_item"
    cache.set(item, datetime.now(timezone.utc) + timedelta(hours=1))
    assert cache.get() == item


def test_get_item_expired():
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    clock = _Clock(start)
    cache = Cache(timedelta(seconds=1), clock=clock)
    cache.set("dummy_item", start + timedelta(seconds=1))
    assert cache.get() == "dummy_item"
    clock.now = start + timedelta(seconds=2)
    assert cache.get() is None


def test_get_without_item():
    assert Cache(timedelta(minutes=1)).get() is None


def test_set_rejects_missing_item():
    cache = Cache(timedelta(minutes=1))
    with pytest.raises(ValueError, match="item is not set"):
        cache.set(None, datetime.now(timezone.utc))


def test_set_rejects_missing_expiry():
    cache = Cache(timedelta(minutes=1))
    with pytest.raises(ValueError, match="expiresAt is not set"):
        cache.set("dummy_item", None)