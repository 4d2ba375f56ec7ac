import os

from txmempool.cache import LRUTxCache, NopTxCache
from txmempool.types import tx_key


def test_cache_remove():
    cache = LRUTxCache(100)
    num_txs = 10
    txs = [os.urandom(32) for _ in range(num_txs)]

    for count, tx in enumerate(txs, start=1):
        cache.push(tx)
        assert len(cache) == count
        assert len(cache.keys()) == count

    for count, tx in enumerate(txs, start=1):
        cache.remove(tx)
        assert len(cache) == num_txs - count
        assert len(cache.keys()) == num_txs - count


def test_push_reports_new_and_duplicate():
    cache = LRUTxCache(10)
    assert cache.push(b"a") is True
    assert cache.push(b"a") is False
    assert len(cache) == 1


def test_eviction_of_least_recently_used():
    cache = LRUTxCache(2)
    cache.push(b"a")
    cache.push(b"b")
    cache.push(b"a")  # a becomes most recently used
    cache.push(b"c")
    assert cache.has(b"a")
    assert not cache.has(b"b")
    assert cache.keys() == [tx_key(b"a"), tx_key(b"c")]


def test_has_does_not_touch_order():
    cache = LRUTxCache(2)
    cache.push(b"a")
    cache.push(b"b")
    assert cache.has(b"a")
    cache.push(b"c")
    assert not cache.has(b"a")
    assert cache.keys() == [tx_key(b"b"), tx_key(b"c")]


def test_reset_and_remove_missing():
    cache = LRUTxCache(5)
    cache.push(b"x")
    cache.remove(b"missing")
    assert len(cache) == 1
    cache.reset()
    assert len(cache) == 0
    assert not cache.has(b"x")
    assert cache.push(b"x") is True


def test_nop_cache():
    cache = NopTxCache()
    assert cache.push(b"a") is True
    assert cache.push(b"a") is True
    assert cache.has(b"a") is False
    cache.remove(b"a")
    cache.reset()
    assert cache.has(b"a") is False