# txmempool

An ordered, thread-safe, in-memory pool of transactions waiting to be
proposed in a block. Every transaction is checked by an application before
it is admitted. After each committed block the pool drops the committed
transactions and can recheck the rest.

## Installing

```
pip install txmempool
```

The package has no runtime dependencies. To run the test suite:

```
pip install "txmempool[test]"
pytest
```

## Modules

- `txmempool.types`: `TxInfo` (sender id and sender peer id),
  `CheckTxType` (`NEW`, `RECHECK`), `CheckTxRequest`, `CheckTxResponse`
  (`code`, `gas_wanted`, `data`, `log`) and `ExecTxResult`; `tx_key(tx)`
  returns the SHA-256 digest that identifies a transaction, and
  `compute_proto_size_for_txs(txs)` the encoded size of a list of
  transactions (one tag byte, a varint length and the bytes for each).
- `txmempool.clist`: `CList` and `CElement`, a doubly linked list that many
  threads can walk while others push and remove. `CList` has a maximum
  length (`push_back` raises `CListError` beyond it), supports `len()` and
  iteration, and offers `front`, `back`, the blocking `front_wait` and
  `back_wait`, and `wait_event`, a `threading.Event` set while the list is
  not empty. Elements offer `next`, `prev`, the blocking `next_wait` and
  `prev_wait`, and the events `next_wait_event` and `prev_wait_event`.
  A removed element must be detached with `detach_prev`/`detach_next`;
  calling these before removal raises `CListError`.
- `txmempool.cache`: `LRUTxCache`, a bounded cache of transaction keys.
  `push` returns `True` for a new transaction and `False` for one already
  cached (which then becomes the most recently used); pushing into a full
  cache evicts the least recently used key. `has` does not count as a use.
  `NopTxCache` remembers nothing: every `push` returns `True`.
- `txmempool.checks`: the errors the pool raises, all subclasses of
  `MempoolError`: `TxInCacheError`, `TxTooLargeError`,
  `MempoolIsFullError` and `PreCheckError`; the filter factories
  `pre_check_max_bytes(max_bytes)` and `post_check_max_gas(max_gas)`
  (`-1` disables the gas check), which raise `ValueError` to reject a
  transaction; and `is_pre_check_error(err)`, which also follows the
  exception's cause and context chain.
- `txmempool.metrics`: `Metrics`, holding `Gauge`, `Counter` and
  `Histogram` instruments. `metrics_for(namespace, *labels_and_values)`
  builds recording instruments named `<namespace>_mempool_<name>`;
  `nop_metrics()` builds ones that discard everything.
  `exponential_buckets(start, factor, count)` computes histogram bounds.
- `txmempool.appconn`: `Application`, whose `check_tx` accepts every
  transaction unless overridden; `LocalAppConnection`, which serves
  requests to an application in process, one at a time; and `ReqRes`, a
  request paired with its response and callback.
- `txmempool.clist_mempool`: `MempoolConfig`, `MempoolTx` and
  `CListMempool`, the pool itself.

## Using the pool

```python
from txmempool.appconn import Application, LocalAppConnection
from txmempool.checks import TxInCacheError
from txmempool.clist_mempool import CListMempool, MempoolConfig
from txmempool.types import CheckTxResponse, ExecTxResult, TxInfo


class AcceptAll(Application):
    def check_tx(self, request):
        return CheckTxResponse(code=0, gas_wanted=1)


pool = CListMempool(MempoolConfig(), LocalAppConnection(AcceptAll()), 0)
pool.enable_txs_available()

pool.check_tx(b"tx-1", None, TxInfo(sender_id=1))
try:
    pool.check_tx(b"tx-1", None, TxInfo(sender_id=2))
except TxInCacheError:
    pass  # already seen

print(pool.size(), pool.size_bytes())          # 1 4
batch = pool.reap_max_bytes_max_gas(-1, -1)    # every transaction

pool.lock()
try:
    pool.update(1, batch, [ExecTxResult(code=0)] * len(batch), None, None)
finally:
    pool.unlock()
```

`MempoolConfig` sets `size` (maximum number of transactions, default
5000), `max_txs_bytes` (default 1 GiB), `max_tx_bytes` (default 1 MiB),
`cache_size` (default 10000; zero or less uses `NopTxCache`),
`keep_invalid_txs_in_cache` (default `False`) and `recheck` (default
`True`). The constructor also takes keyword-only `pre_check`, `post_check`
and `metrics`.

`check_tx(tx, callback, tx_info)` raises `MempoolIsFullError` when the
count or byte limits are reached, `TxTooLargeError` for a transaction above
`max_tx_bytes`, `PreCheckError` when the pre-check filter rejects it, any
error the application connection has recorded, and `TxInCacheError` for a
transaction already seen (recording the new sender if the transaction is
still pooled). Otherwise the application's response is passed to
`callback`, if one is given; the transaction is added when the response
code is `0` and the post-check filter accepts it, and counted in
`metrics.failed_txs` when not.

`reap_max_bytes_max_gas(max_bytes, max_gas)` returns transactions in
arrival order, skipping any that would exceed either limit; a negative
limit means no limit. `reap_max_txs(n)` returns at most `n` transactions,
all of them when `n` is negative.

`update(height, txs, tx_results, pre_check, post_check)` must be called
while holding `lock()`. It caches transactions whose result code is `0`,
removes failed ones from the cache unless `keep_invalid_txs_in_cache` is
set, removes the committed transactions from the pool, replaces the filters
that are given, and then rechecks the remaining transactions with the
application (or, with `recheck` off, signals availability). It raises
`ValueError` if there are fewer results than transactions.

`remove_tx_by_key(key)` removes one transaction and raises `KeyError` if it
is not pooled. `flush()` drops every transaction and empties the cache.
After `enable_txs_available()`, `txs_available()` returns a
`queue.Queue` that receives one item per height once transactions are
available; without it, `txs_available()` returns `None`.

## What it does not do

The package is the pool and its in-process application connection only.
It has no command-line program, no network gossip between peers, no RPC
server, no connection to an application in another process, and no
persistent storage: everything lives in memory.