"""An ordered in-memory pool of transactions awaiting inclusion in a block."""

from __future__ import annotations

import logging
import queue
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Callable, Iterator, Optional, Sequence

from txmempool.cache import LRUTxCache, NopTxCache
from txmempool.checks import (
    MempoolIsFullError,
    PostCheckFunc,
    PreCheckError,
    PreCheckFunc,
    TxInCacheError,
    TxTooLargeError,
)
from txmempool.clist import CElement, CList
from txmempool.metrics import Metrics, nop_metrics
from txmempool.types import (
    CODE_TYPE_OK,
    CheckTxRequest,
    CheckTxResponse,
    CheckTxType,
    ExecTxResult,
    TxInfo,
    TxKey,
    compute_proto_size_for_txs,
)
from txmempool.types import tx_key as _key_of

logger = logging.getLogger(__name__)

CheckTxCallback = Callable[[CheckTxResponse], None]


@dataclass
class MempoolConfig:
    """Limits and behaviour of a :class:`CListMempool`."""

    size: int = 5000
    max_txs_bytes: int = 1024 * 1024 * 1024
    max_tx_bytes: int = 1024 * 1024
    cache_size: int = 10000
    keep_invalid_txs_in_cache: bool = False
    recheck: bool = True


@dataclass(eq=False)
class MempoolTx:
    """A transaction that passed the application's check."""

    height: int
    gas_wanted: int
    tx: bytes
    senders: set[int] = field(default_factory=set)


class _RWLock:
    """A lock shared by many readers or held by a single writer."""

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._readers = 0
        self._writer = False

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    def acquire_write(self) -> None:
        with self._cond:
            while self._writer or self._readers:
                self._cond.wait()
            self._writer = True

    def release_write(self) -> None:
        with self._cond:
            if not self._writer:
                raise RuntimeError("unlock of unlocked mempool")
            self._writer = False
            self._cond.notify_all()


class CListMempool:
    """A mempool keeping valid transactions in arrival order.

    Transactions are validated by the application before they are added.
    After a block is committed, :meth:`update` drops the committed ones and,
    if configured, asks the application to re-check the rest.
    """

    def __init__(
        self,
        config: MempoolConfig,
        app_conn: Any,
        height: int = 0,
        *,
        pre_check: Optional[PreCheckFunc] = None,
        post_check: Optional[PostCheckFunc] = None,
        metrics: Optional[Metrics] = None,
    ) -> None:
        self.config = config
        self.height = height
        self.metrics = metrics if metrics is not None else nop_metrics()
        self.cache = (
            LRUTxCache(config.cache_size) if config.cache_size > 0 else NopTxCache()
        )
        self._app_conn = app_conn
        self._txs_bytes = 0
        self._bytes_lock = threading.Lock()
        self._notified_txs_available = False
        self._txs_available_lock = threading.Lock()
        self._txs_available: Optional[queue.Queue] = None
        self._update_lock = _RWLock()
        self._pre_check = pre_check
        self._post_check = post_check
        self._txs = CList()
        self._txs_map: dict[TxKey, CElement] = {}
        self._recheck_cursor: Optional[CElement] = None
        self._recheck_end: Optional[CElement] = None
        app_conn.set_response_callback(self._global_cb)

    def enable_txs_available(self) -> None:
        """Create the queue signalled once per height when transactions exist."""
        self._txs_available = queue.Queue(maxsize=1)

    def lock(self) -> None:
        """Take the mempool exclusively, e.g. while updating after a commit."""
        self._update_lock.acquire_write()

    def unlock(self) -> None:
        """Release the lock taken by :meth:`lock`."""
        self._update_lock.release_write()

    def size(self) -> int:
        """Return the number of transactions in the mempool."""
        return len(self._txs)

    def size_bytes(self) -> int:
        """Return the total size of the transactions in the mempool."""
        with self._bytes_lock:
            return self._txs_bytes

    def flush_app_conn(self) -> None:
        """Wait until the application connection has served pending requests."""
        return self._app_conn.flush()

    def flush(self) -> None:
        """Drop every transaction and empty the cache."""
        with self._update_lock.read():
            with self._bytes_lock:
                self._txs_bytes = 0
            self.cache.reset()
            for element in self._txs:
                self._txs.remove(element)
                element.detach_prev()
            self._txs_map.clear()

    def txs_front(self) -> Optional[CElement]:
        """Return the first element of the ordered transaction list."""
        return self._txs.front()

    def txs_wait_event(self) -> threading.Event:
        """Return an event set once the mempool is not empty."""
        return self._txs.wait_event()

    def check_tx(
        self,
        tx: bytes,
        callback: Optional[CheckTxCallback] = None,
        tx_info: TxInfo = TxInfo(),
    ) -> None:
        """Validate ``tx`` with the application and add it if it passes.

        Raises when the transaction is rejected before reaching the
        application; otherwise ``callback``, if given, receives the
        application's response.
        """
        with self._update_lock.read():
            tx = bytes(tx)
            tx_size = len(tx)
            self._check_not_full(tx_size)

            if tx_size > self.config.max_tx_bytes:
                raise TxTooLargeError(self.config.max_tx_bytes, tx_size)

            if self._pre_check is not None:
                try:
                    self._pre_check(tx)
                except Exception as exc:
                    raise PreCheckError(exc) from exc

            err = self._app_conn.error()
            if err is not None:
                raise err

            if not self.cache.push(tx):
                # The tx may be cached but already gone from the pool (e.g.
                # committed), so a sender is only recorded for pooled txs.
                element = self._txs_map.get(_key_of(tx))
                if element is not None:
                    element.value.senders.add(tx_info.sender_id)
                raise TxInCacheError()

            req_res = self._app_conn.check_tx_async(CheckTxRequest(tx))
            req_res.set_callback(
                self._req_res_cb(
                    tx, tx_info.sender_id, tx_info.sender_p2p_id, callback
                )
            )

    def remove_tx_by_key(self, tx_key: TxKey) -> None:
        """Remove the transaction with key ``tx_key``; raise KeyError if absent."""
        element = self._txs_map.get(tx_key)
        if element is None:
            raise KeyError("transaction not found")
        self._remove_tx(element.value.tx, element)

    def txs_available(self) -> Optional[queue.Queue]:
        """Return the availability queue, or None if not enabled."""
        return self._txs_available

    def reap_max_bytes_max_gas(self, max_bytes: int, max_gas: int) -> list[bytes]:
        """Return transactions fitting within ``max_bytes`` and ``max_gas``.

        A negative limit means no limit.
        """
        with self._update_lock.read():
            total_gas = 0
            running_size = 0
            txs: list[bytes] = []
            for element in self._txs:
                mem_tx: MempoolTx = element.value
                new_total_gas = total_gas + mem_tx.gas_wanted
                total_data_size = running_size + compute_proto_size_for_txs(
                    [mem_tx.tx]
                )
                if (max_gas > -1 and new_total_gas > max_gas) or (
                    max_bytes > -1 and total_data_size > max_bytes
                ):
                    continue
                total_gas = new_total_gas
                running_size = total_data_size
                txs.append(mem_tx.tx)
            return txs

    def reap_max_txs(self, max_txs: int) -> list[bytes]:
        """Return up to ``max_txs`` transactions; all of them if negative."""
        with self._update_lock.read():
            if max_txs < 0:
                max_txs = len(self._txs)
            txs: list[bytes] = []
            for element in self._txs:
                if len(txs) >= max_txs:
                    break
                txs.append(element.value.tx)
            return txs

    def update(
        self,
        height: int,
        txs: Sequence[bytes],
        tx_results: Sequence[ExecTxResult],
        pre_check: Optional[PreCheckFunc] = None,
        post_check: Optional[PostCheckFunc] = None,
    ) -> None:
        """Drop transactions committed at ``height`` and re-check the rest.

        The caller must hold :meth:`lock`.
        """
        if len(tx_results) < len(txs):
            raise ValueError("fewer transaction results than transactions")

        self.height = height
        self._notified_txs_available = False

        if pre_check is not None:
            self._pre_check = pre_check
        if post_check is not None:
            self._post_check = post_check

        for tx, result in zip(txs, tx_results):
            if result.code == CODE_TYPE_OK:
                self.cache.push(tx)
            elif not self.config.keep_invalid_txs_in_cache:
                self.cache.remove(tx)

            key = _key_of(tx)
            try:
                self.remove_tx_by_key(key)
            except KeyError as exc:
                logger.debug(
                    "committed transaction not in local mempool (not an error): "
                    "key=%s error=%s",
                    key.hex(),
                    exc,
                )

        if self.size() > 0:
            if self.config.recheck:
                logger.debug("recheck txs: numtxs=%d height=%d", self.size(), height)
                self._recheck_txs()
            else:
                self._notify_txs_available()

        self._update_size_metrics()

    def _update_size_metrics(self) -> None:
        self.metrics.size.set(self.size())
        self.metrics.size_bytes.set(self.size_bytes())

    def _global_cb(self, request: CheckTxRequest, response: Any) -> None:
        if self._recheck_cursor is None:
            return
        self.metrics.recheck_times.add(1)
        self._res_cb_recheck(request, response)
        self._update_size_metrics()

    def _req_res_cb(
        self,
        tx: bytes,
        peer_id: int,
        peer_p2p_id: str,
        external_cb: Optional[CheckTxCallback],
    ) -> Callable[[Any], None]:
        def callback(response: Any) -> None:
            if self._recheck_cursor is not None:
                raise RuntimeError("recheck cursor is not None in request callback")
            self._res_cb_first_time(tx, peer_id, peer_p2p_id, response)
            self._update_size_metrics()
            if external_cb is not None:
                external_cb(response)

        return callback

    def _add_tx(self, mem_tx: MempoolTx) -> None:
        element = self._txs.push_back(mem_tx)
        self._txs_map[_key_of(mem_tx.tx)] = element
        with self._bytes_lock:
            self._txs_bytes += len(mem_tx.tx)
        self.metrics.tx_size_bytes.observe(len(mem_tx.tx))

    def _remove_tx(self, tx: bytes, element: CElement) -> None:
        self._txs.remove(element)
        element.detach_prev()
        self._txs_map.pop(_key_of(tx), None)
        with self._bytes_lock:
            self._txs_bytes -= len(tx)

    def _check_not_full(self, tx_size: int) -> None:
        mem_size = self.size()
        txs_bytes = self.size_bytes()
        if (
            mem_size >= self.config.size
            or tx_size + txs_bytes > self.config.max_txs_bytes
        ):
            raise MempoolIsFullError(
                mem_size, self.config.size, txs_bytes, self.config.max_txs_bytes
            )

    def _run_post_check(
        self, tx: bytes, response: CheckTxResponse
    ) -> Optional[Exception]:
        if self._post_check is None:
            return None
        try:
            self._post_check(tx, response)
        except Exception as exc:
            return exc
        return None

    def _res_cb_first_time(
        self, tx: bytes, peer_id: int, peer_p2p_id: str, response: Any
    ) -> None:
        if not isinstance(response, CheckTxResponse):
            return
        post_check_err = self._run_post_check(tx, response)
        if response.code == CODE_TYPE_OK and post_check_err is None:
            try:
                self._check_not_full(len(tx))
            except MempoolIsFullError as exc:
                # The pool might have room later.
                self.cache.remove(tx)
                logger.error("%s", exc)
                return

            mem_tx = MempoolTx(
                height=self.height, gas_wanted=response.gas_wanted, tx=tx
            )
            mem_tx.senders.add(peer_id)
            self._add_tx(mem_tx)
            logger.debug(
                "added good transaction: tx=%s height=%d total=%d",
                _key_of(tx).hex(),
                mem_tx.height,
                self.size(),
            )
            self._notify_txs_available()
        else:
            logger.debug(
                "rejected bad transaction: tx=%s peer=%s code=%d err=%s",
                _key_of(tx).hex(),
                peer_p2p_id,
                response.code,
                post_check_err,
            )
            self.metrics.failed_txs.add(1)
            if not self.config.keep_invalid_txs_in_cache:
                self.cache.remove(tx)

    def _res_cb_recheck(self, request: CheckTxRequest, response: Any) -> None:
        if not isinstance(response, CheckTxResponse):
            return
        tx = request.tx
        mem_tx: MempoolTx = self._recheck_cursor.value

        while tx != mem_tx.tx:
            logger.error(
                "re-CheckTx transaction mismatch: got=%s expected=%s",
                tx.hex(),
                mem_tx.tx.hex(),
            )
            if self._recheck_cursor is self._recheck_end:
                # The application skipped past the end of the recheck list.
                self._recheck_cursor = None
                return
            self._recheck_cursor = self._recheck_cursor.next()
            mem_tx = self._recheck_cursor.value

        post_check_err = self._run_post_check(tx, response)
        if response.code != CODE_TYPE_OK or post_check_err is not None:
            logger.debug(
                "tx is no longer valid: tx=%s code=%d err=%s",
                _key_of(tx).hex(),
                response.code,
                post_check_err,
            )
            self._remove_tx(tx, self._recheck_cursor)
            if not self.config.keep_invalid_txs_in_cache:
                self.cache.remove(tx)

        if self._recheck_cursor is self._recheck_end:
            self._recheck_cursor = None
        else:
            self._recheck_cursor = self._recheck_cursor.next()

        if self._recheck_cursor is None:
            logger.debug("done rechecking txs")
            if self.size() > 0:
                self._notify_txs_available()

    def _notify_txs_available(self) -> None:
        with self._txs_available_lock:
            if self.size() == 0:
                raise RuntimeError("notified txs available but mempool is empty")
            if self._txs_available is not None and not self._notified_txs_available:
                self._notified_txs_available = True
                try:
                    self._txs_available.put_nowait(None)
                except queue.Full:
                    pass

    def _recheck_txs(self) -> None:
        if self.size() == 0:
            raise RuntimeError("recheck_txs is called, but the mempool is empty")

        self._recheck_cursor = self._txs.front()
        self._recheck_end = self._txs.back()

        for element in self._txs:
            mem_tx: MempoolTx = element.value
            try:
                self._app_conn.check_tx_async(
                    CheckTxRequest(mem_tx.tx, CheckTxType.RECHECK)
                )
            except Exception as exc:
                logger.error("recheckTx: %s", exc)
                return