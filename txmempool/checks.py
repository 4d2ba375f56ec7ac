"""Mempool errors and the optional pre- and post-check filters."""

from __future__ import annotations

from typing import Callable, Optional

from txmempool.types import CheckTxResponse, compute_proto_size_for_txs

# A pre-check raises to reject a transaction before the application sees it.
PreCheckFunc = Callable[[bytes], None]
# A post-check raises to reject a transaction after the application accepted it.
PostCheckFunc = Callable[[bytes, CheckTxResponse], None]


class MempoolError(Exception):
    """Base class of errors raised by the mempool."""


class TxInCacheError(MempoolError):
    """The transaction was seen before and is still in the cache."""

    def __init__(self) -> None:
        super().__init__("tx already exists in cache")


class TxTooLargeError(MempoolError):
    """The transaction is too big to be sent to other peers."""

    def __init__(self, max: int, actual: int) -> None:
        super().__init__(f"Tx too large. Max size is {max}, but got {actual}")
        self.max = max
        self.actual = actual


class MempoolIsFullError(MempoolError):
    """The mempool cannot take more transactions or bytes."""

    def __init__(
        self, num_txs: int, max_txs: int, txs_bytes: int, max_txs_bytes: int
    ) -> None:
        super().__init__(
            f"mempool is full: number of txs {num_txs} (max: {max_txs}), "
            f"total txs bytes {txs_bytes} (max: {max_txs_bytes})"
        )
        self.num_txs = num_txs
        self.max_txs = max_txs
        self.txs_bytes = txs_bytes
        self.max_txs_bytes = max_txs_bytes


class PreCheckError(MempoolError):
    """The transaction was rejected by the pre-check filter."""

    def __init__(self, reason: BaseException) -> None:
        super().__init__(str(reason))
        self.reason = reason


def pre_check_max_bytes(max_bytes: int) -> PreCheckFunc:
    """Return a pre-check rejecting transactions whose encoded size exceeds ``max_bytes``."""

    def check(tx: bytes) -> None:
        tx_size = compute_proto_size_for_txs([tx])
        if tx_size > max_bytes:
            raise ValueError(f"tx size is too big: {tx_size}, max: {max_bytes}")

    return check


def post_check_max_gas(max_gas: int) -> PostCheckFunc:
    """Return a post-check rejecting transactions wanting more than ``max_gas``.

    A ``max_gas`` of -1 disables the check.
    """

    def check(tx: bytes, res: CheckTxResponse) -> None:
        if max_gas == -1:
            return
        if res.gas_wanted < 0:
            raise ValueError(f"gas wanted {res.gas_wanted} is negative")
        if res.gas_wanted > max_gas:
            raise ValueError(
                f"gas wanted {res.gas_wanted} is greater than max gas {max_gas}"
            )

    return check


def is_pre_check_error(err: Optional[BaseException]) -> bool:
    """Report whether ``err``, or an error it was raised from, is a pre-check failure."""
    seen = set()
    while err is not None and id(err) not in seen:
        if isinstance(err, PreCheckError):
            return True
        seen.add(id(err))
        err = err.__cause__ or err.__context__
    return False