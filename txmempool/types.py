"""Transaction and application-message types shared by the mempool."""

from __future__ import annotations

import enum
import hashlib
from dataclasses import dataclass
from typing import Iterable

MEMPOOL_CHANNEL = 0x30

# How long to sleep, in milliseconds, when a peer is behind.
PEER_CATCHUP_SLEEP_INTERVAL_MS = 100

# Sender ID used when a transaction arrives without a peer (e.g. over RPC).
UNKNOWN_PEER_ID = 0

MAX_ACTIVE_IDS = 0xFFFF

# Response code the application uses for an accepted transaction.
CODE_TYPE_OK = 0

TX_KEY_SIZE = hashlib.sha256().digest_size

Tx = bytes
TxKey = bytes


def tx_key(tx: bytes) -> TxKey:
    """Return the fixed-length key (SHA-256 digest) identifying a transaction."""
    return hashlib.sha256(bytes(tx)).digest()


def _uvarint_size(value: int) -> int:
    size = 1
    while value >= 0x80:
        value >>= 7
        size += 1
    return size


def compute_proto_size_for_txs(txs: Iterable[bytes]) -> int:
    """Return the encoded size of a block data message holding ``txs``.

    Each transaction is a length-delimited repeated field: one tag byte,
    a varint length and the transaction bytes themselves.
    """
    return sum(1 + _uvarint_size(len(tx)) + len(tx) for tx in txs)


@dataclass(frozen=True)
class TxInfo:
    """Parameters passed along when a transaction is offered to the mempool."""

    sender_id: int = UNKNOWN_PEER_ID
    sender_p2p_id: str = ""


class CheckTxType(enum.IntEnum):
    """Whether a transaction is checked for the first time or re-checked."""

    NEW = 0
    RECHECK = 1


@dataclass(frozen=True)
class CheckTxRequest:
    """A request asking the application to validate a transaction."""

    tx: bytes
    type: CheckTxType = CheckTxType.NEW


@dataclass(frozen=True)
class CheckTxResponse:
    """The application's verdict on a transaction."""

    code: int = CODE_TYPE_OK
    gas_wanted: int = 0
    data: bytes = b""
    log: str = ""


@dataclass(frozen=True)
class ExecTxResult:
    """The outcome of executing a committed transaction."""

    code: int = CODE_TYPE_OK
    data: bytes = b""
    log: str = ""