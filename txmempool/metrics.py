"""In-memory metrics instruments for the mempool."""

from __future__ import annotations

import bisect
import threading
from dataclasses import dataclass, field
from typing import Sequence

METRICS_SUBSYSTEM = "mempool"


def _full_name(namespace: str, subsystem: str, name: str) -> str:
    if not name:
        return ""
    return "_".join(part for part in (namespace, subsystem, name) if part)


def _label_pairs(labels_and_values: Sequence[str]) -> dict[str, str]:
    values = list(labels_and_values)
    if len(values) % 2:
        values.append("unknown")
    return dict(zip(values[::2], values[1::2]))


@dataclass
class Gauge:
    """A value that can go up and down."""

    name: str = ""
    help: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    value: float = 0.0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def set(self, value: float) -> None:
        with self._lock:
            self.value = float(value)


@dataclass
class Counter:
    """A value that only goes up."""

    name: str = ""
    help: str = ""
    labels: dict[str, str] = field(default_factory=dict)
    value: float = 0.0
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def add(self, delta: float) -> None:
        if delta < 0:
            raise ValueError("counter cannot decrease in value")
        with self._lock:
            self.value += delta


@dataclass
class Histogram:
    """A distribution of observed values over fixed upper-bound buckets."""

    name: str = ""
    help: str = ""
    buckets: tuple[float, ...] = ()
    labels: dict[str, str] = field(default_factory=dict)
    count: int = 0
    sum: float = 0.0
    bucket_counts: list[int] = field(init=False)
    _lock: threading.Lock = field(
        default_factory=threading.Lock, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self.buckets = tuple(sorted(self.buckets))
        self.bucket_counts = [0] * len(self.buckets)

    def observe(self, value: float) -> None:
        """Record ``value``; bucket counts are cumulative (value <= upper bound)."""
        with self._lock:
            self.count += 1
            self.sum += value
            first = bisect.bisect_left(self.buckets, value)
            for index in range(first, len(self.buckets)):
                self.bucket_counts[index] += 1


class _DiscardGauge(Gauge):
    def set(self, value: float) -> None:
        return None


class _DiscardCounter(Counter):
    def add(self, delta: float) -> None:
        return None


class _DiscardHistogram(Histogram):
    def observe(self, value: float) -> None:
        return None


@dataclass
class Metrics:
    """The metrics the mempool reports."""

    size: Gauge
    size_bytes: Gauge
    tx_size_bytes: Histogram
    failed_txs: Counter
    rejected_txs: Counter
    evicted_txs: Counter
    recheck_times: Counter


def exponential_buckets(start: float, factor: float, count: int) -> list[float]:
    """Return ``count`` bucket bounds, the first ``start``, each ``factor`` times the last."""
    if count < 1:
        raise ValueError("exponential_buckets needs a positive count")
    if start <= 0:
        raise ValueError("exponential_buckets needs a positive start value")
    if factor <= 1:
        raise ValueError("exponential_buckets needs a factor greater than 1")
    buckets = []
    bound = start
    for _ in range(count):
        buckets.append(bound)
        bound *= factor
    return buckets


def nop_metrics() -> Metrics:
    """Return metrics that discard everything reported to them."""
    return Metrics(
        size=_DiscardGauge(),
        size_bytes=_DiscardGauge(),
        tx_size_bytes=_DiscardHistogram(),
        failed_txs=_DiscardCounter(),
        rejected_txs=_DiscardCounter(),
        evicted_txs=_DiscardCounter(),
        recheck_times=_DiscardCounter(),
    )


def metrics_for(namespace: str, *args: str) -> Metrics:
    """Return recording metrics under ``namespace``.

    ``args`` are label names alternating with their values
    (``"chain_id", "test"``); a missing final value becomes ``"unknown"``.
    """
    labels = _label_pairs(args)

    def name(short: str) -> str:
        return _full_name(namespace, METRICS_SUBSYSTEM, short)

    return Metrics(
        size=Gauge(
            name("size"),
            "Size of the mempool (number of uncommitted transactions).",
            dict(labels),
        ),
        size_bytes=Gauge(
            name("size_bytes"), "Total size of the mempool in bytes.", dict(labels)
        ),
        tx_size_bytes=Histogram(
            name("tx_size_bytes"),
            "Transaction sizes in bytes.",
            tuple(exponential_buckets(1, 3, 17)),
            dict(labels),
        ),
        failed_txs=Counter(
            name("failed_txs"), "Number of failed transactions.", dict(labels)
        ),
        rejected_txs=Counter(
            name("rejected_txs"), "Number of rejected transactions.", dict(labels)
        ),
        evicted_txs=Counter(
            name("evicted_txs"), "Number of evicted transactions.", dict(labels)
        ),
        recheck_times=Counter(
            name("recheck_times"),
            "Number of times transactions are rechecked in the mempool.",
            dict(labels),
        ),
    )