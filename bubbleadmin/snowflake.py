"""Snowflake-style 64-bit ID generation.

Layout: sign bit (0), 41-bit millisecond timestamp, worker id bits, sequence bits.
"""

from __future__ import annotations

import threading
import time
from typing import Protocol, runtime_checkable

DEFAULT_EPOCH = 1767225600000  # 2026-01-01
DEFAULT_WORKER_ID_BITS = 10
DEFAULT_SEQUENCE_BITS = 12
DEFAULT_MAX_BACKOFF_MS = 5

_FREE_BITS = 22


@runtime_checkable
class IDGenerator(Protocol):
    """Anything that hands out unique integer IDs."""

    def next_id(self) -> int: ...


class ClockMovedBackwardsError(RuntimeError):
    """The system clock went back further than the tolerated backoff."""


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


class Snowflake:
    """Thread-safe snowflake ID generator."""

    def __init__(
        self,
        worker_id: int,
        *,
        epoch: int = DEFAULT_EPOCH,
        worker_id_bits: int = DEFAULT_WORKER_ID_BITS,
        sequence_bits: int = DEFAULT_SEQUENCE_BITS,
        max_backoff_ms: int = DEFAULT_MAX_BACKOFF_MS,
    ) -> None:
        if worker_id_bits + sequence_bits > _FREE_BITS:
            raise ValueError("workerIDBits 与 sequenceBits 之和不能超过 22")

        self.epoch = epoch
        self.worker_id_bits = worker_id_bits
        self.sequence_bits = sequence_bits
        self.max_backoff_ms = max_backoff_ms

        self._max_worker_id = (1 << worker_id_bits) - 1
        self._max_sequence = (1 << sequence_bits) - 1
        self._worker_id_shift = sequence_bits
        self._timestamp_shift = sequence_bits + worker_id_bits

        if not 0 <= worker_id <= self._max_worker_id:
            raise ValueError(f"workerID 超出范围 (0-{self._max_worker_id})")
        self.worker_id = worker_id

        self._lock = threading.Lock()
        self._last_ms = 0
        self._seq = 0

    def next_id(self) -> int:
        """Return the next ID; raises ClockMovedBackwardsError on a large clock jump back."""
        with self._lock:
            now = _now_ms()

            if now < self._last_ms:
                offset = self._last_ms - now
                if offset > self.max_backoff_ms:
                    raise ClockMovedBackwardsError("检测到时钟回拨，拒绝生成 ID")
                time.sleep(offset / 1000)
                now = _now_ms()

            if now == self._last_ms:
                self._seq = (self._seq + 1) & self._max_sequence
                if self._seq == 0:
                    while now <= self._last_ms:
                        now = _now_ms()
            else:
                self._seq = 0

            self._last_ms = now
            return (
                ((now - self.epoch) << self._timestamp_shift)
                | (self.worker_id << self._worker_id_shift)
                | self._seq
            )