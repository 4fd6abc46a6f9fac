# src/runlens/telemetry/buffer.py
"""Bounded ring buffer for live telemetry records.

Key design decisions:
- Ring buffer via deque(maxlen=N): Automatic oldest-first eviction
- Correct overflow counting: Check was_full BEFORE append (deque evicts during)
- Aggregate logging: Log every 100 drops, not every drop
- Copy-on-read: queries filter a snapshot copied under the lock, so a
  concurrent append never tears a query
"""

import threading
from collections import deque
from collections.abc import Callable
from typing import Protocol

import structlog

logger = structlog.get_logger(__name__)


class Timestamped(Protocol):
    @property
    def timestamp_ms(self) -> float: ...


class RingBuffer[T: Timestamped]:
    """Append-only bounded log of telemetry records.

    Thread Safety:
        append() and query() may be called from any thread. Both hold an
        internal lock only long enough to mutate or copy the deque.

    Cursor semantics:
        query(after_timestamp=t) returns records with timestamp_ms > t,
        strictly. Records sharing a timestamp keep arrival order, but a
        cursor equal to that timestamp skips all of them, so consumers that
        need exact delivery should page with a timestamp just below the
        last one they saw and de-duplicate.

    Example:
        buffer = RingBuffer[LogEntry](max_entries=1000)
        buffer.append(entry)
        recent = buffer.query(after_timestamp=cursor, last=50)
    """

    _LOG_INTERVAL = 100

    def __init__(self, max_entries: int = 10_000, *, name: str = "telemetry") -> None:
        """Initialize the ring buffer.

        Args:
            max_entries: Capacity; the oldest record is evicted on overflow.
            name: Buffer name used in overflow warnings.

        Raises:
            ValueError: If max_entries < 1.
        """
        if max_entries < 1:
            raise ValueError(f"max_entries must be >= 1, got {max_entries}")
        self._name = name
        self._buffer: deque[T] = deque(maxlen=max_entries)
        self._lock = threading.Lock()
        self._dropped_count = 0
        self._last_logged_drop_count = 0

    def append(self, record: T) -> None:
        """Append a record, evicting the oldest if the buffer is full."""
        with self._lock:
            was_full = len(self._buffer) == self._buffer.maxlen
            self._buffer.append(record)
            if not was_full:
                return
            self._dropped_count += 1
            should_log = self._dropped_count - self._last_logged_drop_count >= self._LOG_INTERVAL
            if should_log:
                self._last_logged_drop_count = self._dropped_count
            dropped_total = self._dropped_count

        if should_log:
            logger.warning(
                "Telemetry buffer overflow - oldest records evicted",
                buffer=self._name,
                dropped_since_last_log=self._LOG_INTERVAL,
                dropped_total=dropped_total,
                buffer_size=self._buffer.maxlen,
                hint="Increase telemetry.max_entries or poll more often",
            )

    def snapshot(self) -> list[T]:
        """Copy of current contents, oldest first."""
        with self._lock:
            return list(self._buffer)

    def query(
        self,
        after_timestamp: float | None = None,
        predicate: Callable[[T], bool] | None = None,
        last: int | None = None,
    ) -> list[T]:
        """Select records, oldest first.

        Args:
            after_timestamp: Keep only records strictly newer than this.
            predicate: Keep only records it accepts.
            last: Keep only the N most recent of what remains (0 yields none).

        Returns:
            Matching records in arrival order.
        """
        records = self.snapshot()
        if after_timestamp is not None:
            records = [record for record in records if record.timestamp_ms > after_timestamp]
        if predicate is not None:
            records = [record for record in records if predicate(record)]
        if last is not None:
            records = records[-last:] if last > 0 else []
        return records

    def clear(self) -> None:
        with self._lock:
            self._buffer.clear()

    @property
    def max_entries(self) -> int:
        maxlen = self._buffer.maxlen
        assert maxlen is not None
        return maxlen

    @property
    def dropped_count(self) -> int:
        """Number of records evicted due to overflow."""
        return self._dropped_count

    def __len__(self) -> int:
        """Return the current number of records in the buffer."""
        return len(self._buffer)
