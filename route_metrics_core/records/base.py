"""
Base accumulator for the records of a single type.
"""
from __future__ import annotations

import bisect
from typing import Callable, Iterator, List, Optional

from route_metrics_core.core.exceptions import RegistryError
from route_metrics_core.core.types import LogRecord, RecordType


class TypeBase:
    """
    Holds the records of one type in timestamp order.

    Records are sorted on insertion. Logs are almost always in order, so the
    common case is an append; an out-of-order record is inserted after any
    records with the same timestamp so insertion order is kept for ties.
    """
    def __init__(self, record_type: RecordType) -> None:
        self.type = record_type
        self.records: List[LogRecord] = []
        self._timestamps: List[int] = []

    def add(self, record: LogRecord) -> None:
        if record.type != self.type:
            raise RegistryError(f'expected type {self.type.value}, got type {record.type_name}')
        if not self.records or record.timestamp >= self._timestamps[-1]:
            self.records.append(record)
            self._timestamps.append(record.timestamp)
            return
        ix = bisect.bisect_right(self._timestamps, record.timestamp)
        self.records.insert(ix, record)
        self._timestamps.insert(ix, record.timestamp)

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def first(self) -> Optional[LogRecord]:
        return self.records[0] if self.records else None

    @property
    def last(self) -> Optional[LogRecord]:
        return self.records[-1] if self.records else None

    @property
    def earliest_timestamp(self) -> Optional[int]:
        return self._timestamps[0] if self._timestamps else None

    @property
    def latest_timestamp(self) -> Optional[int]:
        return self._timestamps[-1] if self._timestamps else None

    def first_index_ge(self, ts: int) -> int:
        """Index of the first record with timestamp >= ts, or -1."""
        ix = bisect.bisect_left(self._timestamps, ts)
        return ix if ix < len(self._timestamps) else -1

    def last_index_le(self, ts: int) -> int:
        """Index of the last record with timestamp <= ts, or -1."""
        return bisect.bisect_right(self._timestamps, ts) - 1

    def filter(self, fn: Callable[[LogRecord], bool]) -> List[LogRecord]:
        return [r for r in self.records if fn(r)]

    def iterate(self, start: int = 0, end: Optional[int] = None) -> Iterator[LogRecord]:
        end = len(self.records) if end is None else end
        for i in range(start, end):
            yield self.records[i]
