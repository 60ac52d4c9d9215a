"""
Accumulators for the time-series records written once per sampling interval:
process CPU/memory (proc), garbage collection (gc) and event-loop delay (eventloop).
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, Optional

from route_metrics_core.core.types import LogRecord, RecordType
from route_metrics_core.records.base import TypeBase
from route_metrics_core.stats.ema import WeightedExpMovingAverage

PROC_FIELDS = ('cpuUser', 'cpuSystem', 'rss', 'heapTotal', 'heapUsed', 'external', 'arrayBuffers')
PROC_TREND_FIELDS = ('cpuUser', 'cpuSystem', 'rss', 'heapUsed')
GC_FIELDS = ('count', 'totalTime')


def _numbers(record: LogRecord, fields: Iterable[str]) -> Dict[str, float]:
    """Returns the named entry values (missing ones as 0); raises TypeError before anything is accumulated."""
    values = {}
    for name in fields:
        v = record.entry.get(name, 0)
        if isinstance(v, bool) or not isinstance(v, (int, float)):
            raise TypeError(f'{record.type_name}.{name} must be a number, not {v!r}')
        values[name] = v
    return values


# {"ts":1734117475609,"type":"proc","tid":0,"entry":{"cpuUser":72,"cpuSystem":36,"rss":52240384,
#  "heapTotal":4952064,"heapUsed":4781680,"external":1687088,"arrayBuffers":11348}}
class TypeProc(TypeBase):
    """
    Process samples. CPU times are microseconds used during the interval;
    memory values are byte gauges at sample time.
    """
    def __init__(self, ema_alpha: float = 0.1) -> None:
        super().__init__(RecordType.PROC)
        # microseconds
        self.total_user = 0
        self.total_system = 0
        # bytes
        self.max_rss = 0
        self.heap_total_sum = 0
        self.heap_used_sum = 0
        self.external_sum = 0
        self.array_buffers_sum = 0
        self.ema_alpha = ema_alpha
        self._trends: Dict[str, WeightedExpMovingAverage] = {}

    def add(self, record: LogRecord) -> None:
        values = _numbers(record, PROC_FIELDS)
        super().add(record)
        self.total_user += values['cpuUser']
        self.total_system += values['cpuSystem']
        self.max_rss = max(self.max_rss, values['rss'])
        self.heap_total_sum += values['heapTotal']
        self.heap_used_sum += values['heapUsed']
        self.external_sum += values['external']
        self.array_buffers_sum += values['arrayBuffers']

        for name in PROC_TREND_FIELDS:
            if name not in record.entry:
                continue
            ema = self._trends.get(name)
            if ema is None:
                # seeded with the first sample
                self._trends[name] = WeightedExpMovingAverage(self.ema_alpha, values[name])
            else:
                ema.update(values[name])

    @property
    def elapsed_micros(self) -> int:
        if not self.records:
            return 0
        return (self.latest_timestamp - self.earliest_timestamp) * 1000

    @property
    def cpu_percents(self) -> Dict[str, float]:
        """CPU used as a percentage of the wall time between the first and last sample (one CPU assumed)."""
        micros = self.elapsed_micros
        if micros <= 0:
            return {'user': 0.0, 'system': 0.0, 'total': 0.0}
        return {
            'user': self.total_user / micros * 100,
            'system': self.total_system / micros * 100,
            'total': (self.total_user + self.total_system) / micros * 100,
        }

    @property
    def memory_averages(self) -> Dict[str, float]:
        n = self.count or 1
        return {
            'maxRss': self.max_rss,  # a maximum, not an average
            'heapTotal': self.heap_total_sum / n,
            'heapUsed': self.heap_used_sum / n,
            'external': self.external_sum / n,
            'arrayBuffers': self.array_buffers_sum / n,
        }

    @property
    def trends(self) -> Dict[str, float]:
        return {name: ema.mean for name, ema in self._trends.items()}


# {"ts":1734117476612,"type":"gc","tid":0,"entry":{"count":18,"totalTime":16.464802145957947}}
class TypeGc(TypeBase):
    def __init__(self) -> None:
        super().__init__(RecordType.GC)
        self.total_count = 0
        self.total_time = 0

    def add(self, record: LogRecord) -> None:
        values = _numbers(record, GC_FIELDS)
        super().add(record)
        self.total_count += values['count']
        self.total_time += values['totalTime']

    @property
    def totals(self) -> Dict[str, Any]:
        return {'count': self.total_count, 'time': self.total_time}


# {"ts":1734117476612,"type":"eventloop","tid":0,"entry":{"50":20250623,"75":20381695,"90":20463615,"97.5":21004287,"99":21086207}}
class TypeEventloop(TypeBase):
    """
    Event-loop delay samples in nanoseconds. The agent writes the percentiles
    in ascending order, so the last key is the highest percentile.
    """
    def __init__(self) -> None:
        super().__init__(RecordType.EVENTLOOP)
        self.max_p99 = 0
        self.last_ladder: Optional[Dict[str, float]] = None

    def add(self, record: LogRecord) -> None:
        values = _numbers(record, record.entry)
        super().add(record)
        if not values:
            return
        top = list(values)[-1]
        self.max_p99 = max(self.max_p99, values[top])
        if record is self.last:
            self.last_ladder = values
