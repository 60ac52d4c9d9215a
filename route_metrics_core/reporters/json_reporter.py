"""
JSON reporter: one indented summary document per run.

Elapsed times are written in raw microseconds.
"""
from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from route_metrics_core.core.types import LogRecord
from route_metrics_core.grouping.grouper import make_key_to_properties
from route_metrics_core.processor.results import RouteMetricsResults, RunSummary
from route_metrics_core.records.base import TypeBase
from route_metrics_core.reporters.base import BaseReporter


def _dump(record: Optional[LogRecord]) -> Optional[Dict[str, Any]]:
    return record.to_dict() if record is not None else None


def _series(acc: TypeBase) -> Dict[str, Any]:
    # absent series are reported with zero values
    return {
        'count': acc.count,
        'firstTime': acc.earliest_timestamp or 0,
        'lastTime': acc.latest_timestamp or 0,
        'first': _dump(acc.first),
        'last': _dump(acc.last),
    }


def time_series(rmr: RouteMetricsResults) -> Dict[str, Dict[str, Any]]:
    proc = _series(rmr.proc)
    percents = rmr.proc.cpu_percents
    proc.update({
        'cpuUserTotal': rmr.proc.total_user,
        'cpuSystemTotal': rmr.proc.total_system,
        # fractions of one CPU
        'cpuUserPercent': percents['user'] / 100,
        'cpuSystemPercent': percents['system'] / 100,
        'memory': rmr.proc.memory_averages if rmr.proc.count else {},
        'trends': rmr.proc.trends,
    })

    gc = _series(rmr.gc)
    gc.update({'gcCount': rmr.gc.total_count, 'gcTime': rmr.gc.total_time})

    eventloop = _series(rmr.eventloop)
    eventloop.update({'maxP99': rmr.eventloop.max_p99, 'lastPercentiles': rmr.eventloop.last_ladder})

    return {'proc': proc, 'gc': gc, 'eventloop': eventloop}


class JsonReporter(BaseReporter):
    def build_summary(self, run: RunSummary) -> Dict[str, Any]:
        """Returns the run summary as a JSON-compatible dict."""
        rmr = run.results
        groups = self.group(run)
        routes: List[List[Any]] = [
            [name, {str(status): list(times) for status, times in statuses.items()}]
            for name, statuses in groups.items()
        ]
        return {
            'header': _dump(run.header),
            'routes': routes,
            'patches': [r.to_dict() for r in rmr.patch.records],
            'loads': [r.to_dict() for r in rmr.load.records],
            'statuses': [r.to_dict() for r in rmr.status.records],
            'unknown': [r.to_dict() for r in rmr.unknown],
            'timeSeries': time_series(rmr),
            'firstTimestamp': rmr.earliest_timestamp,
            'lastTimestamp': rmr.latest_timestamp,
            'firstLine': run.first_line,
            'lastLine': run.last_line,
            'parseErrors': rmr.parse_errors.as_dict(),
            'meta': {'keyToProperties': make_key_to_properties(groups.buckets)},
        }

    def report_run(self, run: RunSummary) -> None:
        self.stream.write(json.dumps(self.build_summary(run), indent=2, ensure_ascii=False))
        self.stream.write('\n')
