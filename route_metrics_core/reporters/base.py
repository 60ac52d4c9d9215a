"""
Shared pieces of the reporters: the file-level info, formatting helpers and
the per-bucket statistics.
"""
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import IO, Optional, Sequence, Tuple

from route_metrics_core.core.config import ProcessorOptions
from route_metrics_core.core.exceptions import ReporterError
from route_metrics_core.grouping.grouper import RouteGroups, group_routes
from route_metrics_core.processor.results import RunSummary
from route_metrics_core.records.parse_errors import ParseErrors
from route_metrics_core.stats.histogram import histogram_stats
from route_metrics_core.stats.stats import BucketStats, summarize, to_millis

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class OverallInfo:
    """What is known about the whole file, as opposed to a single run."""
    file: str
    lines_read: int
    char_count: int
    runs: Tuple[RunSummary, ...] = ()
    parse_errors: ParseErrors = field(default_factory=ParseErrors)


def f2(n: float) -> str:
    return f'{n:.2f}'


def iso(ts: Optional[int]) -> str:
    """Formats a millisecond timestamp like 2024-12-13T19:17:55.608Z."""
    if ts is None:
        return 'n/a'
    dt = EPOCH + timedelta(milliseconds=ts)
    return f'{dt:%Y-%m-%dT%H:%M:%S}.{dt.microsecond // 1000:03d}Z'


def fmt_number(n: float) -> str:
    """Integral floats print without a fractional part (4.0 -> '4')."""
    if isinstance(n, float) and n.is_integer():
        return str(int(n))
    return str(n)


class BaseReporter:
    """
    Writes one report section per run to `stream`.

    Subclasses implement `report_run`; `report_overall` is written once, before
    the first run. Writes block until the sink accepts them and write errors
    propagate; the stream is flushed after every run.
    """
    def __init__(
        self,
        stream: IO[str],
        overall: OverallInfo,
        options: Optional[ProcessorOptions] = None,
        info_stream: Optional[IO[str]] = None,
    ) -> None:
        self.stream = stream
        self.overall = overall
        self.options = options or ProcessorOptions()
        self.info_stream = info_stream if info_stream is not None else sys.stdout

    @property
    def percentiles(self) -> Tuple[float, ...]:
        return self.options.percentiles

    def info(self, text: str) -> None:
        self.info_stream.write(f'{text}\n')

    def report(self, runs: Optional[Sequence[RunSummary]] = None) -> None:
        runs = self.overall.runs if runs is None else runs
        if getattr(self.stream, 'closed', False):
            raise ReporterError('output stream is closed')
        self.report_overall()
        for run in runs:
            self.report_run(run)
            self.stream.flush()

    def report_overall(self) -> None:
        pass

    def report_run(self, run: RunSummary) -> None:
        raise ReporterError(f'{type(self).__name__} does not implement report_run')

    def group(self, run: RunSummary) -> RouteGroups:
        return group_routes(run.results.route, self.options.rules, self.options.grouper)

    def convert(self, times: Sequence[float]) -> Sequence[float]:
        """Returns the times in the reporting unit; the input is never modified."""
        if self.options.microseconds:
            return list(times)
        return [to_millis(t) for t in times]

    def bucket_stats(self, sorted_times: Sequence[float]) -> BucketStats:
        """Stats and percentile ladder for one ascending-sorted (bucket, status) array."""
        if self.options.use_histogram and len(sorted_times) >= self.options.histogram_threshold:
            return histogram_stats(sorted_times, self.percentiles)
        return summarize(sorted_times, self.percentiles)
