"""
Reads a route-metrics log, splits it into header-delimited runs and hands the
runs to a reporter.
"""
from __future__ import annotations

import sys
from typing import IO, List, Optional, Type, Union

from route_metrics_core.core.config import ProcessorOptions
from route_metrics_core.core.logging import Logger, Metrics
from route_metrics_core.core.types import LogRecord, RecordType
from route_metrics_core.processor.results import InvalidLine, RouteMetricsResults, RunSummary, parse_line
from route_metrics_core.reader.reader import LineReader, Source
from route_metrics_core.records.parse_errors import ParseErrors
from route_metrics_core.reporters import get_reporter
from route_metrics_core.reporters.base import BaseReporter, OverallInfo

logger = Logger(__name__)


class LogProcessor:
    """
    Processes one log file or stream.

    Every header record starts a new run. Records that appear before the
    first header are kept in a headerless run of their own so nothing is
    silently dropped.

    Usage:
        processor = LogProcessor('route-metrics.log', 'csv', sys.stdout)
        processor.read()
        processor.summarize()
    """
    def __init__(
        self,
        source: Source,
        reporter: Union[str, Type[BaseReporter]] = 'csv',
        stream: Optional[IO[str]] = None,
        options: Optional[ProcessorOptions] = None,
        info_stream: Optional[IO[str]] = None,
        progress: bool = False,
    ) -> None:
        """
        Args:
            source: A log path or an open stream.
            reporter: A reporter name (see get_reporter) or class.
            stream: Where the report is written; stdout when omitted.
            options: Grouping, unit and statistics options.
            info_stream: Where informational text goes; stdout when omitted.
            progress: Show a progress bar while reading a file.
        """
        self.source = source
        self.reporter_cls = get_reporter(reporter) if isinstance(reporter, str) else reporter
        self.stream = stream if stream is not None else sys.stdout
        self.options = options or ProcessorOptions()
        self.info_stream = info_stream
        self.progress = progress

        self.file = '<stream>'
        self.line_count = 0
        self.char_count = 0
        # every bad line in the file; each run also keeps its own
        self.parse_errors = ParseErrors()
        # bad lines seen before the first run starts; the first run takes them
        self._pending = ParseErrors()
        self.runs: List[RunSummary] = []
        self.metrics = Metrics()
        self._done = False

        self._current: Optional[RouteMetricsResults] = None
        self._first_line = 0

    def read(self) -> int:
        """
        Reads the whole source.

        Returns:
            The number of runs found.

        Raises:
            OSError: if the source can't be opened or read.
        """
        reader = LineReader(self.source, progress=self.progress)
        self.file = reader.name
        self.metrics.start_timer('read')
        for line_number, text in enumerate(reader, start=1):
            if not text.strip():
                continue
            try:
                record = parse_line(text)
            except InvalidLine as e:
                self.parse_errors.add(str(e), line_number, text)
                run_errors = self._current.parse_errors if self._current is not None else self._pending
                run_errors.add(str(e), line_number, text)
                self.metrics.incr('invalid')
                continue
            self._add(record, line_number, text)

        self.line_count = reader.line_count
        self.char_count = reader.char_count
        self._finish_run(self.line_count)
        self.metrics.stop_timer('read')
        self._done = True

        logger.info(
            'log read',
            file=self.file,
            lines=self.line_count,
            runs=len(self.runs),
            parse_errors=self.parse_errors.count,
            counts=self.metrics.get_counters(),
            timings=self.metrics.get_timings(),
        )
        return len(self.runs)

    def _add(self, record: LogRecord, line_number: int, text: str) -> None:
        if record.type is RecordType.HEADER:
            self._finish_run(line_number - 1)
            self._start_run(line_number)
        elif self._current is None:
            logger.warning('records found before the first header', file=self.file, line=line_number)
            self._start_run(line_number)

        if self._current.add_checked(record, line_number, text) is None:
            bad = self._current.parse_errors.lines[-1]
            self.parse_errors.add(bad.message, line_number, text)
            self.metrics.incr('invalid')
            return
        self.metrics.incr(record.type_name)

    def _start_run(self, line_number: int) -> None:
        self._current = RouteMetricsResults(ema_alpha=self.options.ema_alpha)
        for bad in self._pending.lines:
            self._current.parse_errors.add(bad.message, bad.line_number, bad.text)
        self._pending = ParseErrors()
        self._first_line = line_number

    def _finish_run(self, last_line: int) -> None:
        if self._current is None:
            return
        self.runs.append(RunSummary(
            run_number=len(self.runs) + 1,
            results=self._current,
            first_line=self._first_line,
            last_line=last_line,
        ))
        self._current = None

    def overall_info(self) -> OverallInfo:
        return OverallInfo(
            file=self.file,
            lines_read=self.line_count,
            char_count=self.char_count,
            runs=tuple(self.runs),
            parse_errors=self.parse_errors,
        )

    def summarize(self) -> BaseReporter:
        """
        Writes the report for every run, reading the source first if needed.

        Returns:
            The reporter that wrote the report.
        """
        if not self._done:
            self.read()
        reporter = self.reporter_cls(self.stream, self.overall_info(), self.options, info_stream=self.info_stream)
        self.metrics.start_timer('report')
        reporter.report()
        logger.info('report written', reporter=self.reporter_cls.__name__, ms=self.metrics.stop_timer('report'))
        return reporter
