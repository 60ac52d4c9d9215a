"""
Parsing, classification and per-run indexing of route-metrics log records.
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping, Optional, Set

from route_metrics_core.core.exceptions import RegistryError
from route_metrics_core.core.logging import Logger
from route_metrics_core.core.types import (
    ENVELOPE_FIELDS,
    ROUTE_FIELDS,
    UNKNOWN_CONFIG_ITEMS,
    LogRecord,
    RecordType,
)
from route_metrics_core.records.base import TypeBase
from route_metrics_core.records.logs import TypeHeader, TypeLoad, TypePatch, TypeStatus
from route_metrics_core.records.parse_errors import ParseErrors
from route_metrics_core.records.route import TypeRoute
from route_metrics_core.records.timeseries import TypeEventloop, TypeGc, TypeProc

logger = Logger(__name__)

TIME_SERIES_TYPES = (RecordType.PROC, RecordType.GC, RecordType.EVENTLOOP)


class InvalidLine(ValueError):
    """A log line that can't be turned into a LogRecord. Always recorded, never raised to callers."""


def parse_line(text: str) -> LogRecord:
    """
    Decodes one log line and checks its envelope.

    Raises:
        InvalidLine: with a stable message suitable for grouping errors.
    """
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidLine(f'invalid JSON: {e.msg}') from e
    return parse_object(obj)


def parse_object(obj: Any) -> LogRecord:
    """Checks an already decoded log line and builds its LogRecord."""
    if not isinstance(obj, dict) or any(obj.get(k) is None for k in ENVELOPE_FIELDS):
        raise InvalidLine('invalid log entry')
    ts = obj['ts']
    if isinstance(ts, bool) or not isinstance(ts, int) or not isinstance(obj['type'], str):
        raise InvalidLine('invalid log entry')

    record = LogRecord.from_dict(obj)
    if isinstance(record.type, RecordType):
        if not isinstance(record.entry, dict):
            raise InvalidLine('invalid log entry')
        if record.type is RecordType.ROUTE:
            _check_route(record.entry)
    return record


def _check_route(entry: Mapping[str, Any]) -> None:
    if any(entry.get(k) is None for k in ROUTE_FIELDS):
        raise InvalidLine('invalid route entry')
    et = entry['et']
    if isinstance(et, bool) or not isinstance(et, (int, float)):
        raise InvalidLine('invalid route entry')
    if isinstance(entry['statusCode'], bool) or not isinstance(entry['statusCode'], int):
        raise InvalidLine('invalid route entry')


class RouteMetricsResults:
    """
    The accumulators for one run, plus the run's unknown records and parse errors.

    The accumulator map is owned here; callers get read-only views through
    `types` and the named attributes.
    """
    def __init__(self, ema_alpha: float = 0.1) -> None:
        self.header = TypeHeader()
        self.route = TypeRoute()
        self.patch = TypePatch()
        self.load = TypeLoad()
        self.status = TypeStatus()
        self.proc = TypeProc(ema_alpha=ema_alpha)
        self.gc = TypeGc()
        self.eventloop = TypeEventloop()

        self._types = {
            RecordType.HEADER: self.header,
            RecordType.ROUTE: self.route,
            RecordType.PATCH: self.patch,
            RecordType.LOAD: self.load,
            RecordType.STATUS: self.status,
            RecordType.PROC: self.proc,
            RecordType.GC: self.gc,
            RecordType.EVENTLOOP: self.eventloop,
        }
        self._check_registry()

        self.first: Optional[LogRecord] = None
        self.last: Optional[LogRecord] = None
        self.unknown: List[LogRecord] = []
        self.parse_errors = ParseErrors()
        self._warned_types: Set[str] = set()

    def _check_registry(self) -> None:
        for record_type in RecordType:
            accumulator = self._types.get(record_type)
            if accumulator is None:
                raise RegistryError(f'no accumulator for record type {record_type.value}')
            if accumulator.type is not record_type:
                raise RegistryError(f'accumulator for {record_type.value} collects {accumulator.type.value}')

    @property
    def types(self) -> Mapping[RecordType, TypeBase]:
        return MappingProxyType(self._types)

    def get_entry(self, record_type: RecordType) -> TypeBase:
        return self._types[record_type]

    def add(self, record: LogRecord) -> None:
        """
        Routes a parsed record to its accumulator.

        Raises:
            RegistryError: if the record ends up in an accumulator for another type.
            TypeError, ValueError: if an accumulator can't use the entry's values.
        """
        if not isinstance(record.type, RecordType):
            if record.type == UNKNOWN_CONFIG_ITEMS:
                return
            self._track_extent(record)
            self.unknown.append(record)
            if record.type not in self._warned_types:
                self._warned_types.add(record.type)
                logger.warning('unknown record type', type=record.type, ts=record.timestamp)
            return

        self._types[record.type].add(record)
        self._track_extent(record)

    def _track_extent(self, record: LogRecord) -> None:
        if self.first is None or record.timestamp < self.first.timestamp:
            self.first = record
        if self.last is None or record.timestamp > self.last.timestamp:
            self.last = record

    def add_line(self, text: str, line_number: int) -> Optional[LogRecord]:
        """
        Parses and indexes one line. Bad lines are recorded as parse errors.

        Returns:
            The record, or None if the line was blank or invalid.
        """
        if not text.strip():
            return None
        try:
            record = parse_line(text)
        except InvalidLine as e:
            self.parse_errors.add(str(e), line_number, text)
            return None
        return self.add_checked(record, line_number, text)

    def add_checked(self, record: LogRecord, line_number: int, text: str = '') -> Optional[LogRecord]:
        """Adds a record, turning bad entry values into a parse error."""
        try:
            self.add(record)
        except (TypeError, ValueError, KeyError) as e:
            self.parse_errors.add(f'invalid {record.type_name} entry', line_number, text)
            logger.debug('entry rejected', type=record.type_name, line=line_number, error=str(e))
            return None
        return record

    def index_records(self, objs: Iterable[Mapping[str, Any]], first_line: int = 1) -> None:
        """Indexes already decoded log lines."""
        for line_number, obj in enumerate(objs, start=first_line):
            try:
                record = parse_object(obj)
            except InvalidLine as e:
                self.parse_errors.add(str(e), line_number, json.dumps(obj, default=str))
                continue
            self.add_checked(record, line_number)

    def index_lines(self, lines: Iterable[str], first_line: int = 1) -> None:
        """Parses and indexes text lines."""
        for line_number, text in enumerate(lines, start=first_line):
            self.add_line(text, line_number)

    @property
    def earliest_timestamp(self) -> Optional[int]:
        return self.first.timestamp if self.first else None

    @property
    def latest_timestamp(self) -> Optional[int]:
        return self.last.timestamp if self.last else None

    def time_series_present(self) -> List[RecordType]:
        return [t for t in TIME_SERIES_TYPES if self._types[t].count]

    @property
    def time_series_count(self) -> int:
        return sum(self._types[t].count for t in TIME_SERIES_TYPES)


@dataclass(frozen=True)
class RunSummary:
    """
    One header-delimited run of a log. Runs are reported one at a time and
    never merged.
    """
    run_number: int
    results: RouteMetricsResults
    # 1-based, inclusive
    first_line: int
    last_line: int

    @property
    def header(self) -> Optional[LogRecord]:
        return self.results.header.record

    @property
    def headerless(self) -> bool:
        return self.results.header.count == 0
