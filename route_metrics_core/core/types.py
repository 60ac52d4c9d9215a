"""
Core type definitions for the log processor.
This module centralizes the common data structures and type aliases so the
accumulators, grouper and reporters agree on them without circular imports.
"""
from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Literal, Mapping, Optional, Tuple, TypedDict, Union

# ts, type and entry must be present in every log line
ENVELOPE_FIELDS: Tuple[str, ...] = ('ts', 'type', 'entry')

# written by the agent to report bad configuration; never indexed
UNKNOWN_CONFIG_ITEMS = 'unknown-config-items'

Grouper = Literal['by-status-code', 'by-success-failure', 'none']

# status code (int), 'success'/'failure' or 'none' -> elapsed times
StatusKey = Union[int, str]
StatusTimes = Dict[StatusKey, List[float]]


class RecordType(str, Enum):
    """The closed set of record types the processor indexes."""
    HEADER = 'header'
    ROUTE = 'route'
    PATCH = 'patch'
    LOAD = 'load'
    STATUS = 'status'
    PROC = 'proc'
    GC = 'gc'
    EVENTLOOP = 'eventloop'

    @classmethod
    def lookup(cls, name: str) -> Optional['RecordType']:
        """Returns the member for `name`, or None for a type the processor doesn't know."""
        try:
            return cls(name)
        except ValueError:
            return None


class RouteEntry(TypedDict):
    """Payload of a 'route' record. `et` is the elapsed time in microseconds."""
    method: str
    protocol: str
    host: str
    port: int
    url: str
    statusCode: int
    et: float

ROUTE_FIELDS: Tuple[str, ...] = ('method', 'protocol', 'host', 'port', 'url', 'statusCode', 'et')


@dataclass(frozen=True)
class LogRecord:
    """A single parsed line of a route-metrics log."""
    timestamp: int
    type: Union[RecordType, str]
    thread_id: int
    entry: Any

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> 'LogRecord':
        """
        Builds a record from a decoded log line. The envelope must already have
        been checked.
        """
        raw_type = obj['type']
        record_type = RecordType.lookup(raw_type) if isinstance(raw_type, str) else None
        return cls(
            timestamp=obj['ts'],
            type=record_type if record_type is not None else raw_type,
            thread_id=obj.get('tid', 0),
            entry=obj['entry'],
        )

    @property
    def type_name(self) -> str:
        return self.type.value if isinstance(self.type, RecordType) else str(self.type)

    def to_dict(self) -> Dict[str, Any]:
        """Returns the record in log-file form."""
        return {'ts': self.timestamp, 'type': self.type_name, 'tid': self.thread_id, 'entry': self.entry}


def route_key(entry: Mapping[str, Any]) -> str:
    """Builds the raw route key, e.g. 'GET https://localhost:443/info'."""
    return f"{entry['method']} {entry['protocol']}://{entry['host']}:{entry['port']}{entry['url']}"
