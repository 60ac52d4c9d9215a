"""
Accumulator for route completion records and its raw grouping views.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, List

from route_metrics_core.core.exceptions import ConfigurationError
from route_metrics_core.core.types import Grouper, LogRecord, RecordType, StatusKey, route_key
from route_metrics_core.records.base import TypeBase

SubGrouper = Callable[[dict], StatusKey]


@dataclass
class RawRoute:
    """All observations for one raw route key, split by sub-group."""
    method: str
    protocol: str
    host: str
    port: int
    url: str
    sub_groups: Dict[StatusKey, List[float]] = field(default_factory=dict)

    @property
    def count(self) -> int:
        return sum(len(times) for times in self.sub_groups.values())


def _by_none(entry: dict) -> StatusKey:
    return 'none'


def _by_status_code(entry: dict) -> StatusKey:
    return entry['statusCode']


def _by_success_failure(entry: dict) -> StatusKey:
    return 'failure' if entry['statusCode'] >= 400 else 'success'


SUB_GROUPERS: Dict[str, SubGrouper] = {
    'none': _by_none,
    'by-status-code': _by_status_code,
    'by-success-failure': _by_success_failure,
}


class TypeRoute(TypeBase):
    """
    Keeps every route completion record. The raw views are built on demand
    for the grouper that is actually requested and cached until the next add.
    """
    def __init__(self) -> None:
        super().__init__(RecordType.ROUTE)
        self._views: Dict[str, Dict[str, RawRoute]] = {}

    def add(self, record: LogRecord) -> None:
        super().add(record)
        self._views.clear()

    def group(self, grouper: Grouper = 'by-status-code') -> Dict[str, RawRoute]:
        """
        Groups observations by raw route key, then by the grouper's sub-key.

        Args:
            grouper: 'by-status-code', 'by-success-failure' or 'none'.

        Returns:
            route key -> RawRoute, in the order each key was first seen.
        """
        sub_grouper = SUB_GROUPERS.get(grouper)
        if sub_grouper is None:
            raise ConfigurationError(f'unknown grouper: {grouper}')
        view = self._views.get(grouper)
        if view is None:
            view = self._views[grouper] = self._group_by(sub_grouper)
        return view

    def _group_by(self, sub_grouper: SubGrouper) -> Dict[str, RawRoute]:
        group: Dict[str, RawRoute] = {}
        for record in self.records:
            entry = record.entry
            key = route_key(entry)
            raw = group.get(key)
            if raw is None:
                raw = group[key] = RawRoute(
                    method=entry['method'],
                    protocol=entry['protocol'],
                    host=entry['host'],
                    port=entry['port'],
                    url=entry['url'],
                )
            raw.sub_groups.setdefault(sub_grouper(entry), []).append(entry['et'])
        return group

    def group_by_none(self) -> Dict[str, RawRoute]:
        return self.group('none')

    def group_by_status_code(self) -> Dict[str, RawRoute]:
        return self.group('by-status-code')

    def group_by_success_failure(self) -> Dict[str, RawRoute]:
        return self.group('by-success-failure')
