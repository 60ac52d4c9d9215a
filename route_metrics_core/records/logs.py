"""
Accumulators for the header and the append-only event logs (patch, load, status).
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from route_metrics_core.core.exceptions import RegistryError
from route_metrics_core.core.types import LogRecord, RecordType
from route_metrics_core.records.base import TypeBase


# {"ts":1734117475608,"type":"header","tid":0,"entry":{"version":"2.0.0-beta.7","node_version":"v20.18.0",
#  "os":{"type":"Linux","release":"5.15.167","cpus":8,...},"package_json":{"name":"app","version":"1.0.0"},...}}
class TypeHeader(TypeBase):
    """The run header. There is exactly one per run."""

    def __init__(self) -> None:
        super().__init__(RecordType.HEADER)
        self.route_metrics_version: Optional[str] = None
        self.node_version: Optional[str] = None
        self.os: Dict[str, Any] = {}
        self.app: Dict[str, Any] = {}

    def add(self, record: LogRecord) -> None:
        if self.count:
            raise RegistryError('unexpected second header record in one run')
        super().add(record)

        entry = record.entry if isinstance(record.entry, dict) else {}
        self.route_metrics_version = entry.get('version')
        self.node_version = entry.get('node_version')
        os_info = entry.get('os') if isinstance(entry.get('os'), dict) else {}
        self.os = {k: os_info.get(k) for k in ('freemem', 'totalmem', 'type', 'release', 'cpus', 'cpuModel')}
        package_json = entry.get('package_json') if isinstance(entry.get('package_json'), dict) else {}
        self.app = {'name': package_json.get('name'), 'version': package_json.get('version')}

    @property
    def record(self) -> Optional[LogRecord]:
        return self.first


# {"ts":1734117475610,"type":"patch","tid":0,"entry":{"name":"@contrast/agent"}}
class TypePatch(TypeBase):
    def __init__(self) -> None:
        super().__init__(RecordType.PATCH)

    def names(self) -> List[str]:
        return [r.entry['name'] for r in self.records if isinstance(r.entry, dict) and 'name' in r.entry]


# {"ts":1734117475610,"type":"load","tid":0,"entry":{"name":"express"}}
class TypeLoad(TypeBase):
    def __init__(self) -> None:
        super().__init__(RecordType.LOAD)


# {"ts":1734117475790,"type":"status","tid":0,"entry":{"status":"initializing"}}
class TypeStatus(TypeBase):
    def __init__(self) -> None:
        super().__init__(RecordType.STATUS)
