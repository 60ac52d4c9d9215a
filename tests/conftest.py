import json
from pathlib import Path

import pytest

HEADER_TS = 1734117475608


def _header(ts=HEADER_TS, **entry):
    body = {
        "version": "2.0.0",
        "node_version": "v20.18.0",
        "os": {"type": "Linux", "release": "5.15.167", "cpus": 8, "cpuModel": "x", "freemem": 1, "totalmem": 2},
        "package_json": {"name": "app", "version": "1.0.0"},
    }
    body.update(entry)
    return {"ts": ts, "type": "header", "tid": 0, "entry": body}


def _route(ts, url="/a", et=4000, status=200, method="GET", host="x", port=80, protocol="http"):
    return {
        "ts": ts,
        "type": "route",
        "tid": 0,
        "entry": {
            "method": method,
            "protocol": protocol,
            "host": host,
            "port": port,
            "url": url,
            "statusCode": status,
            "et": et,
        },
    }


def _record(ts, type_, entry, tid=0):
    return {"ts": ts, "type": type_, "tid": tid, "entry": entry}


@pytest.fixture
def header():
    return _header


@pytest.fixture
def route():
    return _route


@pytest.fixture
def record():
    return _record


@pytest.fixture
def write_log(tmp_path):
    """Writes dicts (as JSON) and raw strings one per line; returns the path."""
    def write(lines, name="route-metrics.log") -> Path:
        path = tmp_path / name
        text = "".join((line if isinstance(line, str) else json.dumps(line)) + "\n" for line in lines)
        path.write_text(text, encoding="utf-8")
        return path
    return write
