import json

import pytest

from route_metrics_core.core.exceptions import RegistryError
from route_metrics_core.core.types import RecordType
from route_metrics_core.processor.results import InvalidLine, RouteMetricsResults, parse_line


def test_parse_line_messages():
    with pytest.raises(InvalidLine, match=r"^invalid JSON: "):
        parse_line("not json")
    with pytest.raises(InvalidLine, match="^invalid log entry$"):
        parse_line('{"ts": 1, "type": "route"}')
    with pytest.raises(InvalidLine, match="^invalid log entry$"):
        parse_line('{"ts": 1, "type": "route", "entry": null}')
    with pytest.raises(InvalidLine, match="^invalid log entry$"):
        parse_line("[1, 2]")
    with pytest.raises(InvalidLine, match="^invalid route entry$"):
        parse_line('{"ts": 1, "type": "route", "entry": {"method": "GET"}}')


def test_parse_line_unknown_type_keeps_its_name():
    record = parse_line('{"ts": 5, "type": "mystery", "entry": 42}')
    assert record.type == "mystery"
    assert record.type_name == "mystery"
    assert record.thread_id == 0


def test_classification(header, route, record):
    lines = [
        json.dumps(header(ts=1)),
        json.dumps(route(2)),
        "",
        json.dumps(record(3, "patch", {"name": "@contrast/agent"})),
        json.dumps(record(4, "unknown-config-items", {"x": 1})),
        json.dumps(record(5, "mystery", {"x": 1})),
        json.dumps(record(6, "mystery", {"x": 2})),
        "not json",
    ]
    rmr = RouteMetricsResults()
    rmr.index_lines(lines)

    assert rmr.header.count == 1
    assert rmr.route.count == 1
    assert rmr.patch.count == 1
    assert [r.entry for r in rmr.unknown] == [{"x": 1}, {"x": 2}]
    assert rmr.parse_errors.count == 1
    assert rmr.parse_errors.line_numbers(rmr.parse_errors.messages()[0]) == [8]
    assert rmr.earliest_timestamp == 1
    assert rmr.latest_timestamp == 6


def test_index_records_matches_index_lines(header, route, record):
    objs = [header(ts=1), route(2), route(3, status=500), record(4, "gc", {"count": 1, "totalTime": 2.5})]
    from_lines = RouteMetricsResults()
    from_lines.index_lines(json.dumps(o) for o in objs)
    from_objs = RouteMetricsResults()
    from_objs.index_records(objs)

    for record_type in RecordType:
        assert from_lines.get_entry(record_type).count == from_objs.get_entry(record_type).count
    assert from_lines.route.group() == from_objs.route.group()
    assert from_lines.gc.totals == from_objs.gc.totals


def test_bad_entry_values_become_parse_errors(record):
    rmr = RouteMetricsResults()
    rmr.index_lines([json.dumps(record(1, "gc", {"count": "three", "totalTime": 1}))])
    assert rmr.gc.count == 0
    assert rmr.parse_errors.as_dict() == {"invalid gc entry": [1]}


def test_types_view_is_read_only():
    rmr = RouteMetricsResults()
    assert rmr.types[RecordType.ROUTE] is rmr.route
    with pytest.raises(TypeError):
        rmr.types[RecordType.ROUTE] = None


def test_registry_is_checked():
    rmr = RouteMetricsResults()
    del rmr._types[RecordType.EVENTLOOP]
    with pytest.raises(RegistryError):
        rmr._check_registry()


def test_time_series_count(record):
    rmr = RouteMetricsResults()
    rmr.index_records([
        record(1, "proc", {"cpuUser": 1, "cpuSystem": 1}),
        record(2, "gc", {"count": 1, "totalTime": 1}),
        record(3, "gc", {"count": 1, "totalTime": 1}),
    ])
    assert rmr.time_series_count == 3
    assert rmr.time_series_present() == [RecordType.PROC, RecordType.GC]
