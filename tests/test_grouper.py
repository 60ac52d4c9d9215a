import copy
import logging

import pytest

from route_metrics_core.core.exceptions import ConfigurationError
from route_metrics_core.core.types import LogRecord
from route_metrics_core.grouping.grouper import group_routes, make_key_to_properties
from route_metrics_core.grouping.rules import GroupingRule
from route_metrics_core.records.route import TypeRoute


@pytest.fixture
def routes(route):
    acc = TypeRoute()
    specs = [
        ("/users/1", 200, 3000),
        ("/info", 200, 1000),
        ("/users/2", 500, 9000),
        ("/users/1", 200, 2000),
        ("/info", 404, 500),
        ("/static/app.js", 200, 100),
    ]
    for ts, (url, status, et) in enumerate(specs, start=1):
        acc.add(LogRecord.from_dict(route(ts, url=url, status=status, et=et)))
    return acc


def _size(groups):
    return sum(len(times) for statuses in groups.buckets.values() for times in statuses.values())


def test_empty_rules_is_raw_grouping(routes):
    groups = group_routes(routes)
    assert list(groups.buckets) == [
        "GET http://x:80/users/1",
        "GET http://x:80/info",
        "GET http://x:80/users/2",
        "GET http://x:80/static/app.js",
    ]
    assert groups.named == []
    assert groups.raw == list(groups.buckets)
    assert groups.buckets["GET http://x:80/users/1"] == {200: [2000, 3000]}
    # idempotent
    assert group_routes(routes).buckets == groups.buckets


def test_observations_are_conserved(routes):
    rules = [
        {"name": "users", "method": "GET", "startsWith": "/users"},
        {"name": "static", "method": "GET", "regex": r"\.js$"},
    ]
    for grouper in ("by-status-code", "by-success-failure", "none"):
        groups = group_routes(routes, rules, grouper)
        assert _size(groups) == routes.count
        assert groups.observation_count == routes.count


def test_named_buckets_come_first(routes):
    rules = [
        {"name": "static", "method": "GET", "startsWith": "/static"},
        {"name": "users", "method": "GET", "regex": "^/users/"},
    ]
    groups = group_routes(routes, rules)
    assert list(groups.buckets) == ["static", "users", "GET http://x:80/info"]
    assert groups.named == ["static", "users"]
    assert groups.raw == ["GET http://x:80/info"]
    # both raw keys concatenated, statuses ordered numerically
    assert groups.buckets["users"] == {200: [2000, 3000], 500: [9000]}
    assert groups.key_to_bucket["GET http://x:80/users/2"] == "users"


def test_first_match_wins(routes):
    rules = [
        GroupingRule("first", "GET", starts_with="/users"),
        GroupingRule("second", "GET", pattern="/users/1"),
    ]
    groups = group_routes(routes, rules)
    assert "second" not in groups.buckets
    assert sum(len(t) for t in groups.buckets["first"].values()) == 3


def test_method_must_match(routes):
    groups = group_routes(routes, [{"name": "posts", "method": "POST", "startsWith": "/"}])
    assert groups.named == []
    assert len(groups.raw) == 4


def test_status_keys_sorted(route):
    acc = TypeRoute()
    for ts, status in enumerate((500, 200, 404, 200)):
        acc.add(LogRecord.from_dict(route(ts, status=status, et=10 - ts)))
    statuses = group_routes(acc).buckets["GET http://x:80/a"]
    assert list(statuses) == [200, 404, 500]
    assert statuses[200] == [7, 9]


def test_success_failure(routes):
    groups = group_routes(routes, [{"name": "info", "method": "GET", "pattern": "/info"}], "by-success-failure")
    assert groups.buckets["info"] == {"success": [1000], "failure": [500]}


def test_invalid_rule_rejected_before_grouping(routes):
    before = copy.deepcopy(routes.group())
    with pytest.raises(ConfigurationError):
        group_routes(routes, [{"name": "ok", "method": "GET", "startsWith": "/"}, {"name": "bad", "method": "GET"}])
    with pytest.raises(ConfigurationError):
        group_routes(routes, [], "by-weekday")
    assert routes.group() == before


def test_grouping_leaves_accumulator_alone(routes):
    before = copy.deepcopy(routes.group())
    groups = group_routes(routes, [{"name": "users", "method": "GET", "startsWith": "/users"}])
    groups.buckets["users"][200].append(1)
    assert routes.group() == before


def test_make_key_to_properties():
    props = make_key_to_properties(["GET https://localhost:443/info?x=1", "POST http://h:80/", "bogus"])
    assert props == {
        "GET https://localhost:443/info?x=1": {"method": "GET", "path": "/info?x=1"},
        "POST http://h:80/": {"method": "POST", "path": "/"},
    }


def test_raw_key_equal_to_rule_name_is_merged_with_warning(routes, caplog):
    caplog.set_level(logging.WARNING)
    rules = [{"name": "GET http://x:80/info", "method": "GET", "startsWith": "/users"}]
    groups = group_routes(routes, rules)

    assert groups.named == ["GET http://x:80/info"]
    assert "GET http://x:80/info" not in groups.raw
    assert groups.buckets["GET http://x:80/info"] == {200: [1000, 2000, 3000], 404: [500], 500: [9000]}
    assert "merged into the rule bucket" in caplog.text
