"""
Folds raw route keys into named buckets according to grouping rules.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Union

from route_metrics_core.core.logging import Logger
from route_metrics_core.core.types import Grouper, StatusKey, StatusTimes
from route_metrics_core.grouping.rules import GroupingRule, coerce_rules
from route_metrics_core.records.route import TypeRoute

logger = Logger(__name__)

KEY_RE = re.compile(r'([^ ]+) https?://[^/]+(.+)')


@dataclass
class RouteGroups:
    """
    The grouped observations of one run.

    `buckets` is ordered: rule-named buckets in rule declaration order, then
    raw buckets in the order their key was first seen.
    """
    buckets: Dict[str, StatusTimes] = field(default_factory=dict)
    named: List[str] = field(default_factory=list)
    raw: List[str] = field(default_factory=list)
    # raw route key -> the bucket it landed in
    key_to_bucket: Dict[str, str] = field(default_factory=dict)

    def items(self):
        return self.buckets.items()

    @property
    def observation_count(self) -> int:
        return sum(len(times) for statuses in self.buckets.values() for times in statuses.values())


def _status_order(key: StatusKey):
    return (0, key) if isinstance(key, int) else (1, 0)


def _sorted_statuses(statuses: StatusTimes) -> StatusTimes:
    # stable sort: non-numeric keys keep first-seen order after the numeric ones
    ordered = sorted(statuses, key=_status_order)
    return {k: sorted(statuses[k]) for k in ordered}


def group_routes(
    routes: TypeRoute,
    rules: Iterable[Union[GroupingRule, Mapping[str, Any]]] = (),
    grouper: Grouper = 'by-status-code',
) -> RouteGroups:
    """
    Buckets every route observation.

    Each raw key goes to the first rule (in declaration order) whose method
    matches and whose matcher accepts the path; keys no rule accepts become
    their own bucket. Observations are copied, never moved, so the route
    accumulator is left untouched.

    Args:
        routes: The run's route accumulator.
        rules: Grouping rules, validated before any grouping happens.
        grouper: How each route's observations are split by status.

    Returns:
        A RouteGroups with sorted per-status arrays.

    Raises:
        ConfigurationError: on a malformed rule or an unknown grouper.
    """
    rules = coerce_rules(rules)
    raw_routes = routes.group(grouper)

    named: Dict[str, StatusTimes] = {}
    raw: Dict[str, StatusTimes] = {}
    key_to_bucket: Dict[str, str] = {}

    for key, raw_route in raw_routes.items():
        rule = next((r for r in rules if r.matches(raw_route.method, raw_route.url)), None)
        if rule is None:
            bucket = raw.setdefault(key, {})
            key_to_bucket[key] = key
        else:
            bucket = named.setdefault(rule.name, {})
            key_to_bucket[key] = rule.name
        for status, times in raw_route.sub_groups.items():
            bucket.setdefault(status, []).extend(times)

    groups = RouteGroups(key_to_bucket=key_to_bucket)
    for name in dict.fromkeys(r.name for r in rules):
        if name in named:
            groups.buckets[name] = _sorted_statuses(named[name])
            groups.named.append(name)
    for key, statuses in raw.items():
        if key in groups.buckets:
            logger.warning('raw route key equals a rule name; merged into the rule bucket', key=key)
            for status, times in statuses.items():
                groups.buckets[key].setdefault(status, []).extend(times)
            groups.buckets[key] = _sorted_statuses(groups.buckets[key])
            continue
        groups.buckets[key] = _sorted_statuses(statuses)
        groups.raw.append(key)

    unused = [r.name for r in rules if r.name not in named]
    if unused:
        logger.info('grouping rules matched no routes', rules=unused)
    logger.debug('routes grouped', grouper=grouper, named=len(groups.named), raw=len(groups.raw))
    return groups


def make_key_to_properties(keys: Iterable[str]) -> Dict[str, Dict[str, str]]:
    """
    Decodes raw route keys ('GET https://localhost:443/info') into their
    method and path. Keys that don't decode are left out.
    """
    props: Dict[str, Dict[str, str]] = {}
    for key in keys:
        m = KEY_RE.match(key)
        if m:
            props[key] = {'method': m.group(1), 'path': m.group(2)}
    return props
