"""
Grouping rules and the grouping template that carries them.

A template looks like:

    {"version": "1.0.0",
     "routes": [{"name": "noecho (ALL PARAMS)", "method": "POST", "regex": "^/noecho(\\?.+)?"}]}

Each rule folds every raw route whose method matches and whose path satisfies
exactly one matcher (startsWith, regex or pattern) into a bucket called `name`.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Pattern, Tuple, Union

from jsonschema import validate as jsonschema_validate
from jsonschema.exceptions import ValidationError as JsonSchemaError

from route_metrics_core.core.exceptions import ConfigurationError, ValidationError

TEMPLATE_VERSION = '1.0.0'
MATCHERS: Tuple[str, ...] = ('startsWith', 'regex', 'pattern')

TEMPLATE_SCHEMA: Dict[str, Any] = {
    'type': 'object',
    'required': ['version', 'routes'],
    'properties': {
        'version': {'type': 'string'},
        # reserved for future use
        'options': {'type': 'object'},
        'labels': {'type': 'object'},
        'routes': {
            'type': 'array',
            'items': {
                'type': 'object',
                'required': ['name', 'method'],
                'properties': {
                    'name': {'type': 'string'},
                    'method': {'type': 'string'},
                    'startsWith': {'type': 'string'},
                    'regex': {'type': 'string'},
                    'pattern': {'type': 'string'},
                },
            },
        },
    },
}


@dataclass(frozen=True)
class GroupingRule:
    """
    A named method + matcher pair. Exactly one of starts_with, regex and
    pattern must be set; regex strings are compiled once, here.
    """
    name: str
    method: str
    starts_with: Optional[str] = None
    regex: Optional[Union[str, Pattern[str]]] = None
    pattern: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name or not self.method:
            raise ConfigurationError('template routes must have a name and method property')
        if any(m == '' for m in (self.starts_with, self.regex, self.pattern)):
            raise ConfigurationError(f'route {self.name} has an empty matcher')
        matchers = [m for m in (self.starts_with, self.regex, self.pattern) if m is not None]
        if len(matchers) != 1:
            raise ConfigurationError(f"route {self.name} must have exactly one of {', '.join(MATCHERS)}")
        if isinstance(self.regex, str):
            try:
                object.__setattr__(self, 'regex', re.compile(self.regex))
            except re.error as e:
                raise ConfigurationError(f'route {self.name} has an invalid regex: {e}') from e

    @classmethod
    def from_dict(cls, obj: Mapping[str, Any]) -> 'GroupingRule':
        """Builds a rule from its template form (camelCase matcher names)."""
        return cls(
            name=obj.get('name', ''),
            method=obj.get('method', ''),
            starts_with=obj.get('startsWith'),
            regex=obj.get('regex'),
            pattern=obj.get('pattern'),
        )

    def matches(self, method: str, path: str) -> bool:
        if method != self.method:
            return False
        if self.starts_with is not None:
            return path.startswith(self.starts_with)
        if self.regex is not None:
            return self.regex.search(path) is not None
        return path == self.pattern

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {'name': self.name, 'method': self.method}
        if self.starts_with is not None:
            d['startsWith'] = self.starts_with
        elif self.regex is not None:
            d['regex'] = self.regex.pattern
        else:
            d['pattern'] = self.pattern
        return d


@dataclass(frozen=True)
class GroupingTemplate:
    """A validated grouping template."""
    version: str
    routes: Tuple[GroupingRule, ...] = ()
    options: Dict[str, Any] = field(default_factory=dict)
    labels: Dict[str, Any] = field(default_factory=dict)


def coerce_rules(rules: Iterable[Union[GroupingRule, Mapping[str, Any]]]) -> List[GroupingRule]:
    """
    Validates every rule before any grouping work happens.

    Args:
        rules: GroupingRule instances or their template (dict) form.

    Returns:
        The rules, in declaration order.

    Raises:
        ConfigurationError: if any rule is malformed.
    """
    coerced: List[GroupingRule] = []
    for rule in rules:
        if isinstance(rule, GroupingRule):
            coerced.append(rule)
        elif isinstance(rule, Mapping):
            coerced.append(GroupingRule.from_dict(rule))
        else:
            raise ConfigurationError(f'grouping rule must be a mapping, not {type(rule).__name__}')
    return coerced


def parse_template(obj: Any) -> GroupingTemplate:
    """
    Validates a decoded template against TEMPLATE_SCHEMA and builds its rules.

    Raises:
        ValidationError: if the template doesn't match the schema.
        ConfigurationError: on a version mismatch or a malformed rule.
    """
    try:
        jsonschema_validate(instance=obj, schema=TEMPLATE_SCHEMA)
    except JsonSchemaError as e:
        path = '.'.join(str(p) for p in e.absolute_path) or '<root>'
        raise ValidationError(f'invalid template at {path}: {e.message}') from e

    if obj['version'] != TEMPLATE_VERSION:
        raise ConfigurationError(f"unknown template version {obj['version']}")

    return GroupingTemplate(
        version=obj['version'],
        routes=tuple(coerce_rules(obj['routes'])),
        options=dict(obj.get('options') or {}),
        labels=dict(obj.get('labels') or {}),
    )
