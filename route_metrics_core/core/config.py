"""
Configuration loading utilities.

Three sources feed the processor:
- `ProcessorOptions`, the validated options object the engine receives.
- `ConfigLoader`, which reads a grouping template (JSON or YAML) from disk.
- `load_env_config`, which reads `CSI_RM_*` environment variables for the CLI.
"""
import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError as PydanticValidationError, field_validator

from route_metrics_core.core.exceptions import ConfigurationError
from route_metrics_core.core.types import Grouper
from route_metrics_core.grouping.rules import GroupingRule, GroupingTemplate, parse_template

DEFAULT_PERCENTILES: Tuple[float, ...] = (0.50, 0.70, 0.80, 0.90, 0.95)
DEFAULT_LOG_FILE = 'route-metrics.log'
AGENT_PATCH_PREFIX = '@contrast/agent'


class ProcessorOptions(BaseModel):
    """Options controlling grouping, statistics and unit conversion."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    # a GroupingTemplate, or its decoded dict form
    template: Optional[Any] = None
    microseconds: bool = Field(default=False, description="report elapsed times in µs instead of ms")
    grouper: Grouper = 'by-status-code'
    percentiles: Tuple[float, ...] = DEFAULT_PERCENTILES
    use_histogram: bool = Field(default=False, description="use a streaming histogram for large buckets")
    histogram_threshold: int = Field(default=10_000, ge=1)
    ema_alpha: float = Field(default=0.1, gt=0.0, le=1.0)
    agent_patch_prefix: str = AGENT_PATCH_PREFIX

    @field_validator('template', mode='before')
    @classmethod
    def _parse_template(cls, v: Any) -> Any:
        if v is None or isinstance(v, GroupingTemplate):
            return v
        if isinstance(v, Mapping):
            return parse_template(v)
        raise ValueError(f'template must be a mapping, not {type(v).__name__}')

    @field_validator('percentiles')
    @classmethod
    def _check_percentiles(cls, v: Tuple[float, ...]) -> Tuple[float, ...]:
        if not v:
            raise ValueError('at least one percentile is required')
        for p in v:
            if not 0.0 <= p <= 1.0:
                raise ValueError(f'percentile {p} must be between 0 and 1')
        return v

    @classmethod
    def build(cls, **kwargs: Any) -> 'ProcessorOptions':
        """
        Creates options, converting validation failures to ConfigurationError.

        Returns:
            The validated options.
        """
        try:
            return cls(**kwargs)
        except PydanticValidationError as e:
            fields = ', '.join('.'.join(str(p) for p in err['loc']) for err in e.errors())
            raise ConfigurationError(f'invalid processor options ({fields}): {e}') from e

    @property
    def rules(self) -> List[GroupingRule]:
        return list(self.template.routes) if self.template else []


class ConfigLoader:
    """
    Loads grouping template files (YAML, JSON) from a path.
    """
    def __init__(self, template_path: str) -> None:
        """
        Initializes the loader with the path to the template file.

        Args:
            template_path: Path to a .json, .yaml or .yml template.
        """
        self._template_path = template_path

    def load_raw(self) -> Any:
        """
        Reads and decodes the template file without validating it.

        Returns:
            The decoded document.

        Raises:
            ConfigurationError: if the file can't be decoded.
        """
        path = Path(self._template_path)
        with open(path, 'r', encoding='utf-8') as f:
            try:
                if path.suffix.lower() == '.json':
                    return json.load(f)
                return yaml.safe_load(f)
            except (json.JSONDecodeError, yaml.YAMLError) as e:
                raise ConfigurationError(f'unable to decode template {path}: {e}') from e

    def load_template(self) -> GroupingTemplate:
        """
        Loads and validates the grouping template.

        Returns:
            The validated template with compiled rules.
        """
        return parse_template(self.load_raw())


#
# environment configuration for the command line
#
ENV_PREFIX = 'CSI_RM_'

LOG_PROCESSOR_DEFAULTS: Dict[str, Any] = {
    'REPORTER': 'csv',
    'OUTPUT': '1',
    'TEMPLATE': '',
    'MICROSECONDS': False,
}

# the agent reads these; the processor tolerates them so a user can export one
# set of variables for both.
AGENT_DEFAULTS: Dict[str, Any] = {
    'LOG_FILE': DEFAULT_LOG_FILE,
    'OUTPUT_CONFIG': '',
    'GARBAGE_COLLECTION': False,
    'EVENTLOOP': False,
    'EVENTLOOP_RESOLUTION': 20,
}


@dataclass
class ConfigErrors:
    """Problems found while reading the environment. None of them are fatal."""
    unknown: List[str] = field(default_factory=list)
    invalid: List[str] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.unknown or self.invalid)


def load_env_config(environ: Optional[Mapping[str, str]] = None) -> Tuple[Dict[str, Any], ConfigErrors]:
    """
    Reads CSI_RM_* variables over the log processor defaults.

    Values are converted to the type of the default. A value that doesn't
    convert is reported and the default is kept.

    Args:
        environ: The environment to read; os.environ when omitted.

    Returns:
        A (config, errors) tuple.
    """
    environ = os.environ if environ is None else environ
    config = dict(LOG_PROCESSOR_DEFAULTS)
    errors = ConfigErrors()

    for name, value in environ.items():
        if not name.startswith(ENV_PREFIX):
            continue
        key = name[len(ENV_PREFIX):]
        if key not in config:
            if key not in AGENT_DEFAULTS:
                errors.unknown.append(name)
            continue

        default = LOG_PROCESSOR_DEFAULTS[key]
        if isinstance(default, bool):
            if value == 'true':
                config[key] = True
            elif value == 'false':
                config[key] = False
            else:
                errors.invalid.append(f'{name} must be true or false, not {value}')
        elif isinstance(default, (int, float)):
            try:
                config[key] = type(default)(value)
            except ValueError:
                errors.invalid.append(f'{name} must be a number, not {value}')
        else:
            config[key] = value

    return config, errors
