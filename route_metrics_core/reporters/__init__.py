"""Reporter factory."""
from __future__ import annotations

import importlib
from typing import Type

from route_metrics_core.core.exceptions import ConfigurationError
from route_metrics_core.reporters.base import BaseReporter


def get_reporter(name: str) -> Type[BaseReporter]:
    """
    Resolves a reporter class by name.

    Args:
        name: 'csv', 'json', or 'package.module:ClassName' for a custom reporter.

    Returns:
        The reporter class (not an instance).

    Raises:
        ConfigurationError: if the name doesn't resolve to a BaseReporter subclass.
    """
    name = (name or "csv").strip()
    if name.lower() == "csv":
        from route_metrics_core.reporters.csv_reporter import CsvReporter

        return CsvReporter
    if name.lower() == "json":
        from route_metrics_core.reporters.json_reporter import JsonReporter

        return JsonReporter
    if ":" in name:
        module_name, _, class_name = name.partition(":")
        try:
            cls = getattr(importlib.import_module(module_name), class_name)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(f"unable to load reporter {name}: {e}") from e
        if not (isinstance(cls, type) and issubclass(cls, BaseReporter)):
            raise ConfigurationError(f"reporter {name} is not a BaseReporter subclass")
        return cls
    raise ConfigurationError(f"unknown reporter: {name}")
