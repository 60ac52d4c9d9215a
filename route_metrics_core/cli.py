"""
Command line entry point: report on a route-metrics log.

    route-metrics-report [--reporter csv|json] [--output 1|FD|PATH] [--template FILE] route-metrics.log

Options default to the CSI_RM_* environment variables; flags override them.
"""
from __future__ import annotations

import argparse
import os
import sys
from typing import IO, Any, Dict, List, Optional, Tuple

from route_metrics_core.core.config import DEFAULT_LOG_FILE, ConfigLoader, ProcessorOptions, load_env_config
from route_metrics_core.core.exceptions import BaseAppException, ConfigurationError, RegistryError, ReporterError
from route_metrics_core.core.logging import Logger, setup_logging
from route_metrics_core.grouping.rules import GroupingTemplate
from route_metrics_core.processor.log_processor import LogProcessor

logger = Logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERNAL = 2


def _err(msg: str) -> None:
    print(msg, file=sys.stderr)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="route-metrics-report", description="Summarize a route-metrics log")
    p.add_argument("log", nargs="?", default=DEFAULT_LOG_FILE, help="log file to read (default: %(default)s)")
    p.add_argument("--reporter", help="csv, json or module:Class (env CSI_RM_REPORTER)")
    p.add_argument("--output", help="1 for stdout, a file descriptor number or a path (env CSI_RM_OUTPUT)")
    p.add_argument("--template", help="grouping template, .json/.yaml (env CSI_RM_TEMPLATE)")
    p.add_argument("--microseconds", action="store_true", default=None, help="report times in µs (env CSI_RM_MICROSECONDS)")
    p.add_argument("--grouper", choices=["by-status-code", "by-success-failure", "none"], default="by-status-code")
    p.add_argument("--progress", action="store_true", help="show a progress bar while reading")
    p.add_argument("-v", "--verbose", action="store_true", help="log progress to stderr")
    return p


def resolve_config(args: argparse.Namespace, environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Merges the environment configuration with the command line flags."""
    config, errors = load_env_config(environ)
    for name in errors.unknown:
        _err(f"unknown config item: {name}")
    for msg in errors.invalid:
        _err(f"invalid config value: {msg}")

    for key in ("reporter", "output", "template", "microseconds"):
        value = getattr(args, key)
        if value is not None:
            config[key.upper()] = value
    return config


def load_template(path: str) -> Optional[GroupingTemplate]:
    """Loads the grouping template; a bad template is reported and ignored."""
    if not path:
        return None
    try:
        return ConfigLoader(path).load_template()
    except (OSError, ConfigurationError) as e:
        _err(f"template {path} ignored: {e}")
        return None


def open_output(output: str) -> Tuple[IO[str], bool]:
    """
    Returns (stream, should_close) for CSI_RM_OUTPUT semantics: '1' is stdout,
    any other number is an open file descriptor, anything else is a path.
    """
    if output in ("", "1"):
        return sys.stdout, False
    if output.isdigit():
        return open(int(output), "w", encoding="utf-8", closefd=False), True
    return open(output, "w", encoding="utf-8"), True


def main(argv: Optional[List[str]] = None, environ: Optional[Dict[str, str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    config = resolve_config(args, environ if environ is not None else dict(os.environ))

    try:
        options = ProcessorOptions.build(
            template=load_template(config["TEMPLATE"]),
            microseconds=config["MICROSECONDS"],
            grouper=args.grouper,
        )
    except ConfigurationError as e:
        _err(str(e))
        return EXIT_ERROR

    stream, should_close = None, False
    try:
        processor = LogProcessor(args.log, config["REPORTER"], options=options, progress=args.progress)
        processor.read()
        # the output is only truncated once the log has been read
        try:
            stream, should_close = open_output(config["OUTPUT"])
        except OSError as e:
            _err(f"unable to open output {config['OUTPUT']}: {e}")
            return EXIT_ERROR
        processor.stream = stream
        processor.summarize()
    except RegistryError as e:
        logger.error("registry error", error=str(e))
        _err(f"internal error: {e}")
        return EXIT_INTERNAL
    except OSError as e:
        _err(f"unable to process {args.log}: {e}")
        return EXIT_ERROR
    except (ConfigurationError, ReporterError) as e:
        _err(str(e))
        return EXIT_ERROR
    except BaseAppException as e:
        logger.error("unexpected error", error=str(e))
        _err(str(e))
        return EXIT_INTERNAL
    finally:
        if should_close:
            stream.close()
        elif stream is not None:
            stream.flush()

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
