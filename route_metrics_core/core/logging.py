"""
Structured logging and metrics utilities.
"""
import json
import logging
import sys
import time
from typing import Any, Dict, Optional

class Logger:
    """
    A simple structured logger that outputs JSON Lines.

    Records propagate to the root logger; `setup_logging` decides where they go
    and at which level.
    """
    def __init__(self, name: str, level: Optional[str] = None) -> None:
        """
        Initializes the logger.

        Args:
            name: The name of the logger.
            level: An optional logging level; inherited from the root logger if omitted.
        """
        self._logger = logging.getLogger(name)
        if level is not None:
            self._logger.setLevel(level.upper())

    def _log(self, level: str, msg: str, **fields: Any) -> None:
        levelno = logging.getLevelName(level.upper())
        if not self._logger.isEnabledFor(levelno):
            return
        log_record = {
            'level': level,
            'message': msg,
            'timestamp': time.strftime('%Y-%m-%dT%H:%M:%SZ', time.gmtime()),
            **fields
        }
        self._logger.log(levelno, json.dumps(log_record, ensure_ascii=False, default=str))

    def debug(self, msg: str, **fields: Any) -> None:
        """Logs a message with DEBUG level."""
        self._log('debug', msg, **fields)

    def info(self, msg: str, **fields: Any) -> None:
        """Logs a message with INFO level."""
        self._log('info', msg, **fields)

    def error(self, msg: str, **fields: Any) -> None:
        """Logs a message with ERROR level."""
        self._log('error', msg, **fields)

    def warning(self, msg: str, **fields: Any) -> None:
        """Logs a message with WARNING level."""
        self._log('warning', msg, **fields)


def setup_logging(verbose: bool = False) -> None:
    """Routes log records to stderr; INFO when verbose, WARNING otherwise."""
    level = logging.INFO if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(message)s",
        stream=sys.stderr,
        force=True,
    )


class Metrics:
    """
    A simple metrics collector for timing processing phases and counting records.
    """
    def __init__(self) -> None:
        self._timers: Dict[str, float] = {}
        self._elapsed: Dict[str, float] = {}
        self._counters: Dict[str, float] = {}

    def start_timer(self, key: str) -> None:
        """
        Starts a timer for a given key.

        Args:
            key: The identifier for the timer.
        """
        self._timers[key] = time.perf_counter()

    def stop_timer(self, key: str) -> float:
        """
        Stops a timer and returns the elapsed time in milliseconds.

        Args:
            key: The identifier for the timer.

        Returns:
            The elapsed time in milliseconds, or -1.0 if the timer was not started.
        """
        if key in self._timers:
            elapsed_ms = (time.perf_counter() - self._timers.pop(key)) * 1000
            self._elapsed[key] = self._elapsed.get(key, 0.0) + elapsed_ms
            return elapsed_ms
        return -1.0

    def incr(self, key: str, value: float = 1.0) -> None:
        """
        Increments a counter by a given value.

        Args:
            key: The identifier for the counter.
            value: The value to increment by.
        """
        self._counters.setdefault(key, 0.0)
        self._counters[key] += value

    def get_counters(self) -> Dict[str, float]:
        """Returns the current state of all counters."""
        return self._counters.copy()

    def get_timings(self) -> Dict[str, float]:
        """Returns the accumulated milliseconds of every stopped timer."""
        return {k: round(v, 3) for k, v in self._elapsed.items()}
