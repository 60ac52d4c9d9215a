"""
Collector for log lines that couldn't be indexed.
"""
from __future__ import annotations

from typing import Dict, List, NamedTuple


class BadLine(NamedTuple):
    line_number: int
    message: str
    text: str


class ParseErrors:
    """
    Maps each error message to the 1-based line numbers that produced it.
    Parse errors never stop processing.
    """
    # long lines are truncated when kept for diagnostics
    MAX_TEXT = 200

    def __init__(self) -> None:
        self._by_message: Dict[str, List[int]] = {}
        self.lines: List[BadLine] = []

    def add(self, message: str, line_number: int, text: str = '') -> None:
        self._by_message.setdefault(message, []).append(line_number)
        self.lines.append(BadLine(line_number, message, text[:self.MAX_TEXT]))

    @property
    def count(self) -> int:
        return len(self.lines)

    def __bool__(self) -> bool:
        return bool(self.lines)

    def __contains__(self, message: str) -> bool:
        return message in self._by_message

    def messages(self) -> List[str]:
        return list(self._by_message)

    def line_numbers(self, message: str) -> List[int]:
        return list(self._by_message.get(message, []))

    def as_dict(self) -> Dict[str, List[int]]:
        return {m: list(lines) for m, lines in self._by_message.items()}
