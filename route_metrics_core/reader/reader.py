"""
Lazy line reader for route-metrics log files.
"""
from __future__ import annotations

import json
import os
from typing import IO, Any, Dict, Iterator, List, Tuple, Union

from tqdm import tqdm

from route_metrics_core.core.types import ENVELOPE_FIELDS, RecordType

Source = Union[str, 'os.PathLike[str]', IO[str], IO[bytes]]


class LineReader:
    """
    Yields the lines of a log one at a time, without their line terminators.

    A final line that has no terminating newline (e.g., the agent is still
    writing) is yielded like any other. Byte and character counts are
    available once iteration finishes.
    """
    def __init__(self, source: Source, progress: bool = False) -> None:
        """
        Args:
            source: A path, or an already open text or binary stream.
            progress: Show a tqdm progress bar (paths only).
        """
        self.source = source
        self.progress = progress
        self.line_count = 0
        self.char_count = 0
        self.byte_count = 0
        self.eof = False

    @property
    def name(self) -> str:
        if isinstance(self.source, (str, os.PathLike)):
            return os.fspath(self.source)
        return getattr(self.source, 'name', '<stream>')

    def __iter__(self) -> Iterator[str]:
        if isinstance(self.source, (str, os.PathLike)):
            # filesystem errors propagate to the caller
            with open(self.source, 'rb') as f:
                total = os.fstat(f.fileno()).st_size
                with tqdm(total=total, unit='B', unit_scale=True, desc=self.name, disable=not self.progress) as bar:
                    for line in self._iter_stream(f):
                        bar.update(self.byte_count - bar.n)
                        yield line
        else:
            yield from self._iter_stream(self.source)

    def _iter_stream(self, stream: IO[Any]) -> Iterator[str]:
        for raw in stream:
            if isinstance(raw, bytes):
                self.byte_count += len(raw)
                text = raw.decode('utf-8', errors='replace')
            else:
                text = raw
                self.byte_count += len(raw.encode('utf-8'))
            self.char_count += len(text)
            self.line_count += 1
            if text.endswith('\n'):
                text = text[:-1]
                if text.endswith('\r'):
                    text = text[:-1]
            yield text
        self.eof = True


def check_records(records: List[Dict[str, Any]]) -> bool:
    """True if there is at least one record, the first is a header and all have the envelope fields."""
    if not records:
        return False
    if records[0].get('type') != RecordType.HEADER.value:
        return False
    return all(all(r.get(k) is not None for k in ENVELOPE_FIELDS) for r in records)


def read_log(path: str, convert: bool = False, check: bool = False) -> Union[str, List[Dict[str, Any]], Tuple[List[Dict[str, Any]], bool]]:
    """
    Reads a whole log into memory. Only suitable for bounded fixtures.

    Args:
        path: The log file.
        convert: Decode every line into a dict.
        check: With convert, also return whether the records look like a valid log.

    Returns:
        The raw text, the decoded records, or (records, ok).

    Raises:
        json.JSONDecodeError: if convert is set and a line isn't JSON.
    """
    with open(path, 'r', encoding='utf-8') as f:
        text = f.read()
    if not convert:
        return text

    records = [json.loads(line) for line in text.splitlines() if line.strip()]
    if check:
        return records, check_records(records)
    return records

