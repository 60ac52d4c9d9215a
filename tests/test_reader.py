import io
import json

import pytest

from route_metrics_core.reader.reader import LineReader, check_records, read_log


def test_lines_without_terminators(tmp_path):
    path = tmp_path / "log"
    path.write_bytes(b"a\nb\r\nc")
    reader = LineReader(path)
    assert list(reader) == ["a", "b", "c"]
    assert reader.line_count == 3
    assert reader.char_count == 6
    assert reader.byte_count == 6
    assert reader.eof


def test_reader_is_lazy():
    stream = io.StringIO("one\ntwo\nthree\n")
    it = iter(LineReader(stream))
    assert next(it) == "one"
    # nothing past the first line has been consumed
    assert stream.readline() == "two\n"


def test_text_and_binary_streams_count_the_same():
    text = "é1\nx\n"
    text_reader = LineReader(io.StringIO(text))
    bin_reader = LineReader(io.BytesIO(text.encode("utf-8")))
    assert list(text_reader) == list(bin_reader) == ["é1", "x"]
    assert text_reader.char_count == bin_reader.char_count == 5
    assert text_reader.byte_count == bin_reader.byte_count == 6


def test_missing_file_propagates(tmp_path):
    with pytest.raises(FileNotFoundError):
        list(LineReader(tmp_path / "nope.log"))


def test_name():
    assert LineReader("some/route-metrics.log").name == "some/route-metrics.log"
    assert LineReader(io.StringIO("")).name == "<stream>"


def test_read_log(write_log, header, route):
    path = write_log([header(), route(1734117475700)])
    text = read_log(str(path))
    assert text.count("\n") == 2

    records = read_log(str(path), convert=True)
    assert [r["type"] for r in records] == ["header", "route"]
    assert records[1]["ts"] == 1734117475700

    records, ok = read_log(str(path), convert=True, check=True)
    assert ok


def test_read_log_bad_json(write_log):
    path = write_log(["not json"])
    with pytest.raises(json.JSONDecodeError):
        read_log(str(path), convert=True)


def test_check_records(header, route):
    assert not check_records([])
    assert not check_records([route(1)])
    assert check_records([header(), route(2)])
    assert not check_records([header(), {"ts": 3, "type": "route"}])
