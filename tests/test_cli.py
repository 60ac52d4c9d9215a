import json

import pytest

from route_metrics_core import cli
from route_metrics_core.core.exceptions import RegistryError


@pytest.fixture
def log_path(write_log, header, route):
    return write_log([header(), route(10, et=4000), route(11, url="/b", et=2000)])


def test_csv_to_file(log_path, tmp_path, capsys):
    out = tmp_path / "report.csv"
    assert cli.main([str(log_path), "--output", str(out)], environ={}) == 0
    lines = out.read_text(encoding="utf-8").splitlines()
    assert lines[1] == "GET http://x:80/a,200,1,4.00,0.00,4,4,4,4,4"
    assert capsys.readouterr().out.startswith("[[read 1 summary (3 lines, ")


def test_report_to_stdout(log_path, capsys):
    assert cli.main([str(log_path)], environ={}) == 0
    assert "GET http://x:80/b,200,1,2.00,0.00,2,2,2,2,2" in capsys.readouterr().out


def test_env_config(log_path, tmp_path):
    out = tmp_path / "report.json"
    environ = {"CSI_RM_REPORTER": "json", "CSI_RM_OUTPUT": str(out), "CSI_RM_MICROSECONDS": "true"}
    assert cli.main([str(log_path)], environ=environ) == 0
    doc = json.loads(out.read_text(encoding="utf-8"))
    assert [name for name, _ in doc["routes"]] == ["GET http://x:80/a", "GET http://x:80/b"]


def test_flags_override_env(log_path, tmp_path):
    out = tmp_path / "report.csv"
    environ = {"CSI_RM_REPORTER": "json", "CSI_RM_OUTPUT": str(tmp_path / "unused.json")}
    assert cli.main([str(log_path), "--reporter", "csv", "--output", str(out), "--microseconds"], environ=environ) == 0
    assert out.read_text(encoding="utf-8").splitlines()[1] == "GET http://x:80/a,200,1,4000.00,0.00,4000,4000,4000,4000,4000"
    assert not (tmp_path / "unused.json").exists()


def test_template_flag(log_path, tmp_path):
    template = tmp_path / "template.yml"
    template.write_text("version: '1.0.0'\nroutes:\n  - {name: everything, method: GET, startsWith: /}\n", encoding="utf-8")
    out = tmp_path / "report.csv"
    assert cli.main([str(log_path), "--template", str(template), "--output", str(out)], environ={}) == 0
    assert out.read_text(encoding="utf-8").splitlines()[1] == "everything,200,2,3.00,1.00,2,4,4,4,4"


def test_bad_template_is_dropped(log_path, tmp_path, capsys):
    template = tmp_path / "template.json"
    template.write_text(json.dumps({"version": "0.9", "routes": []}), encoding="utf-8")
    out = tmp_path / "report.csv"
    assert cli.main([str(log_path), "--output", str(out)], environ={"CSI_RM_TEMPLATE": str(template)}) == 0
    assert "unknown template version 0.9" in capsys.readouterr().err
    assert len(out.read_text(encoding="utf-8").splitlines()) == 4


def test_env_problems_reported(log_path, tmp_path, capsys):
    environ = {"CSI_RM_MICROSECONDS": "maybe", "CSI_RM_NOPE": "1", "CSI_RM_OUTPUT": str(tmp_path / "r.csv")}
    assert cli.main([str(log_path)], environ=environ) == 0
    err = capsys.readouterr().err
    assert "CSI_RM_NOPE" in err
    assert "CSI_RM_MICROSECONDS" in err


def test_missing_log(tmp_path, capsys):
    assert cli.main([str(tmp_path / "missing.log"), "--output", str(tmp_path / "r.csv")], environ={}) == 1
    assert "missing.log" in capsys.readouterr().err


def test_unknown_reporter(log_path, tmp_path, capsys):
    assert cli.main([str(log_path), "--reporter", "xml", "--output", str(tmp_path / "r")], environ={}) == 1
    assert "unknown reporter: xml" in capsys.readouterr().err


def test_registry_error_exit_code(log_path, tmp_path, monkeypatch):
    def broken(self):
        raise RegistryError("no accumulator for record type route")

    monkeypatch.setattr(cli.LogProcessor, "read", broken)
    assert cli.main([str(log_path), "--output", str(tmp_path / "r")], environ={}) == 2


def test_open_output_file_descriptor(tmp_path):
    path = tmp_path / "fd.txt"
    with open(path, "w", encoding="utf-8") as f:
        stream, should_close = cli.open_output(str(f.fileno()))
        stream.write("hello\n")
        stream.close()
        assert should_close
    assert path.read_text(encoding="utf-8") == "hello\n"


def test_missing_log_leaves_output_alone(tmp_path):
    out = tmp_path / "r.csv"
    assert cli.main([str(tmp_path / "missing.log"), "--output", str(out)], environ={}) == 1
    assert not out.exists()

    out.write_text("previous report\n", encoding="utf-8")
    assert cli.main([str(tmp_path / "missing.log"), "--output", str(out)], environ={}) == 1
    assert out.read_text(encoding="utf-8") == "previous report\n"
