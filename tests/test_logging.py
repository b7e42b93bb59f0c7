import json
import logging

import pytest

from qrstyle.logging import AUDIT, ConsoleFormatter, JsonFormatter, audit, get_logger, setup_logging, trace
from qrstyle.matrix import classify_matrix


def _events(caplog):
    return [getattr(r, "event", None) for r in caplog.records]


def test_classify_emits_audit_event(caplog, modules21):
    caplog.set_level(AUDIT, logger="qrstyle")
    classify_matrix(modules21)
    record = next(r for r in caplog.records if getattr(r, "event", None) == "matrix.classified")
    assert record.levelname == "AUDIT"
    assert record.name == "qrstyle.matrix"
    assert record.ctx["size"] == "21x21"
    assert record.ctx["finder_outer"] == 3 * 40


def test_trace_logs_entry_and_exit(caplog):
    caplog.set_level(logging.DEBUG, logger="qrstyle")

    @trace(logger_name="test")
    def stage(values):
        return list(values)

    assert stage(range(3)) == [0, 1, 2]
    assert _events(caplog) == ["stage.enter", "stage.done"]
    assert caplog.records[1].ctx == {"result": "list[3]"}
    assert caplog.records[1].duration_ms >= 0


def test_trace_logs_and_reraises(caplog):
    caplog.set_level(logging.INFO, logger="qrstyle")

    @trace(logger_name="test")
    def broken():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        broken()
    (record,) = caplog.records
    assert record.event == "broken.error"
    assert record.levelno == logging.ERROR
    assert record.exc_info[0] is RuntimeError


def test_json_formatter():
    log = get_logger("fmt")
    record = log.makeRecord(log.name, AUDIT, "", 0, "", (), None)
    record.event = "scene.assembled"
    record.ctx = {"groups": 12}
    entry = json.loads(JsonFormatter().format(record))
    assert entry["event"] == "scene.assembled"
    assert entry["level"] == "AUDIT"
    assert entry["src"] == "qrstyle.fmt"
    assert entry["ctx"] == {"groups": 12}
    assert entry["ts"].endswith("Z")


def test_console_formatter_shows_context():
    log = get_logger("fmt")
    record = log.makeRecord(log.name, logging.INFO, "", 0, "", (), None)
    record.event = "render.done"
    record.ctx = {"data": "x" * 200}
    line = ConsoleFormatter().format(record)
    assert "[qrstyle.fmt] render.done" in line
    assert "x" * 80 + "..." in line


def test_setup_logging_writes_json_file(tmp_path):
    path = tmp_path / "qrstyle.log"
    setup_logging(level="AUDIT", log_file=str(path))
    audit("unit.event", logger=get_logger("test"), answer=42)
    for handler in logging.getLogger("qrstyle").handlers:
        handler.flush()
    (line,) = path.read_text().splitlines()
    assert json.loads(line)["ctx"] == {"answer": 42}
