import json
import logging
import sys

from apkpatch.logging_config import (
    FastFormatter,
    JsonFormatter,
    LoggingTimer,
    _parse_size_string,
    cleanup_logging,
    log_process_output,
    setup_logging,
)


def _record(level=logging.INFO, msg="hello", exc_info=None):
    return logging.LogRecord(
        name="apkpatch.test",
        level=level,
        pathname=__file__,
        lineno=123,
        msg=msg,
        args=(),
        exc_info=exc_info,
    )


def test_json_formatter_outputs_expected_fields():
    payload = json.loads(JsonFormatter().format(_record()))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "apkpatch.test"
    assert payload["message"] == "hello"
    assert payload["pathname"] == __file__
    assert payload["lineno"] == 123
    assert "timestamp" in payload
    assert "thread" in payload
    assert "process" in payload


def test_json_formatter_includes_exc_info():
    try:
        raise ValueError("boom")
    except ValueError:
        record = _record(logging.ERROR, "failed", sys.exc_info())

    payload = json.loads(JsonFormatter().format(record))
    assert "ValueError" in payload["exc_info"]


def test_fast_formatter_level_templates():
    formatter = FastFormatter()
    assert "ERROR   [apkpatch.test] boom" in formatter.format(_record(logging.ERROR, "boom"))
    assert "INFO    hello" in formatter.format(_record())
    assert "apkpatch.test:123 - dbg" in formatter.format(_record(logging.DEBUG, "dbg"))


def test_fast_formatter_colors():
    text = FastFormatter(enable_colors=True).format(_record(logging.WARNING, "careful"))
    assert text.startswith("\033[93m")
    assert text.endswith("\033[0m")


def test_parse_size_string():
    assert _parse_size_string("10MB") == 10 * 1024 * 1024
    assert _parse_size_string("2kb") == 2048
    assert _parse_size_string("512") == 512
    assert _parse_size_string("nonsense") == 10 * 1024 * 1024


def test_setup_logging_creates_file_handlers(tmp_path):
    try:
        result = setup_logging(log_level="DEBUG", log_dir=tmp_path, enable_file_logging=True,
                               enable_console_logging=False)
        assert set(result["handlers"]) == {"main_file", "error_file"}
        logging.getLogger("apkpatch.test").warning("written")
        for handler in result["handlers"].values():
            handler.flush()
        assert "written" in (tmp_path / "apkpatch.log").read_text(encoding="utf-8")
        assert "written" in (tmp_path / "errors.log").read_text(encoding="utf-8")
    finally:
        cleanup_logging()


def test_setup_logging_json_from_env(tmp_path, monkeypatch):
    monkeypatch.setenv("APKPATCH_LOG_JSON", "1")
    try:
        result = setup_logging(log_dir=tmp_path)
        assert isinstance(result["handlers"]["console"].formatter, JsonFormatter)
    finally:
        cleanup_logging()


def test_log_process_output(tmp_path):
    target = log_process_output(tmp_path / "logs", "apksigner", "Signed\n")
    assert target is not None
    assert target.name.startswith("apksigner_")
    assert target.read_text(encoding="utf-8") == "Signed\n"


def test_logging_timer_records_duration():
    with LoggingTimer("rebuild", threshold=60) as timer:
        pass
    assert timer.duration >= 0
