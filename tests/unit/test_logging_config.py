"""
Tests for structured logging setup.
"""

import json
import logging
import sys

from navcache.logging_config import StructuredFormatter, get_logger, setup_logging


def _record(**extra):
    record = logging.LogRecord(
        name="navcache.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="served page %s",
        args=(3,),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_json():
    """Test records become single-line JSON."""
    payload = json.loads(StructuredFormatter().format(_record()))

    assert payload["level"] == "INFO"
    assert payload["logger"] == "navcache.test"
    assert payload["message"] == "served page 3"
    assert "client_id" not in payload


def test_formatter_includes_context_fields():
    """Test client/page/request context is copied into the payload."""
    payload = json.loads(StructuredFormatter().format(_record(client_id=2, page=3, request_id=9)))

    assert payload["client_id"] == 2
    assert payload["page"] == 3
    assert payload["request_id"] == 9


def test_formatter_includes_exception():
    """Test exception tracebacks are serialized."""
    try:
        raise ValueError("bad page")
    except ValueError:
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", (), None)
        record.exc_info = sys.exc_info()

    payload = json.loads(StructuredFormatter().format(record))

    assert "ValueError: bad page" in payload["exception"]


def test_setup_logging_is_idempotent(restore_root_logger):
    """Test repeated setup replaces its own handlers."""
    setup_logging("DEBUG")
    setup_logging("WARNING")

    root = logging.getLogger()
    ours = [h for h in root.handlers if getattr(h, "_navcache_handler", False)]
    assert len(ours) == 1
    assert root.level == logging.WARNING
    assert isinstance(ours[0].formatter, StructuredFormatter)


def test_setup_logging_with_file(restore_root_logger, tmp_path):
    """Test a log file receives JSON records."""
    log_file = tmp_path / "logs" / "navcache.log"
    setup_logging("INFO", log_file)

    get_logger("navcache.test").info("hello")
    for handler in logging.getLogger().handlers:
        handler.flush()

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["message"] == "hello"
