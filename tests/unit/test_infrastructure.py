import io
import logging
from unittest.mock import MagicMock

import orjson
import pytest
from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError

from utils.config import Settings, settings
from utils.db import connect, get_engine
from utils.errors import ConfigurationError
from utils.logging import JsonFormatter, setup_logging


def test_json_formatter_includes_extra_fields():
    record = logging.LogRecord("apps.synchronizer", logging.INFO, __file__, 1, "Dropped %s", ("dbo.A",), None)
    record.kind = "procedure"

    payload = orjson.loads(JsonFormatter().format(record))

    assert payload["message"] == "Dropped dbo.A"
    assert payload["level"] == "INFO"
    assert payload["kind"] == "procedure"
    assert "args" not in payload


def test_setup_logging_replaces_root_handlers(monkeypatch):
    stream = io.StringIO()
    monkeypatch.setattr("sys.stdout", stream)
    root = logging.getLogger()
    saved = (list(root.handlers), root.level)

    try:
        setup_logging(level="DEBUG", format_type="text")
        setup_logging(level="DEBUG", format_type="text")
        logging.getLogger("test").debug("hello")
        assert len(root.handlers) == 1
        assert " - test - DEBUG - hello" in stream.getvalue()
    finally:
        root.handlers[:] = saved[0]
        root.setLevel(saved[1])


def test_settings_validation(monkeypatch):
    monkeypatch.setenv("LOG_FORMAT", "TEXT")
    monkeypatch.setenv("SYNC_FAIL_ON_ERRORS", "false")
    loaded = Settings(_env_file=None)
    assert loaded.LOG_FORMAT == "text"
    assert loaded.SYNC_FAIL_ON_ERRORS is False

    monkeypatch.setenv("LOG_FORMAT", "xml")
    with pytest.raises(ValueError):
        Settings(_env_file=None)


def test_get_engine_requires_url(monkeypatch):
    monkeypatch.setattr(settings, "DATABASE_URL", "")
    with pytest.raises(ConfigurationError):
        get_engine()


def test_connect_retries_operational_errors():
    conn = MagicMock()
    engine = MagicMock(spec=Engine)
    engine.connect.side_effect = [OperationalError("connect", None, Exception("login timeout")), conn]

    assert connect(engine, attempts=2) is conn
    assert engine.connect.call_count == 2


def test_connect_gives_up_after_attempts():
    engine = MagicMock(spec=Engine)
    engine.connect.side_effect = OperationalError("connect", None, Exception("down"))

    with pytest.raises(OperationalError):
        connect(engine, attempts=1)
