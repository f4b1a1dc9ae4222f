"""
Tests for the structlog setup.
"""

import logging

import pytest
import structlog

from utilities.logger import bind_request_context, clear_request_context, setup_logging


@pytest.fixture(autouse=True)
def reset_logging():
    root_level = logging.getLogger().level
    yield
    logging.getLogger().setLevel(root_level)
    structlog.reset_defaults()
    clear_request_context()
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()


def test_setup_logging_creates_log_file(tmp_path):
    log_file = tmp_path / "logs" / "api.log"
    setup_logging(log_level="INFO", log_format="json", log_file=str(log_file))
    assert log_file.exists()
    assert "Logging system initialized" in log_file.read_text()


def test_request_context_is_merged():
    setup_logging(log_level="DEBUG", log_format="console")
    bind_request_context(method="GET", path="/books")
    assert structlog.contextvars.get_contextvars() == {"method": "GET", "path": "/books"}
    clear_request_context()
    assert structlog.contextvars.get_contextvars() == {}


def test_repeated_setup_writes_each_line_once(tmp_path):
    log_file = tmp_path / "api.log"
    setup_logging(log_level="INFO", log_format="json", log_file=str(log_file))
    setup_logging(log_level="INFO", log_format="json", log_file=str(log_file))

    structlog.get_logger("books").info("single event")

    root = logging.getLogger()
    file_handlers = [h for h in root.handlers if isinstance(h, logging.FileHandler)]
    assert len(file_handlers) == 1
    file_handlers[0].flush()
    lines = [line for line in log_file.read_text().splitlines() if "single event" in line]
    assert len(lines) == 1
