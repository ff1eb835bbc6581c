"""
Test cases for logging setup.
"""

import logging

import pytest
import structlog

from utilities.logger import get_logger, redact_url, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    """Undo global logging changes after each test."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
    structlog.reset_defaults()


class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_sets_root_level(self):
        setup_logging(log_level="WARNING", log_format="json")

        assert logging.getLogger().level == logging.WARNING

    def test_file_sink(self, tmp_path):
        """Events are also written to the log file."""
        log_file = tmp_path / "logs" / "trigger.log"
        setup_logging(log_level="INFO", log_format="json", log_file=log_file)

        get_logger("tests").info("Tick", count=3)
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = log_file.read_text()
        assert '"event": "Tick"' in content
        assert '"count": 3' in content

    def test_invalid_level(self):
        with pytest.raises(AttributeError):
            setup_logging(log_level="LOUD")


class TestRedactUrl:
    """Test cases for redact_url."""

    def test_strips_path_and_query(self):
        redacted = redact_url("https://hooks.example.com/services/T000/B000/secret?x=1")

        assert redacted == "https://hooks.example.com/..."
        assert "secret" not in redacted

    def test_invalid_url(self):
        assert redact_url("nonsense") == "<invalid url>"
