"""
Tests for logging setup.
"""

import io
import json
import logging
import sys

import pytest

from zureblob.core.logging_config import (
    ROOT_LOGGER,
    JSONFormatter,
    SensitiveDataFilter,
    _parse_size,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_logger():
    """Put the package logger back the way the test found it."""
    package_logger = logging.getLogger(ROOT_LOGGER)
    handlers = list(package_logger.handlers)
    level = package_logger.level
    yield
    for handler in package_logger.handlers:
        if handler not in handlers:
            handler.close()
    package_logger.handlers[:] = handlers
    package_logger.setLevel(level)


def make_record(msg, *args, level=logging.INFO, name="zureblob.blob.client"):
    return logging.LogRecord(name, level, __file__, 1, msg, args, None)


class TestSetupLogging:
    """Test suite for setup_logging."""

    def test_text_output(self):
        """Test text output goes to the given stream."""
        stream = io.StringIO()
        package_logger = setup_logging(level="INFO", stream=stream)

        logging.getLogger("zureblob.blob.client").info("created container photos")

        assert package_logger.name == ROOT_LOGGER
        assert "[INFO] zureblob.blob.client: created container photos" in stream.getvalue()

    def test_level_applied(self):
        """Test messages below the level are dropped."""
        stream = io.StringIO()
        setup_logging(level="warning", stream=stream)

        logging.getLogger("zureblob.blob.client").info("quiet")

        assert stream.getvalue() == ""

    def test_json_output(self):
        """Test JSON output carries level, module and message."""
        stream = io.StringIO()
        setup_logging(level="DEBUG", format_type="json", stream=stream)

        logging.getLogger("zureblob.blob.transfer").debug("staged block %d", 3)

        entry = json.loads(stream.getvalue().strip())
        assert entry["level"] == "DEBUG"
        assert entry["module"] == "zureblob.blob.transfer"
        assert entry["message"] == "staged block 3"
        assert "timestamp" in entry

    def test_repeated_setup_replaces_handlers(self):
        """Test calling setup twice does not duplicate output."""
        stream = io.StringIO()
        setup_logging(stream=stream)
        setup_logging(stream=stream)

        logging.getLogger("zureblob").info("once")

        assert stream.getvalue().count("once") == 1

    def test_signature_redacted_in_output(self):
        """Test handlers redact Authorization signatures."""
        stream = io.StringIO()
        setup_logging(stream=stream)

        logging.getLogger("zureblob.blob.client").info("Authorization: SharedKey acct:c2lnbmF0dXJl")

        assert "c2lnbmF0dXJl" not in stream.getvalue()
        assert "SharedKey acct:***REDACTED***" in stream.getvalue()

    def test_module_levels(self):
        """Test per-module level overrides."""
        module_logger = logging.getLogger("zureblob.blob.transfer")
        previous = module_logger.level
        try:
            setup_logging(level="INFO", module_levels={"zureblob.blob.transfer": "DEBUG"}, stream=io.StringIO())
            assert module_logger.level == logging.DEBUG
        finally:
            module_logger.setLevel(previous)

    def test_log_file(self, tmp_path):
        """Test logging to a rotating file."""
        log_file = tmp_path / "logs" / "zureblob.log"
        setup_logging(log_file=str(log_file), rotation_size="1KB", stream=io.StringIO())

        logging.getLogger("zureblob").warning("to file")
        for handler in logging.getLogger(ROOT_LOGGER).handlers:
            handler.flush()

        assert "to file" in log_file.read_text()


class TestSensitiveDataFilter:
    """Test suite for credential redaction."""

    @pytest.mark.parametrize("message,secret", [
        ("Authorization: SharedKey acct:abc123==", "abc123=="),
        ("Authorization: Bearer eyJhbGciOi", "eyJhbGciOi"),
        ("DefaultEndpointsProtocol=https;AccountKey=c2VjcmV0;", "c2VjcmV0"),
        ("key=Eby8vdM02xNOcqFlqUwJPLlmEtlCDXJ1OUzFT50uSRZ6IFsuFq2UVErCz4I6tq", "Eby8vdM02xNOcqFl"),
        ("GET /photos/cat.jpg?se=2026-01-01&sig=abc%2Bdef&sp=r", "abc%2Bdef"),
    ])
    def test_redacts(self, message, secret):
        """Test credentials are removed from messages."""
        record = make_record(message)

        assert SensitiveDataFilter().filter(record) is True
        assert secret not in record.getMessage()
        assert "***REDACTED***" in record.getMessage()

    def test_redacts_formatted_args(self):
        """Test secrets passed as arguments are redacted."""
        record = make_record("signed %s", "Authorization: SharedKey acct:abc123==")

        SensitiveDataFilter().filter(record)

        assert record.args is None
        assert record.getMessage() == "signed Authorization: SharedKey acct:***REDACTED***"

    def test_leaves_clean_messages(self):
        """Test messages without secrets are untouched."""
        record = make_record("listed %d blobs", 4)

        SensitiveDataFilter().filter(record)

        assert record.args == (4,)
        assert record.getMessage() == "listed 4 blobs"


class TestJSONFormatter:
    """Test suite for JSONFormatter."""

    def test_exception_included(self):
        """Test exception text is included."""
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = logging.LogRecord("zureblob", logging.ERROR, __file__, 1, "failed", None, sys.exc_info())

        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "failed"
        assert "RuntimeError: boom" in entry["exception"]


class TestParseSize:
    """Test suite for _parse_size."""

    @pytest.mark.parametrize("text,expected", [
        ("10MB", 10 * 1024 ** 2),
        ("1gb", 1024 ** 3),
        ("512KB", 512 * 1024),
        ("100B", 100),
        ("1.5MB", int(1.5 * 1024 ** 2)),
        ("2048", 2048),
    ])
    def test_sizes(self, text, expected):
        assert _parse_size(text) == expected
