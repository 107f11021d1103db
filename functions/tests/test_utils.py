"""
Tests for the shared logging and error utilities
"""

import json
import logging

from botocore.exceptions import EndpointConnectionError

from common.utils import (
    describe_error,
    get_current_timestamp,
    get_error_code,
    log_structured,
    setup_logger,
)
from conftest import make_client_error


def test_setup_logger_attaches_single_handler():
    """Test repeated setup does not duplicate handlers"""
    logger = setup_logger("test-utils-single", "DEBUG")
    setup_logger("test-utils-single", "DEBUG")

    assert len(logger.handlers) == 1
    assert logger.level == logging.DEBUG


def test_setup_logger_reads_log_level(monkeypatch):
    """Test the level comes from LOG_LEVEL when not given"""
    monkeypatch.setenv("LOG_LEVEL", "ERROR")

    logger = setup_logger("test-utils-env")

    assert logger.level == logging.ERROR


def test_log_structured_emits_json(capsys):
    """Test each line is a JSON object carrying the context"""
    logger = setup_logger("test-utils-json", "INFO")

    log_structured(
        logger, "INFO", "Alarm tagged", "req-1", alarmName="SQS-HighMessageCount-q"
    )

    line = capsys.readouterr().err.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["level"] == "INFO"
    assert record["message"]["message"] == "Alarm tagged"
    assert record["message"]["requestId"] == "req-1"
    assert record["message"]["alarmName"] == "SQS-HighMessageCount-q"


def test_get_error_code():
    """Test codes are read from ClientError and named for BotoCoreError"""
    client_error = make_client_error("AccessDenied", "TagResource")
    connection_error = EndpointConnectionError(endpoint_url="https://example.com")

    assert get_error_code(client_error) == "AccessDenied"
    assert get_error_code(connection_error) == "EndpointConnectionError"
    assert get_error_code(ValueError("boom")) == "Unknown"


def test_describe_error():
    """Test error log context"""
    context = describe_error(make_client_error("Throttling", "DescribeAlarms"))

    assert context["errorCode"] == "Throttling"
    assert context["errorType"] == "ClientError"
    assert "Throttling" in context["error"]


def test_get_current_timestamp_is_utc():
    """Test timestamps are ISO formatted in UTC"""
    assert get_current_timestamp().endswith("+00:00")
