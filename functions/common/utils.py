"""
Common utilities for the alarm automation functions
Structured logging and AWS error helpers
"""

import json
import logging
import os
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from botocore.exceptions import BotoCoreError, ClientError


# Configure structured logging
def setup_logger(name: str, level: Optional[str] = None) -> logging.Logger:
    """Set up structured JSON logging"""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
            '"logger": "%(name)s", "message": %(message)s}'
        )
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    log_level = (level or os.environ.get("LOG_LEVEL", "INFO")).upper()
    logger.setLevel(getattr(logging, log_level, logging.INFO))

    return logger


def log_structured(
    logger: logging.Logger, level: str, message: str, request_id: str, **kwargs
) -> None:
    """
    Log structured message with additional context
    """
    log_data = {"message": message, "requestId": request_id, **kwargs}

    # Convert to JSON string for structured logging
    log_message = json.dumps(log_data, default=str)

    getattr(logger, level.lower())(log_message)


def get_current_timestamp() -> str:
    """Get current timestamp in ISO format"""
    return datetime.now(timezone.utc).isoformat()


def get_error_code(error: Exception) -> str:
    """
    Extract the AWS error code from a botocore exception

    ClientError carries the service code in its response; anything else
    (connection or credential problems) is reported by exception type.
    """
    if isinstance(error, ClientError):
        return error.response.get("Error", {}).get("Code", "Unknown")
    if isinstance(error, BotoCoreError):
        return type(error).__name__
    return "Unknown"


def describe_error(error: Exception) -> Dict[str, Any]:
    """Build log context for a failed AWS call"""
    return {
        "error": str(error),
        "errorCode": get_error_code(error),
        "errorType": type(error).__name__,
    }
