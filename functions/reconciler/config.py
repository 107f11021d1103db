"""
Reconciler configuration read once at the invocation boundary
"""

import logging
import math
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from reconciler.errors import ConfigurationError

DEFAULT_REGION = "us-east-1"
DEFAULT_THRESHOLD = 200.0
DEFAULT_LOG_LEVEL = "INFO"

# Sentinels used when the trigger did not inject a value
QUEUE_NAME_NOT_PROVIDED = "not-provided"
EVENT_TYPE_UNKNOWN = "unknown"


@dataclass(frozen=True)
class ReconcilerConfig:
    """Settings shared by every reconciliation in one deployment"""

    region: str = DEFAULT_REGION
    threshold: float = DEFAULT_THRESHOLD
    sns_topic_arn: Optional[str] = None
    log_level: str = DEFAULT_LOG_LEVEL
    # Set when LOG_LEVEL named no logging level and INFO was used instead
    ignored_log_level: Optional[str] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ReconcilerConfig":
        """
        Build configuration from environment variables

        AWS_REGION, ALARM_THRESHOLD, SNS_TOPIC_ARN and LOG_LEVEL are all
        optional. A blank SNS_TOPIC_ARN disables notifications.
        """
        environ = os.environ if environ is None else environ

        raw_threshold = environ.get("ALARM_THRESHOLD", "").strip()
        if raw_threshold:
            try:
                threshold = float(raw_threshold)
            except ValueError as err:
                raise ConfigurationError(
                    f"ALARM_THRESHOLD must be a number, got: {raw_threshold}"
                ) from err
            if not math.isfinite(threshold):
                raise ConfigurationError(
                    f"ALARM_THRESHOLD must be finite, got: {raw_threshold}"
                )
        else:
            threshold = DEFAULT_THRESHOLD

        raw_log_level = environ.get("LOG_LEVEL", "").strip().upper()
        log_level = normalize_log_level(raw_log_level)

        return cls(
            region=environ.get("AWS_REGION", "").strip() or DEFAULT_REGION,
            threshold=threshold,
            sns_topic_arn=environ.get("SNS_TOPIC_ARN", "").strip() or None,
            log_level=log_level or DEFAULT_LOG_LEVEL,
            ignored_log_level=None if log_level or not raw_log_level else raw_log_level,
        )

    @property
    def notifications_enabled(self) -> bool:
        return self.sns_topic_arn is not None


def normalize_log_level(name: str) -> Optional[str]:
    """
    Map a level name to its canonical logging name, e.g. WARN -> WARNING
    Returns None for blank or unknown names
    """
    if not name:
        return None
    level = logging.getLevelName(name)
    if not isinstance(level, int):
        return None
    return logging.getLevelName(level)
