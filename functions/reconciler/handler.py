"""
Reconciler entry points - build step (environment variables) and Lambda
"""

import os
import sys
import uuid
from typing import Any, Dict, Mapping, Optional, Tuple
from urllib.parse import urlparse

from common.utils import log_structured, setup_logger
from reconciler.config import (
    EVENT_TYPE_UNKNOWN,
    QUEUE_NAME_NOT_PROVIDED,
    ReconcilerConfig,
)
from reconciler.errors import ReconcileError
from reconciler.reconcile import AwsClients, reconcile

# Initialize logger
logger = setup_logger("reconciler")


def main(environ: Optional[Mapping[str, str]] = None) -> int:
    """
    Run one reconciliation from environment variables
    Returns the process exit code
    """
    environ = os.environ if environ is None else environ
    request_id = environ.get("CODEBUILD_BUILD_ID") or str(uuid.uuid4())

    queue_name = environ.get("QUEUE_NAME", QUEUE_NAME_NOT_PROVIDED)
    event_type = environ.get("EVENT_TYPE", EVENT_TYPE_UNKNOWN)

    try:
        config = ReconcilerConfig.from_env(environ)
        apply_log_level(config, request_id)

        log_structured(
            logger,
            "INFO",
            "SQS queue alarm reconciliation started",
            request_id,
            queueName=queue_name,
            eventType=event_type,
            region=config.region,
            threshold=config.threshold,
            notificationsEnabled=config.notifications_enabled,
        )

        result = reconcile(
            event_type,
            queue_name,
            config,
            AwsClients.for_region(config.region),
            request_id=request_id,
        )

    except ReconcileError as e:
        log_structured(
            logger,
            "ERROR",
            "SQS queue alarm reconciliation failed",
            request_id,
            errorKind=e.kind,
            error=str(e),
        )
        return e.exit_code

    log_structured(
        logger,
        "INFO",
        "SQS queue alarm reconciliation completed",
        request_id,
        **result.to_dict(),
    )
    return 0


def lambda_handler(event, context):
    """
    Main Lambda handler for queue lifecycle events
    """
    request_id = context.aws_request_id
    event_type, queue_name = parse_queue_event(event)

    try:
        config = ReconcilerConfig.from_env()
        apply_log_level(config, request_id)

        log_structured(
            logger,
            "INFO",
            "SQS queue alarm reconciliation started",
            request_id,
            queueName=queue_name,
            eventType=event_type,
            source=event.get("source"),
        )

        result = reconcile(
            event_type,
            queue_name,
            config,
            AwsClients.for_region(config.region),
            request_id=request_id,
        )
    except ReconcileError as e:
        log_structured(
            logger,
            "ERROR",
            "SQS queue alarm reconciliation failed",
            request_id,
            errorKind=e.kind,
            error=str(e),
        )
        # Fail the invocation so the event source can retry or dead-letter it
        raise

    log_structured(
        logger,
        "INFO",
        "SQS queue alarm reconciliation completed",
        request_id,
        **result.to_dict(),
    )

    return {"statusCode": 200, "result": result.to_dict()}


def apply_log_level(config: ReconcilerConfig, request_id: str) -> None:
    """Set the logger level, warning when LOG_LEVEL was not a level name"""
    logger.setLevel(config.log_level)
    if config.ignored_log_level:
        log_structured(
            logger,
            "WARNING",
            "Unknown LOG_LEVEL, using INFO",
            request_id,
            logLevel=config.ignored_log_level,
        )


def parse_queue_event(event: Dict[str, Any]) -> Tuple[Optional[str], Optional[str]]:
    """
    Extract (event type, queue name) from a Lambda payload

    Accepts a direct payload with eventType/queueName or a CloudTrail
    API call event delivered by EventBridge. Missing values come back as
    None and are rejected by validation.
    """
    if "detail" not in event:
        return event.get("eventType"), event.get("queueName")

    detail = event.get("detail") or {}
    event_type = detail.get("eventName")
    params = detail.get("requestParameters") or {}

    queue_name = params.get("queueName")
    if not queue_name and params.get("queueUrl"):
        queue_name = queue_name_from_url(params["queueUrl"])

    return event_type, queue_name


def queue_name_from_url(queue_url: str) -> str:
    """
    Queue name is the last path segment of an SQS queue URL
    e.g. https://sqs.us-east-1.amazonaws.com/123456789012/orders-queue
    """
    path = urlparse(queue_url).path
    return path.rstrip("/").rsplit("/", 1)[-1]


if __name__ == "__main__":
    sys.exit(main())
