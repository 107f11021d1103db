"""
Alarm reconciliation - converges the CloudWatch alarm for one SQS queue
to the state implied by a queue lifecycle event
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from common.utils import describe_error, get_current_timestamp, log_structured, setup_logger
from reconciler.config import QUEUE_NAME_NOT_PROVIDED, ReconcilerConfig
from reconciler.errors import (
    AlarmLookupError,
    AlarmMutationError,
    MissingInputError,
    QueueNotFoundError,
    UnrecognizedEventError,
)

logger = setup_logger("reconciler")

# Alarm definition shared by every managed queue
ALARM_NAME_PREFIX = "SQS-HighMessageCount"
ALARM_NAMESPACE = "AWS/SQS"
ALARM_METRIC_NAME = "ApproximateNumberOfMessagesVisible"
ALARM_STATISTIC = "Average"
ALARM_PERIOD_SECONDS = 300
ALARM_EVALUATION_PERIODS = 1
ALARM_COMPARISON_OPERATOR = "GreaterThanOrEqualToThreshold"
ALARM_TREAT_MISSING_DATA = "notBreaching"

MANAGED_BY_TAG = "EventBridge-CodeBuild"

AWS_ERRORS = (ClientError, BotoCoreError)
# Malformed identity responses surface as ValueError from build_alarm_arn
TAGGING_ERRORS = AWS_ERRORS + (ValueError,)


class EventKind(str, Enum):
    """Queue lifecycle events the reconciler reacts to"""

    CREATED = "CreateQueue"
    DELETED = "DeleteQueue"


class AlarmAction(str, Enum):
    """What a reconciliation did to the alarm"""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
    UNCHANGED = "unchanged"


@dataclass
class ReconcileResult:
    """Outcome of a successful reconciliation"""

    event_kind: EventKind
    queue_name: str
    alarm_name: str
    action: AlarmAction
    warnings: List[str] = field(default_factory=list)
    completed_at: str = field(default_factory=get_current_timestamp)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "eventType": self.event_kind.value,
            "queueName": self.queue_name,
            "alarmName": self.alarm_name,
            "action": self.action.value,
            "warnings": list(self.warnings),
            "completedAt": self.completed_at,
        }


@dataclass(frozen=True)
class AwsClients:
    """boto3 clients used by one reconciliation"""

    sqs: Any
    cloudwatch: Any
    sts: Any

    @classmethod
    def for_region(cls, region: str) -> "AwsClients":
        return cls(
            sqs=boto3.client("sqs", region_name=region),
            cloudwatch=boto3.client("cloudwatch", region_name=region),
            sts=boto3.client("sts", region_name=region),
        )


def alarm_name_for(queue_name: str) -> str:
    """Derive the alarm name for a queue"""
    return f"{ALARM_NAME_PREFIX}-{queue_name}"


def validate_inputs(event_kind: Optional[str], queue_name: Optional[str]) -> EventKind:
    """
    Check the invocation inputs before any AWS call is made
    Returns the parsed event kind
    """
    if (
        not isinstance(queue_name, str)
        or not queue_name.strip()
        or queue_name.strip() == QUEUE_NAME_NOT_PROVIDED
    ):
        raise MissingInputError("QUEUE_NAME is not provided")

    try:
        return EventKind(event_kind)
    except ValueError:
        raise UnrecognizedEventError(
            "EVENT_TYPE must be either 'CreateQueue' or 'DeleteQueue', "
            f"got: {event_kind!r}"
        ) from None


def reconcile(
    event_kind: Optional[str],
    queue_name: Optional[str],
    config: ReconcilerConfig,
    clients: AwsClients,
    request_id: str = "local",
) -> ReconcileResult:
    """
    Ensure the alarm for queue_name exists (CreateQueue) or is absent (DeleteQueue)

    Raises a ReconcileError subclass on any fatal failure. Repeating the
    same call converges to the same end state.
    """
    kind = validate_inputs(event_kind, queue_name)
    queue_name = queue_name.strip()

    log_structured(
        logger,
        "INFO",
        "Input validation passed",
        request_id,
        queueName=queue_name,
        eventType=kind.value,
    )

    if kind is EventKind.CREATED:
        return create_alarm(queue_name, config, clients, request_id)
    return delete_alarm(queue_name, clients, request_id)


def ensure_queue_exists(queue_name: str, clients: AwsClients, request_id: str) -> str:
    """
    Look up the queue URL, failing if the queue is gone
    """
    log_structured(
        logger, "INFO", "Retrieving queue URL", request_id, queueName=queue_name
    )

    try:
        response = clients.sqs.get_queue_url(QueueName=queue_name)
    except AWS_ERRORS as e:
        log_structured(
            logger,
            "ERROR",
            "Failed to retrieve queue URL",
            request_id,
            queueName=queue_name,
            **describe_error(e),
        )
        raise QueueNotFoundError(
            f"Queue does not exist, cannot create alarm: {queue_name}"
        ) from e

    return response["QueueUrl"]


def alarm_exists(alarm_name: str, clients: AwsClients, request_id: str) -> bool:
    """
    Check whether a metric alarm with this exact name exists
    """
    try:
        response = clients.cloudwatch.describe_alarms(
            AlarmNames=[alarm_name], AlarmTypes=["MetricAlarm"]
        )
    except AWS_ERRORS as e:
        log_structured(
            logger,
            "ERROR",
            "Failed to look up alarm",
            request_id,
            alarmName=alarm_name,
            **describe_error(e),
        )
        raise AlarmLookupError(f"Failed to look up alarm: {alarm_name}") from e

    return any(
        alarm.get("AlarmName") == alarm_name
        for alarm in response.get("MetricAlarms", [])
    )


def format_threshold(threshold: float) -> str:
    """Render a threshold without exponent notation, e.g. 200.0 -> 200"""
    if float(threshold).is_integer():
        return str(int(threshold))
    return str(threshold)


def build_alarm_request(queue_name: str, config: ReconcilerConfig) -> Dict[str, Any]:
    """
    Build put_metric_alarm parameters for a queue
    """
    threshold = config.threshold
    request = {
        "AlarmName": alarm_name_for(queue_name),
        "AlarmDescription": (
            f"Alert when SQS queue {queue_name} has {format_threshold(threshold)} "
            "or more messages available"
        ),
        "Namespace": ALARM_NAMESPACE,
        "MetricName": ALARM_METRIC_NAME,
        "Dimensions": [{"Name": "QueueName", "Value": queue_name}],
        "Statistic": ALARM_STATISTIC,
        "Period": ALARM_PERIOD_SECONDS,
        "EvaluationPeriods": ALARM_EVALUATION_PERIODS,
        "Threshold": threshold,
        "ComparisonOperator": ALARM_COMPARISON_OPERATOR,
        "TreatMissingData": ALARM_TREAT_MISSING_DATA,
    }

    # Notify on breach and on recovery
    if config.notifications_enabled:
        request["AlarmActions"] = [config.sns_topic_arn]
        request["OKActions"] = [config.sns_topic_arn]

    return request


def create_alarm(
    queue_name: str, config: ReconcilerConfig, clients: AwsClients, request_id: str
) -> ReconcileResult:
    """
    Create or update the alarm for a newly created queue
    """
    alarm_name = alarm_name_for(queue_name)

    log_structured(
        logger, "INFO", "Processing CreateQueue event", request_id, queueName=queue_name
    )

    queue_url = ensure_queue_exists(queue_name, clients, request_id)

    existed = alarm_exists(alarm_name, clients, request_id)
    if existed:
        log_structured(
            logger,
            "INFO",
            "Alarm already exists, updating",
            request_id,
            alarmName=alarm_name,
        )

    if config.notifications_enabled:
        log_structured(
            logger,
            "INFO",
            "SNS notifications enabled",
            request_id,
            snsTopicArn=config.sns_topic_arn,
        )

    try:
        clients.cloudwatch.put_metric_alarm(**build_alarm_request(queue_name, config))
    except AWS_ERRORS as e:
        log_structured(
            logger,
            "ERROR",
            "Failed to create CloudWatch alarm",
            request_id,
            alarmName=alarm_name,
            **describe_error(e),
        )
        raise AlarmMutationError(
            f"Failed to create CloudWatch alarm: {alarm_name}"
        ) from e

    log_structured(
        logger,
        "INFO",
        "CloudWatch alarm created/updated successfully",
        request_id,
        alarmName=alarm_name,
        queueUrl=queue_url,
        threshold=config.threshold,
    )

    result = ReconcileResult(
        event_kind=EventKind.CREATED,
        queue_name=queue_name,
        alarm_name=alarm_name,
        action=AlarmAction.UPDATED if existed else AlarmAction.CREATED,
    )

    warning = tag_alarm(alarm_name, queue_name, config, clients, request_id)
    if warning:
        result.warnings.append(warning)

    return result


def tag_alarm(
    alarm_name: str,
    queue_name: str,
    config: ReconcilerConfig,
    clients: AwsClients,
    request_id: str,
) -> Optional[str]:
    """
    Tag the alarm for management, best effort
    Returns a warning message if tagging failed, None otherwise
    """
    try:
        alarm_arn = build_alarm_arn(
            alarm_name, config.region, clients.sts.get_caller_identity()
        )
        clients.cloudwatch.tag_resource(
            ResourceARN=alarm_arn,
            Tags=[
                {"Key": "ManagedBy", "Value": MANAGED_BY_TAG},
                {"Key": "QueueName", "Value": queue_name},
            ],
        )
    except TAGGING_ERRORS as e:
        log_structured(
            logger,
            "WARNING",
            "Tagging skipped (might not have permissions)",
            request_id,
            alarmName=alarm_name,
            **describe_error(e),
        )
        return f"Tagging skipped for {alarm_name}: {e}"

    log_structured(
        logger, "INFO", "Alarm tagged", request_id, alarmName=alarm_name, alarmArn=alarm_arn
    )
    return None


def build_alarm_arn(alarm_name: str, region: str, identity: Dict[str, Any]) -> str:
    """
    Build the alarm ARN from a get_caller_identity response
    The partition is taken from the caller ARN, defaulting to aws
    """
    account = identity.get("Account")
    if not account:
        raise ValueError("Caller identity has no Account")

    arn_parts = (identity.get("Arn") or "").split(":")
    partition = arn_parts[1] if len(arn_parts) > 1 and arn_parts[1] else "aws"

    return f"arn:{partition}:cloudwatch:{region}:{account}:alarm:{alarm_name}"


def delete_alarm(queue_name: str, clients: AwsClients, request_id: str) -> ReconcileResult:
    """
    Delete the alarm for a deleted queue, tolerating an already absent alarm
    """
    alarm_name = alarm_name_for(queue_name)

    log_structured(
        logger, "INFO", "Processing DeleteQueue event", request_id, queueName=queue_name
    )

    if not alarm_exists(alarm_name, clients, request_id):
        log_structured(
            logger,
            "INFO",
            "Alarm does not exist (already deleted or never created)",
            request_id,
            alarmName=alarm_name,
        )
        return ReconcileResult(
            event_kind=EventKind.DELETED,
            queue_name=queue_name,
            alarm_name=alarm_name,
            action=AlarmAction.UNCHANGED,
        )

    try:
        clients.cloudwatch.delete_alarms(AlarmNames=[alarm_name])
    except AWS_ERRORS as e:
        log_structured(
            logger,
            "ERROR",
            "Failed to delete CloudWatch alarm",
            request_id,
            alarmName=alarm_name,
            **describe_error(e),
        )
        raise AlarmMutationError(
            f"Failed to delete CloudWatch alarm: {alarm_name}"
        ) from e

    log_structured(
        logger,
        "INFO",
        "CloudWatch alarm deleted successfully",
        request_id,
        alarmName=alarm_name,
    )

    return ReconcileResult(
        event_kind=EventKind.DELETED,
        queue_name=queue_name,
        alarm_name=alarm_name,
        action=AlarmAction.DELETED,
    )
