"""
Queue alarm reconciler - keeps one CloudWatch alarm per SQS queue
"""

from reconciler.config import ReconcilerConfig
from reconciler.errors import (
    AlarmLookupError,
    AlarmMutationError,
    ConfigurationError,
    MissingInputError,
    QueueNotFoundError,
    ReconcileError,
    UnrecognizedEventError,
)
from reconciler.reconcile import (
    ALARM_NAME_PREFIX,
    AlarmAction,
    AwsClients,
    EventKind,
    ReconcileResult,
    alarm_name_for,
    reconcile,
)

__all__ = [
    "ALARM_NAME_PREFIX",
    "AlarmAction",
    "AlarmLookupError",
    "AlarmMutationError",
    "AwsClients",
    "ConfigurationError",
    "EventKind",
    "MissingInputError",
    "QueueNotFoundError",
    "ReconcileError",
    "ReconcileResult",
    "ReconcilerConfig",
    "UnrecognizedEventError",
    "alarm_name_for",
    "reconcile",
]
