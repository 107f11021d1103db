"""
Error taxonomy for alarm reconciliation

Every fatal failure is a ReconcileError. Tagging failures are not errors;
they are reported as warnings on the result.
"""


class ReconcileError(Exception):
    """Base class for failures that stop a reconciliation"""

    exit_code = 1
    kind = "ReconcileError"


class ConfigurationError(ReconcileError):
    """Configuration values could not be parsed"""

    kind = "ConfigurationError"


class MissingInputError(ReconcileError):
    """Queue name was not provided"""

    kind = "MissingInput"


class UnrecognizedEventError(ReconcileError):
    """Event type is not CreateQueue or DeleteQueue"""

    kind = "UnrecognizedEvent"


class QueueNotFoundError(ReconcileError):
    """Queue does not exist upstream at alarm creation time"""

    kind = "ResourceNotFound"


class AlarmLookupError(ReconcileError):
    """describe_alarms failed, so the current alarm state is unknown"""

    kind = "AlarmLookupFailure"


class AlarmMutationError(ReconcileError):
    """put_metric_alarm or delete_alarms was rejected"""

    kind = "AlarmMutationFailure"
