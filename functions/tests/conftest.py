"""
In-memory stand-ins for the SQS, CloudWatch and STS clients
"""

import pytest
from botocore.exceptions import ClientError

from reconciler.config import ReconcilerConfig
from reconciler.reconcile import AwsClients

ACCOUNT_ID = "123456789012"
SNS_TOPIC_ARN = f"arn:aws:sns:us-east-1:{ACCOUNT_ID}:queue-alarms"


def make_client_error(code: str, operation: str) -> ClientError:
    return ClientError({"Error": {"Code": code, "Message": f"{code} raised"}}, operation)


class FakeClient:
    """Records calls and raises injected errors"""

    def __init__(self):
        self.calls = []
        self._failures = {}

    def fail_on(self, operation: str, code: str = "AccessDenied", error=None):
        """Make an operation raise, a ClientError with code unless error is given"""
        self._failures[operation] = error or make_client_error(code, operation)

    def _record(self, operation: str, **kwargs):
        self.calls.append((operation, kwargs))
        if operation in self._failures:
            raise self._failures[operation]

    def call_names(self):
        return [name for name, _ in self.calls]


class FakeSqs(FakeClient):
    def __init__(self, queues=()):
        super().__init__()
        self.queues = set(queues)

    def get_queue_url(self, QueueName):
        self._record("get_queue_url", QueueName=QueueName)
        if QueueName not in self.queues:
            raise make_client_error(
                "AWS.SimpleQueueService.NonExistentQueue", "GetQueueUrl"
            )
        return {
            "QueueUrl": f"https://sqs.us-east-1.amazonaws.com/{ACCOUNT_ID}/{QueueName}"
        }


class FakeCloudWatch(FakeClient):
    def __init__(self):
        super().__init__()
        self.alarms = {}
        self.tags = {}

    def describe_alarms(self, AlarmNames, AlarmTypes):
        self._record("describe_alarms", AlarmNames=AlarmNames, AlarmTypes=AlarmTypes)
        return {
            "MetricAlarms": [
                dict(self.alarms[name]) for name in AlarmNames if name in self.alarms
            ],
            "CompositeAlarms": [],
        }

    def put_metric_alarm(self, **kwargs):
        self._record("put_metric_alarm", **kwargs)
        self.alarms[kwargs["AlarmName"]] = kwargs
        return {}

    def delete_alarms(self, AlarmNames):
        self._record("delete_alarms", AlarmNames=AlarmNames)
        for name in AlarmNames:
            self.alarms.pop(name, None)
        return {}

    def tag_resource(self, ResourceARN, Tags):
        self._record("tag_resource", ResourceARN=ResourceARN, Tags=Tags)
        self.tags[ResourceARN] = {tag["Key"]: tag["Value"] for tag in Tags}
        return {}

    def mutation_calls(self):
        return [
            name
            for name in self.call_names()
            if name in ("put_metric_alarm", "delete_alarms")
        ]


class FakeSts(FakeClient):
    def __init__(self, identity=None):
        super().__init__()
        self.identity = identity

    def get_caller_identity(self):
        self._record("get_caller_identity")
        if self.identity is not None:
            return self.identity
        return {
            "UserId": "AIDAEXAMPLE",
            "Account": ACCOUNT_ID,
            "Arn": f"arn:aws:iam::{ACCOUNT_ID}:role/codebuild-queue-alarms",
        }


class LambdaContext:
    aws_request_id = "test-request-id"


@pytest.fixture
def sqs():
    return FakeSqs(queues=["orders-queue"])


@pytest.fixture
def cloudwatch():
    return FakeCloudWatch()


@pytest.fixture
def sts():
    return FakeSts()


@pytest.fixture
def clients(sqs, cloudwatch, sts):
    return AwsClients(sqs=sqs, cloudwatch=cloudwatch, sts=sts)


@pytest.fixture
def config():
    return ReconcilerConfig(region="us-east-1", threshold=5.0)


@pytest.fixture
def lambda_context():
    return LambdaContext()


@pytest.fixture
def patched_clients(monkeypatch, clients):
    """Make the entry points use the fake clients"""
    monkeypatch.setattr(AwsClients, "for_region", lambda region: clients)
    return clients
