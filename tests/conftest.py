"""
Shared fixtures for the DynamoDB identity store tests.

Every test talks to an in-process DynamoDB provided by moto, so no AWS
account or local DynamoDB container is needed.
"""

import boto3
import pytest
from moto import mock_aws

from identity_dynamodb import (
    DynamoDbOptions,
    DynamoDbRoleStore,
    DynamoDbUserStore,
    OptionsMonitor,
    ensure_initialized_async,
)


REGION = 'us-east-1'


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches a real account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', REGION)


@pytest.fixture
def aws(aws_credentials):
    with mock_aws():
        yield


@pytest.fixture
def dynamodb(aws):
    return boto3.client('dynamodb', region_name=REGION)


@pytest.fixture
def cloudwatch(aws):
    return boto3.client('cloudwatch', region_name=REGION)


@pytest.fixture
def options(dynamodb):
    return DynamoDbOptions(database=dynamodb, poll_interval=0)


@pytest.fixture
def monitor(options):
    return OptionsMonitor(options)


@pytest.fixture
async def initialized(monitor):
    """Monitor whose table has been provisioned."""
    await ensure_initialized_async(monitor)
    return monitor


@pytest.fixture
def user_store(initialized):
    return DynamoDbUserStore(initialized)


@pytest.fixture
def role_store(initialized):
    return DynamoDbRoleStore(initialized)
