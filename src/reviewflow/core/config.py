"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class EngineConfig(BaseSettings):
    """Review engine wiring."""

    model_config = {"env_prefix": "REVIEWFLOW_ENGINE_"}

    backend: Literal["memory", "dynamodb"] = "memory"
    max_commit_attempts: int = 3


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "REVIEWFLOW_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis cache for workflow definitions."""

    model_config = {"env_prefix": "REVIEWFLOW_REDIS_"}

    enabled: bool = False
    host: str = "localhost"
    port: int = 6379
    db: int = 0
    key_prefix: str = "reviewflow:"
    socket_timeout: float = 1.0
    workflow_ttl: int = 3600


class SQSConfig(BaseSettings):
    """SQS queue receiving review notifications."""

    model_config = {"env_prefix": "REVIEWFLOW_SQS_"}

    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    notification_queue_url: str = ""


class SlackConfig(BaseSettings):
    """Slack incoming webhook for assignment and escalation alerts."""

    model_config = {"env_prefix": "REVIEWFLOW_SLACK_"}

    webhook_url: str = ""
    timeout: float = 5.0


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "REVIEWFLOW_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"

    engine: EngineConfig = EngineConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    sqs: SQSConfig = SQSConfig()
    slack: SlackConfig = SlackConfig()
