"""Application configuration using pydantic-settings with grouped env prefixes."""

from __future__ import annotations

from typing import Literal

from pydantic_settings import BaseSettings


class EscalationConfig(BaseSettings):
    """Escalation timing and trigger behavior.

    Per-candidate timeouts and the total escalation budget normally come from
    the requester's preference list; these values are the fallbacks.
    """

    model_config = {"env_prefix": "SHOWINGDESK_ESCALATION_"}

    default_response_timeout_seconds: int = 300
    max_escalation_duration_seconds: int = 900  # 0 disables the duration check
    public_reevaluation_interval_seconds: int = 900
    handler_role: str = "showing_agent"
    timer_poll_interval_seconds: float = 1.0
    retry_delay_seconds: int = 30
    dispatch_inline: bool = True  # API writes invoke the engine directly
    run_timer_worker: bool = False


class DynamoDBConfig(BaseSettings):
    """DynamoDB configuration."""

    model_config = {"env_prefix": "SHOWINGDESK_DYNAMO_"}

    table_suffix: str = ""  # "-dev", "-uat", or "" for prod
    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override


class RedisConfig(BaseSettings):
    """Redis cache and timer configuration."""

    model_config = {"env_prefix": "SHOWINGDESK_REDIS_"}

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    timer_key: str = "showingdesk:timers"


class CacheConfig(BaseSettings):
    """Read-through cache TTLs."""

    model_config = {"env_prefix": "SHOWINGDESK_CACHE_"}

    preferences_ttl_seconds: int = 60


class SQSConfig(BaseSettings):
    """SQS notification queue configuration."""

    model_config = {"env_prefix": "SHOWINGDESK_SQS_"}

    region: str = "us-east-1"
    endpoint_url: str | None = None  # LocalStack override
    notification_queue_url: str = ""


class AppSettings(BaseSettings):
    """Root application settings aggregating all sub-configs."""

    model_config = {"env_prefix": "SHOWINGDESK_"}

    environment: Literal["dev", "uat", "prod"] = "dev"
    log_level: str = "INFO"
    log_json: bool = False
    backend: Literal["memory", "aws"] = "memory"

    escalation: EscalationConfig = EscalationConfig()
    dynamodb: DynamoDBConfig = DynamoDBConfig()
    redis: RedisConfig = RedisConfig()
    cache: CacheConfig = CacheConfig()
    sqs: SQSConfig = SQSConfig()
