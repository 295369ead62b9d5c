"""Pluggable persistence backends behind Protocol interfaces."""

from __future__ import annotations

from typing import NamedTuple

from showingdesk.core.config import AppSettings
from showingdesk.core.protocols import (
    ICacheBackend,
    IHandlerDirectory,
    IPreferenceStore,
    IRequestStore,
    ITimerScheduler,
)
from showingdesk.persistence.dynamodb_backend import (
    DynamoDBHandlerDirectory,
    DynamoDBPreferenceStore,
    DynamoDBRequestStore,
)
from showingdesk.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryHandlerDirectory,
    MemoryPreferenceStore,
    MemoryRequestStore,
    MemoryTimerScheduler,
)
from showingdesk.persistence.redis_backend import RedisCacheBackend, RedisTimerScheduler


class Persistence(NamedTuple):
    requests: IRequestStore
    preferences: IPreferenceStore
    directory: IHandlerDirectory
    cache: ICacheBackend
    scheduler: ITimerScheduler


def create_persistence(settings: AppSettings | None = None) -> Persistence:
    """Create wired-up persistence backends from application settings.

    ``backend="memory"`` gives process-local fakes for development;
    ``backend="aws"`` gives DynamoDB stores with Redis cache and timers.
    """
    if settings is None:
        settings = AppSettings()

    if settings.backend == "memory":
        return Persistence(
            requests=MemoryRequestStore(),
            preferences=MemoryPreferenceStore(),
            directory=MemoryHandlerDirectory(),
            cache=MemoryCacheBackend(),
            scheduler=MemoryTimerScheduler(),
        )

    cache = RedisCacheBackend(
        host=settings.redis.host,
        port=settings.redis.port,
        db=settings.redis.db,
    )

    scheduler = RedisTimerScheduler(
        host=settings.redis.host,
        port=settings.redis.port,
        db=settings.redis.db,
        key=settings.redis.timer_key,
    )

    requests = DynamoDBRequestStore(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
    )

    preferences = DynamoDBPreferenceStore(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
        cache=cache,
        cache_ttl=settings.cache.preferences_ttl_seconds,
    )

    directory = DynamoDBHandlerDirectory(
        table_suffix=settings.dynamodb.table_suffix,
        region=settings.dynamodb.region,
        endpoint_url=settings.dynamodb.endpoint_url,
        role=settings.escalation.handler_role,
    )

    return Persistence(requests, preferences, directory, cache, scheduler)
