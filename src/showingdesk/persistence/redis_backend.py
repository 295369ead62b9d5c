"""Redis backends: read-through cache and the escalation timer queue."""

from __future__ import annotations

from datetime import datetime, timezone

import redis

from showingdesk.core.exceptions import CacheError, SchedulerError
from showingdesk.models.events import TimerToken


class RedisCacheBackend:
    """Production ICacheBackend backed by Redis."""

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0) -> None:
        self._host = host
        self._port = port
        self._db = db
        self._client = redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(key)
        except Exception as exc:
            raise CacheError(f"Redis GET failed for key={key!r}: {exc}") from exc

    def setex(self, key: str, ttl: int, value: str) -> None:
        try:
            self._client.setex(key, ttl, value)
        except Exception as exc:
            raise CacheError(f"Redis SETEX failed for key={key!r}: {exc}") from exc

    def delete(self, key: str) -> None:
        try:
            self._client.delete(key)
        except Exception as exc:
            raise CacheError(f"Redis DELETE failed for key={key!r}: {exc}") from exc


class RedisTimerScheduler:
    """Production ITimerScheduler on a Redis sorted set.

    Members are JSON-encoded tokens scored by due time (epoch seconds). A
    per-request set tracks members so acceptance can drop a request's timers.
    ``pop_due`` claims each member with ZREM, so concurrent workers never
    deliver the same token twice.
    """

    def __init__(self, host: str = "localhost", port: int = 6379, db: int = 0,
                 key: str = "showingdesk:timers") -> None:
        self._key = key
        self._client = redis.Redis(
            host=host, port=port, db=db, decode_responses=True,
        )

    def _request_key(self, request_id: str) -> str:
        return f"{self._key}:request:{request_id}"

    def schedule(self, token: TimerToken, due_at: datetime) -> None:
        member = token.model_dump_json()
        try:
            pipe = self._client.pipeline()
            pipe.zadd(self._key, {member: due_at.timestamp()})
            pipe.sadd(self._request_key(token.request_id), member)
            pipe.execute()
        except Exception as exc:
            raise SchedulerError(f"Redis schedule failed for {member}: {exc}") from exc

    def cancel(self, request_id: str) -> None:
        request_key = self._request_key(request_id)
        try:
            members = self._client.smembers(request_key)
            pipe = self._client.pipeline()
            if members:
                pipe.zrem(self._key, *members)
            pipe.delete(request_key)
            pipe.execute()
        except Exception as exc:
            raise SchedulerError(f"Redis cancel failed for request={request_id!r}: {exc}") from exc

    def pop_due(self, now: datetime) -> list[TimerToken]:
        try:
            members = self._client.zrangebyscore(self._key, "-inf", now.timestamp())
            claimed: list[TimerToken] = []
            for member in members:
                if self._client.zrem(self._key, member):
                    token = TimerToken.model_validate_json(member)
                    self._client.srem(self._request_key(token.request_id), member)
                    claimed.append(token)
            return claimed
        except Exception as exc:
            raise SchedulerError(f"Redis pop_due failed: {exc}") from exc

    def due_at(self, token: TimerToken) -> datetime | None:
        """Due time of an armed token, or None."""
        member = token.model_dump_json()
        try:
            score = self._client.zscore(self._key, member)
        except Exception as exc:
            raise SchedulerError(f"Redis ZSCORE failed for {member}: {exc}") from exc
        return datetime.fromtimestamp(score, tz=timezone.utc) if score is not None else None
