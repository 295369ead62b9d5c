"""DynamoDB backends: request records, preference lists, and the handler directory."""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import TypeAdapter

from showingdesk.core.exceptions import (
    CacheError,
    RequestExistsError,
    UpstreamUnavailableError,
)
from showingdesk.models.preferences import Candidate, Handler, PreferenceList
from showingdesk.models.request import RecordPatch, RequestRecord

logger = structlog.get_logger(__name__)

REQUESTS_TABLE = "showingdesk-requests"
PREFERENCES_TABLE = "showingdesk-agent-preferences"
HANDLERS_TABLE = "showingdesk-handlers"

_JSON = TypeAdapter(Any)


def _resource(region: str, endpoint_url: str | None):
    kwargs: dict = {"region_name": region}
    if endpoint_url:
        kwargs["endpoint_url"] = endpoint_url
    return boto3.resource("dynamodb", **kwargs)


def _decode_decimals(value: Any) -> Any:
    """Convert Decimal values in a DynamoDB item to int/float, recursively."""
    if isinstance(value, Decimal):
        return int(value) if value == int(value) else float(value)
    if isinstance(value, dict):
        return {k: _decode_decimals(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_decode_decimals(i) for i in value]
    return value


def _to_dynamodb(value: Any) -> Any:
    """JSON-mode dump (datetimes, enums) with floats converted to Decimal."""
    if isinstance(value, (set, frozenset)):
        return set(value)
    return _encode_floats(_JSON.dump_python(value, mode="json"))


def _encode_floats(obj: Any) -> Any:
    if isinstance(obj, float):
        return Decimal(str(obj))
    if isinstance(obj, dict):
        return {k: _encode_floats(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_encode_floats(i) for i in obj]
    return obj


def _attr(field_name: str) -> str:
    """DynamoDB attribute name for a RequestRecord field."""
    return RequestRecord.model_fields[field_name].alias or field_name


def _is_conditional_failure(exc: ClientError) -> bool:
    return exc.response.get("Error", {}).get("Code") == "ConditionalCheckFailedException"


def request_key(request_id: str) -> dict[str, str]:
    return {"PK": f"REQUEST#{request_id}", "SK": "STATE"}


def record_to_item(record: RequestRecord) -> dict[str, Any]:
    """Serialize a record for put_item. Empty string sets are omitted."""
    item = _encode_floats(
        record.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"notified_handlers"})
    )
    if record.notified_handlers:
        item[_attr("notified_handlers")] = set(record.notified_handlers)
    item.update(request_key(record.id))
    return item


def item_to_record(item: dict[str, Any]) -> RequestRecord:
    data = _decode_decimals({k: v for k, v in item.items() if k not in ("PK", "SK")})
    data[_attr("notified_handlers")] = set(data.get(_attr("notified_handlers")) or ())
    return RequestRecord.model_validate(data)


class DynamoDBRequestStore:
    """Production IRequestStore backed by DynamoDB conditional updates.

    Every patch is a single ``UpdateItem``: field assignments go in ``SET`` /
    ``REMOVE``, notified handlers in ``ADD`` on a string set, and the
    expected fields become the ``ConditionExpression``.
    """

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None) -> None:
        self._table = _resource(region, endpoint_url).Table(f"{REQUESTS_TABLE}{table_suffix}")

    def read(self, request_id: str) -> RequestRecord | None:
        try:
            resp = self._table.get_item(Key=request_key(request_id), ConsistentRead=True)
        except (ClientError, BotoCoreError) as exc:
            raise UpstreamUnavailableError(f"Request read failed for {request_id!r}: {exc}") from exc
        item = resp.get("Item")
        return item_to_record(item) if item else None

    def create(self, record: RequestRecord) -> None:
        try:
            self._table.put_item(
                Item=record_to_item(record),
                ConditionExpression="attribute_not_exists(PK)",
            )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                raise RequestExistsError(record.id) from exc
            raise UpstreamUnavailableError(f"Request create failed for {record.id!r}: {exc}") from exc
        except BotoCoreError as exc:
            raise UpstreamUnavailableError(f"Request create failed for {record.id!r}: {exc}") from exc

    def compare_and_update(
        self, request_id: str, expected: dict[str, Any], patch: RecordPatch
    ) -> bool:
        names: dict[str, str] = {"#version": "version"}
        values: dict[str, Any] = {":one": 1, ":zero": 0}
        conditions = ["attribute_exists(PK)"]
        for field_name, value in expected.items():
            attr = _attr(field_name)
            names[f"#{attr}"] = attr
            if value is None:
                conditions.append(f"attribute_not_exists(#{attr})")
            else:
                values[f":exp_{attr}"] = _to_dynamodb(value)
                conditions.append(f"#{attr} = :exp_{attr}")

        set_parts = ["#version = if_not_exists(#version, :zero) + :one"]
        remove_parts: list[str] = []
        for field_name, value in patch.fields.items():
            attr = _attr(field_name)
            names[f"#{attr}"] = attr
            if value is None:
                remove_parts.append(f"#{attr}")
            else:
                values[f":set_{attr}"] = _to_dynamodb(value)
                set_parts.append(f"#{attr} = :set_{attr}")

        expression = "SET " + ", ".join(set_parts)
        if remove_parts:
            expression += " REMOVE " + ", ".join(remove_parts)
        if patch.notify:
            attr = _attr("notified_handlers")
            names[f"#{attr}"] = attr
            values[":notify"] = set(patch.notify)
            expression += f" ADD #{attr} :notify"

        try:
            self._table.update_item(
                Key=request_key(request_id),
                UpdateExpression=expression,
                ConditionExpression=" AND ".join(conditions),
                ExpressionAttributeNames=names,
                ExpressionAttributeValues=values,
            )
        except ClientError as exc:
            if _is_conditional_failure(exc):
                return False
            raise UpstreamUnavailableError(f"Request update failed for {request_id!r}: {exc}") from exc
        except BotoCoreError as exc:
            raise UpstreamUnavailableError(f"Request update failed for {request_id!r}: {exc}") from exc
        return True


class DynamoDBPreferenceStore:
    """Production IPreferenceStore backed by DynamoDB + optional Redis cache."""

    CACHE_TTL = 60

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None, cache: Any = None,
                 cache_ttl: int | None = None) -> None:
        self._table = _resource(region, endpoint_url).Table(f"{PREFERENCES_TABLE}{table_suffix}")
        self._cache = cache
        self._cache_ttl = cache_ttl if cache_ttl is not None else self.CACHE_TTL

    def get_preferences(self, requester_id: str) -> PreferenceList | None:
        cache_key = f"preferences:{requester_id}"

        # Check cache first; a broken cache only costs a table read
        if self._cache is not None:
            try:
                cached = self._cache.get(cache_key)
            except CacheError as exc:
                logger.warning("preference_cache_read_failed", requester_id=requester_id, error=str(exc))
                cached = None
            if cached is not None:
                return PreferenceList.model_validate_json(cached)

        try:
            resp = self._table.get_item(Key={"PK": f"REQUESTER#{requester_id}", "SK": "PREFERENCES"})
        except (ClientError, BotoCoreError) as exc:
            raise UpstreamUnavailableError(
                f"Preference read failed for requester={requester_id!r}: {exc}"
            ) from exc

        item = resp.get("Item")
        if item is None:
            return None
        prefs = PreferenceList.model_validate(
            _decode_decimals({k: v for k, v in item.items() if k not in ("PK", "SK")})
        )

        if self._cache is not None:
            try:
                self._cache.setex(cache_key, self._cache_ttl, prefs.model_dump_json(by_alias=True))
            except CacheError as exc:
                logger.warning("preference_cache_write_failed", requester_id=requester_id, error=str(exc))

        return prefs

    def get_candidates(self, requester_id: str) -> list[Candidate]:
        prefs = self.get_preferences(requester_id)
        return prefs.ordered_candidates() if prefs else []

    def put_preferences(self, prefs: PreferenceList) -> None:
        """Write a preference list. Used by seeding and tests; the engine never writes."""
        item = _encode_floats(prefs.model_dump(mode="json", by_alias=True, exclude_none=True))
        item.update({"PK": f"REQUESTER#{prefs.requester_id}", "SK": "PREFERENCES"})
        try:
            self._table.put_item(Item=item)
        except (ClientError, BotoCoreError) as exc:
            raise UpstreamUnavailableError(
                f"Preference write failed for requester={prefs.requester_id!r}: {exc}"
            ) from exc
        if self._cache is not None:
            self._cache.delete(f"preferences:{prefs.requester_id}")


class DynamoDBHandlerDirectory:
    """Production IHandlerDirectory: all handlers with one role, ordered by id."""

    def __init__(self, table_suffix: str = "", region: str = "us-east-1",
                 endpoint_url: str | None = None, role: str = "showing_agent") -> None:
        self._table = _resource(region, endpoint_url).Table(f"{HANDLERS_TABLE}{table_suffix}")
        self._role = role

    def list_all_handlers(self) -> list[Handler]:
        items: list[dict[str, Any]] = []
        kwargs: dict[str, Any] = {
            "KeyConditionExpression": "PK = :pk",
            "ExpressionAttributeValues": {":pk": f"ROLE#{self._role}"},
        }
        try:
            while True:
                resp = self._table.query(**kwargs)
                items.extend(resp.get("Items", []))
                if "LastEvaluatedKey" not in resp:
                    break
                kwargs["ExclusiveStartKey"] = resp["LastEvaluatedKey"]
        except (ClientError, BotoCoreError) as exc:
            raise UpstreamUnavailableError(f"Handler directory query failed for role={self._role!r}: {exc}") from exc

        handlers = [
            Handler.model_validate(_decode_decimals({k: v for k, v in item.items() if k not in ("PK", "SK")}))
            for item in items
        ]
        return sorted(handlers, key=lambda h: h.handler_id)

    def put_handler(self, handler: Handler) -> None:
        """Write a directory entry. Used by seeding and tests."""
        item = handler.model_dump(mode="json", by_alias=True)
        item.update({"PK": f"ROLE#{handler.role}", "SK": f"HANDLER#{handler.handler_id}"})
        try:
            self._table.put_item(Item=item)
        except (ClientError, BotoCoreError) as exc:
            raise UpstreamUnavailableError(f"Handler write failed for {handler.handler_id!r}: {exc}") from exc
