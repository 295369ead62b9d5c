"""DynamoDB Streams adapter for the request table.

Configure the stream with ``NEW_AND_OLD_IMAGES``. Exceptions propagate so
the stream redelivers the batch; every engine entry point tolerates that.
"""

from __future__ import annotations

from typing import Any

import structlog
from boto3.dynamodb.types import TypeDeserializer

from showingdesk.models.events import ChangeEvent, EscalationOutcome
from showingdesk.models.request import RequestRecord
from showingdesk.persistence.dynamodb_backend import item_to_record
from showingdesk.triggers.router import TriggerRouter

logger = structlog.get_logger(__name__)

_deserializer = TypeDeserializer()


def _image(raw: dict[str, Any] | None) -> RequestRecord | None:
    if not raw:
        return None
    item = {k: _deserializer.deserialize(v) for k, v in raw.items()}
    if item.get("SK") != "STATE":
        return None
    return item_to_record(item)


def to_change_event(stream_record: dict[str, Any]) -> ChangeEvent | None:
    """Convert one stream record; None for items that are not request state."""
    ddb = stream_record.get("dynamodb", {})
    before = _image(ddb.get("OldImage"))
    after = _image(ddb.get("NewImage"))
    current = after or before
    if current is None:
        return None
    return ChangeEvent(request_id=current.id, before=before, after=after)


def handle_stream_event(event: dict[str, Any], router: TriggerRouter) -> list[EscalationOutcome]:
    """Process a Streams batch in order."""
    outcomes: list[EscalationOutcome] = []
    for stream_record in event.get("Records", []):
        change = to_change_event(stream_record)
        if change is None:
            logger.debug("stream_record_skipped", event_name=stream_record.get("eventName"))
            continue
        outcomes.append(router.handle_change(change))
    return outcomes
