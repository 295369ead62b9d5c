"""Writes made by collaborators outside the engine: intake, accept, complete.

These only touch the record; the engine learns about them through the
change feed (or inline dispatch from the API).
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog

from showingdesk.core.exceptions import InvalidTransitionError, RecordNotFoundError
from showingdesk.core.protocols import IClock, IRequestStore
from showingdesk.models.request import RecordPatch, RequestRecord, RequestStatus

logger = structlog.get_logger(__name__)


def create_request(
    store: IRequestStore,
    clock: IClock,
    requester_id: str,
    payload: dict[str, Any] | None = None,
    request_id: str | None = None,
) -> RequestRecord:
    """Persist a new pending request. Escalation state is left unset."""
    record = RequestRecord(
        id=request_id or uuid.uuid4().hex,
        requester_id=requester_id,
        payload=payload or {},
        status=RequestStatus.PENDING,
        created_at=clock.now(),
    )
    store.create(record)
    logger.info("request_created", request_id=record.id, requester_id=requester_id)
    return record


def accept_request(store: IRequestStore, clock: IClock, request_id: str, handler_id: str) -> None:
    """Mark a pending request accepted by ``handler_id``.

    Conditional on the request still being pending, so two handlers racing
    to accept cannot both win.
    """
    _transition(
        store, request_id, RequestStatus.PENDING, RequestStatus.ACCEPTED,
        {"accepted_by": handler_id, "accepted_at": clock.now()},
    )


def complete_request(store: IRequestStore, clock: IClock, request_id: str) -> None:
    _transition(
        store, request_id, RequestStatus.ACCEPTED, RequestStatus.COMPLETED,
        {"completed_at": clock.now()},
    )


def _transition(
    store: IRequestStore,
    request_id: str,
    current: RequestStatus,
    target: RequestStatus,
    fields: dict[str, Any],
) -> None:
    patch = RecordPatch(fields={"status": target, **fields})
    if store.compare_and_update(request_id, {"status": current}, patch):
        logger.info("request_status_changed", request_id=request_id,
                    previous=str(current), new=str(target))
        return
    record = store.read(request_id)
    if record is None:
        raise RecordNotFoundError(request_id)
    raise InvalidTransitionError(request_id, str(record.status), str(target))
