"""Admin endpoints for inspecting escalation inputs."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from showingdesk.api.routes.deps import get_runtime
from showingdesk.core.exceptions import UpstreamUnavailableError
from showingdesk.engine.factory import Runtime

router = APIRouter(tags=["admin"])


@router.get("/preferences/{requester_id}")
def get_preferences(requester_id: str, runtime: Runtime = Depends(get_runtime)) -> dict:
    """Return the requester's preference list, candidates in escalation order."""
    try:
        prefs = runtime.persistence.preferences.get_preferences(requester_id)
    except UpstreamUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    if prefs is None:
        return {"requesterId": requester_id, "candidates": []}
    data = prefs.model_dump(mode="json", by_alias=True)
    data["candidates"] = [c.model_dump(mode="json", by_alias=True) for c in prefs.ordered_candidates()]
    return data


@router.get("/directory")
def get_directory(runtime: Runtime = Depends(get_runtime)) -> dict:
    """Return the public pool snapshot in index order."""
    try:
        handlers = runtime.persistence.directory.list_all_handlers()
    except UpstreamUnavailableError as exc:
        raise HTTPException(status_code=503, detail=str(exc)) from exc
    return {
        "role": runtime.settings.escalation.handler_role,
        "handlers": [h.model_dump(mode="json", by_alias=True) for h in handlers],
    }
