"""Shared route dependencies."""

from __future__ import annotations

from fastapi import Request

from showingdesk.engine.factory import Runtime


def get_runtime(request: Request) -> Runtime:
    return request.app.state.runtime
