"""Shared request dependencies."""
from __future__ import annotations

from fastapi import Request

from ..engine import EngineComponents


def get_components(request: Request) -> EngineComponents:
    """Engine components built at startup."""
    return request.app.state.components
