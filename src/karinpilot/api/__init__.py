"""
KarinPilot HTTP API.

Usage:
    uvicorn karinpilot.api.main:create_app --factory
"""
from .main import create_app

__all__ = ["create_app"]
