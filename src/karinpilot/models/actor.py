"""
KarinPilot Actor Model

The identity of whoever requests or decides something on a case. Identity
itself comes from the portal; the engine only consumes this value.
"""
from __future__ import annotations

from dataclasses import dataclass

from .enums import ActorRole


@dataclass(frozen=True)
class Actor:
    """A portal user acting on a case."""
    user_id: str
    role: ActorRole
    name: str = ""

    def to_dict(self) -> dict:
        return {"user_id": self.user_id, "role": self.role.value, "name": self.name}
