"""Read-only catalogue endpoints."""
from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from ...engine import EngineComponents, MAIN_LINE, TRANSITIONS
from ..deps import get_components

router = APIRouter(prefix="/catalogs", tags=["Catalogs"])


@router.get("/deadlines")
async def list_deadline_rules(components: EngineComponents = Depends(get_components)) -> dict[str, Any]:
    """Deadline rule of every stage, in process order."""
    return components.rule_table.to_dict()


@router.get("/stages")
async def list_stages() -> dict[str, Any]:
    """Main process line and the legal successors of every stage."""
    return {
        "main_line": [stage.value for stage in MAIN_LINE],
        "transitions": {
            stage.value: sorted(target.value for target in targets)
            for stage, targets in TRANSITIONS.items()
        },
    }


@router.get("/offenses")
async def list_offenses(components: EngineComponents = Depends(get_components)) -> dict[str, Any]:
    """Offense catalogue grouped by category."""
    catalogue = components.catalogue
    return {
        "count": len(catalogue),
        "categories": {
            category: {
                "offenses": [e.to_dict() for e in catalogue if e.category == category],
                "controls": list(catalogue.controls_for(category)),
            }
            for category in catalogue.categories
        },
    }


@router.get("/offenses/{offense_id}")
async def get_offense(
    offense_id: str,
    components: EngineComponents = Depends(get_components),
) -> dict[str, Any]:
    """Get one offense type."""
    entry = components.catalogue.get(offense_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Offense '{offense_id}' not found")
    return entry.to_dict()
