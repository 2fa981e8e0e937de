"""
KarinPilot Compliance Models

Offense catalogue entries, keyword matches and the probability × impact
evaluation built from them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..canon import normalize_for_matching
from .enums import OffenseSeverity, RiskLevel, Urgency


# =============================================================================
# Offense Catalogue Entry
# =============================================================================

@dataclass(frozen=True)
class OffenseCatalogEntry:
    """
    One offense type from the static catalogue.

    Keywords are normalized once, at construction, so matching never
    re-normalizes catalogue data.
    """
    id: str
    category: str
    statute: str
    article: str
    description: str
    base_risk_level: OffenseSeverity
    keywords: frozenset[str]
    applies_to_organization: bool = True
    normalized_keywords: tuple[tuple[str, str], ...] = field(
        default=(), repr=False, compare=False
    )

    def __post_init__(self) -> None:
        if not self.normalized_keywords:
            pairs = tuple(
                sorted((normalize_for_matching(k), k) for k in self.keywords)
            )
            object.__setattr__(self, "normalized_keywords", pairs)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "statute": self.statute,
            "article": self.article,
            "description": self.description,
            "base_risk_level": self.base_risk_level.value,
            "applies_to_organization": self.applies_to_organization,
            "keywords": sorted(self.keywords),
        }


@dataclass(frozen=True)
class OffenseMatch:
    """Catalogue entry matched against a narrative."""
    entry: OffenseCatalogEntry
    matched_keywords: tuple[str, ...]
    relevance: float

    def to_dict(self) -> dict:
        return {
            "offense_id": self.entry.id,
            "category": self.entry.category,
            "statute": self.entry.statute,
            "article": self.entry.article,
            "description": self.entry.description,
            "base_risk_level": self.entry.base_risk_level.value,
            "matched_keywords": list(self.matched_keywords),
            "relevance": round(self.relevance, 4),
        }


# =============================================================================
# Compliance Evaluation
# =============================================================================

@dataclass(frozen=True)
class ComplianceEvaluation:
    """
    Deterministic risk classification of a case.

    A new evaluation supersedes the previous one; evaluations are never
    merged.
    """
    matched_offenses: tuple[OffenseMatch, ...]
    probability: int
    impact: int
    risk_value: int
    risk_level: RiskLevel
    urgency: Urgency
    suggested_controls: tuple[str, ...]
    recommended_actions: tuple[str, ...]
    probability_source: str
    evaluated_at: datetime
    narrative_hash: Optional[str] = None

    @property
    def has_critical_offense(self) -> bool:
        return any(
            m.entry.base_risk_level is OffenseSeverity.CRITICAL
            for m in self.matched_offenses
        )

    def to_dict(self) -> dict:
        return {
            "matched_offenses": [m.to_dict() for m in self.matched_offenses],
            "probability": self.probability,
            "impact": self.impact,
            "risk_value": self.risk_value,
            "risk_level": self.risk_level.value,
            "urgency": self.urgency.value,
            "suggested_controls": list(self.suggested_controls),
            "recommended_actions": list(self.recommended_actions),
            "probability_source": self.probability_source,
            "evaluated_at": self.evaluated_at.isoformat(),
            "narrative_hash": self.narrative_hash,
        }
