"""
KarinPilot Compliance Matcher

Matches a case narrative against the offense catalogue.

Relevance of an offense is the share of its keywords found in the text:

    relevance = |distinct matched keywords| / |keywords|

Matching is case- and accent-insensitive substring search over the
normalized narrative.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from ..canon import normalize_for_matching
from ..catalogs import OffenseCatalogue, default_offense_catalogue
from ..exceptions import ValidationError
from ..models import OffenseMatch


# Report fields concatenated into the narrative, in this order
REPORT_TEXT_FIELDS = (
    "description",
    "category",
    "subcategory",
    "location",
    "previous_actions",
    "expectation",
)


def build_narrative(**fields: Optional[str]) -> str:
    """Join the free-text fields of a report into one narrative."""
    unknown = set(fields) - set(REPORT_TEXT_FIELDS)
    if unknown:
        raise ValidationError(
            message=f"Unknown report fields: {', '.join(sorted(unknown))}",
            details={"allowed": list(REPORT_TEXT_FIELDS)},
        )
    parts = [fields.get(name) or "" for name in REPORT_TEXT_FIELDS]
    return " ".join(part.strip() for part in parts if part and part.strip())


@dataclass
class ComplianceMatcher:
    """
    Keyword matcher over an immutable offense catalogue.

    Results are ordered by relevance (highest first), then base risk level
    (critical first), then offense ID, so equal inputs always produce the
    same list.
    """

    catalogue: OffenseCatalogue = field(default_factory=default_offense_catalogue)
    min_relevance: float = 0.0

    def match(self, narrative_text: str) -> list[OffenseMatch]:
        """
        Match a narrative against every catalogue entry.

        Args:
            narrative_text: Free text of the report

        Returns:
            Matches with at least one keyword and relevance >= min_relevance
        """
        text = normalize_for_matching(narrative_text or "")
        if not text:
            return []

        matches: list[OffenseMatch] = []
        for entry in self.catalogue:
            found = tuple(
                original
                for normalized, original in entry.normalized_keywords
                if normalized in text
            )
            if not found:
                continue
            relevance = len(found) / len(entry.normalized_keywords)
            if relevance < self.min_relevance:
                continue
            matches.append(OffenseMatch(entry=entry, matched_keywords=found, relevance=relevance))

        matches.sort(key=lambda m: (-m.relevance, -m.entry.base_risk_level.rank, m.entry.id))
        return matches

    def match_report(self, **fields: Optional[str]) -> list[OffenseMatch]:
        """Match the concatenated free-text fields of a report."""
        return self.match(build_narrative(**fields))
