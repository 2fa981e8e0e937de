"""
KarinPilot Catalogue Schemas

Pydantic models for validating the deadline rule table and offense catalogue
YAML/JSON files. They map to the domain models in karinpilot.models.

Schema versioning:
- schema_version field tracks breaking changes
- Loaders reject files with a different major version
"""
from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field, model_validator


# =============================================================================
# Schema Version
# =============================================================================

SCHEMA_VERSION = "1.0.0"


# =============================================================================
# Enums as Literals (for YAML validation)
# =============================================================================

StageValue = Literal[
    "complaint_filed", "reception", "subsanation", "dt_notification",
    "suseso_notification", "precautionary_measures", "decision_to_investigate",
    "investigation", "report_creation", "report_approval",
    "investigation_complete", "final_report", "dt_submission", "dt_resolution",
    "measures_adoption", "sanctions", "third_party", "subcontracting", "closed",
]

OffenseSeverityValue = Literal["low", "medium", "high", "critical"]


# =============================================================================
# Deadline Rule Table
# =============================================================================

class DeadlineRuleSchema(BaseModel):
    """Schema for one stage's statutory deadline."""
    stage: StageValue = Field(..., description="Canonical process stage")
    days: int = Field(..., gt=0, description="Base deadline in days")
    calendar_days: bool = Field(False, description="True = calendar, False = business days")
    extendable: bool = Field(False, description="Whether extensions may be requested")
    max_extension_days: int = Field(0, ge=0, description="Cap on approved extension days")
    externally_gated: bool = Field(False, description="Stage waits on an external authority")
    article: str = Field(..., min_length=1, description="Legal citation")
    description: str = Field("", description="What must happen during the stage")
    next_action: str = Field("", description="Suggested next step")

    @model_validator(mode="after")
    def check_extension_cap(self) -> DeadlineRuleSchema:
        if not self.extendable and self.max_extension_days:
            raise ValueError(
                f"Stage '{self.stage}' is not extendable but declares "
                f"max_extension_days={self.max_extension_days}"
            )
        return self


class DeadlineTableSchema(BaseModel):
    """Schema for a complete deadline rule table file."""
    schema_version: str = Field(SCHEMA_VERSION, description="Schema version for compatibility")
    jurisdiction: str = Field("CL", description="Jurisdiction code")
    legal_basis: str = Field("", description="Statute the rules come from")
    rules: list[DeadlineRuleSchema] = Field(..., min_length=1)

    @model_validator(mode="after")
    def check_unique_stages(self) -> DeadlineTableSchema:
        seen: set[str] = set()
        for rule in self.rules:
            if rule.stage in seen:
                raise ValueError(f"Duplicate rule for stage '{rule.stage}'")
            seen.add(rule.stage)
        return self


# =============================================================================
# Offense Catalogue
# =============================================================================

class OffenseSchema(BaseModel):
    """Schema for one offense type."""
    id: str = Field(..., min_length=1, description="Unique identifier")
    category: str = Field(..., min_length=1, description="Offense category")
    statute: str = Field(..., description="Statute defining the offense")
    article: str = Field(..., description="Article within the statute")
    description: str = Field(..., description="Human-readable description")
    base_risk_level: OffenseSeverityValue = Field(..., description="Inherent risk level")
    applies_to_organization: bool = Field(
        True, description="Offense can create liability for the legal entity"
    )
    keywords: list[str] = Field(..., min_length=1, description="Matching keywords")


class OffenseCatalogSchema(BaseModel):
    """Schema for the offense catalogue file."""
    schema_version: str = Field(SCHEMA_VERSION, description="Schema version for compatibility")
    name: str = Field(..., description="Catalogue name")
    version: str = Field(..., description="Catalogue content version")
    offenses: list[OffenseSchema] = Field(..., min_length=1)
    category_controls: dict[str, list[str]] = Field(
        default_factory=dict, description="Category -> suggested controls"
    )
    default_controls: list[str] = Field(
        default_factory=list, description="Controls for categories without an entry"
    )

    @model_validator(mode="after")
    def check_unique_ids(self) -> OffenseCatalogSchema:
        seen: set[str] = set()
        for offense in self.offenses:
            if offense.id in seen:
                raise ValueError(f"Duplicate offense ID: '{offense.id}'")
            seen.add(offense.id)
        return self


# =============================================================================
# Helpers
# =============================================================================

def check_schema_version(data: dict[str, Any], expected: Optional[str] = None) -> bool:
    """
    Check if a catalogue's schema version is compatible (same major version).

    Args:
        data: Dictionary with schema_version field
        expected: Version to compare with (defaults to SCHEMA_VERSION)
    """
    file_major = str(data.get("schema_version", SCHEMA_VERSION)).split(".")[0]
    return file_major == (expected or SCHEMA_VERSION).split(".")[0]
