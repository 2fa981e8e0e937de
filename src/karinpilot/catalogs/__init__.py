"""
KarinPilot Catalogues

Static reference data loaded once per process:
- DeadlineRuleTable: statutory deadline per process stage
- OffenseCatalogue: offense types with matching keywords and controls
"""
from __future__ import annotations

from .loader import (
    DATA_DIR,
    CatalogueLoader,
    default_offense_catalogue,
    default_rule_table,
)
from .offenses import OffenseCatalogue
from .rule_table import DeadlineRuleTable
from .schema import (
    SCHEMA_VERSION,
    DeadlineRuleSchema,
    DeadlineTableSchema,
    OffenseCatalogSchema,
    OffenseSchema,
    check_schema_version,
)

__all__ = [
    "DATA_DIR",
    "SCHEMA_VERSION",
    "CatalogueLoader",
    "DeadlineRuleTable",
    "OffenseCatalogue",
    "default_rule_table",
    "default_offense_catalogue",
    "DeadlineRuleSchema",
    "DeadlineTableSchema",
    "OffenseSchema",
    "OffenseCatalogSchema",
    "check_schema_version",
]
