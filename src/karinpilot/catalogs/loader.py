"""
KarinPilot Catalogue Loader

Loads and validates the deadline rule table and offense catalogue from YAML
or JSON files, and converts the Pydantic schema models into immutable domain
structures.

The packaged catalogues are loaded once per process through
`default_rule_table()` and `default_offense_catalogue()`.
"""
from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError as SchemaValidationError

from ..exceptions import CatalogueIntegrityError, CatalogueLoadError
from ..models import DeadlineRule, OffenseCatalogEntry, OffenseSeverity, ProcessStage
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

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).parent / "data"
DEADLINES_FILE = "ley_karin_deadlines.yaml"
OFFENSES_FILE = "offense_catalog.yaml"


# =============================================================================
# Schema to Model Converters
# =============================================================================

def _schema_errors(error: SchemaValidationError) -> list[dict[str, Any]]:
    """JSON-safe summary of pydantic errors."""
    return [
        {"loc": ".".join(str(part) for part in err["loc"]), "msg": err["msg"], "type": err["type"]}
        for err in error.errors()
    ]


def _convert_rule(schema: DeadlineRuleSchema) -> DeadlineRule:
    return DeadlineRule(
        stage=ProcessStage(schema.stage),
        days=schema.days,
        is_calendar_days=schema.calendar_days,
        extendable=schema.extendable,
        max_extension_days=schema.max_extension_days,
        externally_gated=schema.externally_gated,
        article=schema.article,
        description=schema.description,
        next_action=schema.next_action,
    )


def _convert_offense(schema: OffenseSchema) -> OffenseCatalogEntry:
    return OffenseCatalogEntry(
        id=schema.id,
        category=schema.category,
        statute=schema.statute,
        article=schema.article,
        description=schema.description,
        base_risk_level=OffenseSeverity(schema.base_risk_level),
        keywords=frozenset(k.strip() for k in schema.keywords),
        applies_to_organization=schema.applies_to_organization,
    )


# =============================================================================
# Loader
# =============================================================================

class CatalogueLoader:
    """
    Loads catalogue files.

    Usage:
        loader = CatalogueLoader()
        table = loader.load_deadline_rules("rules.yaml")
        catalogue = loader.load_offense_catalogue("offenses.yaml")
    """

    def __init__(self, strict_version: bool = True):
        """
        Initialize the loader.

        Args:
            strict_version: If True, reject files with incompatible schema versions
        """
        self.strict_version = strict_version

    def load_deadline_rules(self, path: Union[str, Path]) -> DeadlineRuleTable:
        """
        Load a deadline rule table.

        Raises:
            CatalogueLoadError: If the file cannot be read or parsed
            CatalogueIntegrityError: If validation or completeness checks fail
        """
        path = Path(path)
        data = self._read(path)
        try:
            schema = DeadlineTableSchema.model_validate(data)
        except SchemaValidationError as e:
            raise CatalogueIntegrityError(
                message=f"Deadline rule table validation failed: {e.error_count()} errors",
                details={"errors": _schema_errors(e), "path": str(path)},
            ) from e

        table = DeadlineRuleTable(
            (_convert_rule(rule) for rule in schema.rules),
            jurisdiction=schema.jurisdiction,
            legal_basis=schema.legal_basis,
        )
        logger.info(
            "Loaded deadline rule table from %s (%d stages, hash %s)",
            path.name, len(table), table.content_hash[:12],
        )
        return table

    def load_offense_catalogue(self, path: Union[str, Path]) -> OffenseCatalogue:
        """
        Load an offense catalogue.

        Raises:
            CatalogueLoadError: If the file cannot be read or parsed
            CatalogueIntegrityError: If validation or integrity checks fail
        """
        path = Path(path)
        data = self._read(path)
        try:
            schema = OffenseCatalogSchema.model_validate(data)
        except SchemaValidationError as e:
            raise CatalogueIntegrityError(
                message=f"Offense catalogue validation failed: {e.error_count()} errors",
                details={"errors": _schema_errors(e), "path": str(path)},
            ) from e

        catalogue = OffenseCatalogue(
            (_convert_offense(offense) for offense in schema.offenses),
            category_controls=schema.category_controls,
            default_controls=schema.default_controls,
            name=schema.name,
            version=schema.version,
        )
        logger.info(
            "Loaded offense catalogue %s v%s from %s (%d offenses)",
            catalogue.name, catalogue.version, path.name, len(catalogue),
        )
        return catalogue

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            data = self._load_file(path)
        except (OSError, yaml.YAMLError, json.JSONDecodeError) as e:
            raise CatalogueLoadError(
                message=f"Failed to load catalogue: {e}",
                details={"path": str(path), "error": str(e)},
            ) from e

        if not isinstance(data, dict):
            raise CatalogueLoadError(
                message="Catalogue file must contain a mapping at the top level",
                details={"path": str(path)},
            )

        if self.strict_version and not check_schema_version(data):
            file_version = data.get("schema_version", "unknown")
            raise CatalogueIntegrityError(
                message=f"Schema version mismatch: file has {file_version}, expected {SCHEMA_VERSION}",
                details={
                    "path": str(path),
                    "file_version": file_version,
                    "expected_version": SCHEMA_VERSION,
                },
            )
        return data

    def _load_file(self, path: Path) -> Any:
        """Load data from YAML or JSON file."""
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                return json.load(f)
            return yaml.safe_load(f)


# =============================================================================
# Process-wide Catalogues
# =============================================================================

def _resolve_dir(catalog_dir: Optional[str]) -> Path:
    return Path(catalog_dir) if catalog_dir else DATA_DIR


@lru_cache(maxsize=None)
def default_rule_table(catalog_dir: Optional[str] = None) -> DeadlineRuleTable:
    """Deadline rule table, loaded once per directory."""
    return CatalogueLoader().load_deadline_rules(_resolve_dir(catalog_dir) / DEADLINES_FILE)


@lru_cache(maxsize=None)
def default_offense_catalogue(catalog_dir: Optional[str] = None) -> OffenseCatalogue:
    """Offense catalogue, loaded once per directory."""
    return CatalogueLoader().load_offense_catalogue(_resolve_dir(catalog_dir) / OFFENSES_FILE)
