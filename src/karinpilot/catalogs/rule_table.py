"""
Deadline Rule Table

Immutable mapping from every ProcessStage to its statutory DeadlineRule.
The table is complete by construction: a missing stage or an inconsistent
rule is a CatalogueIntegrityError, raised at startup.
"""
from __future__ import annotations

from collections.abc import Iterator, Mapping
from types import MappingProxyType
from typing import Iterable, Union

from ..canon import content_hash
from ..exceptions import CatalogueIntegrityError
from ..models import DeadlineRule, ProcessStage


class DeadlineRuleTable(Mapping):
    """
    Read-only ProcessStage -> DeadlineRule mapping.

    Usage:
        table = DeadlineRuleTable.default()
        rule = table.rule_for("investigation")
        print(rule.days, rule.unit)
    """

    def __init__(
        self,
        rules: Iterable[DeadlineRule],
        jurisdiction: str = "CL",
        legal_basis: str = "",
    ):
        by_stage: dict[ProcessStage, DeadlineRule] = {}
        errors: list[str] = []

        for rule in rules:
            if rule.stage in by_stage:
                errors.append(f"Duplicate rule for stage '{rule.stage.value}'")
            by_stage[rule.stage] = rule
            if rule.days <= 0:
                errors.append(f"Stage '{rule.stage.value}' has non-positive days ({rule.days})")
            if rule.max_extension_days < 0:
                errors.append(f"Stage '{rule.stage.value}' has negative max_extension_days")
            if not rule.extendable and rule.max_extension_days:
                errors.append(
                    f"Stage '{rule.stage.value}' is not extendable but allows "
                    f"{rule.max_extension_days} extension days"
                )

        missing = [stage.value for stage in ProcessStage if stage not in by_stage]
        if missing:
            errors.append(f"Missing rules for stages: {', '.join(missing)}")

        if errors:
            raise CatalogueIntegrityError(
                message="Deadline rule table failed integrity checks",
                details={"errors": errors},
            )

        # Store in process order so iteration is deterministic
        self._rules = MappingProxyType(
            {stage: by_stage[stage] for stage in ProcessStage}
        )
        self.jurisdiction = jurisdiction
        self.legal_basis = legal_basis
        self.content_hash = content_hash([rule.to_dict() for rule in self._rules.values()])

    def __getitem__(self, stage: ProcessStage) -> DeadlineRule:
        return self._rules[stage]

    def __iter__(self) -> Iterator[ProcessStage]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def rule_for(self, stage: Union[ProcessStage, str]) -> DeadlineRule:
        """Rule for a stage; raw strings are normalized (aliases included)."""
        return self._rules[ProcessStage.parse(stage)]

    @classmethod
    def default(cls) -> DeadlineRuleTable:
        """The packaged Ley Karin table, shared process-wide."""
        from .loader import default_rule_table

        return default_rule_table()

    def extendable_stages(self) -> list[ProcessStage]:
        return [stage for stage, rule in self._rules.items() if rule.extendable]

    def to_dict(self) -> dict:
        return {
            "jurisdiction": self.jurisdiction,
            "legal_basis": self.legal_basis,
            "content_hash": self.content_hash,
            "rules": [rule.to_dict() for rule in self._rules.values()],
        }
