"""
KarinPilot Risk Matrix Evaluator

Classifies compliance risk as probability (1-5) × impact (1-5) through a
fixed 5×5 matrix, and attaches template controls and actions for the
resulting level.

When probability or impact are not supplied, a pluggable strategy estimates
them from the matched offenses and the case attributes.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence

from ..catalogs import OffenseCatalogue
from ..exceptions import CatalogueIntegrityError, ValidationError
from ..models import (
    CaseAttributes,
    ComplianceEvaluation,
    ConductFrequency,
    OffenseMatch,
    OffenseSeverity,
    RiskLevel,
    Urgency,
)


# =============================================================================
# Risk Matrix
# =============================================================================

_A = RiskLevel.ACCEPTABLE
_T = RiskLevel.TOLERABLE
_I = RiskLevel.IMPORTANT
_X = RiskLevel.INTOLERABLE

# Rows: probability 1..5, columns: impact 1..5
RISK_MATRIX: tuple[tuple[RiskLevel, ...], ...] = (
    (_A, _A, _A, _A, _T),
    (_A, _A, _T, _T, _I),
    (_A, _T, _T, _I, _I),
    (_A, _T, _I, _I, _X),
    (_T, _I, _I, _X, _X),
)


def check_matrix_monotonic(matrix: Sequence[Sequence[RiskLevel]]) -> None:
    """
    Raise if raising probability or impact could ever lower the level.

    Raises:
        CatalogueIntegrityError: If the matrix is not 5×5 or not monotonic
    """
    if len(matrix) != 5 or any(len(row) != 5 for row in matrix):
        raise CatalogueIntegrityError(message="Risk matrix must be 5x5")
    errors = []
    for p in range(5):
        for i in range(5):
            if p < 4 and matrix[p + 1][i].rank < matrix[p][i].rank:
                errors.append(f"probability {p + 2} < {p + 1} at impact {i + 1}")
            if i < 4 and matrix[p][i + 1].rank < matrix[p][i].rank:
                errors.append(f"impact {i + 2} < {i + 1} at probability {p + 1}")
    if errors:
        raise CatalogueIntegrityError(
            message="Risk matrix is not monotonic",
            details={"errors": errors},
        )


check_matrix_monotonic(RISK_MATRIX)


def _check_scale(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 1 <= value <= 5:
        raise ValidationError(
            message=f"{name} must be an integer between 1 and 5",
            details={name: value},
        )
    return value


def classify(probability: int, impact: int) -> RiskLevel:
    """Risk level for a probability/impact pair."""
    _check_scale("probability", probability)
    _check_scale("impact", impact)
    return RISK_MATRIX[probability - 1][impact - 1]


# =============================================================================
# Templates
# =============================================================================

LEVEL_CONTROLS: dict[RiskLevel, tuple[str, ...]] = {
    RiskLevel.INTOLERABLE: (
        "Revisión integral del modelo de prevención de delitos",
        "Auditoría forense independiente",
        "Reporte inmediato al directorio",
    ),
    RiskLevel.IMPORTANT: (
        "Refuerzo de controles en el área afectada",
        "Auditoría focalizada del proceso involucrado",
    ),
    RiskLevel.TOLERABLE: (
        "Monitoreo periódico del área involucrada",
    ),
    RiskLevel.ACCEPTABLE: (),
}

LEVEL_ACTIONS: dict[RiskLevel, tuple[str, ...]] = {
    RiskLevel.INTOLERABLE: (
        "Activar el protocolo de crisis de inmediato",
        "Notificar a la alta dirección y al directorio",
        "Separar preventivamente a las personas involucradas",
        "Preservar evidencia y documentación",
        "Evaluar denuncia ante el Ministerio Público",
    ),
    RiskLevel.IMPORTANT: (
        "Iniciar investigación interna formal dentro de 24 horas",
        "Notificar al encargado de prevención de delitos",
        "Adoptar medidas de resguardo",
        "Revisar los controles del área afectada",
    ),
    RiskLevel.TOLERABLE: (
        "Planificar la investigación dentro de 5 días hábiles",
        "Reforzar los controles existentes",
        "Monitorear la situación",
    ),
    RiskLevel.ACCEPTABLE: (
        "Registrar el caso y hacer seguimiento",
        "Evaluar en la próxima revisión periódica",
    ),
}


def urgency_for(level: RiskLevel, risk_value: int, has_critical_offense: bool = False) -> Urgency:
    """
    Urgency derived from the risk level.

    Tolerable risks are medium urgency from a risk value of 6 upward. A
    critical offense always yields at least high urgency.
    """
    if level is RiskLevel.INTOLERABLE:
        urgency = Urgency.CRITICAL
    elif level is RiskLevel.IMPORTANT:
        urgency = Urgency.HIGH
    elif level is RiskLevel.TOLERABLE and risk_value >= 6:
        urgency = Urgency.MEDIUM
    else:
        urgency = Urgency.LOW
    if has_critical_offense:
        urgency = Urgency.most_urgent(urgency, Urgency.HIGH)
    return urgency


# =============================================================================
# Probability / Impact Strategies
# =============================================================================

class ProbabilityImpactStrategy(Protocol):
    """Estimates probability and impact when the caller does not supply them."""

    name: str

    def estimate(
        self,
        matches: Sequence[OffenseMatch],
        attributes: Optional[CaseAttributes],
    ) -> tuple[int, int]:
        ...


def _clamp(value: int) -> int:
    return max(1, min(5, value))


@dataclass
class CaseAttributeHeuristic:
    """
    Default estimate from matched offenses and report attributes.

    Probability starts at 2 and rises with offense severity, Ley Karin
    scope, several accused, attached evidence, repeated conduct and the
    accused outranking the reporter; anonymous reports without evidence
    lower it. Impact is the highest impact of the matched offenses.
    """

    name: str = "case_attribute_heuristic"
    base_probability: int = 2

    def estimate_probability(
        self,
        matches: Sequence[OffenseMatch],
        attributes: Optional[CaseAttributes],
    ) -> int:
        probability = self.base_probability
        severities = {m.entry.base_risk_level for m in matches}
        if OffenseSeverity.CRITICAL in severities:
            probability += 2
        elif OffenseSeverity.HIGH in severities:
            probability += 1

        if attributes is not None:
            if attributes.is_karin_law:
                probability += 1
            if attributes.accused_count > 1:
                probability += 1
            if attributes.has_evidence:
                probability += 1
            if attributes.conduct_frequency is ConductFrequency.SYSTEMATIC:
                probability += 2
            elif attributes.conduct_frequency is ConductFrequency.REPEATED:
                probability += 1
            if attributes.accused_outranks_reporter:
                probability += 1
            if attributes.is_anonymous and not attributes.has_evidence:
                probability -= 1
        return _clamp(probability)

    def estimate_impact(self, matches: Sequence[OffenseMatch]) -> int:
        if not matches:
            return 1
        return _clamp(max(m.entry.base_risk_level.impact for m in matches))

    def estimate(
        self,
        matches: Sequence[OffenseMatch],
        attributes: Optional[CaseAttributes],
    ) -> tuple[int, int]:
        return self.estimate_probability(matches, attributes), self.estimate_impact(matches)


# =============================================================================
# Evaluator
# =============================================================================

@dataclass
class RiskMatrixEvaluator:
    """
    Builds ComplianceEvaluations.

    Usage:
        evaluator = RiskMatrixEvaluator(catalogue=catalogue)
        evaluation = evaluator.evaluate(matches, attributes=case.attributes)
    """

    catalogue: Optional[OffenseCatalogue] = None
    strategy: ProbabilityImpactStrategy = field(default_factory=CaseAttributeHeuristic)

    def evaluate(
        self,
        matched_offenses: Sequence[OffenseMatch],
        probability: Optional[int] = None,
        impact: Optional[int] = None,
        attributes: Optional[CaseAttributes] = None,
        now: Optional[datetime] = None,
        narrative_hash: Optional[str] = None,
    ) -> ComplianceEvaluation:
        """
        Evaluate matched offenses.

        Args:
            matched_offenses: Output of ComplianceMatcher.match
            probability: Supplied probability (1-5); estimated if None
            impact: Supplied impact (1-5); estimated if None
            attributes: Case attributes for the estimation strategy
            now: Evaluation timestamp
            narrative_hash: Hash of the evaluated narrative, for audit

        Raises:
            ValidationError: If a supplied value is outside 1-5
        """
        if probability is not None:
            _check_scale("probability", probability)
        if impact is not None:
            _check_scale("impact", impact)

        source = "supplied"
        if probability is None or impact is None:
            estimated_p, estimated_i = self.strategy.estimate(matched_offenses, attributes)
            probability = estimated_p if probability is None else probability
            impact = estimated_i if impact is None else impact
            source = self.strategy.name

        level = classify(probability, impact)
        risk_value = probability * impact
        matches = tuple(matched_offenses)
        has_critical = any(
            m.entry.base_risk_level is OffenseSeverity.CRITICAL for m in matches
        )

        return ComplianceEvaluation(
            matched_offenses=matches,
            probability=probability,
            impact=impact,
            risk_value=risk_value,
            risk_level=level,
            urgency=urgency_for(level, risk_value, has_critical),
            suggested_controls=self._controls(level, matches),
            recommended_actions=LEVEL_ACTIONS[level],
            probability_source=source,
            evaluated_at=now or datetime.now(timezone.utc),
            narrative_hash=narrative_hash,
        )

    def _controls(self, level: RiskLevel, matches: Sequence[OffenseMatch]) -> tuple[str, ...]:
        controls = list(LEVEL_CONTROLS[level])
        if self.catalogue is not None:
            for match in matches:
                for control in self.catalogue.controls_for(match.entry.category):
                    if control not in controls:
                        controls.append(control)
        return tuple(controls)


def build_summary(evaluation: ComplianceEvaluation, top: int = 3) -> dict:
    """
    Executive summary of an evaluation.

    The first three recommended actions are immediate; the rest are
    follow-up actions.
    """
    return {
        "risk_level": evaluation.risk_level.value,
        "risk_value": evaluation.risk_value,
        "probability": evaluation.probability,
        "impact": evaluation.impact,
        "urgency": evaluation.urgency.value,
        "offense_count": len(evaluation.matched_offenses),
        "main_offenses": [
            {
                "offense_id": m.entry.id,
                "description": m.entry.description,
                "relevance": f"{round(m.relevance * 100)}%",
            }
            for m in evaluation.matched_offenses[:top]
        ],
        "immediate_actions": list(evaluation.recommended_actions[:3]),
        "follow_up_actions": list(evaluation.recommended_actions[3:]),
    }
