"""
Tests for the risk matrix evaluator.

Tests cover:
- Matrix classification and monotonicity
- Urgency derivation
- Probability/impact estimation heuristic
- Controls and actions attached to evaluations
- Executive summary
"""
import pytest

from karinpilot.engine import (
    LEVEL_ACTIONS,
    LEVEL_CONTROLS,
    RISK_MATRIX,
    CaseAttributeHeuristic,
    RiskMatrixEvaluator,
    build_summary,
    check_matrix_monotonic,
    classify,
    urgency_for,
)
from karinpilot.exceptions import CatalogueIntegrityError, ValidationError
from karinpilot.models import ConductFrequency, RiskLevel, Urgency

from tests.helpers import MONDAY, make_attributes


# =============================================================================
# Matrix Tests
# =============================================================================

class TestClassify:
    """Tests for the 5x5 matrix."""

    @pytest.mark.parametrize("probability,impact,level", [
        (1, 1, RiskLevel.ACCEPTABLE),
        (1, 5, RiskLevel.TOLERABLE),
        (3, 3, RiskLevel.TOLERABLE),
        (3, 4, RiskLevel.IMPORTANT),
        (5, 2, RiskLevel.IMPORTANT),
        (4, 5, RiskLevel.INTOLERABLE),
        (5, 5, RiskLevel.INTOLERABLE),
    ])
    def test_cells(self, probability, impact, level):
        assert classify(probability, impact) is level

    @pytest.mark.parametrize("probability,impact", [(0, 3), (3, 6), (True, 3), (2.0, 3)])
    def test_out_of_scale(self, probability, impact):
        with pytest.raises(ValidationError):
            classify(probability, impact)

    def test_default_matrix_is_monotonic(self):
        check_matrix_monotonic(RISK_MATRIX)

    def test_non_monotonic_rejected(self):
        broken = [list(row) for row in RISK_MATRIX]
        broken[4][4] = RiskLevel.ACCEPTABLE
        with pytest.raises(CatalogueIntegrityError) as exc_info:
            check_matrix_monotonic(broken)
        assert exc_info.value.details["errors"]

    def test_wrong_shape_rejected(self):
        with pytest.raises(CatalogueIntegrityError):
            check_matrix_monotonic(RISK_MATRIX[:4])


class TestUrgency:
    """Tests for urgency derivation."""

    def test_by_level(self):
        assert urgency_for(RiskLevel.INTOLERABLE, 20) is Urgency.CRITICAL
        assert urgency_for(RiskLevel.IMPORTANT, 12) is Urgency.HIGH
        assert urgency_for(RiskLevel.ACCEPTABLE, 2) is Urgency.LOW

    def test_tolerable_split_at_six(self):
        assert urgency_for(RiskLevel.TOLERABLE, 6) is Urgency.MEDIUM
        assert urgency_for(RiskLevel.TOLERABLE, 5) is Urgency.LOW

    def test_critical_offense_floor(self):
        assert urgency_for(RiskLevel.ACCEPTABLE, 1, has_critical_offense=True) is Urgency.HIGH
        assert urgency_for(RiskLevel.INTOLERABLE, 25, has_critical_offense=True) is Urgency.CRITICAL


# =============================================================================
# Heuristic Tests
# =============================================================================

class TestCaseAttributeHeuristic:
    """Tests for probability and impact estimation."""

    def test_no_matches_no_attributes(self):
        assert CaseAttributeHeuristic().estimate([], None) == (2, 1)

    def test_critical_offense(self, matcher):
        matches = matcher.match("pago de soborno")
        assert CaseAttributeHeuristic().estimate(matches, None) == (4, 5)
        assert CaseAttributeHeuristic().estimate(matches, make_attributes()) == (5, 5)

    def test_high_offense_impact(self, matcher):
        matches = matcher.match("amenazas del supervisor")
        assert CaseAttributeHeuristic().estimate_impact(matches) == 4

    def test_highest_impact_wins(self, matcher):
        matches = matcher.match("amenazas y un seguro de cesantía mal cobrado")
        assert CaseAttributeHeuristic().estimate_impact(matches) == 4

    def test_anonymous_without_evidence_lowers(self):
        heuristic = CaseAttributeHeuristic()
        attributes = make_attributes(is_anonymous=True)
        assert heuristic.estimate_probability([], attributes) == 2

    def test_anonymous_with_evidence_does_not_lower(self):
        attributes = make_attributes(is_anonymous=True, evidence_count=2)
        assert CaseAttributeHeuristic().estimate_probability([], attributes) == 4

    def test_frequency(self):
        heuristic = CaseAttributeHeuristic()
        repeated = make_attributes(is_karin_law=False, conduct_frequency=ConductFrequency.REPEATED)
        systematic = make_attributes(is_karin_law=False, conduct_frequency=ConductFrequency.SYSTEMATIC)
        assert heuristic.estimate_probability([], repeated) == 3
        assert heuristic.estimate_probability([], systematic) == 4

    def test_clamped_to_five(self, matcher):
        attributes = make_attributes(
            accused_count=3,
            evidence_count=4,
            conduct_frequency=ConductFrequency.SYSTEMATIC,
            accused_outranks_reporter=True,
        )
        matches = matcher.match("amenazas")
        assert CaseAttributeHeuristic().estimate_probability(matches, attributes) == 5


# =============================================================================
# Evaluator Tests
# =============================================================================

class TestEvaluate:
    """Tests for RiskMatrixEvaluator.evaluate."""

    def test_supplied_values(self, evaluator):
        evaluation = evaluator.evaluate([], probability=3, impact=4, now=MONDAY)

        assert evaluation.risk_value == 12
        assert evaluation.risk_level is RiskLevel.IMPORTANT
        assert evaluation.urgency is Urgency.HIGH
        assert evaluation.probability_source == "supplied"
        assert evaluation.suggested_controls == LEVEL_CONTROLS[RiskLevel.IMPORTANT]
        assert evaluation.recommended_actions == LEVEL_ACTIONS[RiskLevel.IMPORTANT]
        assert evaluation.evaluated_at == MONDAY

    def test_estimated_values(self, evaluator, matcher):
        matches = matcher.match("coima al inspector")
        evaluation = evaluator.evaluate(matches, attributes=make_attributes(), now=MONDAY)

        assert (evaluation.probability, evaluation.impact) == (5, 5)
        assert evaluation.risk_value == 25
        assert evaluation.risk_level is RiskLevel.INTOLERABLE
        assert evaluation.urgency is Urgency.CRITICAL
        assert evaluation.probability_source == "case_attribute_heuristic"
        assert evaluation.has_critical_offense

    def test_partial_supply(self, evaluator):
        evaluation = evaluator.evaluate([], probability=5, now=MONDAY)
        assert evaluation.probability == 5
        assert evaluation.impact == 1
        assert evaluation.risk_level is RiskLevel.TOLERABLE

    def test_category_controls_appended(self, evaluator, matcher, catalogue):
        matches = matcher.match("coima")
        evaluation = evaluator.evaluate(matches, probability=3, impact=4, now=MONDAY)

        level_controls = LEVEL_CONTROLS[RiskLevel.IMPORTANT]
        assert evaluation.suggested_controls[:len(level_controls)] == level_controls
        for control in catalogue.controls_for("Delitos de Corrupción y Fraude"):
            assert control in evaluation.suggested_controls
        assert len(set(evaluation.suggested_controls)) == len(evaluation.suggested_controls)

    def test_critical_offense_raises_urgency(self, evaluator, matcher):
        evaluation = evaluator.evaluate(matcher.match("coima"), probability=1, impact=1, now=MONDAY)
        assert evaluation.risk_level is RiskLevel.ACCEPTABLE
        assert evaluation.urgency is Urgency.HIGH

    def test_invalid_supplied_value(self, evaluator):
        with pytest.raises(ValidationError):
            evaluator.evaluate([], probability=6, impact=1)

    def test_without_catalogue(self):
        evaluation = RiskMatrixEvaluator().evaluate([], probability=1, impact=1, now=MONDAY)
        assert evaluation.suggested_controls == ()


class TestBuildSummary:
    """Tests for the executive summary."""

    def test_summary(self, evaluator, matcher):
        evaluation = evaluator.evaluate(
            matcher.match("soborno y coima"), attributes=make_attributes(), now=MONDAY
        )
        summary = build_summary(evaluation)

        assert summary["risk_level"] == "intolerable"
        assert summary["offense_count"] == 1
        assert summary["main_offenses"][0] == {
            "offense_id": "cohecho",
            "description": "Cohecho a funcionario público nacional o extranjero",
            "relevance": "67%",
        }
        assert summary["immediate_actions"] == list(LEVEL_ACTIONS[RiskLevel.INTOLERABLE][:3])
        assert summary["follow_up_actions"] == list(LEVEL_ACTIONS[RiskLevel.INTOLERABLE][3:])
