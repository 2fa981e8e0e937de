"""
Tests for the compliance matcher.

Tests cover:
- Keyword relevance
- Case- and accent-insensitive matching
- Deterministic ordering
- Minimum relevance filter
- Report narrative assembly
"""
import pytest

from karinpilot.catalogs import OffenseCatalogue
from karinpilot.engine import REPORT_TEXT_FIELDS, ComplianceMatcher, build_narrative
from karinpilot.exceptions import ValidationError

from tests.helpers import make_offense


BRIBERY = "El gerente pidió una coima y ofreció soborno al inspector municipal."
HARASSMENT = "Mi jefatura me trata con hostigamiento constante y maltrato verbal."


def ids(matches):
    return [m.entry.id for m in matches]


# =============================================================================
# Matching Tests
# =============================================================================

class TestMatch:
    """Tests for ComplianceMatcher.match against the default catalogue."""

    def test_bribery(self, matcher):
        matches = matcher.match(BRIBERY)

        assert ids(matches) == ["cohecho"]
        assert sorted(matches[0].matched_keywords) == ["coima", "soborno"]
        assert matches[0].relevance == pytest.approx(2 / 3)

    def test_harassment(self, matcher):
        matches = matcher.match(HARASSMENT)
        assert ids(matches) == ["acoso_laboral"]
        assert matches[0].relevance == pytest.approx(0.5)

    def test_no_match(self, matcher):
        assert matcher.match("Solicito cambio de turno por motivos familiares.") == []

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_empty_narrative(self, matcher, text):
        assert matcher.match(text) == []

    def test_case_insensitive(self, matcher):
        assert ids(matcher.match("SE PAGÓ UN SOBORNO")) == ["cohecho"]

    def test_accent_insensitive(self, matcher):
        matches = matcher.match("Uso de informacion privilegiada antes de la junta")
        assert ids(matches) == ["informacion_privilegiada"]
        assert matches[0].matched_keywords == ("información privilegiada",)

    def test_whitespace_collapsed(self, matcher):
        assert ids(matcher.match("hubo  acoso\n\tsexual en la bodega")) == ["acoso_sexual"]

    def test_each_keyword_counted_once(self, matcher):
        matches = matcher.match("soborno, soborno y más soborno")
        assert matches[0].relevance == pytest.approx(1 / 3)

    def test_ordered_by_relevance(self, matcher):
        matches = matcher.match("Denuncia acoso sexual y tocaciones; además hostigamiento.")
        assert ids(matches) == ["acoso_sexual", "acoso_laboral"]
        assert matches[0].relevance > matches[1].relevance

    def test_match_report(self, matcher):
        matches = matcher.match_report(description="Pago de coima", category="Corrupción")
        assert ids(matches) == ["cohecho"]


class TestOrdering:
    """Ties break on severity, then on offense ID."""

    def test_severity_breaks_ties(self):
        catalogue = OffenseCatalogue([
            make_offense("alto", keywords=("alfa",), severity="high"),
            make_offense("critico", keywords=("beta",), severity="critical"),
        ])
        matches = ComplianceMatcher(catalogue=catalogue).match("alfa y beta")
        assert ids(matches) == ["critico", "alto"]

    def test_id_breaks_remaining_ties(self):
        catalogue = OffenseCatalogue([
            make_offense("zeta", keywords=("alfa",)),
            make_offense("eta", keywords=("beta",)),
        ])
        matches = ComplianceMatcher(catalogue=catalogue).match("beta alfa")
        assert ids(matches) == ["eta", "zeta"]

    def test_repeatable(self, matcher):
        text = "soborno, amenazas, hostigamiento y derrame de residuos tóxicos"
        assert matcher.match(text) == matcher.match(text)


class TestMinimumRelevance:
    """Tests for the relevance floor."""

    def test_filters_weak_matches(self, catalogue):
        matcher = ComplianceMatcher(catalogue=catalogue, min_relevance=0.5)
        text = "Denuncia acoso sexual y tocaciones; además hostigamiento."
        assert ids(matcher.match(text)) == ["acoso_sexual"]

    def test_boundary_is_inclusive(self, catalogue):
        matcher = ComplianceMatcher(catalogue=catalogue, min_relevance=0.5)
        assert ids(matcher.match(HARASSMENT)) == ["acoso_laboral"]


# =============================================================================
# Narrative Tests
# =============================================================================

class TestBuildNarrative:
    """Tests for joining report fields."""

    def test_field_order(self):
        text = build_narrative(
            expectation="Que se sancione",
            description="Recibí amenazas",
            location="Planta Maipú",
        )
        assert text == "Recibí amenazas Planta Maipú Que se sancione"

    def test_blank_fields_skipped(self):
        assert build_narrative(description="  Hechos  ", category="", subcategory=None) == "Hechos"

    def test_unknown_field(self):
        with pytest.raises(ValidationError) as exc_info:
            build_narrative(description="x", witness="y")
        assert exc_info.value.details["allowed"] == list(REPORT_TEXT_FIELDS)
