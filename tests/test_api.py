"""
Tests for the HTTP API.

Tests cover:
- Health and catalogue endpoints
- Case lifecycle endpoints and engine error mapping
- Extension request/decision flow
- Alert scans
- Compliance and unified risk endpoints
"""
import pytest
from fastapi.testclient import TestClient

from karinpilot.api import create_app
from karinpilot.config import Settings
from karinpilot.engine import build_components
from karinpilot.models import AISignal


OPENED_AT = "2025-03-03T09:00:00-03:00"
ONE_DAY_LEFT = "2025-04-11T10:00:00-03:00"
ADMIN = {"user_id": "u-admin-1", "role": "admin"}
INVESTIGATOR = {"user_id": "u-inv-1", "role": "investigator"}


class FixedSource:
    """AI scorer returning a constant signal."""

    def score(self, narrative, metadata):
        return AISignal(severity=90, confidence=70, source="fixed")


@pytest.fixture
def client():
    app = create_app(components=build_components(Settings(log_json=False)))
    with TestClient(app) as test_client:
        yield test_client


def open_case(client, stage="investigation", **overrides):
    payload = {
        "company_id": "ACME-CL",
        "stage": stage,
        "opened_at": OPENED_AT,
        "assigned_investigator_ids": ["u-inv-1"],
        "alert_recipients": ["compliance@acme.cl"],
        **overrides,
    }
    resp = client.post("/cases", json=payload)
    assert resp.status_code == 201, resp.text
    return resp.json()


# =============================================================================
# Health and Catalogues
# =============================================================================

class TestHealthAPI:
    """Tests for /health."""

    def test_health(self, client):
        """GET /health reports the loaded catalogues."""
        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["offenses_loaded"] == 15
        assert data["calendar"] == "weekends"
        assert data["risk_analysis_enabled"] is False
        assert len(data["rule_table_hash"]) == 16

    def test_request_id_header(self, client):
        """Every response carries X-Request-ID."""
        assert client.get("/health").headers["X-Request-ID"]

    def test_docs_can_be_disabled(self):
        """OpenAPI is not served when docs are disabled."""
        app = create_app(components=build_components(Settings(docs_enabled=False)))
        with TestClient(app) as client:
            assert client.get("/openapi.json").status_code == 404


class TestCatalogAPI:
    """Tests for /catalogs."""

    def test_deadlines(self, client):
        """GET /catalogs/deadlines lists every stage rule."""
        data = client.get("/catalogs/deadlines").json()
        rules = {rule["stage"]: rule for rule in data["rules"]}
        assert data["jurisdiction"] == "CL"
        assert rules["investigation"]["days"] == 30
        assert rules["investigation"]["max_extension_days"] == 30

    def test_stages(self, client):
        """GET /catalogs/stages returns the transition graph."""
        data = client.get("/catalogs/stages").json()
        assert data["main_line"][0] == "complaint_filed"
        assert data["transitions"]["closed"] == []
        assert data["transitions"]["measures_adoption"] == ["closed", "sanctions"]

    def test_offenses(self, client):
        """GET /catalogs/offenses groups offenses with their controls."""
        data = client.get("/catalogs/offenses").json()
        assert data["count"] == 15
        harassment = data["categories"]["Acoso y Violencia en el Trabajo"]
        assert {o["id"] for o in harassment["offenses"]} == {
            "acoso_laboral", "acoso_sexual", "violencia_trabajo",
        }
        assert "Capacitación anual en Ley Karin" in harassment["controls"]

    def test_offense(self, client):
        """GET /catalogs/offenses/{id} returns one entry or 404."""
        assert client.get("/catalogs/offenses/cohecho").json()["base_risk_level"] == "critical"
        assert client.get("/catalogs/offenses/piracy").status_code == 404


# =============================================================================
# Cases
# =============================================================================

class TestCaseAPI:
    """Tests for /cases."""

    def test_open_case(self, client):
        """POST /cases opens a case at version 1."""
        case = open_case(client)
        assert case["version"] == 1
        assert case["clock"]["current_stage"] == "investigation"
        assert case["allowed_transitions"] == ["report_creation"]
        assert case["progress"] == 44

    def test_get_and_list(self, client):
        """GET /cases and /cases/{id} return stored cases."""
        case = open_case(client)
        assert client.get(f"/cases/{case['case_id']}").json()["case_id"] == case["case_id"]
        assert [c["case_id"] for c in client.get("/cases").json()] == [case["case_id"]]

    def test_naive_time_rejected(self, client):
        """A timestamp without offset is a validation error."""
        resp = client.post("/cases", json={"company_id": "ACME-CL", "opened_at": "2025-03-03T09:00:00"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "KP_VALIDATION_ERROR"

    def test_deadline(self, client):
        """GET /cases/{id}/deadline computes the current deadline."""
        case = open_case(client)
        resp = client.get(f"/cases/{case['case_id']}/deadline", params={"now": ONE_DAY_LEFT})
        data = resp.json()
        assert data["deadline"] == "2025-04-14"
        assert data["days_remaining"] == 1
        assert data["alert_level"] == "urgent"

    def test_transition(self, client):
        """POST /cases/{id}/transitions moves the case and bumps the version."""
        case = open_case(client)
        resp = client.post(
            f"/cases/{case['case_id']}/transitions",
            json={"target_stage": "report_creation", "expected_version": 1, "now": ONE_DAY_LEFT},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["version"] == 2
        assert data["clock"]["current_stage"] == "report_creation"
        assert len(data["clock"]["history"]) == 2

    def test_invalid_transition(self, client):
        """Skipping stages returns 409 with the allowed targets."""
        case = open_case(client)
        resp = client.post(
            f"/cases/{case['case_id']}/transitions",
            json={"target_stage": "final_report", "now": ONE_DAY_LEFT},
        )
        assert resp.status_code == 409
        data = resp.json()
        assert data["code"] == "KP_INVALID_TRANSITION"
        assert data["details"]["allowed"] == ["report_creation"]
        assert data["case_id"] == case["case_id"]
        assert data["request_id"] == resp.headers["X-Request-ID"]

    def test_version_conflict(self, client):
        """A stale expected_version returns 409."""
        case = open_case(client)
        resp = client.post(
            f"/cases/{case['case_id']}/transitions",
            json={"target_stage": "report_creation", "expected_version": 7},
        )
        assert resp.status_code == 409
        assert resp.json()["code"] == "KP_CONCURRENCY_CONFLICT"

    def test_unknown_stage(self, client):
        """An unknown stage name returns 422."""
        case = open_case(client)
        resp = client.post(f"/cases/{case['case_id']}/transitions", json={"target_stage": "appeal"})
        assert resp.status_code == 422
        assert resp.json()["code"] == "KP_UNKNOWN_STAGE"

    def test_unknown_case(self, client):
        """A missing case returns 404."""
        resp = client.get("/cases/KRN-NOPE")
        assert resp.status_code == 404
        assert resp.json()["code"] == "KP_CASE_NOT_FOUND"

    def test_dismiss_then_terminal(self, client):
        """Dismissed cases are closed and accept no further transitions."""
        case = open_case(client, stage="reception")
        resp = client.post(
            f"/cases/{case['case_id']}/dismiss",
            json={"reason": "Denuncia retirada", "now": ONE_DAY_LEFT},
        )
        assert resp.status_code == 200
        assert resp.json()["dismissed"] is True
        assert resp.json()["allowed_transitions"] == []

        resp = client.post(f"/cases/{case['case_id']}/transitions", json={"target_stage": "subsanation"})
        assert resp.status_code == 409
        assert resp.json()["code"] == "KP_TERMINAL_STATE"

    def test_active_only(self, client):
        """GET /cases?active_only=true hides closed cases."""
        open_case(client, stage="closed")
        active = open_case(client)
        listed = client.get("/cases", params={"active_only": True}).json()
        assert [c["case_id"] for c in listed] == [active["case_id"]]


class TestExtensionAPI:
    """Tests for the extension endpoints."""

    def request_extension(self, client, case_id, days=15, version=1):
        return client.post(
            f"/cases/{case_id}/extensions",
            json={
                "days": days,
                "justification": "Testigos adicionales",
                "requester": INVESTIGATOR,
                "expected_version": version,
                "now": OPENED_AT,
            },
        )

    def test_round_trip(self, client):
        """Request then approve an extension."""
        case = open_case(client)
        resp = self.request_extension(client, case["case_id"])
        assert resp.status_code == 201
        request = resp.json()["request"]
        assert request["status"] == "pending"

        resp = client.post(
            f"/cases/{case['case_id']}/extensions/{request['id']}/decision",
            json={"approve": True, "approver": ADMIN, "expected_version": 2, "now": OPENED_AT},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["request"]["status"] == "approved"
        assert data["request"]["new_deadline"] == "2025-05-05"
        assert data["case"]["version"] == 3
        assert data["case"]["clock"]["approved_extension_days"] == 15

    def test_unauthorized_approver(self, client):
        """A reporter cannot decide extensions."""
        case = open_case(client)
        request = self.request_extension(client, case["case_id"]).json()["request"]
        resp = client.post(
            f"/cases/{case['case_id']}/extensions/{request['id']}/decision",
            json={"approve": True, "approver": {"user_id": "u-rep-1", "role": "reporter"}},
        )
        assert resp.status_code == 403
        assert resp.json()["code"] == "KP_UNAUTHORIZED_APPROVER"

    def test_duplicate_pending(self, client):
        """A second pending request returns 409."""
        case = open_case(client)
        self.request_extension(client, case["case_id"])
        resp = self.request_extension(client, case["case_id"], days=5, version=2)
        assert resp.status_code == 409
        assert resp.json()["code"] == "KP_DUPLICATE_PENDING_EXTENSION"

    def test_not_extendable(self, client):
        """Stages without extensions return 409."""
        case = open_case(client, stage="reception")
        resp = self.request_extension(client, case["case_id"], days=2)
        assert resp.status_code == 409
        assert resp.json()["code"] == "KP_EXTENSION_NOT_ALLOWED"

    def test_over_limit(self, client):
        """More than the stage maximum returns 409."""
        case = open_case(client)
        resp = self.request_extension(client, case["case_id"], days=31)
        assert resp.status_code == 409
        assert resp.json()["code"] == "KP_EXTENSION_LIMIT_EXCEEDED"

    def test_non_positive_days(self, client):
        """Zero days fails request validation."""
        case = open_case(client)
        assert self.request_extension(client, case["case_id"], days=0).status_code == 422

    def test_unknown_request(self, client):
        """Deciding a missing request returns 404."""
        case = open_case(client)
        resp = client.post(
            f"/cases/{case['case_id']}/extensions/missing/decision",
            json={"approve": False, "approver": ADMIN},
        )
        assert resp.status_code == 404
        assert resp.json()["code"] == "KP_EXTENSION_NOT_FOUND"


# =============================================================================
# Alerts
# =============================================================================

class TestAlertAPI:
    """Tests for /alerts/scan."""

    def test_scan_and_suppress(self, client):
        """A level is alerted once, then suppressed."""
        case = open_case(client)
        first = client.post("/alerts/scan", json={"now": ONE_DAY_LEFT}).json()
        assert first["alert_count"] == 1
        assert first["alerts"][0]["case_id"] == case["case_id"]
        assert first["alerts"][0]["level"] == "urgent"

        second = client.post("/alerts/scan", json={"now": ONE_DAY_LEFT}).json()
        assert second["alert_count"] == 0
        assert second["outcomes"][0]["suppressed"] is True

    def test_scan_selected_cases(self, client):
        """case_ids restricts the scan."""
        first = open_case(client)
        open_case(client)
        data = client.post(
            "/alerts/scan", json={"now": ONE_DAY_LEFT, "case_ids": [first["case_id"]]}
        ).json()
        assert [o["case_id"] for o in data["outcomes"]] == [first["case_id"]]


# =============================================================================
# Risk
# =============================================================================

class TestRiskAPI:
    """Tests for /risk."""

    def test_compliance(self, client):
        """POST /risk/compliance classifies a bribery narrative."""
        resp = client.post(
            "/risk/compliance",
            json={"narrative": "El gerente pidió soborno y coima a un proveedor"},
        )
        assert resp.status_code == 200
        data = resp.json()
        assert data["evaluation"]["risk_level"] == "intolerable"
        assert data["evaluation"]["matched_offenses"][0]["offense_id"] == "cohecho"
        assert data["summary"]["offense_count"] == 1

    def test_compliance_from_report_fields(self, client):
        """Report fields are joined into the narrative."""
        resp = client.post(
            "/risk/compliance",
            json={"report": {"description": "Recibí amenazas", "location": "Bodega"}, "probability": 2, "impact": 2},
        )
        data = resp.json()
        assert data["evaluation"]["matched_offenses"][0]["offense_id"] == "violencia_trabajo"
        assert data["evaluation"]["risk_level"] == "acceptable"
        assert data["evaluation"]["probability_source"] == "supplied"

    def test_compliance_scale_validation(self, client):
        """Probability outside 1-5 is rejected."""
        assert client.post("/risk/compliance", json={"narrative": "x", "probability": 6}).status_code == 422

    def test_unified_with_signal(self, client):
        """A supplied AI signal is merged into the result."""
        resp = client.post(
            "/risk/unified",
            json={
                "narrative": "",
                "probability": 3,
                "impact": 4,
                "ai_signal": {"severity": 90, "confidence": 70},
            },
        )
        data = resp.json()
        assert data["unified_score"] == 65
        assert data["unified_level"] == "intolerable"
        assert data["degraded"] is False
        assert set(data["recommendations"]) == {"immediate", "strategy", "mitigation", "legal"}

    def test_unified_without_source(self, client):
        """Without a scorer the result is compliance only."""
        data = client.post("/risk/unified", json={"narrative": "coima"}).json()
        assert data["degraded"] is True
        assert data["ai_signal"] is None

    def test_unified_with_configured_source(self):
        """The configured scorer is asked when no signal is supplied."""
        components = build_components(Settings(log_json=False), signal_source=FixedSource())
        with TestClient(create_app(components=components)) as client:
            data = client.post(
                "/risk/unified", json={"narrative": "", "probability": 3, "impact": 4}
            ).json()
        assert data["degraded"] is False
        assert data["ai_signal"]["source"] == "fixed"
        assert data["unified_score"] == 65
