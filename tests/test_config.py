"""
Tests for settings, logging and canonical serialization.
"""
import json
import logging
from datetime import date, datetime, timedelta, timezone

import pytest

from karinpilot.canon import canonical_json, content_hash, normalize_for_matching
from karinpilot.config import Settings, load_settings
from karinpilot.exceptions import ValidationError
from karinpilot.logging_setup import JSONFormatter, configure_logging
from karinpilot.models import ProcessStage


class TestLoadSettings:
    """Tests for KP_* environment variables."""

    def test_defaults(self):
        settings = load_settings({})
        assert settings == Settings()
        assert settings.calendar == "weekends"
        assert settings.risk_analysis_enabled

    def test_overrides(self):
        settings = load_settings({
            "KP_LOG_LEVEL": "debug",
            "KP_LOG_JSON": "false",
            "KP_CALENDAR": "Chile",
            "KP_REGION": "XVI",
            "KP_ALERT_WORKERS": "8",
            "KP_AI_TIMEOUT_SECONDS": "2.5",
            "KP_COMPLIANCE_WEIGHT": "0.5",
            "KP_AI_WEIGHT": "0.5",
            "KP_RISK_ANALYSIS_ENABLED": "0",
            "KP_DOCS_ENABLED": "no",
        })
        assert settings.log_level == "DEBUG"
        assert not settings.log_json
        assert settings.calendar == "chile"
        assert settings.region == "XVI"
        assert settings.alert_workers == 8
        assert settings.ai_timeout_seconds == 2.5
        assert not settings.risk_analysis_enabled
        assert not settings.docs_enabled

    def test_invalid_number(self):
        with pytest.raises(ValidationError) as exc_info:
            load_settings({"KP_ALERT_WORKERS": "many"})
        assert exc_info.value.details["variable"] == "KP_ALERT_WORKERS"

    @pytest.mark.parametrize("overrides", [
        {"calendar": "lunar"},
        {"alert_workers": 0},
        {"ai_timeout_seconds": 0},
        {"compliance_weight": 0.9},
        {"compliance_weight": 1.2, "ai_weight": -0.2},
        {"min_relevance": 1.5},
    ])
    def test_invalid_settings(self, overrides):
        with pytest.raises(ValidationError):
            Settings(**overrides)


class TestLogging:
    """Tests for the structured log formatter."""

    def test_json_fields(self):
        record = logging.LogRecord("karinpilot.engine", logging.INFO, __file__, 1, "moved %s", ("x",), None)
        record.case_id = "KRN-1"
        record.unrelated = "dropped"
        entry = json.loads(JSONFormatter().format(record))

        assert entry["message"] == "moved x"
        assert entry["level"] == "INFO"
        assert entry["case_id"] == "KRN-1"
        assert "unrelated" not in entry

    def test_reconfigure_replaces_handler(self):
        logger = configure_logging("DEBUG")
        configure_logging("WARNING", json_output=False)

        installed = [h for h in logger.handlers if getattr(h, "_karinpilot_handler", False)]
        assert len(installed) == 1
        assert logger.level == logging.WARNING


class TestCanon:
    """Tests for canonical JSON and text normalization."""

    def test_sorted_compact(self):
        assert canonical_json({"b": 1, "a": [ProcessStage.CLOSED]}) == '{"a":["closed"],"b":1}'

    def test_aware_datetimes_in_utc(self):
        local = datetime(2025, 3, 3, 9, 0, tzinfo=timezone(timedelta(hours=-3)))
        utc = datetime(2025, 3, 3, 12, 0, tzinfo=timezone.utc)
        assert canonical_json(local) == canonical_json(utc) == '"2025-03-03T12:00:00.000Z"'
        assert content_hash({"at": local}) == content_hash({"at": utc})

    def test_dates_and_sets(self):
        assert canonical_json({"d": date(2025, 4, 14), "s": {"b", "a"}}) == '{"d":"2025-04-14","s":["a","b"]}'

    def test_normalize(self):
        assert normalize_for_matching("  Acoso   LABORAL\ny Humillación ") == "acoso laboral y humillacion"
