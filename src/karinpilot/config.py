"""
KarinPilot Configuration

Runtime settings read from KP_* environment variables.

    KP_LOG_LEVEL              Logging level (default: INFO)
    KP_LOG_JSON               Emit structured JSON logs (default: true)
    KP_CALENDAR               Business-day policy: "weekends" or "chile"
    KP_REGION                 Chilean region code for regional holidays
    KP_ALERT_WORKERS          Thread pool size for alert scans (default: 4)
    KP_AI_TIMEOUT_SECONDS     Timeout for the external risk signal (default: 5.0)
    KP_COMPLIANCE_WEIGHT      Weight of the compliance score (default: 0.6)
    KP_AI_WEIGHT              Weight of the AI severity (default: 0.4)
    KP_MIN_RELEVANCE          Minimum offense relevance to report (default: 0.0)
    KP_RISK_ANALYSIS_ENABLED  Wire an AI signal source in the API (default: true)
    KP_CATALOG_DIR            Directory holding catalogue YAML files
    KP_DOCS_ENABLED           Serve OpenAPI docs (default: true)
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from .exceptions import ValidationError


CALENDAR_POLICIES = ("weekends", "chile")


@dataclass(frozen=True)
class Settings:
    """Immutable engine settings."""
    log_level: str = "INFO"
    log_json: bool = True
    calendar: str = "weekends"
    region: Optional[str] = None
    alert_workers: int = 4
    ai_timeout_seconds: float = 5.0
    compliance_weight: float = 0.6
    ai_weight: float = 0.4
    min_relevance: float = 0.0
    risk_analysis_enabled: bool = True
    catalog_dir: Optional[str] = None
    docs_enabled: bool = True

    def __post_init__(self) -> None:
        if self.calendar not in CALENDAR_POLICIES:
            raise ValidationError(
                message=f"Unknown calendar policy: {self.calendar}",
                details={"allowed": list(CALENDAR_POLICIES)},
            )
        if self.alert_workers < 1:
            raise ValidationError(message="KP_ALERT_WORKERS must be at least 1")
        if self.ai_timeout_seconds <= 0:
            raise ValidationError(message="KP_AI_TIMEOUT_SECONDS must be positive")
        if self.compliance_weight < 0 or self.ai_weight < 0:
            raise ValidationError(message="Score weights must be non-negative")
        if abs(self.compliance_weight + self.ai_weight - 1.0) > 1e-9:
            raise ValidationError(
                message="Score weights must sum to 1.0",
                details={
                    "compliance_weight": self.compliance_weight,
                    "ai_weight": self.ai_weight,
                },
            )
        if not 0.0 <= self.min_relevance <= 1.0:
            raise ValidationError(message="KP_MIN_RELEVANCE must be within [0, 1]")


def _flag(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _number(env: Mapping[str, str], name: str, default: str, cast):
    raw = env.get(name, default)
    try:
        return cast(raw)
    except ValueError:
        raise ValidationError(
            message=f"Invalid value for {name}: {raw!r}",
            details={"variable": name, "value": raw},
        )


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Build settings from environment variables.

    Args:
        env: Mapping to read from (defaults to os.environ)

    Returns:
        Validated Settings

    Raises:
        ValidationError: If a variable holds an invalid value
    """
    env = os.environ if env is None else env
    return Settings(
        log_level=env.get("KP_LOG_LEVEL", "INFO").upper(),
        log_json=_flag(env.get("KP_LOG_JSON", "true")),
        calendar=env.get("KP_CALENDAR", "weekends").lower(),
        region=env.get("KP_REGION") or None,
        alert_workers=_number(env, "KP_ALERT_WORKERS", "4", int),
        ai_timeout_seconds=_number(env, "KP_AI_TIMEOUT_SECONDS", "5.0", float),
        compliance_weight=_number(env, "KP_COMPLIANCE_WEIGHT", "0.6", float),
        ai_weight=_number(env, "KP_AI_WEIGHT", "0.4", float),
        min_relevance=_number(env, "KP_MIN_RELEVANCE", "0.0", float),
        risk_analysis_enabled=_flag(env.get("KP_RISK_ANALYSIS_ENABLED", "true")),
        catalog_dir=env.get("KP_CATALOG_DIR") or None,
        docs_enabled=_flag(env.get("KP_DOCS_ENABLED", "true")),
    )
