"""
KarinPilot CLI

Commands:
    karinpilot check-catalogs [--catalog-dir DIR]
    karinpilot deadline --stage investigation --entered-at 2025-03-03T09:00:00-03:00
    karinpilot evaluate --text "..." [--ai-severity 80 --ai-confidence 70]
    karinpilot serve [--host 0.0.0.0] [--port 8000]
"""
from __future__ import annotations

import argparse
import json
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .calendars import calendar_for_policy
from .catalogs import CatalogueLoader
from .catalogs.loader import DATA_DIR, DEADLINES_FILE, OFFENSES_FILE
from .config import load_settings
from .engine import (
    ComplianceMatcher,
    DeadlineCalculator,
    RiskMatrixEvaluator,
    UnifiedRiskScorer,
    recommendations,
)
from .exceptions import (
    CatalogueIntegrityError,
    CatalogueLoadError,
    ExtensionLimitExceeded,
    KarinPilotError,
    ValidationError,
)
from .logging_setup import configure_logging
from .models import AISignal, AlertLevel, CaseAttributes, CaseClock, KarinCase, RiskLevel


class ExitCode:
    """Exit codes for scripting."""
    OK = 0
    ATTENTION = 2         # Deadline urgent/overdue, or risk important or worse
    INPUT_INVALID = 10    # Bad arguments or input values
    CATALOGUE_ERROR = 11  # Catalogue missing, malformed or inconsistent
    INTERNAL_ERROR = 20   # Unexpected engine error


def _print_kv(key: str, value, indent: int = 0) -> None:
    print(f"{' ' * indent}{key}: {value}")


def _print_error(error: KarinPilotError) -> None:
    print(str(error), file=sys.stderr)


def _parse_time(value: Optional[str], name: str) -> Optional[datetime]:
    if value is None:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        raise ValidationError(message=f"Invalid ISO timestamp for {name}: {value!r}")
    if parsed.tzinfo is None:
        raise ValidationError(message=f"{name} must include a UTC offset", details={name: value})
    return parsed


def _catalogue_paths(catalog_dir: Optional[str]) -> tuple[Path, Path]:
    base = Path(catalog_dir) if catalog_dir else DATA_DIR
    return base / DEADLINES_FILE, base / OFFENSES_FILE


# =============================================================================
# Commands
# =============================================================================

def cmd_check_catalogs(args) -> int:
    """Load and validate both catalogues."""
    rules_path, offenses_path = _catalogue_paths(args.catalog_dir)
    loader = CatalogueLoader(strict_version=not args.lenient)
    rules = loader.load_deadline_rules(rules_path)
    offenses = loader.load_offense_catalogue(offenses_path)

    print("[OK] Deadline rules")
    _print_kv("File", rules_path, 2)
    _print_kv("Stages", len(rules), 2)
    _print_kv("Extendable", ", ".join(s.value for s in rules.extendable_stages()), 2)
    _print_kv("Hash", rules.content_hash[:32], 2)
    print("[OK] Offense catalogue")
    _print_kv("File", offenses_path, 2)
    _print_kv("Offenses", len(offenses), 2)
    _print_kv("Categories", ", ".join(offenses.categories), 2)
    return ExitCode.OK


def cmd_deadline(args) -> int:
    """Compute the deadline of a stage entered at a given time."""
    settings = load_settings()
    rules_path, _ = _catalogue_paths(args.catalog_dir or settings.catalog_dir)
    rules = CatalogueLoader().load_deadline_rules(rules_path)
    calendar = calendar_for_policy(args.calendar or settings.calendar, args.region or settings.region)

    entered_at = _parse_time(args.entered_at, "--entered-at")
    now = _parse_time(args.now, "--now") or datetime.now(timezone.utc)
    clock = CaseClock.start(args.stage, entered_at)

    rule = rules[clock.current_stage]
    if args.extension_days:
        if not rule.extendable or args.extension_days > rule.max_extension_days:
            raise ExtensionLimitExceeded(
                message=(
                    f"Stage '{rule.stage.value}' admits at most "
                    f"{rule.max_extension_days if rule.extendable else 0} extension days"
                ),
                details={"extension_days": args.extension_days},
            )
        clock = clock.with_extension(args.extension_days)

    case = KarinCase(case_id=args.case_id, company_id="cli", clock=clock)
    info = DeadlineCalculator(rule_table=rules, calendar=calendar).compute_deadline(case, now=now)

    if args.json:
        print(json.dumps(info.to_dict(), indent=2, ensure_ascii=False))
    else:
        _print_kv("Stage", info.stage.value)
        _print_kv("Rule", f"{rule.days} {rule.unit} ({rule.article})")
        if info.has_deadline:
            _print_kv("Deadline", info.deadline.isoformat())
            _print_kv("Days remaining", info.days_remaining)
        _print_kv("Alert level", info.alert_level.value)
        _print_kv("Message", info.message)
        if info.next_action:
            _print_kv("Next action", info.next_action)

    if info.alert_level in (AlertLevel.URGENT, AlertLevel.OVERDUE):
        return ExitCode.ATTENTION
    return ExitCode.OK


def cmd_evaluate(args) -> int:
    """Evaluate the compliance risk of a narrative, optionally with an AI signal."""
    settings = load_settings()
    if args.file:
        narrative = Path(args.file).read_text(encoding="utf-8")
    else:
        narrative = args.text or ""
    if not narrative.strip():
        raise ValidationError(message="A narrative is required (--text or --file)")

    _, offenses_path = _catalogue_paths(args.catalog_dir or settings.catalog_dir)
    catalogue = CatalogueLoader().load_offense_catalogue(offenses_path)
    matcher = ComplianceMatcher(catalogue=catalogue, min_relevance=settings.min_relevance)
    evaluator = RiskMatrixEvaluator(catalogue=catalogue)
    scorer = UnifiedRiskScorer(
        compliance_weight=settings.compliance_weight,
        ai_weight=settings.ai_weight,
        matcher=matcher,
        evaluator=evaluator,
    )

    attributes = CaseAttributes(
        narrative=narrative,
        is_karin_law=not args.not_karin,
        is_anonymous=args.anonymous,
        evidence_count=args.evidence,
        accused_count=args.accused,
    )
    if args.ai_severity is not None:
        signal = AISignal(
            severity=args.ai_severity,
            confidence=args.ai_confidence,
            source="cli",
        )
        evaluation = evaluator.evaluate(
            matcher.match(narrative),
            probability=args.probability,
            impact=args.impact,
            attributes=attributes,
        )
        result = scorer.merge(evaluation, signal)
    else:
        result = scorer.analyze(attributes, probability=args.probability, impact=args.impact)

    if args.json:
        payload = {**result.to_dict(), "recommendations": recommendations(result)}
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        evaluation = result.compliance_evaluation
        print("Matched offenses:")
        if not evaluation.matched_offenses:
            print("  (none)")
        for match in evaluation.matched_offenses:
            print(
                f"  {match.entry.id:24} {match.entry.base_risk_level.value:9} "
                f"{round(match.relevance * 100):3d}%  {', '.join(match.matched_keywords)}"
            )
        _print_kv("Compliance", f"{evaluation.probability}x{evaluation.impact}={evaluation.risk_value} ({evaluation.risk_level.value})")
        _print_kv("Unified", f"{result.unified_score} ({result.unified_level.value})")
        _print_kv("Urgency", result.urgency.value)
        for line in result.explanation:
            print(f"  - {line}")

    if result.unified_level.rank >= RiskLevel.IMPORTANT.rank:
        return ExitCode.ATTENTION
    return ExitCode.OK


def cmd_serve(args) -> int:
    """Run the HTTP API."""
    import uvicorn

    from .api import create_app

    uvicorn.run(create_app(), host=args.host, port=args.port)
    return ExitCode.OK


# =============================================================================
# Entry Point
# =============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="karinpilot",
        description="KarinPilot - Ley Karin case lifecycle and compliance risk engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   OK               Nothing requires attention
  2   ATTENTION        Deadline urgent/overdue or risk important/intolerable
  10  INPUT_INVALID    Invalid arguments or values
  11  CATALOGUE_ERROR  Catalogue validation failed
  20  INTERNAL_ERROR   Unexpected engine error
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check = subparsers.add_parser("check-catalogs", help="Validate the catalogue files")
    check.add_argument("--catalog-dir", help="Directory holding the catalogue YAML files")
    check.add_argument("--lenient", action="store_true", help="Accept other schema versions")
    check.set_defaults(func=cmd_check_catalogs)

    deadline = subparsers.add_parser("deadline", help="Compute a stage deadline")
    deadline.add_argument("--stage", required=True, help="Process stage (legacy aliases accepted)")
    deadline.add_argument("--entered-at", required=True, help="ISO timestamp with UTC offset")
    deadline.add_argument("--now", help="Reference time (default: current time)")
    deadline.add_argument("--extension-days", type=int, default=0, help="Approved extension days")
    deadline.add_argument("--calendar", choices=["weekends", "chile"], help="Business-day policy")
    deadline.add_argument("--region", help="Chilean region code for regional holidays")
    deadline.add_argument("--case-id", default="CLI-CASE", help="Case ID shown in the output")
    deadline.add_argument("--catalog-dir", help="Directory holding the catalogue YAML files")
    deadline.add_argument("--json", action="store_true", help="Print JSON")
    deadline.set_defaults(func=cmd_deadline)

    evaluate = subparsers.add_parser("evaluate", help="Evaluate the compliance risk of a narrative")
    source = evaluate.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", help="Narrative text")
    source.add_argument("--file", help="File holding the narrative")
    evaluate.add_argument("--probability", type=int, help="Supplied probability (1-5)")
    evaluate.add_argument("--impact", type=int, help="Supplied impact (1-5)")
    evaluate.add_argument("--evidence", type=int, default=0, help="Number of evidence items")
    evaluate.add_argument("--accused", type=int, default=1, help="Number of accused people")
    evaluate.add_argument("--anonymous", action="store_true", help="Report is anonymous")
    evaluate.add_argument("--not-karin", action="store_true", help="Report is outside Ley Karin")
    evaluate.add_argument("--ai-severity", type=float, help="AI severity score (0-100)")
    evaluate.add_argument("--ai-confidence", type=float, default=50.0, help="AI confidence (0-100)")
    evaluate.add_argument("--catalog-dir", help="Directory holding the catalogue YAML files")
    evaluate.add_argument("--json", action="store_true", help="Print JSON")
    evaluate.set_defaults(func=cmd_evaluate)

    serve = subparsers.add_parser("serve", help="Run the HTTP API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=8000)
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level.upper(), json_output=False)

    try:
        return args.func(args)
    except (CatalogueLoadError, CatalogueIntegrityError) as e:
        _print_error(e)
        for error in e.details.get("errors", []):
            print(f"  [X] {error}", file=sys.stderr)
        return ExitCode.CATALOGUE_ERROR
    except ValidationError as e:
        _print_error(e)
        return ExitCode.INPUT_INVALID
    except KarinPilotError as e:
        _print_error(e)
        return ExitCode.INPUT_INVALID if e.code.startswith("KP_EXTENSION") else ExitCode.INTERNAL_ERROR
    except OSError as e:
        print(f"[KP_IO_ERROR] {e}", file=sys.stderr)
        return ExitCode.INPUT_INVALID


if __name__ == "__main__":
    sys.exit(main())
