"""
Test helpers for KarinPilot.

Modules:
- factories: Case, clock, actor and attribute builders
"""
from .factories import (
    CLT,
    MONDAY,
    business_day,
    make_actor,
    make_attributes,
    make_case,
    make_clock,
    make_evaluation,
    make_offense,
    make_rule_table,
)

__all__ = [
    "CLT",
    "MONDAY",
    "business_day",
    "make_actor",
    "make_attributes",
    "make_case",
    "make_clock",
    "make_evaluation",
    "make_offense",
    "make_rule_table",
]
