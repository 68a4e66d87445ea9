"""Diagnostic engine: cold-start item selection and mastery estimation."""

from pathwise.diagnostic.engine import (
    DiagnosticConfig,
    DiagnosticEngine,
    DiagnosticResponse,
    DiagnosticSummary,
    ItemSkillMapping,
    select_spaced_indices,
)

__all__ = [
    "DiagnosticConfig",
    "DiagnosticEngine",
    "DiagnosticResponse",
    "DiagnosticSummary",
    "ItemSkillMapping",
    "select_spaced_indices",
]
