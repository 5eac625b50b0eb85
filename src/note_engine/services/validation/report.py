from __future__ import annotations

from typing import List

from src.note_engine.domain.models.clinical_context import ClinicalContext
from src.note_engine.domain.models.validation import ValidationResult


def build_validation_report(result: ValidationResult, context: ClinicalContext) -> str:
    """Render a plain-text report suitable for showing next to the note."""

    lines: List[str] = [
        f"VALIDATION REPORT - {context.clinic} ({context.emr_dialect.value})",
        f"Score: {result.score}/100",
        f"Status: {'VALID' if result.is_valid else 'INVALID'}",
        "",
    ]

    if result.errors:
        lines.append(f"ERRORS ({len(result.errors)}):")
        lines.extend(f"{i}. [{f.category.value}] {f.message}" for i, f in enumerate(result.errors, start=1))
        lines.append("")

    if result.warnings:
        lines.append(f"WARNINGS ({len(result.warnings)}):")
        lines.extend(f"{i}. [{f.category.value}] {f.message}" for i, f in enumerate(result.warnings, start=1))
        lines.append("")

    if result.recommendations:
        lines.append(f"RECOMMENDATIONS ({len(result.recommendations)}):")
        lines.extend(f"{i}. {rec}" for i, rec in enumerate(result.recommendations, start=1))

    return "\n".join(lines).rstrip() + "\n"
