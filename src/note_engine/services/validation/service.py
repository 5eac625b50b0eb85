from __future__ import annotations

from typing import Iterable, List, Optional

from src.note_engine.domain.models.clinical_context import ClinicalContext
from src.note_engine.domain.models.validation import (
    FindingCategory,
    FindingSeverity,
    ValidationFinding,
    ValidationResult,
)
from src.note_engine.services.validation.rules import VALIDATION_RULES, ValidationRule

MAX_SCORE = 100


class NoteValidationService:
    """Scores a finished note against EMR formatting and completeness rules.

    Validation is a pure function of the note text and its clinical context.
    Every rule runs and every finding is kept; the score starts at 100 and
    each finding subtracts its penalty, floored at 0.
    """

    def __init__(self, rules: Optional[Iterable[ValidationRule]] = None) -> None:
        self._rules = tuple(rules) if rules is not None else VALIDATION_RULES

    def validate(self, text: str, context: ClinicalContext) -> ValidationResult:
        if not text or not text.strip():
            empty = ValidationFinding(
                severity=FindingSeverity.ERROR,
                category=FindingCategory.STRUCTURE,
                code="empty_note",
                message="Note content is empty",
            )
            return ValidationResult(is_valid=False, errors=[empty], score=0)

        findings: List[ValidationFinding] = []
        for rule in self._rules:
            findings.extend(rule(text, context))

        errors = [f for f in findings if f.severity == FindingSeverity.ERROR]
        warnings = [f for f in findings if f.severity == FindingSeverity.WARNING]
        recommendations = list(dict.fromkeys(f.recommendation for f in findings if f.recommendation))
        score = max(0, MAX_SCORE - sum(f.penalty for f in findings))

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            recommendations=recommendations,
            score=score,
        )


validation_service = NoteValidationService()
