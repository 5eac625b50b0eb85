from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class FindingSeverity(str, Enum):
    ERROR = "ERROR"
    WARNING = "WARNING"


class FindingCategory(str, Enum):
    DIALECT = "DIALECT"
    STRUCTURE = "STRUCTURE"
    QUALITY = "QUALITY"
    COMPLETENESS = "COMPLETENESS"


class ValidationFinding(BaseModel):
    severity: FindingSeverity
    category: FindingCategory
    code: str
    message: str
    penalty: int = 0
    recommendation: Optional[str] = None


class ValidationResult(BaseModel):
    """Outcome of validating a note against one clinical context.

    ``is_valid`` is true iff there are no ERROR findings; warnings only lower
    the score.
    """

    is_valid: bool
    errors: List[ValidationFinding] = []
    warnings: List[ValidationFinding] = []
    recommendations: List[str] = []
    score: int = 100
