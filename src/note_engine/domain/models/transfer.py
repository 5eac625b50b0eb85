from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel

from src.note_engine.domain.models.note import ParsedNote
from src.note_engine.domain.models.updates import SectionChange
from src.note_engine.domain.models.validation import ValidationResult


class TransferOfCareResult(BaseModel):
    """Outcome of updating a previous note with a new encounter.

    When the previous note cannot be split into sections, ``content`` and
    ``validation`` are None and ``errors`` carries the parse errors.
    """

    parsed_note: ParsedNote
    content: Optional[str] = None
    changes: List[SectionChange] = []
    validation: Optional[ValidationResult] = None
    errors: List[str] = []
