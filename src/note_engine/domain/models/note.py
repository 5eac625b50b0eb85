from __future__ import annotations

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict

from src.note_engine.domain.models.clinical_context import EMRDialect


class StandardizedSectionType(str, Enum):
    """Closed set of canonical note-section categories."""

    HPI = "HPI"
    REVIEW_OF_SYSTEMS = "REVIEW_OF_SYSTEMS"
    PSYCHIATRIC_EXAM = "PSYCHIATRIC_EXAM"
    ASSESSMENT_AND_PLAN = "ASSESSMENT_AND_PLAN"
    CURRENT_MEDICATIONS = "CURRENT_MEDICATIONS"
    MEDICATIONS_PLAN = "MEDICATIONS_PLAN"
    RISKS = "RISKS"
    SAFETY_PLAN = "SAFETY_PLAN"
    QUESTIONNAIRES_SURVEYS = "QUESTIONNAIRES_SURVEYS"
    MEDICAL = "MEDICAL"
    PSYCHOSOCIAL = "PSYCHOSOCIAL"
    FOLLOW_UP = "FOLLOW_UP"

    # Legacy SOAP sections
    SUBJECTIVE = "SUBJECTIVE"
    OBJECTIVE = "OBJECTIVE"
    ASSESSMENT = "ASSESSMENT"
    PLAN = "PLAN"

    UNKNOWN = "UNKNOWN"


SOAP_SECTION_ORDER = (
    StandardizedSectionType.SUBJECTIVE,
    StandardizedSectionType.OBJECTIVE,
    StandardizedSectionType.ASSESSMENT,
    StandardizedSectionType.PLAN,
)


class NoteFormat(str, Enum):
    SOAP = "SOAP"
    NARRATIVE = "NARRATIVE"


class SectionMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    word_count: int
    has_emr_syntax: bool
    is_standardized: bool
    # Exact header text as it appeared in the note, colon included. Empty for
    # sections produced by the narrative fallback.
    original_header_text: str = ""


class Section(BaseModel):
    """One labeled slice of a parsed note.

    ``title`` and ``content`` are verbatim substrings of the source text.
    ``content`` runs from the end of the header to the start of the next
    section, so it usually carries the surrounding line breaks.
    """

    model_config = ConfigDict(frozen=True)

    type: StandardizedSectionType
    title: str
    content: str
    start_offset: int
    end_offset: int
    confidence: float
    metadata: SectionMetadata

    @property
    def body(self) -> str:
        return self.content.strip()


class ParsedNote(BaseModel):
    model_config = ConfigDict(frozen=True)

    original_content: str
    sections: List[Section] = []
    detected_format: NoteFormat = NoteFormat.NARRATIVE
    detected_dialect: EMRDialect = EMRDialect.OTHER
    overall_confidence: float = 0.0
    warnings: List[str] = []
    errors: List[str] = []
    processing_duration_ms: float = 0.0

    @property
    def preamble(self) -> str:
        """Text before the first section (e.g. a patient banner)."""

        if not self.sections:
            return self.original_content
        return self.original_content[: self.sections[0].start_offset]

    def section_for(self, section_type: StandardizedSectionType) -> Optional[Section]:
        for section in self.sections:
            if section.type == section_type:
                return section
        return None

    def standardized_sections(self) -> List[Section]:
        return [s for s in self.sections if s.metadata.is_standardized]

    def sections_by_group(self) -> Dict[str, List[Section]]:
        from src.note_engine.services.sections.registry import section_group

        groups: Dict[str, List[Section]] = {}
        for section in self.sections:
            groups.setdefault(section_group(section.type), []).append(section)
        return groups
