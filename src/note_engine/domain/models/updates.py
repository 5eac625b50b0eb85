from __future__ import annotations

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict

from src.note_engine.domain.models.clinical_context import VisitType
from src.note_engine.domain.models.note import Section, StandardizedSectionType


class MergeStrategy(str, Enum):
    REPLACE = "REPLACE"
    APPEND = "APPEND"
    # Naive concatenation without deduplication.
    MERGE = "MERGE"


class ChangeAction(str, Enum):
    UPDATED = "UPDATED"
    PRESERVED = "PRESERVED"
    MERGED = "MERGED"
    ADDED = "ADDED"


class UpdateDirective(BaseModel):
    """Caller's choice for one section type: regenerate it or keep it."""

    section_type: StandardizedSectionType
    should_update: bool = False
    update_reason: str = ""
    merge_strategy: MergeStrategy = MergeStrategy.REPLACE


class GenerationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    section_type: StandardizedSectionType
    section_title: str
    original_content: str
    source_material: str
    instructions: str
    formatting_constraints: List[str]
    visit_type: VisitType
    # Start offset of the section in the source note; used to restore order.
    position: int

    @property
    def prompt(self) -> str:
        """Render the single-section prompt sent to the generation backend."""

        constraints = "\n".join(f"- {line}" for line in self.formatting_constraints)
        return (
            f"# UPDATE SINGLE SECTION: {self.section_title}\n\n"
            f"## CURRENT SECTION CONTENT:\n{self.original_content}\n\n"
            f"## NEW CLINICAL INFORMATION:\n{self.source_material}\n\n"
            f"## SECTION UPDATE INSTRUCTIONS:\n{self.instructions}\n\n"
            f"## FORMATTING REQUIREMENTS:\n{constraints}\n\n"
            "## UPDATED SECTION CONTENT:"
        )


class RegenerationItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    section: Section
    request: GenerationRequest
    merge_strategy: MergeStrategy = MergeStrategy.REPLACE
    update_reason: str = ""


class RegenerationPlan(BaseModel):
    model_config = ConfigDict(frozen=True)

    preserve: List[Section] = []
    regenerate: List[RegenerationItem] = []


class SectionChange(BaseModel):
    """Audit record describing what happened to one section."""

    section_type: StandardizedSectionType
    action: ChangeAction
    original_content: str
    new_content: str
    change_reason: str
    confidence: float


class ReconstructionResult(BaseModel):
    content: str
    changes: List[SectionChange] = []
