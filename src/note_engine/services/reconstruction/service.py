from __future__ import annotations

from typing import Iterable, List, Mapping, Optional

from src.note_engine.config import settings
from src.note_engine.domain.models.note import (
    SOAP_SECTION_ORDER,
    NoteFormat,
    ParsedNote,
    Section,
    StandardizedSectionType,
)
from src.note_engine.domain.models.updates import (
    ChangeAction,
    MergeStrategy,
    ReconstructionResult,
    SectionChange,
)
from src.note_engine.services.sections.registry import canonical_title

APPEND_DELIMITER = "\n\n"
MERGE_DELIMITER = "\n"

PRESERVED_REASON = "Preserved from previous note"


def merge_content(original: str, new: str, strategy: MergeStrategy) -> str:
    """Combine original and regenerated section bodies.

    MERGE is plain concatenation: no deduplication or conflict resolution is
    attempted.
    """

    if strategy == MergeStrategy.REPLACE or not original:
        return new
    if strategy == MergeStrategy.APPEND:
        return f"{original}{APPEND_DELIMITER}{new}"
    return f"{original}{MERGE_DELIMITER}{new}"


def render_section(title: str, body: str) -> str:
    return f"{title}:\n{body}\n\n"


class NoteReconstructionService:
    """Reassembles a note from preserved and regenerated sections.

    SOAP notes are emitted in canonical Subjective/Objective/Assessment/Plan
    order followed by any other sections in their original relative order;
    every other note keeps its original document order. Preserved sections
    are copied verbatim (surrounding whitespace trimmed).
    """

    def __init__(self, *, regenerated_confidence: Optional[float] = None) -> None:
        self._regenerated_confidence = (
            regenerated_confidence
            if regenerated_confidence is not None
            else settings.regenerated_section_confidence
        )

    def reconstruct(
        self,
        parsed_note: ParsedNote,
        preserve: Iterable[Section],
        regenerated: Mapping[StandardizedSectionType, str],
        merge_strategies: Mapping[StandardizedSectionType, MergeStrategy],
        *,
        reasons: Optional[Mapping[StandardizedSectionType, str]] = None,
    ) -> ReconstructionResult:
        reasons = reasons or {}
        preserved_types = {section.type for section in preserve}

        parts: List[str] = []
        preamble = parsed_note.preamble.strip() if parsed_note.sections else ""
        if preamble:
            parts.append(f"{preamble}\n\n")

        changes: List[SectionChange] = []
        for section in self._ordered_sections(parsed_note):
            if section.type in regenerated:
                strategy = merge_strategies.get(section.type, MergeStrategy.REPLACE)
                body = merge_content(section.body, regenerated[section.type], strategy)
                action = ChangeAction.UPDATED if strategy == MergeStrategy.REPLACE else ChangeAction.MERGED
                confidence = self._regenerated_confidence
                reason = reasons.get(section.type) or f"Regenerated ({strategy.value.lower()})"
            elif section.type in preserved_types:
                body = section.body
                action = ChangeAction.PRESERVED
                confidence = 1.0
                reason = reasons.get(section.type) or PRESERVED_REASON
            else:
                raise ValueError(
                    f"No content supplied for section {section.type.value}: it is neither preserved nor regenerated"
                )

            parts.append(render_section(section.title, body))
            changes.append(
                SectionChange(
                    section_type=section.type,
                    action=action,
                    original_content=section.body,
                    new_content=body,
                    change_reason=reason,
                    confidence=confidence,
                )
            )

        # Regenerated sections the previous note did not have are appended in
        # registry order.
        present = {section.type for section in parsed_note.sections}
        for section_type in StandardizedSectionType:
            if section_type not in regenerated or section_type in present:
                continue
            body = regenerated[section_type]
            parts.append(render_section(canonical_title(section_type), body))
            changes.append(
                SectionChange(
                    section_type=section_type,
                    action=ChangeAction.ADDED,
                    original_content="",
                    new_content=body,
                    change_reason=reasons.get(section_type) or "Section added",
                    confidence=self._regenerated_confidence,
                )
            )

        return ReconstructionResult(content="".join(parts), changes=changes)

    @staticmethod
    def _ordered_sections(parsed_note: ParsedNote) -> List[Section]:
        in_document_order = sorted(parsed_note.sections, key=lambda s: s.start_offset)
        if parsed_note.detected_format != NoteFormat.SOAP:
            return in_document_order
        soap = [parsed_note.section_for(t) for t in SOAP_SECTION_ORDER]
        rest = [s for s in in_document_order if s.type not in SOAP_SECTION_ORDER]
        return [s for s in soap if s is not None] + rest


reconstruction_service = NoteReconstructionService()
