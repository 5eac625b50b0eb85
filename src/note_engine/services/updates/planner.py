from __future__ import annotations

from typing import Dict, Iterable, List

from src.note_engine.domain.errors import SectionNotFoundError
from src.note_engine.domain.models.clinical_context import VisitType
from src.note_engine.domain.models.note import ParsedNote, Section, StandardizedSectionType
from src.note_engine.domain.models.updates import (
    GenerationRequest,
    RegenerationItem,
    RegenerationPlan,
    UpdateDirective,
)
from src.note_engine.services.updates.instructions import formatting_constraints, instructions_for


class UpdatePlanner:
    """Partitions a parsed note into preserved sections and generation requests.

    Planning is deterministic and performs no I/O. Every section the caller
    asks to update must exist in the note: missing ones are reported together
    through :class:`SectionNotFoundError` rather than skipped.
    """

    def plan(
        self,
        parsed_note: ParsedNote,
        directives: Iterable[UpdateDirective],
        *,
        source_material: str = "",
        visit_type: VisitType = VisitType.OTHER,
    ) -> RegenerationPlan:
        by_type = self._index_directives(directives)

        present = {section.type for section in parsed_note.sections}
        missing = [t for t, d in by_type.items() if d.should_update and t not in present]
        if missing:
            raise SectionNotFoundError(missing)

        constraints = formatting_constraints(parsed_note.detected_dialect)
        preserve: List[Section] = []
        regenerate: List[RegenerationItem] = []
        for section in sorted(parsed_note.sections, key=lambda s: s.start_offset):
            directive = by_type.get(section.type)
            if directive is None or not directive.should_update:
                preserve.append(section)
                continue
            request = GenerationRequest(
                section_type=section.type,
                section_title=section.title,
                original_content=section.body,
                source_material=source_material,
                instructions=instructions_for(section.type, visit_type),
                formatting_constraints=constraints,
                visit_type=visit_type,
                position=section.start_offset,
            )
            regenerate.append(
                RegenerationItem(
                    section=section,
                    request=request,
                    merge_strategy=directive.merge_strategy,
                    update_reason=directive.update_reason,
                )
            )

        return RegenerationPlan(preserve=preserve, regenerate=regenerate)

    @staticmethod
    def _index_directives(
        directives: Iterable[UpdateDirective],
    ) -> Dict[StandardizedSectionType, UpdateDirective]:
        by_type: Dict[StandardizedSectionType, UpdateDirective] = {}
        for directive in directives:
            if directive.section_type in by_type:
                raise ValueError(f"Multiple directives given for section {directive.section_type.value}")
            by_type[directive.section_type] = directive
        return by_type


update_planner = UpdatePlanner()
