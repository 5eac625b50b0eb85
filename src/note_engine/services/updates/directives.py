from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Callable, Dict, List, Mapping, Tuple

from src.note_engine.domain.models.clinical_context import VisitType
from src.note_engine.domain.models.note import ParsedNote, StandardizedSectionType as T
from src.note_engine.domain.models.updates import MergeStrategy, UpdateDirective

DEFAULT_REASON = "Standard update for this visit type"

# (should_update, reason) defaults per visit type. Section types missing from
# a visit's table are updated with DEFAULT_REASON.
_VISIT_DEFAULTS: Mapping[VisitType, Mapping[T, Tuple[bool, str]]] = MappingProxyType(
    {
        VisitType.TRANSFER_OF_CARE: MappingProxyType(
            {
                T.SUBJECTIVE: (True, "Update with interval history since last visit"),
                T.OBJECTIVE: (True, "Current mental status and clinical findings"),
                T.ASSESSMENT: (True, "Revised diagnostic impression and severity"),
                T.PLAN: (True, "Updated treatment plan and recommendations"),
                T.HPI: (True, "Recent developments in symptom presentation"),
                T.PSYCHIATRIC_EXAM: (True, "Current mental status examination findings"),
            }
        ),
        VisitType.FOLLOW_UP: MappingProxyType(
            {
                T.SUBJECTIVE: (True, "Interval changes and treatment response"),
                T.OBJECTIVE: (True, "Current clinical presentation"),
                T.ASSESSMENT: (False, "Typically preserved from previous visit"),
                T.PLAN: (True, "Adjusted based on treatment response"),
                T.HPI: (True, "Recent symptom changes"),
                T.PSYCHIATRIC_EXAM: (True, "Current mental status"),
            }
        ),
        VisitType.PSYCHIATRIC_INTAKE: MappingProxyType(
            {
                T.SUBJECTIVE: (True, DEFAULT_REASON),
                T.OBJECTIVE: (True, DEFAULT_REASON),
                T.ASSESSMENT: (True, DEFAULT_REASON),
                T.PLAN: (True, DEFAULT_REASON),
                T.HPI: (True, DEFAULT_REASON),
                T.PSYCHIATRIC_EXAM: (True, DEFAULT_REASON),
            }
        ),
    }
)


def default_directives(parsed_note: ParsedNote, visit_type: VisitType) -> List[UpdateDirective]:
    """One REPLACE directive per detected section, using the visit's defaults."""

    table = _VISIT_DEFAULTS.get(visit_type, {})
    directives: List[UpdateDirective] = []
    for section in parsed_note.sections:
        should_update, reason = table.get(section.type, (True, DEFAULT_REASON))
        directives.append(
            UpdateDirective(
                section_type=section.type,
                should_update=should_update,
                update_reason=reason,
                merge_strategy=MergeStrategy.REPLACE,
            )
        )
    return directives


class DirectivePreset(str, Enum):
    UPDATE_ALL = "update_all"
    PRESERVE_ASSESSMENT = "preserve_assessment"
    UPDATE_PLAN_ONLY = "update_plan_only"
    STANDARD_FOLLOW_UP = "standard_follow_up"


_PRESET_RULES: Dict[DirectivePreset, Callable[[T], bool]] = {
    DirectivePreset.UPDATE_ALL: lambda t: True,
    DirectivePreset.PRESERVE_ASSESSMENT: lambda t: t not in {T.ASSESSMENT, T.ASSESSMENT_AND_PLAN},
    DirectivePreset.UPDATE_PLAN_ONLY: lambda t: t in {T.PLAN, T.ASSESSMENT_AND_PLAN, T.MEDICATIONS_PLAN},
    DirectivePreset.STANDARD_FOLLOW_UP: lambda t: t
    in {T.SUBJECTIVE, T.OBJECTIVE, T.PLAN, T.HPI, T.PSYCHIATRIC_EXAM},
}


def apply_preset(directives: List[UpdateDirective], preset: DirectivePreset) -> List[UpdateDirective]:
    """Return copies of ``directives`` with ``should_update`` set by the preset."""

    rule = _PRESET_RULES[preset]
    return [d.model_copy(update={"should_update": rule(d.section_type)}) for d in directives]
