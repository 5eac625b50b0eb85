from __future__ import annotations

import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Mapping, Optional, Tuple

from src.note_engine.domain.models.note import StandardizedSectionType as T


@dataclass(frozen=True)
class HeaderVariant:
    text: str
    confidence: float


@dataclass(frozen=True)
class SectionHeaderSpec:
    """Recognized header variants for one standardized section type."""

    section_type: T
    canonical: str
    aliases: Tuple[HeaderVariant, ...]
    is_standardized: bool
    group: str

    @property
    def variants(self) -> Tuple[HeaderVariant, ...]:
        return (HeaderVariant(self.canonical, 1.0),) + self.aliases


@dataclass(frozen=True)
class CompiledVariant:
    section_type: T
    variant: HeaderVariant
    is_canonical: bool
    pattern: "re.Pattern[str]"


def _aliases(*pairs: Tuple[str, float]) -> Tuple[HeaderVariant, ...]:
    return tuple(HeaderVariant(text, confidence) for text, confidence in pairs)


_SPECS = (
    SectionHeaderSpec(
        T.HPI,
        "History of Present Illness",
        _aliases(
            ("History of Presenting Illness", 0.8),
            ("Present Illness", 0.8),
            ("Interval History", 0.7),
            ("Reason for Visit", 0.7),
            ("HPI", 0.7),
        ),
        True,
        "CLINICAL_ASSESSMENT",
    ),
    SectionHeaderSpec(
        T.REVIEW_OF_SYSTEMS,
        "Review of Systems",
        _aliases(
            ("Review of Symptoms", 0.8),
            ("Systems Review", 0.8),
            ("Symptom Review", 0.7),
            ("ROS", 0.7),
        ),
        True,
        "CLINICAL_ASSESSMENT",
    ),
    SectionHeaderSpec(
        T.PSYCHIATRIC_EXAM,
        "Psychiatric Exam",
        _aliases(
            ("Psychiatric Examination", 0.8),
            ("Mental Status Exam", 0.8),
            ("Mental Status Examination", 0.8),
            ("Psych Exam", 0.7),
            ("MSE", 0.7),
        ),
        True,
        "CLINICAL_ASSESSMENT",
    ),
    SectionHeaderSpec(
        T.ASSESSMENT_AND_PLAN,
        "Assessment and Plan",
        _aliases(
            ("Assessment & Plan", 0.8),
            ("Assessment/Plan", 0.8),
            ("Impression and Plan", 0.7),
            ("A&P", 0.7),
            ("A/P", 0.6),
        ),
        True,
        "PLAN_AND_SAFETY",
    ),
    SectionHeaderSpec(
        T.CURRENT_MEDICATIONS,
        "Current Medications",
        _aliases(
            ("Active Medications", 0.8),
            ("Medication List", 0.8),
            ("Current Meds", 0.7),
            ("Medications", 0.6),
            ("Meds", 0.6),
        ),
        True,
        "MEDICATIONS",
    ),
    SectionHeaderSpec(
        T.MEDICATIONS_PLAN,
        "Medication Plan",
        _aliases(
            ("Medications Plan", 0.8),
            ("Medication Changes", 0.8),
            ("Medication Management", 0.8),
            ("Prescription Changes", 0.7),
            ("Med Changes", 0.7),
        ),
        True,
        "MEDICATIONS",
    ),
    SectionHeaderSpec(
        T.RISKS,
        "Risks",
        _aliases(
            ("Risk Assessment", 0.8),
            ("Suicide Risk Assessment", 0.8),
            ("Risk Factors", 0.7),
            ("Risk Evaluation", 0.7),
            ("Safety Risk", 0.6),
        ),
        True,
        "PLAN_AND_SAFETY",
    ),
    SectionHeaderSpec(
        T.SAFETY_PLAN,
        "Safety Plan",
        _aliases(
            ("Safety Planning", 0.8),
            ("Crisis Plan", 0.8),
            ("Emergency Plan", 0.6),
        ),
        True,
        "PLAN_AND_SAFETY",
    ),
    SectionHeaderSpec(
        T.QUESTIONNAIRES_SURVEYS,
        "Questionnaires/Surveys",
        _aliases(
            ("Questionnaires", 0.8),
            ("Surveys", 0.7),
            ("Rating Scales", 0.7),
            ("Assessment Scales", 0.7),
            ("Screening Tools", 0.6),
        ),
        True,
        "CLINICAL_ASSESSMENT",
    ),
    SectionHeaderSpec(
        T.MEDICAL,
        "Medical",
        _aliases(
            ("Medical History", 0.8),
            ("Past Medical History", 0.8),
            ("Medical Update", 0.7),
            ("Medical Conditions", 0.7),
            ("PMH", 0.6),
        ),
        True,
        "EXAMINATION",
    ),
    SectionHeaderSpec(
        T.PSYCHOSOCIAL,
        "Psychosocial",
        _aliases(
            ("Psychosocial Interventions", 0.8),
            ("Therapeutic Interventions", 0.7),
            ("Psychotherapy", 0.7),
            ("Counseling", 0.6),
            ("Therapy", 0.6),
        ),
        True,
        "PLAN_AND_SAFETY",
    ),
    SectionHeaderSpec(
        T.FOLLOW_UP,
        "Follow-Up",
        _aliases(
            ("Follow Up", 0.8),
            ("Follow-up Plan", 0.8),
            ("Followup", 0.7),
            ("Return Visit", 0.7),
            ("Next Appointment", 0.7),
        ),
        True,
        "FOLLOW_UP",
    ),
    SectionHeaderSpec(
        T.SUBJECTIVE,
        "Subjective",
        _aliases(("Subjective Findings", 0.8)),
        False,
        "LEGACY_SOAP",
    ),
    SectionHeaderSpec(
        T.OBJECTIVE,
        "Objective",
        _aliases(("Objective Findings", 0.8)),
        False,
        "LEGACY_SOAP",
    ),
    SectionHeaderSpec(
        T.ASSESSMENT,
        "Assessment",
        _aliases(
            ("Clinical Assessment", 0.8),
            ("Diagnostic Impression", 0.7),
            ("Impression", 0.6),
        ),
        False,
        "LEGACY_SOAP",
    ),
    SectionHeaderSpec(
        T.PLAN,
        "Plan",
        _aliases(
            ("Treatment Plan", 0.8),
            ("Plan of Care", 0.8),
        ),
        False,
        "LEGACY_SOAP",
    ),
    SectionHeaderSpec(T.UNKNOWN, "Unknown Section", (), False, "OTHER"),
)

SECTION_HEADER_REGISTRY: Mapping[T, SectionHeaderSpec] = MappingProxyType(
    {spec.section_type: spec for spec in _SPECS}
)


def _compile_variant(text: str) -> "re.Pattern[str]":
    # Line-anchored, case-insensitive, any run of spaces/tabs between words,
    # terminated by a colon or by the end of the line.
    words = r"[ \t]+".join(re.escape(word) for word in text.split())
    return re.compile(
        rf"^[ \t]*(?P<title>{words})[ \t]*(?::|(?=\r?$))",
        re.IGNORECASE | re.MULTILINE,
    )


def _compile_all() -> Tuple[CompiledVariant, ...]:
    compiled = []
    for spec in _SPECS:
        if spec.section_type == T.UNKNOWN:
            continue
        for variant in spec.variants:
            compiled.append(
                CompiledVariant(
                    section_type=spec.section_type,
                    variant=variant,
                    is_canonical=variant.text == spec.canonical,
                    pattern=_compile_variant(variant.text),
                )
            )
    return tuple(compiled)


COMPILED_HEADER_VARIANTS: Tuple[CompiledVariant, ...] = _compile_all()


def canonical_title(section_type: T) -> str:
    return SECTION_HEADER_REGISTRY[section_type].canonical


def section_group(section_type: T) -> str:
    return SECTION_HEADER_REGISTRY[section_type].group


def is_standardized(section_type: T) -> bool:
    return SECTION_HEADER_REGISTRY[section_type].is_standardized


def variants_for(section_type: T) -> Tuple[CompiledVariant, ...]:
    return tuple(v for v in COMPILED_HEADER_VARIANTS if v.section_type == section_type)


def lookup_header(header_text: str) -> Optional[T]:
    """Return the section type a bare header string belongs to, if any."""

    normalized = " ".join(header_text.strip().rstrip(":").split()).lower()
    for spec in _SPECS:
        for variant in spec.variants:
            if variant.text.lower() == normalized:
                return spec.section_type
    return None
