from __future__ import annotations

import re
from typing import Callable, List, Tuple

from src.note_engine.domain.models.clinical_context import ClinicalContext, EMRDialect, VisitType
from src.note_engine.domain.models.note import SOAP_SECTION_ORDER
from src.note_engine.domain.models.validation import FindingCategory, FindingSeverity, ValidationFinding
from src.note_engine.services.sections.detector import paragraph_spans, section_detector
from src.note_engine.services.sections.emr_syntax import EPIC_TERMS, MARKER_LABELS, EMRMarkerKind, find_markers
from src.note_engine.services.sections.registry import canonical_title

ValidationRule = Callable[[str, ClinicalContext], List[ValidationFinding]]

MARKER_PENALTIES = {
    EMRMarkerKind.SMART_PHRASE: 30,
    EMRMarkerKind.DOT_PHRASE: 20,
    EMRMarkerKind.SMART_LIST: 20,
    EMRMarkerKind.WILDCARD: 15,
}
EPIC_TERM_PENALTY = 10
EPIC_NO_MARKERS_MIN_CHARS = 500

MIN_SECTION_BODY_CHARS = 20
MIN_NOTE_CHARS = 200
MAX_NOTE_CHARS = 15000
MIN_PARAGRAPHS = 4
MIN_CLINICAL_TERMS = 3
MIN_MSE_COMPONENTS = 5

CLINICAL_TERMS = (
    "mental status",
    "mood",
    "affect",
    "thought",
    "behavior",
    "assessment",
    "plan",
    "treatment",
    "medication",
    "therapy",
)

PLACEHOLDERS = ("[To be documented]", "[TBD]", "[TODO]", "XXX", "placeholder")

MSE_COMPONENTS = (
    "appearance",
    "behavior",
    "speech",
    "mood",
    "affect",
    "thought process",
    "thought content",
    "cognition",
    "insight",
    "judgment",
)

SAFETY_TERMS = ("risk", "safety", "suicid", "harm", "danger")

# Whole words for exam components; safety terms are stems ("suicid" covers
# suicidal and suicide) but must still start a word, so "pharmacy" is not "harm".
_MSE_COMPONENT_RES = tuple(re.compile(rf"\b{re.escape(c)}\b") for c in MSE_COMPONENTS)
_SAFETY_RE = re.compile(r"\b(?:" + "|".join(re.escape(t) for t in SAFETY_TERMS) + r")")

# (term, penalty) per visit type; a term missing from the note text costs its
# penalty.
COMPLETENESS_CHECKLISTS = {
    VisitType.PSYCHIATRIC_INTAKE: (
        ("chief complaint", 15),
        ("history of present illness", 10),
        ("mental status", 15),
        ("risk assessment", 20),
        ("treatment plan", 10),
    ),
    VisitType.TRANSFER_OF_CARE: (
        ("current treatment", 15),
        ("medication", 10),
        ("response", 10),
        ("recommendation", 15),
    ),
    VisitType.FOLLOW_UP: (
        ("medication", 5),
        ("mood", 5),
        ("plan", 5),
    ),
}

PSYCHIATRIC_VISIT_TYPES = frozenset(
    {VisitType.PSYCHIATRIC_INTAKE, VisitType.TRANSFER_OF_CARE, VisitType.FOLLOW_UP}
)

# An @...@ token that is not a well-formed smart phrase.
_AT_TOKEN_RE = re.compile(r"@[^@\s]+@")
_SMART_PHRASE_RE = re.compile(r"@[A-Z][A-Z0-9]*[A-Z]@")


def _finding(
    severity: FindingSeverity,
    category: FindingCategory,
    code: str,
    message: str,
    penalty: int,
    recommendation: str | None = None,
) -> ValidationFinding:
    return ValidationFinding(
        severity=severity,
        category=category,
        code=code,
        message=message,
        penalty=penalty,
        recommendation=recommendation,
    )


def check_dialect(text: str, context: ClinicalContext) -> List[ValidationFinding]:
    """EMR-specific syntax rules.

    Plain-text EMRs (Credible) must not contain any Epic macro syntax or Epic
    terminology. Epic notes may use macros freely; they are only nudged when
    a long note has none, or when an ``@...@`` token looks malformed.
    """

    findings: List[ValidationFinding] = []
    markers = find_markers(text)

    if context.emr_dialect == EMRDialect.CREDIBLE:
        for kind, penalty in MARKER_PENALTIES.items():
            found = [m.text for m in markers if m.kind == kind]
            if not found:
                continue
            label = MARKER_LABELS[kind]
            findings.append(
                _finding(
                    FindingSeverity.ERROR,
                    FindingCategory.DIALECT,
                    f"credible_{kind.value.lower()}",
                    f"Epic {label} syntax detected in Credible EMR note: {', '.join(dict.fromkeys(found))}",
                    penalty,
                    "Remove Epic macro syntax before filing in a plain-text EMR",
                )
            )
        for term in EPIC_TERMS:
            if term in text:
                findings.append(
                    _finding(
                        FindingSeverity.ERROR,
                        FindingCategory.DIALECT,
                        "credible_epic_term",
                        f'Epic terminology "{term}" detected in Credible EMR note',
                        EPIC_TERM_PENALTY,
                    )
                )

    elif context.emr_dialect == EMRDialect.EPIC:
        if not markers and len(text) > EPIC_NO_MARKERS_MIN_CHARS:
            findings.append(
                _finding(
                    FindingSeverity.WARNING,
                    FindingCategory.DIALECT,
                    "epic_no_markers",
                    "No Epic SmartPhrases or DotPhrases detected",
                    5,
                    "Consider adding SmartPhrases or DotPhrases for workflow efficiency",
                )
            )
        malformed = [t for t in _AT_TOKEN_RE.findall(text) if not _SMART_PHRASE_RE.fullmatch(t)]
        if malformed:
            findings.append(
                _finding(
                    FindingSeverity.WARNING,
                    FindingCategory.DIALECT,
                    "epic_malformed_smart_phrase",
                    f"Potentially malformed SmartPhrases: {', '.join(dict.fromkeys(malformed))}",
                    10,
                    "SmartPhrase names are uppercase letters and digits between @ signs",
                )
            )

    return findings


def check_structure(text: str, context: ClinicalContext) -> List[ValidationFinding]:
    findings: List[ValidationFinding] = []

    first_seen = {}
    for header in section_detector.find_headers(text):
        if header.section_type in SOAP_SECTION_ORDER:
            first_seen.setdefault(header.section_type, header.start)

    missing = [t for t in SOAP_SECTION_ORDER if t not in first_seen]
    for section_type in missing:
        title = canonical_title(section_type)
        findings.append(
            _finding(
                FindingSeverity.ERROR,
                FindingCategory.STRUCTURE,
                "missing_soap_section",
                f"Missing SOAP section: {title.upper()}",
                15,
                f"Add a '{title}:' section",
            )
        )

    positions = [first_seen[t] for t in SOAP_SECTION_ORDER if t in first_seen]
    if len(positions) > 1 and positions != sorted(positions):
        findings.append(
            _finding(
                FindingSeverity.WARNING,
                FindingCategory.STRUCTURE,
                "soap_out_of_order",
                "SOAP sections appear to be out of order",
                10,
                "Order sections as Subjective, Objective, Assessment, Plan",
            )
        )

    # Only sections backed by a real header; heuristic fallback sections are
    # not something the author wrote.
    for section in section_detector.parse(text).sections:
        if not section.metadata.original_header_text:
            continue
        if len(section.body) < MIN_SECTION_BODY_CHARS:
            findings.append(
                _finding(
                    FindingSeverity.WARNING,
                    FindingCategory.STRUCTURE,
                    "short_section",
                    f"{section.title} section appears to be very short or empty",
                    8,
                    f"Expand the {section.title} section",
                )
            )

    return findings


def count_paragraphs(text: str) -> int:
    return len(paragraph_spans(text))


def check_quality(text: str, context: ClinicalContext) -> List[ValidationFinding]:
    findings: List[ValidationFinding] = []
    lowered = text.lower()

    if len(text) < MIN_NOTE_CHARS:
        findings.append(
            _finding(
                FindingSeverity.WARNING,
                FindingCategory.QUALITY,
                "note_too_short",
                "Note content seems very short for a clinical note",
                15,
                "Consider adding more detail to each section",
            )
        )
    if len(text) > MAX_NOTE_CHARS:
        findings.append(
            _finding(
                FindingSeverity.WARNING,
                FindingCategory.QUALITY,
                "note_too_long",
                "Note content is very long; consider condensing",
                10,
                "Review for redundant information and consider breaking into multiple notes",
            )
        )
    if count_paragraphs(text) < MIN_PARAGRAPHS:
        findings.append(
            _finding(
                FindingSeverity.WARNING,
                FindingCategory.QUALITY,
                "few_paragraphs",
                "Note lacks proper paragraph structure",
                10,
                "Add paragraph breaks for better readability",
            )
        )
    if sum(1 for term in CLINICAL_TERMS if term in lowered) < MIN_CLINICAL_TERMS:
        findings.append(
            _finding(
                FindingSeverity.WARNING,
                FindingCategory.QUALITY,
                "limited_terminology",
                "Limited clinical terminology detected",
                8,
                "Consider using more specific psychiatric terminology",
            )
        )
    for placeholder in PLACEHOLDERS:
        if placeholder.lower() in lowered:
            findings.append(
                _finding(
                    FindingSeverity.WARNING,
                    FindingCategory.QUALITY,
                    "placeholder_text",
                    f"Placeholder text detected: {placeholder}",
                    5,
                    "Replace placeholder text with actual clinical content",
                )
            )

    return findings


def check_completeness(text: str, context: ClinicalContext) -> List[ValidationFinding]:
    findings: List[ValidationFinding] = []
    lowered = text.lower()
    visit_label = context.visit_type.value.replace("_", " ")

    for term, penalty in COMPLETENESS_CHECKLISTS.get(context.visit_type, ()):
        if term not in lowered:
            findings.append(
                _finding(
                    FindingSeverity.WARNING,
                    FindingCategory.COMPLETENESS,
                    "missing_" + term.replace(" ", "_"),
                    f"Missing {term} for {visit_label} visit",
                    penalty,
                    f"Document {term} for {visit_label} visit",
                )
            )

    if context.visit_type in PSYCHIATRIC_VISIT_TYPES:
        if sum(1 for pattern in _MSE_COMPONENT_RES if pattern.search(lowered)) < MIN_MSE_COMPONENTS:
            findings.append(
                _finding(
                    FindingSeverity.WARNING,
                    FindingCategory.COMPLETENESS,
                    "incomplete_mental_status",
                    "Mental status exam appears incomplete",
                    12,
                    "Include more comprehensive mental status exam components",
                )
            )

    if context.visit_type != VisitType.FOLLOW_UP and not _SAFETY_RE.search(lowered):
        findings.append(
            _finding(
                FindingSeverity.WARNING,
                FindingCategory.COMPLETENESS,
                "missing_safety_assessment",
                "No explicit safety/risk assessment documented",
                15,
                "Include risk assessment and safety planning",
            )
        )

    return findings


VALIDATION_RULES: Tuple[ValidationRule, ...] = (
    check_dialect,
    check_structure,
    check_quality,
    check_completeness,
)
