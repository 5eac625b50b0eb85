from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple


class EMRMarkerKind(str, Enum):
    SMART_PHRASE = "SMART_PHRASE"
    DOT_PHRASE = "DOT_PHRASE"
    SMART_LIST = "SMART_LIST"
    WILDCARD = "WILDCARD"


# Inline macro syntaxes. These patterns must stay bit-for-bit identical to the
# ones the EMRs themselves use.
EMR_MARKER_PATTERNS = (
    (EMRMarkerKind.SMART_PHRASE, re.compile(r"@[A-Z][A-Z0-9]*[A-Z]@")),
    (EMRMarkerKind.DOT_PHRASE, re.compile(r"\.[a-z][a-z0-9]*[a-z]")),
    (EMRMarkerKind.SMART_LIST, re.compile(r"\{[A-Za-z\s]+:\d+\}")),
    (EMRMarkerKind.WILDCARD, re.compile(r"\*\*\*")),
)

MARKER_LABELS = {
    EMRMarkerKind.SMART_PHRASE: "SmartPhrase",
    EMRMarkerKind.DOT_PHRASE: "DotPhrase",
    EMRMarkerKind.SMART_LIST: "SmartList",
    EMRMarkerKind.WILDCARD: "wildcard",
}

# Replacement text must not itself match a marker or an Epic term.
_REPLACEMENTS = {
    EMRMarkerKind.SMART_PHRASE: "[macro removed]",
    EMRMarkerKind.DOT_PHRASE: "[macro removed]",
    EMRMarkerKind.SMART_LIST: "[list removed]",
    EMRMarkerKind.WILDCARD: "[field]",
}

EPIC_TERMS = ("SMARTPHRASE", "SmartPhrase", "DotPhrase", "SmartList")

_TERM_REPLACEMENTS = (
    (re.compile(r"smart\s?phrase", re.IGNORECASE), "template"),
    (re.compile(r"dot\s?phrase", re.IGNORECASE), "template"),
    (re.compile(r"smart\s?list", re.IGNORECASE), "list"),
)


@dataclass(frozen=True)
class EMRMarker:
    kind: EMRMarkerKind
    text: str
    start: int
    end: int


def find_markers(text: str) -> List[EMRMarker]:
    """Return every EMR marker occurrence in ``text``, ordered by offset."""

    markers: List[EMRMarker] = []
    for kind, pattern in EMR_MARKER_PATTERNS:
        for match in pattern.finditer(text):
            markers.append(EMRMarker(kind=kind, text=match.group(0), start=match.start(), end=match.end()))
    markers.sort(key=lambda m: (m.start, m.end))
    return markers


def has_emr_syntax(text: str) -> bool:
    return any(pattern.search(text) for _, pattern in EMR_MARKER_PATTERNS)


def marker_spans(text: str) -> List[Tuple[int, int]]:
    return [(m.start, m.end) for m in find_markers(text)]


def overlaps_any(start: int, end: int, spans: List[Tuple[int, int]]) -> bool:
    return any(start < span_end and span_start < end for span_start, span_end in spans)


def strip_emr_syntax(text: str) -> str:
    """Replace EMR macro syntax with neutral placeholders.

    Meant for manual clean-up of a note headed to a plain-text EMR; the
    validation engine never rewrites text on its own.
    """

    cleaned = text
    for kind, pattern in EMR_MARKER_PATTERNS:
        cleaned = pattern.sub(_REPLACEMENTS[kind], cleaned)
    for pattern, replacement in _TERM_REPLACEMENTS:
        cleaned = pattern.sub(replacement, cleaned)
    return cleaned
