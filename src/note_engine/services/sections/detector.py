from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from src.note_engine.domain.models.clinical_context import EMRDialect
from src.note_engine.domain.models.note import (
    SOAP_SECTION_ORDER,
    NoteFormat,
    ParsedNote,
    Section,
    SectionMetadata,
    StandardizedSectionType,
)
from src.note_engine.services.sections.emr_syntax import has_emr_syntax, marker_spans, overlaps_any
from src.note_engine.services.sections.registry import (
    COMPILED_HEADER_VARIANTS,
    canonical_title,
    is_standardized,
)

logger = logging.getLogger("section_detector")

EMPTY_SECTION_PENALTY = 0.3
FALLBACK_CONFIDENCE = 0.3
MIN_DETECTED_SECTIONS = 2


@dataclass(frozen=True)
class HeaderMatch:
    """A header located in the note text.

    ``start`` is the start of the header line (indentation included),
    ``end`` is just past the colon (or the header words when there is none).
    """

    section_type: StandardizedSectionType
    start: int
    title_start: int
    end: int
    title: str
    confidence: float
    is_canonical: bool


def paragraph_spans(text: str) -> List[Tuple[int, int]]:
    """Return (start, end) offsets of blank-line separated paragraphs."""

    spans: List[Tuple[int, int]] = []
    start: Optional[int] = None
    end = 0
    offset = 0
    for line in text.splitlines(keepends=True):
        if line.strip():
            if start is None:
                start = offset
            end = offset + len(line.rstrip("\r\n"))
        elif start is not None:
            spans.append((start, end))
            start = None
        offset += len(line)
    if start is not None:
        spans.append((start, end))
    return spans


class SectionDetector:
    """Recovers labeled sections from free-text clinical notes.

    Headers are located through the section header registry; everything
    between two headers belongs to the earlier one. Notes with fewer than two
    recognizable headers fall back to a paragraph-quartile split that is
    flagged with low confidence. ``parse`` never raises: a note that cannot be
    split at all comes back with no sections and a populated ``errors`` list.
    """

    def find_headers(self, text: str) -> List[HeaderMatch]:
        """Locate every registered header, longest match first at a position.

        Matches that fall inside an EMR-syntax span (e.g. a multi-line
        SmartList) are not headers and are skipped.
        """

        spans = marker_spans(text)
        candidates: List[HeaderMatch] = []
        for compiled in COMPILED_HEADER_VARIANTS:
            for match in compiled.pattern.finditer(text):
                if overlaps_any(match.start("title"), match.end(), spans):
                    continue
                candidates.append(
                    HeaderMatch(
                        section_type=compiled.section_type,
                        start=match.start(),
                        title_start=match.start("title"),
                        end=match.end(),
                        title=match.group("title"),
                        confidence=compiled.variant.confidence,
                        is_canonical=compiled.is_canonical,
                    )
                )

        candidates.sort(key=lambda h: (h.start, -(h.end - h.start), -h.confidence))
        headers: List[HeaderMatch] = []
        for candidate in candidates:
            if headers and candidate.start < headers[-1].end:
                continue
            headers.append(candidate)
        return headers

    def parse(self, text: str) -> ParsedNote:
        started = time.perf_counter()
        text = text or ""
        warnings: List[str] = []
        errors: List[str] = []

        headers = self._drop_duplicate_headers(self.find_headers(text), warnings)
        if len(headers) >= MIN_DETECTED_SECTIONS:
            sections = self._sections_from_headers(text, headers, warnings)
        else:
            sections = self._narrative_fallback(text, headers, warnings)
            if not sections:
                errors.append("No sections detected: note contains no text to parse")

        detected_format = NoteFormat.NARRATIVE
        if len(headers) >= MIN_DETECTED_SECTIONS and self._is_soap(sections):
            detected_format = NoteFormat.SOAP

        if has_emr_syntax(text):
            dialect = EMRDialect.EPIC
        elif text.strip():
            dialect = EMRDialect.CREDIBLE
        else:
            dialect = EMRDialect.OTHER

        parsed = ParsedNote(
            original_content=text,
            sections=sections,
            detected_format=detected_format,
            detected_dialect=dialect,
            overall_confidence=self._overall_confidence(sections),
            warnings=warnings,
            errors=errors,
            processing_duration_ms=(time.perf_counter() - started) * 1000.0,
        )
        logger.debug(
            "Parsed note: %d sections, format=%s, dialect=%s, confidence=%.2f",
            len(sections),
            parsed.detected_format.value,
            parsed.detected_dialect.value,
            parsed.overall_confidence,
        )
        return parsed

    def _drop_duplicate_headers(self, headers: List[HeaderMatch], warnings: List[str]) -> List[HeaderMatch]:
        # The later occurrence of a section type wins; earlier ones stop being
        # headers, so their text becomes part of whatever section precedes them.
        last_index: Dict[StandardizedSectionType, int] = {
            header.section_type: index for index, header in enumerate(headers)
        }
        kept: List[HeaderMatch] = []
        for index, header in enumerate(headers):
            if last_index[header.section_type] != index:
                warnings.append(
                    f"Duplicate {header.section_type.value} header '{header.title}' at offset "
                    f"{header.start}; earlier occurrence folded into the preceding section"
                )
                continue
            kept.append(header)
        return kept

    def _sections_from_headers(
        self,
        text: str,
        headers: List[HeaderMatch],
        warnings: List[str],
    ) -> List[Section]:
        sections: List[Section] = []
        for index, header in enumerate(headers):
            end = headers[index + 1].start if index + 1 < len(headers) else len(text)
            content = text[header.end:end]
            confidence = 1.0 if header.is_canonical else header.confidence
            if not content.strip():
                confidence = max(0.0, confidence - EMPTY_SECTION_PENALTY)
                warnings.append(f"Section '{header.title}' has no content")
            sections.append(
                Section(
                    type=header.section_type,
                    title=header.title,
                    content=content,
                    start_offset=header.start,
                    end_offset=end,
                    confidence=confidence,
                    metadata=SectionMetadata(
                        word_count=len(content.split()),
                        has_emr_syntax=has_emr_syntax(content),
                        is_standardized=is_standardized(header.section_type),
                        original_header_text=text[header.title_start:header.end],
                    ),
                )
            )
        return sections

    def _narrative_fallback(self, text: str, headers: List[HeaderMatch], warnings: List[str]) -> List[Section]:
        # A lone recognized header is not section content. It is blanked out
        # (offsets unchanged) so it lands in the gap before the next section.
        masked = text
        for header in headers:
            masked = masked[: header.start] + " " * (header.end - header.start) + masked[header.end:]
        paragraphs = [
            (start + len(masked[start:end]) - len(masked[start:end].lstrip()), end)
            for start, end in paragraph_spans(masked)
        ]
        if not paragraphs:
            return []

        # Paragraph i goes to quartile floor(4 * i / n); quartiles stay
        # contiguous and only non-empty ones become sections.
        quartiles: Dict[int, List[Tuple[int, int]]] = {}
        for index, span in enumerate(paragraphs):
            quartiles.setdefault(index * 4 // len(paragraphs), []).append(span)

        starts = [(q, spans[0][0]) for q, spans in sorted(quartiles.items())]
        sections: List[Section] = []
        for position, (quartile, start) in enumerate(starts):
            end = starts[position + 1][1] if position + 1 < len(starts) else len(text)
            section_type = SOAP_SECTION_ORDER[quartile]
            content = text[start:end]
            sections.append(
                Section(
                    type=section_type,
                    title=canonical_title(section_type),
                    content=content,
                    start_offset=start,
                    end_offset=end,
                    confidence=FALLBACK_CONFIDENCE,
                    metadata=SectionMetadata(
                        word_count=len(content.split()),
                        has_emr_syntax=has_emr_syntax(content),
                        is_standardized=False,
                    ),
                )
            )

        warnings.append(
            f"Only {len(headers)} section header(s) recognized; applied heuristic narrative "
            "fallback (paragraph quartiles labeled Subjective/Objective/Assessment/Plan). "
            "Manual review recommended."
        )
        return sections

    @staticmethod
    def _is_soap(sections: List[Section]) -> bool:
        positions = {s.type: i for i, s in enumerate(sections)}
        if not all(t in positions for t in SOAP_SECTION_ORDER):
            return False
        indices = [positions[t] for t in SOAP_SECTION_ORDER]
        return indices == sorted(indices)

    @staticmethod
    def _overall_confidence(sections: List[Section]) -> float:
        total = sum(s.end_offset - s.start_offset for s in sections)
        if total == 0:
            return 0.0
        weighted = sum(s.confidence * (s.end_offset - s.start_offset) for s in sections)
        return round(weighted / total, 4)


section_detector = SectionDetector()
