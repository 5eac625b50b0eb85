from __future__ import annotations

from typing import Dict, Iterable, List, Mapping

from src.note_engine.domain.models.note import StandardizedSectionType


class SectionNotFoundError(ValueError):
    """Raised when an update directive names a section the note does not have."""

    def __init__(self, section_types: Iterable[StandardizedSectionType]) -> None:
        self.section_types: List[StandardizedSectionType] = list(section_types)
        names = ", ".join(t.value for t in self.section_types)
        super().__init__(f"Section(s) not found in parsed note: {names}")


class SectionGenerationError(RuntimeError):
    """Generation failed (error, timeout or empty output) for a single section."""

    def __init__(self, section_type: StandardizedSectionType, reason: str) -> None:
        self.section_type = section_type
        self.reason = reason
        super().__init__(f"Generation failed for {section_type.value}: {reason}")


class RegenerationFailedError(RuntimeError):
    """One or more sections could not be regenerated.

    The reconstruction is aborted as a whole. ``completed`` still carries the
    text of every section that did succeed so callers can show it.
    """

    def __init__(
        self,
        failures: Iterable[SectionGenerationError],
        completed: Mapping[StandardizedSectionType, str],
    ) -> None:
        self.failures: List[SectionGenerationError] = list(failures)
        self.completed: Dict[StandardizedSectionType, str] = dict(completed)
        names = ", ".join(f.section_type.value for f in self.failures)
        super().__init__(f"Section regeneration failed for: {names}")

    @property
    def failed_section_types(self) -> List[StandardizedSectionType]:
        return [f.section_type for f in self.failures]
