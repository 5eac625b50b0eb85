from __future__ import annotations

import asyncio
import logging
import re
from typing import Dict, List, Optional

from src.note_engine.config import settings
from src.note_engine.domain.errors import RegenerationFailedError, SectionGenerationError
from src.note_engine.domain.models.clinical_context import ClinicalContext
from src.note_engine.domain.models.note import StandardizedSectionType
from src.note_engine.domain.models.updates import RegenerationItem, RegenerationPlan
from src.note_engine.services.generation.backends import GenerationBackend, get_generation_backend_from_env

logger = logging.getLogger("regeneration")

_CODE_FENCE_RE = re.compile(r"```[\w]*\n?")
_INTRO_RE = re.compile(r"^(Here's the|Here is the|The updated)[^\n]*?:\s*", re.IGNORECASE)
_PROMPT_ECHO_RE = re.compile(r"^(BEGIN UPDATED NOTE|UPDATED SECTION CONTENT)[ \t]*:\s*", re.IGNORECASE)
_BLANK_RUNS_RE = re.compile(r"\n{3,}")


def clean_generated_text(raw: str) -> str:
    """Strip common model response artifacts from generated section text."""

    cleaned = _CODE_FENCE_RE.sub("", raw or "")
    cleaned = cleaned.strip()
    cleaned = _INTRO_RE.sub("", cleaned)
    cleaned = _PROMPT_ECHO_RE.sub("", cleaned)
    cleaned = _BLANK_RUNS_RE.sub("\n\n", cleaned)
    return cleaned.strip()


class SectionRegenerationService:
    """Regenerates planned sections through the generation backend.

    One task is started per section and all of them run concurrently; the
    slowest single section bounds the latency. Each call has its own timeout,
    so a slow or failing section never affects the others. If any section
    fails the batch is rejected as a whole with
    :class:`RegenerationFailedError`; there is no fallback to the original
    content.
    """

    def __init__(
        self,
        *,
        backend: Optional[GenerationBackend] = None,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self._backend: GenerationBackend = backend or get_generation_backend_from_env()
        self._timeout = timeout_seconds if timeout_seconds is not None else settings.generation_timeout_seconds

    async def regenerate(
        self,
        plan: RegenerationPlan,
        context: ClinicalContext,
    ) -> Dict[StandardizedSectionType, str]:
        """Return cleaned text per section type, ordered by original offset."""

        items = sorted(plan.regenerate, key=lambda item: item.request.position)
        if not items:
            return {}

        tasks = [asyncio.create_task(self._generate_one(item, context)) for item in items]
        outcomes = await asyncio.gather(*tasks, return_exceptions=True)

        completed: Dict[StandardizedSectionType, str] = {}
        failures: List[SectionGenerationError] = []
        for item, outcome in zip(items, outcomes):
            section_type = item.section.type
            if isinstance(outcome, SectionGenerationError):
                failures.append(outcome)
            elif isinstance(outcome, asyncio.CancelledError):
                failures.append(SectionGenerationError(section_type, "cancelled"))
            elif isinstance(outcome, BaseException):
                # Anything else escaping _generate_one is a bug, not a backend failure.
                raise outcome
            else:
                completed[section_type] = outcome

        if failures:
            logger.warning(
                "Regeneration failed for %d of %d sections: %s",
                len(failures),
                len(items),
                ", ".join(f.section_type.value for f in failures),
            )
            raise RegenerationFailedError(failures, completed)

        logger.info("Regenerated %d sections", len(completed))
        return completed

    async def _generate_one(self, item: RegenerationItem, context: ClinicalContext) -> str:
        section_type = item.section.type
        try:
            raw = await asyncio.wait_for(
                self._backend.generate(item.request.prompt, context),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as exc:
            raise SectionGenerationError(section_type, f"timed out after {self._timeout:g}s") from exc
        except Exception as exc:
            raise SectionGenerationError(section_type, str(exc) or exc.__class__.__name__) from exc

        text = clean_generated_text(raw)
        if not text:
            raise SectionGenerationError(section_type, "backend returned empty text")
        return text


# Default singleton instance used by the transfer-of-care pipeline.
regeneration_service = SectionRegenerationService()
