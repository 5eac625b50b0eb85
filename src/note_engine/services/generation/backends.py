from __future__ import annotations

import re
from typing import Protocol

from src.note_engine.config import settings
from src.note_engine.domain.models.clinical_context import ClinicalContext


class GenerationBackend(Protocol):
    """Protocol for the external text generation collaborator.

    Implementations receive the fully rendered single-section prompt and
    return the new section body. Failures are signalled by raising; callers
    isolate them per section.
    """

    async def generate(self, instructions: str, context: ClinicalContext) -> str:  # pragma: no cover - interface
        raise NotImplementedError


_NEW_INFO_RE = re.compile(r"## NEW CLINICAL INFORMATION:\n(?P<info>.*?)\n\n## ", re.DOTALL)
_CURRENT_RE = re.compile(r"## CURRENT SECTION CONTENT:\n(?P<current>.*?)\n\n## ", re.DOTALL)


class DemoGenerationBackend:
    """Deterministic, offline generation backend used for tests and prototyping.

    It lifts the new clinical information out of the prompt and returns it as
    the section body, so higher layers have stable output without any
    external service. With no new information it echoes the current content.
    """

    async def generate(self, instructions: str, context: ClinicalContext) -> str:
        info = _NEW_INFO_RE.search(instructions)
        if info and info.group("info").strip():
            return f"Updated from current encounter: {info.group('info').strip()}"
        current = _CURRENT_RE.search(instructions)
        return current.group("current").strip() if current else ""


class LLMGenerationBackend:
    """Generation backend that uses an LLM via the OpenAI Python client.

    This backend expects OPENAI_API_KEY to be set and uses the model name from
    LLM_MODEL.
    """

    def __init__(self, model: str | None = None) -> None:
        self._model = model or settings.llm_model

    async def generate(self, instructions: str, context: ClinicalContext) -> str:  # pragma: no cover - external service
        api_key = settings.openai_api_key
        if not api_key:
            raise RuntimeError("OPENAI_API_KEY must be set to use LLMGenerationBackend")

        try:
            from openai import AsyncOpenAI
        except ImportError as exc:
            raise RuntimeError(
                "LLMGenerationBackend requires the 'openai' package. Install it with 'pip install openai'"
            ) from exc

        client = AsyncOpenAI(api_key=api_key)
        system_prompt = (
            "You are a clinical documentation assistant updating one section of an existing "
            f"{context.emr_dialect.value} note for a {context.visit_type.value.replace('_', ' ')} visit. "
            "Respond with the section body only. Do not include markdown or explanations."
        )
        response = await client.responses.create(
            model=self._model,
            input=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": instructions},
            ],
        )

        for output in response.output:
            for item in getattr(output, "content", None) or []:
                if getattr(item, "type", "") == "output_text" and getattr(item, "text", None):
                    return item.text
        return ""


demo_generation_backend = DemoGenerationBackend()


def get_generation_backend_from_env() -> GenerationBackend:
    """Select a generation backend based on GENERATION_BACKEND.

    - GENERATION_BACKEND=llm → LLMGenerationBackend
    - Anything else (or unset) → DemoGenerationBackend
    """

    backend_name = settings.generation_backend.lower()
    if backend_name == "llm":
        return LLMGenerationBackend()
    return demo_generation_backend
