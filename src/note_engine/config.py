from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List


@dataclass
class Settings:
    """Engine settings, read from the environment once at import.

    Services take these values as constructor defaults so tests can override
    them per instance without touching the environment.
    """

    # Section generation backend selection: "demo" (default) or "llm".
    generation_backend: str = os.getenv("GENERATION_BACKEND", "demo")

    # Optional settings for the external LLM provider.
    openai_api_key: str | None = os.getenv("OPENAI_API_KEY")
    llm_model: str = os.getenv("LLM_MODEL", "gpt-4.1-mini")

    # Upper bound (seconds) for a single section regeneration call. A section
    # that exceeds it fails on its own; other sections are unaffected.
    generation_timeout_seconds: float = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "30"))

    # Provisional confidence recorded on SectionChange entries for regenerated
    # content. This is a fixed value, not a computed score.
    regenerated_section_confidence: float = float(os.getenv("REGENERATED_SECTION_CONFIDENCE", "0.85"))

    # Request size limit (in characters) for note text accepted over HTTP.
    max_note_chars: int = int(os.getenv("MAX_NOTE_CHARS", "100000"))

    # Comma-separated CORS origins for the HTTP surface; "*" allows any origin.
    cors_allow_origins: str = os.getenv("CORS_ALLOW_ORIGINS", "*")

    @property
    def cors_origins(self) -> List[str]:
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()] or ["*"]


settings = Settings()
