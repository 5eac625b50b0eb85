from __future__ import annotations

from typing import List

from fastapi import APIRouter
from pydantic import BaseModel

from src.note_engine.domain.models.note import StandardizedSectionType
from src.note_engine.services.sections.registry import SECTION_HEADER_REGISTRY

router = APIRouter(prefix="/sections", tags=["sections"])


class HeaderVariantOut(BaseModel):
    text: str
    confidence: float


class RegistryEntry(BaseModel):
    section_type: StandardizedSectionType
    canonical_title: str
    aliases: List[HeaderVariantOut]
    is_standardized: bool
    group: str


@router.get("/registry", response_model=List[RegistryEntry])
async def list_section_registry() -> List[RegistryEntry]:
    """Return the section header registry in registry order."""

    return [
        RegistryEntry(
            section_type=spec.section_type,
            canonical_title=spec.canonical,
            aliases=[HeaderVariantOut(text=a.text, confidence=a.confidence) for a in spec.aliases],
            is_standardized=spec.is_standardized,
            group=spec.group,
        )
        for spec in SECTION_HEADER_REGISTRY.values()
    ]
