from __future__ import annotations

from typing import List, Optional
from uuid import uuid4

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from src.note_engine.config import settings
from src.note_engine.domain.errors import SectionNotFoundError
from src.note_engine.domain.models.clinical_context import ClinicalContext, EMRDialect, VisitType
from src.note_engine.domain.models.note import ParsedNote
from src.note_engine.domain.models.updates import RegenerationPlan, UpdateDirective
from src.note_engine.domain.models.validation import ValidationResult
from src.note_engine.services.audit.service import audit_service
from src.note_engine.services.sections.detector import section_detector
from src.note_engine.services.sections.emr_syntax import find_markers, strip_emr_syntax
from src.note_engine.services.updates.directives import DirectivePreset, apply_preset, default_directives
from src.note_engine.services.updates.planner import update_planner
from src.note_engine.services.validation.report import build_validation_report
from src.note_engine.services.validation.service import validation_service

router = APIRouter(prefix="/notes", tags=["notes"])


class ContextPayload(BaseModel):
    """Clinical context as sent by clients.

    When ``emr_dialect`` is omitted it is looked up from the clinic name.
    """

    clinic: str = ""
    emr_dialect: Optional[EMRDialect] = None
    visit_type: VisitType = VisitType.OTHER

    def resolve(self) -> ClinicalContext:
        if self.emr_dialect is None:
            return ClinicalContext.for_clinic(self.clinic, self.visit_type)
        return ClinicalContext(clinic=self.clinic, emr_dialect=self.emr_dialect, visit_type=self.visit_type)


class ParseRequest(BaseModel):
    content: str = Field(max_length=settings.max_note_chars)


class ValidateRequest(BaseModel):
    content: str = Field(max_length=settings.max_note_chars)
    context: ContextPayload = ContextPayload()
    include_report: bool = False


class ValidateResponse(BaseModel):
    result: ValidationResult
    report: Optional[str] = None


class SanitizeRequest(BaseModel):
    content: str = Field(max_length=settings.max_note_chars)


class SanitizeResponse(BaseModel):
    content: str
    markers_removed: int


class PlanRequest(BaseModel):
    content: str = Field(max_length=settings.max_note_chars)
    source_material: str = Field(default="", max_length=settings.max_note_chars)
    context: ContextPayload = ContextPayload()
    directives: Optional[List[UpdateDirective]] = None
    preset: Optional[DirectivePreset] = None


def parse_or_422(content: str) -> ParsedNote:
    parsed = section_detector.parse(content)
    if parsed.errors:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Note could not be parsed", "errors": parsed.errors},
        )
    return parsed


def section_not_found_422(exc: SectionNotFoundError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        detail={"message": str(exc), "missing_sections": [t.value for t in exc.section_types]},
    )


@router.post("/parse", response_model=ParsedNote)
async def parse_note(payload: ParseRequest) -> ParsedNote:
    """Split a note into labeled sections.

    Parse failures are reported inside the response (``errors``), not as an
    HTTP error, so callers can still inspect warnings and timings.
    """

    parsed = section_detector.parse(payload.content)

    audit_service.log_note_event(
        "parse_note",
        request_id=str(uuid4()),
        parsed_note=parsed,
        metadata={
            "format": parsed.detected_format.value,
            "dialect": parsed.detected_dialect.value,
        },
    )

    return parsed


@router.post("/validate", response_model=ValidateResponse)
async def validate_note(payload: ValidateRequest) -> ValidateResponse:
    context = payload.context.resolve()
    result = validation_service.validate(payload.content, context)
    report = build_validation_report(result, context) if payload.include_report else None

    audit_service.log_note_event(
        "validate_note",
        request_id=str(uuid4()),
        note_text=payload.content,
        metadata={
            "dialect": context.emr_dialect.value,
            "visit_type": context.visit_type.value,
            "score": result.score,
            "error_count": len(result.errors),
            "warning_count": len(result.warnings),
        },
    )

    return ValidateResponse(result=result, report=report)


@router.post("/sanitize", response_model=SanitizeResponse)
async def sanitize_note(payload: SanitizeRequest) -> SanitizeResponse:
    """Replace EMR macro syntax with neutral placeholders."""

    return SanitizeResponse(
        content=strip_emr_syntax(payload.content),
        markers_removed=len(find_markers(payload.content)),
    )


@router.post("/plan", response_model=RegenerationPlan)
async def plan_note_update(payload: PlanRequest) -> RegenerationPlan:
    """Preview which sections would be preserved and the prompts for the rest."""

    context = payload.context.resolve()
    parsed = parse_or_422(payload.content)

    directives = payload.directives
    if directives is None:
        directives = default_directives(parsed, context.visit_type)
    if payload.preset is not None:
        directives = apply_preset(directives, payload.preset)

    try:
        return update_planner.plan(
            parsed,
            directives,
            source_material=payload.source_material,
            visit_type=context.visit_type,
        )
    except SectionNotFoundError as exc:
        raise section_not_found_422(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
