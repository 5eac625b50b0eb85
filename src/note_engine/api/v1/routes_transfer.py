from __future__ import annotations

from typing import List, Optional
from uuid import uuid4

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from src.note_engine.api.v1.routes_notes import ContextPayload, section_not_found_422
from src.note_engine.config import settings
from src.note_engine.domain.errors import RegenerationFailedError, SectionNotFoundError
from src.note_engine.domain.models.transfer import TransferOfCareResult
from src.note_engine.domain.models.updates import UpdateDirective
from src.note_engine.services.audit.service import audit_service
from src.note_engine.services.transfer.service import transfer_of_care_service
from src.note_engine.services.updates.directives import DirectivePreset

router = APIRouter(prefix="/transfer-of-care", tags=["transfer-of-care"])


class TransferOfCareRequest(BaseModel):
    previous_note: str = Field(max_length=settings.max_note_chars)
    source_material: str = Field(default="", max_length=settings.max_note_chars)
    context: ContextPayload = ContextPayload(visit_type="transfer_of_care")
    directives: Optional[List[UpdateDirective]] = None
    preset: Optional[DirectivePreset] = None


@router.post("/update", response_model=TransferOfCareResult)
async def update_previous_note(payload: TransferOfCareRequest) -> TransferOfCareResult:
    """Regenerate selected sections of a previous note and validate the result.

    - 422 when the previous note has no detectable sections, or a directive
      names a section the note does not have.
    - 502 when any section fails to regenerate; nothing is reconstructed.
    """

    request_id = str(uuid4())
    context = payload.context.resolve()

    try:
        result = await transfer_of_care_service.update_note(
            payload.previous_note,
            payload.source_material,
            context,
            payload.directives,
            preset=payload.preset,
        )
    except SectionNotFoundError as exc:
        raise section_not_found_422(exc) from exc
    except RegenerationFailedError as exc:
        audit_service.log_note_event(
            "transfer_of_care_update_failed",
            request_id=request_id,
            note_text=payload.previous_note,
            metadata={"failed_sections": [t.value for t in exc.failed_section_types]},
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": str(exc),
                "failed": [{"section_type": f.section_type.value, "reason": f.reason} for f in exc.failures],
                "completed": [t.value for t in exc.completed],
            },
        ) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc

    if result.content is None:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": "Previous note could not be parsed", "errors": result.errors},
        )

    audit_service.log_note_event(
        "transfer_of_care_update",
        request_id=request_id,
        parsed_note=result.parsed_note,
        changes=result.changes,
        metadata={
            "visit_type": context.visit_type.value,
            "dialect": context.emr_dialect.value,
            "score": result.validation.score if result.validation else None,
        },
    )

    return result
