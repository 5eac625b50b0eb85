from __future__ import annotations

import logging
from typing import List, Optional

from src.note_engine.domain.models.clinical_context import ClinicalContext
from src.note_engine.domain.models.transfer import TransferOfCareResult
from src.note_engine.domain.models.updates import UpdateDirective
from src.note_engine.services.generation.service import SectionRegenerationService, regeneration_service
from src.note_engine.services.reconstruction.service import NoteReconstructionService, reconstruction_service
from src.note_engine.services.sections.detector import SectionDetector, section_detector
from src.note_engine.services.updates.directives import DirectivePreset, apply_preset, default_directives
from src.note_engine.services.updates.planner import UpdatePlanner, update_planner
from src.note_engine.services.validation.service import NoteValidationService, validation_service

logger = logging.getLogger("transfer_of_care")


class TransferOfCareService:
    """Updates a previous note with information from a new encounter.

    parse -> plan -> regenerate (concurrently, per section) -> reconstruct ->
    validate. A note that cannot be parsed comes back with its parse errors
    and no content. Planning errors (:class:`SectionNotFoundError`) and
    regeneration failures (:class:`RegenerationFailedError`) propagate to the
    caller; no partially regenerated note is ever produced.
    """

    def __init__(
        self,
        *,
        detector: Optional[SectionDetector] = None,
        planner: Optional[UpdatePlanner] = None,
        regenerator: Optional[SectionRegenerationService] = None,
        reconstructor: Optional[NoteReconstructionService] = None,
        validator: Optional[NoteValidationService] = None,
    ) -> None:
        self._detector = detector or section_detector
        self._planner = planner or update_planner
        self._regenerator = regenerator or regeneration_service
        self._reconstructor = reconstructor or reconstruction_service
        self._validator = validator or validation_service

    async def update_note(
        self,
        previous_note: str,
        source_material: str,
        context: ClinicalContext,
        directives: Optional[List[UpdateDirective]] = None,
        *,
        preset: Optional[DirectivePreset] = None,
    ) -> TransferOfCareResult:
        """Run the full update.

        Without explicit ``directives`` the visit type's defaults are used;
        ``preset`` (if given) is applied on top of whichever directives are in
        effect.
        """

        parsed = self._detector.parse(previous_note)
        if parsed.errors:
            logger.info("Previous note could not be parsed: %s", "; ".join(parsed.errors))
            return TransferOfCareResult(parsed_note=parsed, errors=list(parsed.errors))

        if directives is None:
            directives = default_directives(parsed, context.visit_type)
        if preset is not None:
            directives = apply_preset(directives, preset)

        plan = self._planner.plan(
            parsed,
            directives,
            source_material=source_material,
            visit_type=context.visit_type,
        )
        regenerated = await self._regenerator.regenerate(plan, context)

        reconstruction = self._reconstructor.reconstruct(
            parsed,
            plan.preserve,
            regenerated,
            {item.section.type: item.merge_strategy for item in plan.regenerate},
            reasons={item.section.type: item.update_reason for item in plan.regenerate if item.update_reason},
        )
        validation = self._validator.validate(reconstruction.content, context)

        logger.info(
            "Transfer-of-care update: %d preserved, %d regenerated, score=%d",
            len(plan.preserve),
            len(plan.regenerate),
            validation.score,
        )
        return TransferOfCareResult(
            parsed_note=parsed,
            content=reconstruction.content,
            changes=reconstruction.changes,
            validation=validation,
        )


transfer_of_care_service = TransferOfCareService()
