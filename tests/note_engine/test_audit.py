import json
import logging

from src.note_engine.domain.models.note import StandardizedSectionType as T
from src.note_engine.domain.models.updates import ChangeAction, SectionChange
from src.note_engine.services.audit.service import audit_service, note_fingerprint
from src.note_engine.services.sections.detector import section_detector


def test_audit_event_carries_no_note_text(caplog, standardized_note):
    parsed = section_detector.parse(standardized_note)

    with caplog.at_level(logging.INFO, logger="audit"):
        event = audit_service.log_note_event("parse_note", request_id="req-1", parsed_note=parsed)

    line = caplog.records[-1].getMessage()
    payload = json.loads(line)
    assert payload["action"] == "parse_note"
    assert payload["note_fingerprint"] == note_fingerprint(standardized_note)
    assert payload["sections"]["HPI"] == "header"
    assert "Sertraline" not in line
    assert "J. Doe" not in line
    assert event.request_id == "req-1"


def test_changes_take_precedence_over_parsed_sections(caplog, soap_note):
    parsed = section_detector.parse(soap_note)
    changes = [
        SectionChange(
            section_type=T.PLAN,
            action=ChangeAction.UPDATED,
            original_content="old",
            new_content="new",
            change_reason="New encounter",
            confidence=0.85,
        )
    ]

    with caplog.at_level(logging.INFO, logger="audit"):
        event = audit_service.log_note_event("transfer_of_care_update", parsed_note=parsed, changes=changes)

    assert event.sections == {"PLAN": "UPDATED"}
    assert "new" not in json.loads(caplog.records[-1].getMessage())["sections"].values()


def test_unserializable_metadata_is_dropped(caplog):
    with caplog.at_level(logging.INFO, logger="audit"):
        event = audit_service.log_note_event("validate_note", note_text="x", metadata={"bad": object()})

    assert event.metadata == {}
    assert json.loads(caplog.records[-1].getMessage())["metadata"] == {}
