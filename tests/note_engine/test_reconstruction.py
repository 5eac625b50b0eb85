import pytest

from src.note_engine.domain.models.note import StandardizedSectionType as T
from src.note_engine.domain.models.updates import ChangeAction, MergeStrategy
from src.note_engine.services.reconstruction.service import merge_content, reconstruction_service
from src.note_engine.services.sections.detector import section_detector


def test_preserving_everything_reproduces_sections_verbatim(soap_note):
    parsed = section_detector.parse(soap_note)

    result = reconstruction_service.reconstruct(parsed, parsed.sections, {}, {})

    assert result.content == "".join(f"{s.title}:\n{s.body}\n\n" for s in parsed.sections)
    assert all(c.action == ChangeAction.PRESERVED and c.confidence == 1.0 for c in result.changes)
    # A second pass over the output is stable.
    reparsed = section_detector.parse(result.content)
    again = reconstruction_service.reconstruct(reparsed, reparsed.sections, {}, {})
    assert again.content == result.content


def test_single_header_note_keeps_its_header_once():
    text = (
        "History of Present Illness:\n"
        "Patient returns after three months.\n\n"
        "Sleep has been poor and appetite is reduced.\n\n"
        "Presentation is consistent with recurrent depression.\n\n"
        "We will continue the current regimen."
    )
    parsed = section_detector.parse(text)

    result = reconstruction_service.reconstruct(parsed, parsed.sections, {}, {})

    assert result.content.startswith(
        "History of Present Illness:\n\nSubjective:\nPatient returns after three months.\n\n"
    )
    assert result.content.count("History of Present Illness") == 1


def test_replace_swaps_only_the_regenerated_section(standardized_note):
    parsed = section_detector.parse(standardized_note)
    preserve = [s for s in parsed.sections if s.type != T.HPI]

    result = reconstruction_service.reconstruct(
        parsed,
        preserve,
        {T.HPI: "Patient reports fewer panic attacks since the last visit."},
        {T.HPI: MergeStrategy.REPLACE},
    )

    assert result.content.startswith("Patient: J. Doe\n\nHistory of Present Illness:\n")
    reparsed = section_detector.parse(result.content)
    assert reparsed.section_for(T.HPI).body == "Patient reports fewer panic attacks since the last visit."
    for section in preserve:
        assert reparsed.section_for(section.type).body == section.body

    hpi_change = result.changes[0]
    assert hpi_change.action == ChangeAction.UPDATED
    assert hpi_change.confidence == 0.85
    assert hpi_change.original_content == parsed.section_for(T.HPI).body


def test_append_and_merge_keep_original_text():
    assert merge_content("Old.", "New.", MergeStrategy.APPEND) == "Old.\n\nNew."
    assert merge_content("Old.", "New.", MergeStrategy.MERGE) == "Old.\nNew."
    assert merge_content("Old.", "New.", MergeStrategy.REPLACE) == "New."
    assert merge_content("", "New.", MergeStrategy.APPEND) == "New."


def test_merged_sections_are_recorded_as_merged(soap_note):
    parsed = section_detector.parse(soap_note)
    preserve = [s for s in parsed.sections if s.type != T.PLAN]

    result = reconstruction_service.reconstruct(
        parsed,
        preserve,
        {T.PLAN: "Add weekly therapy."},
        {T.PLAN: MergeStrategy.APPEND},
        reasons={T.PLAN: "Therapy referral"},
    )

    plan_change = result.changes[-1]
    assert plan_change.action == ChangeAction.MERGED
    assert plan_change.change_reason == "Therapy referral"
    assert plan_change.new_content == parsed.section_for(T.PLAN).body + "\n\nAdd weekly therapy."


def test_soap_sections_come_first_then_the_rest():
    text = (
        "Subjective:\nDoing well on the current regimen.\n\n"
        "Current Medications:\nSertraline 100 mg daily\n\n"
        "Objective:\nCalm and cooperative throughout.\n\n"
        "Assessment:\nStable depression in remission.\n\n"
        "Plan:\nContinue the current regimen.\n"
    )
    parsed = section_detector.parse(text)

    result = reconstruction_service.reconstruct(parsed, parsed.sections, {}, {})

    assert [c.section_type for c in result.changes] == [
        T.SUBJECTIVE,
        T.OBJECTIVE,
        T.ASSESSMENT,
        T.PLAN,
        T.CURRENT_MEDICATIONS,
    ]
    assert result.content.endswith("Current Medications:\nSertraline 100 mg daily\n\n")


def test_regenerated_section_missing_from_note_is_added(soap_note):
    parsed = section_detector.parse(soap_note)

    result = reconstruction_service.reconstruct(
        parsed,
        parsed.sections,
        {T.FOLLOW_UP: "Return in four weeks."},
        {},
    )

    assert result.content.endswith("Follow-Up:\nReturn in four weeks.\n\n")
    assert result.changes[-1].action == ChangeAction.ADDED


def test_section_without_content_is_a_caller_error(soap_note):
    parsed = section_detector.parse(soap_note)

    with pytest.raises(ValueError):
        reconstruction_service.reconstruct(parsed, parsed.sections[:2], {}, {})
