import pytest

from src.note_engine.domain.models.clinical_context import ClinicalContext, EMRDialect, VisitType
from src.note_engine.domain.models.validation import FindingCategory
from src.note_engine.services.validation.report import build_validation_report
from src.note_engine.services.validation.service import validation_service

CREDIBLE_TRANSFER = ClinicalContext.for_clinic("Davis Behavioral Health", VisitType.TRANSFER_OF_CARE)
EPIC_TRANSFER = ClinicalContext.for_clinic("HMHI Downtown", VisitType.TRANSFER_OF_CARE)


def codes(findings):
    return [f.code for f in findings]


def test_complete_note_scores_full_marks(soap_note):
    result = validation_service.validate(soap_note, CREDIBLE_TRANSFER)

    assert result.is_valid
    assert result.errors == []
    assert result.warnings == []
    assert result.score == 100


def test_smart_phrase_in_credible_note_is_an_error(soap_note):
    note = soap_note.replace("Objective:\n", "Objective:\n@VITALS@\n")

    result = validation_service.validate(note, CREDIBLE_TRANSFER)

    assert not result.is_valid
    assert any("SmartPhrase" in e.message for e in result.errors)
    assert result.score <= 70


@pytest.mark.parametrize("marker", ["@HPI@", "see .bpvitals", "{Mood:1}", "***"])
def test_any_emr_marker_invalidates_credible_note(soap_note, marker):
    note = soap_note.replace("Plan:\n", f"Plan:\n{marker}\n")

    result = validation_service.validate(note, CREDIBLE_TRANSFER)

    assert not result.is_valid
    assert all(e.category == FindingCategory.DIALECT for e in result.errors)


def test_epic_terminology_in_credible_note(soap_note):
    result = validation_service.validate(soap_note + "\nInserted via SmartList.\n", CREDIBLE_TRANSFER)

    assert "credible_epic_term" in codes(result.errors)


def test_epic_note_may_use_macros(soap_note):
    note = soap_note.replace("Objective:\n", "Objective:\n@VITALS@\n")

    result = validation_service.validate(note, EPIC_TRANSFER)

    assert result.is_valid
    assert result.score == 100


def test_epic_note_flags_malformed_smart_phrase(soap_note):
    note = soap_note.replace("Objective:\n", "Objective:\n@vitals@\n")

    result = validation_service.validate(note, EPIC_TRANSFER)

    assert "epic_malformed_smart_phrase" in codes(result.warnings)
    assert result.is_valid


def test_long_epic_note_without_macros_gets_a_nudge(soap_note):
    note = soap_note + "\n" + "Additional narrative detail about the visit. " * 10

    result = validation_service.validate(note, EPIC_TRANSFER)

    assert "epic_no_markers" in codes(result.warnings)


def test_missing_soap_headers_are_errors():
    text = "Patient doing well.\n\nNo changes to medication.\n"

    result = validation_service.validate(text, ClinicalContext())

    assert codes(result.errors).count("missing_soap_section") == 4
    assert not result.is_valid


def test_out_of_order_sections_warn(soap_note):
    subjective, rest = soap_note.split("Objective:\n", 1)
    reordered = "Objective:\n" + rest + "\n" + subjective

    result = validation_service.validate(reordered, CREDIBLE_TRANSFER)

    assert "soap_out_of_order" in codes(result.warnings)


def test_adding_a_structural_violation_never_raises_the_score(soap_note):
    baseline = validation_service.validate(soap_note, CREDIBLE_TRANSFER).score
    without_plan_header = soap_note.replace("Plan:\n", "")
    short_objective = soap_note.replace(
        soap_note[soap_note.index("Appearance"):soap_note.index("\n\nAssessment")], "Calm."
    )

    assert validation_service.validate(without_plan_header, CREDIBLE_TRANSFER).score <= baseline
    assert validation_service.validate(short_objective, CREDIBLE_TRANSFER).score <= baseline
    assert "short_section" in codes(validation_service.validate(short_objective, CREDIBLE_TRANSFER).warnings)


def test_quality_checks_on_a_thin_note():
    text = "Subjective:\nOK\nObjective:\nOK\nAssessment:\nOK\nPlan:\n[TBD]\n"

    result = validation_service.validate(text, ClinicalContext())

    warning_codes = codes(result.warnings)
    assert "note_too_short" in warning_codes
    assert "few_paragraphs" in warning_codes
    assert "placeholder_text" in warning_codes
    assert "Replace placeholder text with actual clinical content" in result.recommendations


def test_intake_checklist(soap_note):
    context = ClinicalContext.for_clinic("Davis Behavioral Health", VisitType.PSYCHIATRIC_INTAKE)

    result = validation_service.validate(soap_note, context)

    missing = {f.code: f.penalty for f in result.warnings if f.category == FindingCategory.COMPLETENESS}
    assert missing["missing_chief_complaint"] == 15
    assert missing["missing_risk_assessment"] == 20


def test_follow_up_does_not_require_safety_assessment():
    text = "Subjective:\nMood is good and medication is tolerated.\n\nPlan:\nContinue.\n"
    follow_up = validation_service.validate(text, ClinicalContext(visit_type=VisitType.FOLLOW_UP))
    other = validation_service.validate(text, ClinicalContext(visit_type=VisitType.OTHER))

    assert "missing_safety_assessment" not in codes(follow_up.warnings)
    assert "missing_safety_assessment" in codes(other.warnings)


def test_empty_note_scores_zero():
    result = validation_service.validate("  ", CREDIBLE_TRANSFER)

    assert not result.is_valid
    assert result.score == 0
    assert len(result.errors) == 1


def test_score_is_floored_at_zero():
    text = "@A1B@ .abc {List:1} *** SMARTPHRASE SmartPhrase DotPhrase SmartList XXX [TODO]"
    context = ClinicalContext.for_clinic("Davis Behavioral Health", VisitType.PSYCHIATRIC_INTAKE)

    assert validation_service.validate(text, context).score == 0


def test_validation_report(soap_note):
    note = soap_note.replace("Objective:\n", "Objective:\n@VITALS@\n")
    result = validation_service.validate(note, CREDIBLE_TRANSFER)

    report = build_validation_report(result, CREDIBLE_TRANSFER)

    assert report.startswith("VALIDATION REPORT - Davis Behavioral Health (CREDIBLE)\n")
    assert f"Score: {result.score}/100" in report
    assert "Status: INVALID" in report
    assert "ERRORS (1):" in report


def test_crlf_line_endings_score_like_lf(soap_note):
    lf = validation_service.validate(soap_note, CREDIBLE_TRANSFER)
    crlf = validation_service.validate(soap_note.replace("\n", "\r\n"), CREDIBLE_TRANSFER)

    assert crlf.score == lf.score == 100
    assert codes(crlf.warnings) == []


def test_safety_and_exam_terms_match_whole_words():
    text = (
        "Subjective:\nPatient picked up refills at the pharmacy and feels moody.\n\n"
        "Objective:\nAppearance is neat. Speech is normal.\n\n"
        "Assessment:\nAdjustment disorder.\n\n"
        "Plan:\nContinue current medication.\n"
    )

    result = validation_service.validate(text, CREDIBLE_TRANSFER)

    assert "missing_safety_assessment" in codes(result.warnings)
    assert "incomplete_mental_status" in codes(result.warnings)

    stated = validation_service.validate(text.replace("pharmacy", "pharmacy. No suicidal ideation"), CREDIBLE_TRANSFER)
    assert "missing_safety_assessment" not in codes(stated.warnings)
