import asyncio
import re

import pytest

from src.note_engine.domain.errors import RegenerationFailedError
from src.note_engine.domain.models.clinical_context import ClinicalContext, EMRDialect, VisitType
from src.note_engine.domain.models.note import StandardizedSectionType as T
from src.note_engine.domain.models.updates import UpdateDirective
from src.note_engine.services.generation.backends import DemoGenerationBackend
from src.note_engine.services.generation.service import SectionRegenerationService, clean_generated_text
from src.note_engine.services.sections.detector import section_detector
from src.note_engine.services.updates.planner import update_planner

CONTEXT = ClinicalContext(
    clinic="Davis Behavioral Health",
    emr_dialect=EMRDialect.CREDIBLE,
    visit_type=VisitType.FOLLOW_UP,
)

_TITLE_RE = re.compile(r"^# UPDATE SINGLE SECTION: (?P<title>.+)$", re.MULTILINE)


def title_of(prompt: str) -> str:
    return _TITLE_RE.search(prompt).group("title")


class RecordingBackend:
    """Sleeps per section and tracks how many calls are in flight at once."""

    def __init__(self, delays=None, fail=(), empty=()):
        self.delays = delays or {}
        self.fail = set(fail)
        self.empty = set(empty)
        self.active = 0
        self.max_active = 0
        self.completion_order = []

    async def generate(self, instructions, context):
        title = title_of(instructions)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(title, 0.01))
        finally:
            self.active -= 1
        self.completion_order.append(title)
        if title in self.fail:
            raise RuntimeError("upstream returned 500")
        if title in self.empty:
            return "```\n\n```"
        return f"New {title} text."


def plan_for(note, section_types):
    parsed = section_detector.parse(note)
    directives = [UpdateDirective(section_type=t, should_update=True) for t in section_types]
    return update_planner.plan(parsed, directives, source_material="Patient reports steady mood.")


async def test_sections_are_generated_concurrently_and_returned_in_note_order(soap_note):
    backend = RecordingBackend(delays={"Subjective": 0.2, "Objective": 0.15, "Assessment": 0.1, "Plan": 0.05})
    service = SectionRegenerationService(backend=backend, timeout_seconds=5)

    result = await service.regenerate(plan_for(soap_note, [T.PLAN, T.SUBJECTIVE, T.ASSESSMENT, T.OBJECTIVE]), CONTEXT)

    assert backend.max_active == 4
    assert backend.completion_order[0] == "Plan"
    assert list(result) == [T.SUBJECTIVE, T.OBJECTIVE, T.ASSESSMENT, T.PLAN]
    assert result[T.OBJECTIVE] == "New Objective text."


async def test_one_failing_section_aborts_the_batch(soap_note):
    backend = RecordingBackend(fail={"Objective"})
    service = SectionRegenerationService(backend=backend, timeout_seconds=5)

    with pytest.raises(RegenerationFailedError) as excinfo:
        await service.regenerate(plan_for(soap_note, [T.SUBJECTIVE, T.OBJECTIVE, T.PLAN]), CONTEXT)

    error = excinfo.value
    assert error.failed_section_types == [T.OBJECTIVE]
    assert "upstream returned 500" in error.failures[0].reason
    assert set(error.completed) == {T.SUBJECTIVE, T.PLAN}


async def test_slow_section_times_out_alone(soap_note):
    backend = RecordingBackend(delays={"Plan": 1.0})
    service = SectionRegenerationService(backend=backend, timeout_seconds=0.1)

    with pytest.raises(RegenerationFailedError) as excinfo:
        await service.regenerate(plan_for(soap_note, [T.SUBJECTIVE, T.PLAN]), CONTEXT)

    assert excinfo.value.failed_section_types == [T.PLAN]
    assert "timed out" in excinfo.value.failures[0].reason
    assert excinfo.value.completed == {T.SUBJECTIVE: "New Subjective text."}


async def test_empty_generation_counts_as_failure(soap_note):
    service = SectionRegenerationService(backend=RecordingBackend(empty={"Assessment"}), timeout_seconds=5)

    with pytest.raises(RegenerationFailedError) as excinfo:
        await service.regenerate(plan_for(soap_note, [T.ASSESSMENT]), CONTEXT)

    assert excinfo.value.failed_section_types == [T.ASSESSMENT]


async def test_empty_plan_makes_no_calls(soap_note):
    backend = RecordingBackend()
    service = SectionRegenerationService(backend=backend)

    assert await service.regenerate(plan_for(soap_note, []), CONTEXT) == {}
    assert backend.completion_order == []


async def test_demo_backend_uses_new_clinical_information(soap_note):
    service = SectionRegenerationService(backend=DemoGenerationBackend())

    result = await service.regenerate(plan_for(soap_note, [T.SUBJECTIVE]), CONTEXT)

    assert result[T.SUBJECTIVE] == "Updated from current encounter: Patient reports steady mood."


def test_clean_generated_text_strips_model_artifacts():
    raw = "```\nHere is the updated section:\nMood is stable.\n\n\n\nSleep improved.\n```"
    assert clean_generated_text(raw) == "Mood is stable.\n\nSleep improved."
    assert clean_generated_text("UPDATED SECTION CONTENT: Denies side effects.") == "Denies side effects."
    assert clean_generated_text("```text\n```") == ""
