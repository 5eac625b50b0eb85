from __future__ import annotations

from types import MappingProxyType
from typing import List, Mapping, Tuple

from src.note_engine.domain.models.clinical_context import EMRDialect, VisitType
from src.note_engine.domain.models.note import StandardizedSectionType as T

GENERIC_INSTRUCTIONS = "Update section with relevant new information from the clinical encounter."

# Base instructions per section type, used for any visit type without a more
# specific entry below.
SECTION_INSTRUCTIONS: Mapping[T, str] = MappingProxyType(
    {
        T.HPI: (
            "Update with current visit information, patient reports, and progress since last visit. Include:\n"
            "- Reason for current visit\n"
            "- Patient's current status and reports\n"
            "- Changes since last appointment\n"
            "- Response to previous treatment plan"
        ),
        T.REVIEW_OF_SYSTEMS: (
            "Update with current symptom assessment:\n"
            "- Current mood state and symptoms\n"
            "- Sleep, appetite, energy levels\n"
            "- Anxiety levels and manifestations\n"
            "- Any new or changed symptoms"
        ),
        T.PSYCHIATRIC_EXAM: (
            "Update with current mental status examination findings:\n"
            "- Appearance and behavior\n"
            "- Mood and affect\n"
            "- Thought process and content\n"
            "- Cognitive function\n"
            "- Insight and judgment"
        ),
        T.ASSESSMENT_AND_PLAN: (
            "Update the clinical assessment and treatment plan:\n"
            "- Current diagnostic impressions\n"
            "- Response to treatment\n"
            "- Treatment modifications\n"
            "- New interventions or recommendations"
        ),
        T.CURRENT_MEDICATIONS: (
            "Update the current medication list:\n"
            "- Current active medications with dosages\n"
            "- Recent medication changes\n"
            "- Medication compliance and tolerability"
        ),
        T.MEDICATIONS_PLAN: (
            "Update medication management plan:\n"
            "- New prescriptions or dosage changes\n"
            "- Medication adjustments planned\n"
            "- Monitoring requirements\n"
            "- Patient education provided"
        ),
        T.RISKS: (
            "Update current risk assessment:\n"
            "- Suicide risk factors and protective factors\n"
            "- Safety concerns\n"
            "- Risk level assessment\n"
            "- Safety planning needs"
        ),
        T.SAFETY_PLAN: (
            "Update safety planning:\n"
            "- Current safety plan status\n"
            "- Any modifications needed\n"
            "- Emergency contacts and resources\n"
            "- Coping strategies reviewed"
        ),
        T.QUESTIONNAIRES_SURVEYS: (
            "Update with current assessment scores:\n"
            "- PHQ-9, GAD-7, or other standardized assessments\n"
            "- Comparison to previous scores\n"
            "- Clinical significance of changes"
        ),
        T.MEDICAL: (
            "Update medical information:\n"
            "- New medical conditions or changes\n"
            "- Recent medical appointments or findings\n"
            "- Relevant medical updates affecting psychiatric treatment"
        ),
        T.PSYCHOSOCIAL: (
            "Update psychosocial interventions:\n"
            "- Therapy progress and recommendations\n"
            "- Social support systems\n"
            "- Psychosocial stressors or improvements"
        ),
        T.FOLLOW_UP: (
            "Update follow-up planning:\n"
            "- Next appointment scheduling\n"
            "- Interim contact plans\n"
            "- Monitoring requirements\n"
            "- Patient instructions"
        ),
        T.SUBJECTIVE: "Update with current subjective findings and patient reports.",
        T.OBJECTIVE: "Update with current objective findings and observations.",
        T.ASSESSMENT: "Update clinical assessment and diagnostic impressions.",
        T.PLAN: "Update treatment plan and recommendations.",
        T.UNKNOWN: "Update section content appropriately based on context.",
    }
)

# Visit-specific overrides keyed by (section type, visit type).
VISIT_INSTRUCTIONS: Mapping[Tuple[T, VisitType], str] = MappingProxyType(
    {
        (T.HPI, VisitType.TRANSFER_OF_CARE): (
            "Summarize the interval history since the previous clinician's last visit. Include:\n"
            "- Reason for transfer and current visit\n"
            "- Course of illness and treatment to date\n"
            "- Response to the current treatment plan\n"
            "- Any new stressors or symptoms"
        ),
        (T.HPI, VisitType.FOLLOW_UP): (
            "Update with interval changes since the last appointment:\n"
            "- Current symptoms and patient reports\n"
            "- Response to treatment and adherence\n"
            "- Side effects or new concerns"
        ),
        (T.HPI, VisitType.PSYCHIATRIC_INTAKE): (
            "Document the presenting problem in full:\n"
            "- Chief complaint in the patient's words\n"
            "- Onset, duration, and course of symptoms\n"
            "- Precipitating factors and prior treatment"
        ),
        (T.ASSESSMENT_AND_PLAN, VisitType.TRANSFER_OF_CARE): (
            "Restate the working diagnoses for the receiving clinician:\n"
            "- Current treatment and response\n"
            "- Outstanding issues and monitoring needs\n"
            "- Recommendations for ongoing care"
        ),
        (T.ASSESSMENT_AND_PLAN, VisitType.FOLLOW_UP): (
            "Update the plan based on treatment response:\n"
            "- Changes to diagnoses only if supported by new findings\n"
            "- Medication or therapy adjustments\n"
            "- Monitoring and next steps"
        ),
        (T.CURRENT_MEDICATIONS, VisitType.TRANSFER_OF_CARE): (
            "Reconcile the medication list at handoff:\n"
            "- Active medications with dose and frequency\n"
            "- Recent changes and reasons\n"
            "- Adherence, tolerability, and labs due"
        ),
        (T.RISKS, VisitType.PSYCHIATRIC_INTAKE): (
            "Document a complete baseline risk assessment:\n"
            "- Suicidal and homicidal ideation, plan, intent\n"
            "- History of attempts or self-harm\n"
            "- Risk and protective factors\n"
            "- Overall risk level"
        ),
        (T.RISKS, VisitType.TRANSFER_OF_CARE): (
            "Update the risk assessment for the receiving clinician:\n"
            "- Current suicide and violence risk with supporting factors\n"
            "- Changes since the previous assessment\n"
            "- Safety planning needs"
        ),
        (T.FOLLOW_UP, VisitType.TRANSFER_OF_CARE): (
            "Document the handoff plan:\n"
            "- First appointment with the receiving clinician\n"
            "- Interim contact and crisis resources\n"
            "- Pending results or referrals"
        ),
        (T.SUBJECTIVE, VisitType.FOLLOW_UP): "Update with interval changes and treatment response reported by the patient.",
        (T.OBJECTIVE, VisitType.FOLLOW_UP): "Update with the current clinical presentation and mental status.",
        (T.PLAN, VisitType.FOLLOW_UP): "Adjust the plan based on treatment response.",
        (T.SUBJECTIVE, VisitType.TRANSFER_OF_CARE): "Update with interval history since the last visit.",
        (T.OBJECTIVE, VisitType.TRANSFER_OF_CARE): "Update with current mental status and clinical findings.",
        (T.ASSESSMENT, VisitType.TRANSFER_OF_CARE): "Revise diagnostic impression and severity.",
        (T.PLAN, VisitType.TRANSFER_OF_CARE): "Update treatment plan and recommendations for the receiving clinician.",
    }
)


def instructions_for(section_type: T, visit_type: VisitType) -> str:
    specific = VISIT_INSTRUCTIONS.get((section_type, visit_type))
    if specific is not None:
        return specific
    return SECTION_INSTRUCTIONS.get(section_type, GENERIC_INSTRUCTIONS)


def formatting_constraints(dialect: EMRDialect) -> List[str]:
    """Formatting rules the generated text must respect for an EMR dialect."""

    constraints = [
        "Keep the same structure and tone as the original section",
        "Return only the section body, without the section header or commentary",
        "If no relevant new information is found, return the section unchanged",
    ]
    if dialect == EMRDialect.EPIC:
        constraints.insert(0, "Maintain EPIC formatting conventions")
        constraints.insert(
            1,
            "Preserve Epic SmartPhrases (@PHRASE@), DotPhrases (.phrase), SmartLists ({List:123}) "
            "and *** wildcards exactly as written",
        )
    else:
        constraints.insert(0, f"Maintain {dialect.value} formatting conventions")
        constraints.insert(
            1,
            "Plain text only: do not use SmartPhrases, DotPhrases, SmartLists, *** wildcards "
            "or any other EMR macro syntax",
        )
    return constraints
