import pytest


SOAP_NOTE = (
    "Subjective:\n"
    "Patient reports improved mood and better sleep on current treatment with sertraline. "
    "Denies suicidal ideation. Response to medication has been good.\n\n"
    "Objective:\n"
    "Appearance is well groomed. Behavior is calm and cooperative. Speech is normal in rate. "
    "Affect is euthymic. Thought process is linear. Insight and judgment are fair.\n\n"
    "Assessment:\n"
    "Major depressive disorder, improving. Low risk of harm to self or others.\n\n"
    "Plan:\n"
    "Continue sertraline 100 mg daily and weekly therapy. Recommendation is to follow up in four weeks.\n"
)

STANDARDIZED_NOTE = (
    "Patient: J. Doe\n\n"
    "History of Present Illness:\n"
    "Patient was seen for anxiety and low mood after a job loss in the spring.\n\n"
    "Current Medications:\n"
    "Sertraline 50 mg daily\n\n"
    "Psychiatric Exam:\n"
    "Alert and oriented, anxious affect, linear thought process.\n\n"
    "Assessment and Plan:\n"
    "Generalized anxiety disorder. Increase sertraline and start weekly therapy.\n"
)


@pytest.fixture
def soap_note() -> str:
    return SOAP_NOTE


@pytest.fixture
def standardized_note() -> str:
    return STANDARDIZED_NOTE
