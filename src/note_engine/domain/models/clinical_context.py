from __future__ import annotations

from enum import Enum
from types import MappingProxyType

from pydantic import BaseModel


class EMRDialect(str, Enum):
    """EMR family a note is written for.

    EPIC notes may carry inline macro syntax (SmartPhrases, DotPhrases,
    SmartLists, wildcards). CREDIBLE notes must be plain text.
    """

    EPIC = "EPIC"
    CREDIBLE = "CREDIBLE"
    OTHER = "OTHER"


class VisitType(str, Enum):
    PSYCHIATRIC_INTAKE = "psychiatric_intake"
    TRANSFER_OF_CARE = "transfer_of_care"
    FOLLOW_UP = "follow_up"
    OTHER = "other"


# Known clinics and the EMR they document in.
CLINIC_DIALECTS = MappingProxyType(
    {
        "Davis Behavioral Health": EMRDialect.CREDIBLE,
        "HMHI Downtown": EMRDialect.EPIC,
    }
)


class ClinicalContext(BaseModel):
    """Organization and visit information a note is processed under."""

    clinic: str = ""
    emr_dialect: EMRDialect = EMRDialect.OTHER
    visit_type: VisitType = VisitType.OTHER

    @classmethod
    def for_clinic(cls, clinic: str, visit_type: VisitType = VisitType.OTHER) -> "ClinicalContext":
        """Build a context whose dialect is looked up from the clinic name.

        Unknown clinics get ``EMRDialect.OTHER``, which disables dialect rules.
        """

        return cls(
            clinic=clinic,
            emr_dialect=CLINIC_DIALECTS.get(clinic, EMRDialect.OTHER),
            visit_type=visit_type,
        )
