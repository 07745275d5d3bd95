"""Models for interaction alerts and interaction check requests."""
from __future__ import annotations

from enum import StrEnum
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# family -> rule id -> rule fields, exactly as loaded from the rules file
RuleCorpus = Mapping[str, Any]

DRUG_ALLERGY_FAMILY = "drugAllergyInteractions"
DRUG_DRUG_FAMILY = "drugDrugInteractions"
DRUG_CONDITION_FAMILY = "drugConditionInteractions"


class AlertLevel(StrEnum):
    """Severity of an interaction alert."""

    CRITICAL = "CRITICAL"   # Do not dispense without prescriber review
    WARNING = "WARNING"     # Monitor or consider an alternative


class AlertType(StrEnum):
    """Which rule family produced an alert."""

    DRUG_ALLERGY = "DRUG_ALLERGY"
    DRUG_DRUG = "DRUG_DRUG"
    DRUG_CONDITION = "DRUG_CONDITION"


class InteractionAlert(BaseModel):
    """A single detected interaction."""

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    level: AlertLevel
    alert_type: AlertType
    title: str
    message: str
    recommendation: Optional[str] = Field(None, description="Copied verbatim from the matched rule")
    involved: str = Field(..., description="Medications or conditions involved")
    trigger: Optional[str] = Field(None, description="Allergy label that triggered the alert")


class InteractionCheckRequest(BaseModel):
    """Request to check a proposed prescription for a patient."""

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    patient_id: str
    medication_ids: List[str] = Field(
        default_factory=list,
        description="Medications being prescribed, in prescription order",
    )
    prescribing_physician: str = ""
    include_active_prescription: bool = Field(
        default=False,
        description="Also check the drugs already on the patient's active prescription",
    )


class InteractionCheckResponse(BaseModel):
    """Combined alerts from every registered strategy."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    patient_id: str
    alerts: List[InteractionAlert] = Field(default_factory=list)
    has_critical: bool = False
    alert_counts: Dict[AlertType, int] = Field(default_factory=dict)
    checked_medications_count: int = 0
    meta: Optional[Dict[str, Any]] = None
