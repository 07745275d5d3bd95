"""Domain records for patients, medications and prescriptions."""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

# Data files use camelCase keys; code uses snake_case attributes.
_RECORD_CONFIG = ConfigDict(
    extra="ignore",
    alias_generator=to_camel,
    populate_by_name=True,
)


def _none_to_empty(value: Any) -> Any:
    return [] if value is None else value


class Patient(BaseModel):
    """A patient with free-text allergy and chronic condition labels."""

    model_config = _RECORD_CONFIG

    patient_id: str
    full_name: str
    date_of_birth: Optional[str] = None
    gender: Optional[str] = None
    allergies: List[str] = Field(default_factory=list)
    chronic_conditions: List[str] = Field(default_factory=list)

    @field_validator("allergies", "chronic_conditions", mode="before")
    @classmethod
    def none_to_empty_labels(cls, value: Any) -> Any:
        return _none_to_empty(value)


class Medication(BaseModel):
    """A medication from the formulary.

    ``interaction_identifiers`` are normalized class tags such as ``NSAID`` or
    ``PENICILLIN`` used for rule matching; they never change after load.
    """

    model_config = ConfigDict(**_RECORD_CONFIG, frozen=True)

    medication_id: str
    generic_name: str
    brand_name: Optional[str] = None
    drug_class: Optional[str] = None
    interaction_identifiers: Tuple[str, ...] = ()

    @field_validator("interaction_identifiers", mode="before")
    @classmethod
    def none_to_empty_identifiers(cls, value: Any) -> Any:
        return _none_to_empty(value)

    @property
    def display_name(self) -> str:
        if self.brand_name:
            return f"{self.generic_name} ({self.brand_name})"
        return self.generic_name


class PrescribedDrug(BaseModel):
    """A medication line on a prescription. Only ``medication_id`` is used for checks."""

    model_config = _RECORD_CONFIG

    medication_id: str
    medication_name: Optional[str] = None
    dosage: str = ""
    frequency: str = ""
    duration: str = ""
    instructions: str = ""
    prescribing_physician: str = ""

    @classmethod
    def from_medication(
        cls,
        medication: Medication,
        dosage: str = "",
        frequency: str = "",
        duration: str = "",
        instructions: str = "",
        prescribing_physician: str = "",
    ) -> "PrescribedDrug":
        return cls(
            medication_id=medication.medication_id,
            medication_name=medication.display_name,
            dosage=dosage,
            frequency=frequency,
            duration=duration,
            instructions=instructions,
            prescribing_physician=prescribing_physician,
        )


class Prescription(BaseModel):
    """A patient's prescription: an ordered list of prescribed drugs."""

    model_config = _RECORD_CONFIG

    prescription_id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    patient_id: str
    patient_name: Optional[str] = None
    prescribing_physician: str = ""
    prescribed_drugs: List[PrescribedDrug] = Field(default_factory=list)
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @field_validator("prescribed_drugs", mode="before")
    @classmethod
    def none_to_empty_drugs(cls, value: Any) -> Any:
        return _none_to_empty(value)

    @classmethod
    def for_patient(cls, patient: Patient, prescribing_physician: str = "") -> "Prescription":
        return cls(
            patient_id=patient.patient_id,
            patient_name=patient.full_name,
            prescribing_physician=prescribing_physician,
        )

    def add_prescribed_drug(self, drug: PrescribedDrug) -> None:
        self.prescribed_drugs.append(drug)

    def snapshot(self) -> "Prescription":
        """Return a deep copy that later ``add_prescribed_drug`` calls won't affect."""
        return self.model_copy(deep=True)
