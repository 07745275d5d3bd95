"""Request bodies for the prescription endpoints."""
from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class PrescribedDrugRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    medication_id: str
    dosage: str = ""
    frequency: str = ""
    duration: str = ""
    instructions: str = ""


class PrescriptionRequest(BaseModel):
    """Create or replace a patient's active prescription."""

    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)

    patient_id: str
    prescribing_physician: str = ""
    drugs: List[PrescribedDrugRequest] = Field(default_factory=list)


class AddDrugRequest(PrescribedDrugRequest):
    """Append one drug to the patient's active prescription."""

    prescribing_physician: str = ""
