from __future__ import annotations

from .clinical import Medication, Patient, PrescribedDrug, Prescription
from .interaction import (
    DRUG_ALLERGY_FAMILY,
    DRUG_CONDITION_FAMILY,
    DRUG_DRUG_FAMILY,
    AlertLevel,
    AlertType,
    InteractionAlert,
    InteractionCheckRequest,
    InteractionCheckResponse,
    RuleCorpus,
)
from .requests import AddDrugRequest, PrescribedDrugRequest, PrescriptionRequest

__all__ = [
    "AddDrugRequest",
    "AlertLevel",
    "AlertType",
    "DRUG_ALLERGY_FAMILY",
    "DRUG_CONDITION_FAMILY",
    "DRUG_DRUG_FAMILY",
    "InteractionAlert",
    "InteractionCheckRequest",
    "InteractionCheckResponse",
    "Medication",
    "Patient",
    "PrescribedDrug",
    "Prescription",
    "PrescribedDrugRequest",
    "PrescriptionRequest",
    "RuleCorpus",
]
