from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from ..models import (
    AddDrugRequest,
    Medication,
    Patient,
    PrescribedDrug,
    Prescription,
    PrescriptionRequest,
)
from ..services.data_service import DataService
from ..services.errors import BadRequestError, NotFoundError
from .dependencies import get_data_service_dependency

router = APIRouter(prefix="/api", tags=["records"])
logger = logging.getLogger(__name__)


def _require_patient(data_service: DataService, patient_id: str) -> Patient:
    patient = data_service.get_patient(patient_id)
    if patient is None:
        raise NotFoundError(f"Unknown patient {patient_id}", reason="patient_not_found")
    return patient


def _require_medication(data_service: DataService, medication_id: str) -> Medication:
    medication = data_service.get_medication(medication_id)
    if medication is None:
        raise NotFoundError(f"Unknown medication {medication_id}", reason="medication_not_found")
    return medication


@router.get("/patients", response_model=List[Patient])
async def search_patients(
    q: Optional[str] = Query(None, description="Case-insensitive part of the patient's full name"),
    data_service: DataService = Depends(get_data_service_dependency),
) -> List[Patient]:
    return data_service.search_patients(q)


@router.get("/medications", response_model=List[Medication])
async def search_medications(
    q: Optional[str] = Query(None, description="Case-insensitive part of the generic or brand name"),
    data_service: DataService = Depends(get_data_service_dependency),
) -> List[Medication]:
    return data_service.search_medications(q)


@router.get("/patients/{patient_id}/prescriptions", response_model=List[Prescription])
async def list_prescriptions(
    patient_id: str,
    data_service: DataService = Depends(get_data_service_dependency),
) -> List[Prescription]:
    _require_patient(data_service, patient_id)
    return data_service.prescriptions_for_patient(patient_id)


@router.post("/prescriptions", response_model=Prescription, status_code=status.HTTP_201_CREATED)
async def save_prescription(
    request: PrescriptionRequest,
    data_service: DataService = Depends(get_data_service_dependency),
) -> Prescription:
    """Replace the patient's active prescription."""
    patient = _require_patient(data_service, request.patient_id)
    if not request.drugs:
        raise BadRequestError("prescription must contain at least one drug", reason="empty_prescription")

    prescription = Prescription.for_patient(patient, request.prescribing_physician)
    for line in request.drugs:
        medication = _require_medication(data_service, line.medication_id)
        prescription.add_prescribed_drug(
            PrescribedDrug.from_medication(
                medication,
                dosage=line.dosage,
                frequency=line.frequency,
                duration=line.duration,
                instructions=line.instructions,
                prescribing_physician=request.prescribing_physician,
            )
        )
    data_service.save_prescription(prescription)
    logger.info(
        "prescription.saved patient_id=%s drugs=%d",
        patient.patient_id,
        len(prescription.prescribed_drugs),
    )
    return prescription


@router.post("/prescriptions/{patient_id}/drugs", response_model=Prescription)
async def add_prescribed_drug(
    patient_id: str,
    request: AddDrugRequest,
    data_service: DataService = Depends(get_data_service_dependency),
) -> Prescription:
    """Append a drug to the patient's active prescription."""
    _require_patient(data_service, patient_id)
    medication = _require_medication(data_service, request.medication_id)
    added = data_service.add_medication_to_existing_prescription(
        patient_id,
        medication,
        request.dosage,
        request.frequency,
        request.duration,
        request.prescribing_physician,
    )
    if not added:
        raise NotFoundError(
            f"Patient {patient_id} has no active prescription",
            reason="prescription_not_found",
        )
    return data_service.active_prescription_for_patient(patient_id)
