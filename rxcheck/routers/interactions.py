from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import asdict
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, Depends

from ..config import Settings, get_settings
from ..models import (
    AlertLevel,
    InteractionCheckRequest,
    InteractionCheckResponse,
    Patient,
    PrescribedDrug,
    Prescription,
)
from ..services.data_service import DataService
from ..services.errors import AppError, BadRequestError, NotFoundError
from ..services.interactions import InteractionEngine
from ..services.metrics import get_metrics_service
from ..utils.logging import get_request_logger
from .dependencies import get_data_service_dependency, get_interaction_engine

router = APIRouter(prefix="/api/interactions", tags=["interactions"])
logger = logging.getLogger(__name__)


def build_prescription(
    request: InteractionCheckRequest,
    patient: Patient,
    data_service: DataService,
) -> Prescription:
    """Build the prescription snapshot to check from the request.

    Unknown medication ids are kept as-is; the strategies skip what they
    cannot resolve.
    """
    prescription = Prescription.for_patient(patient, request.prescribing_physician)
    if request.include_active_prescription:
        active = data_service.active_prescription_for_patient(patient.patient_id)
        if active is not None:
            for drug in active.prescribed_drugs:
                prescription.add_prescribed_drug(drug.model_copy())

    for medication_id in request.medication_ids:
        medication = data_service.get_medication(medication_id)
        if medication is not None:
            drug = PrescribedDrug.from_medication(
                medication, prescribing_physician=request.prescribing_physician
            )
        else:
            drug = PrescribedDrug(
                medication_id=medication_id,
                prescribing_physician=request.prescribing_physician,
            )
        prescription.add_prescribed_drug(drug)

    if not prescription.prescribed_drugs:
        raise BadRequestError("nothing to check: no medications given", reason="empty_prescription")
    return prescription


@router.post("/check", response_model=InteractionCheckResponse)
async def check_interactions(
    request: InteractionCheckRequest,
    settings: Settings = Depends(get_settings),
    data_service: DataService = Depends(get_data_service_dependency),
    engine: InteractionEngine = Depends(get_interaction_engine),
) -> InteractionCheckResponse:
    trace_id = uuid4().hex if settings.enable_request_tracing else None
    request_logger = get_request_logger(logger, trace_id=trace_id, patient_id=request.patient_id)
    metrics = get_metrics_service()

    patient = data_service.get_patient(request.patient_id)
    if patient is None:
        raise NotFoundError(f"Unknown patient {request.patient_id}", reason="patient_not_found")
    prescription = build_prescription(request, patient, data_service)

    start_time = time.perf_counter()
    try:
        alerts = await engine.check_all_interactions(
            patient,
            prescription.snapshot(),
            data_service.interaction_rules(),
            data_service.all_medications(),
        )
    except AppError:
        metrics.record_check_failure()
        raise
    latency_ms = (time.perf_counter() - start_time) * 1000
    metrics.record_check(alerts, latency_ms=latency_ms)

    counts = Counter(alert.alert_type for alert in alerts)
    has_critical = any(alert.level == AlertLevel.CRITICAL for alert in alerts)
    request_logger.info(
        f"interaction_check drugs={len(prescription.prescribed_drugs)} "
        f"alerts={len(alerts)} critical={has_critical} latency_ms={latency_ms:.1f}"
    )
    return InteractionCheckResponse(
        patient_id=request.patient_id,
        alerts=alerts,
        has_critical=has_critical,
        alert_counts=dict(counts),
        checked_medications_count=len(prescription.prescribed_drugs),
        meta={"trace_id": trace_id},
    )


@router.get("/metrics")
async def interaction_metrics() -> dict[str, Any]:
    return asdict(get_metrics_service().snapshot())
