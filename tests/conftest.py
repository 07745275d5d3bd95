"""Shared pytest fixtures for all tests."""

from __future__ import annotations

import shutil
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List

import pytest
from fastapi.testclient import TestClient

from rxcheck.config import DEFAULT_DATA_DIR, Settings, get_settings
from rxcheck.main import create_app
from rxcheck.models import Medication, Patient, PrescribedDrug, Prescription
from rxcheck.routers.dependencies import get_data_service_dependency
from rxcheck.services.data_service import DataService
from rxcheck.services.interactions import InteractionEngine
from rxcheck.services.metrics import get_metrics_service


@pytest.fixture
def amoxicillin() -> Medication:
    return Medication(
        medication_id="M001",
        generic_name="Amoxicillin",
        brand_name="Amoxil",
        interaction_identifiers=["PENICILLIN", "BETA_LACTAM"],
    )


@pytest.fixture
def ibuprofen() -> Medication:
    return Medication(
        medication_id="M002",
        generic_name="Ibuprofen",
        brand_name="Advil",
        interaction_identifiers=["NSAID"],
    )


@pytest.fixture
def warfarin() -> Medication:
    return Medication(
        medication_id="M003",
        generic_name="Warfarin",
        brand_name="Coumadin",
        interaction_identifiers=["ANTICOAGULANT"],
    )


@pytest.fixture
def lisinopril() -> Medication:
    return Medication(
        medication_id="M004",
        generic_name="Lisinopril",
        interaction_identifiers=["ACE_INHIBITOR"],
    )


@pytest.fixture
def all_medications(
    amoxicillin: Medication,
    ibuprofen: Medication,
    warfarin: Medication,
    lisinopril: Medication,
) -> List[Medication]:
    return [amoxicillin, ibuprofen, warfarin, lisinopril]


@pytest.fixture
def kumar() -> Patient:
    """Penicillin allergy plus hypertension and kidney disease."""
    return Patient(
        patient_id="P001",
        full_name="Arjun Kumar",
        allergies=["Penicillin"],
        chronic_conditions=["Hypertension", "Chronic Kidney Disease"],
    )


@pytest.fixture
def patel() -> Patient:
    """No allergies and no chronic conditions."""
    return Patient(patient_id="P002", full_name="Meera Patel")


@pytest.fixture
def rules() -> Dict[str, Any]:
    return {
        "drugAllergyInteractions": {
            "penicillin": {
                "allergyKeywords": ["penicillin"],
                "medicationClasses": ["PENICILLIN"],
                "recommendation": "Avoid penicillins",
            },
        },
        "drugDrugInteractions": {
            "nsaid_anticoagulant": {
                "drug1": "NSAID",
                "drug2": "ANTICOAGULANT",
                "severity": "CRITICAL",
                "description": "Bleeding risk",
                "recommendation": "Avoid combination",
            },
        },
        "drugConditionInteractions": {
            "nsaid_kidney": {
                "conditionKeywords": ["kidney"],
                "medicationClasses": ["NSAID"],
                "severity": "CRITICAL",
                "description": "Worsens renal function",
            },
            "nsaid_hypertension": {
                "conditionKeywords": "hypertension",
                "medicationClasses": "NSAID",
                "description": "Raises blood pressure",
            },
        },
    }


@pytest.fixture
def prescribe() -> Callable[..., Prescription]:
    """Build a prescription for a patient from medications, in the given order."""

    def _prescribe(patient: Patient, *medications: Medication) -> Prescription:
        prescription = Prescription.for_patient(patient, "Dr. Test")
        for medication in medications:
            prescription.add_prescribed_drug(PrescribedDrug.from_medication(medication))
        return prescription

    return _prescribe


@pytest.fixture
def engine() -> Iterator[InteractionEngine]:
    interaction_engine = InteractionEngine()
    yield interaction_engine
    interaction_engine.shutdown()


@pytest.fixture
def data_dir(tmp_path: Path) -> Path:
    """Writable copy of the packaged sample data."""
    target = tmp_path / "data"
    shutil.copytree(DEFAULT_DATA_DIR, target)
    return target


@pytest.fixture
def data_service(data_dir: Path) -> DataService:
    service = DataService(data_dir)
    service.load_all_data()
    return service


@pytest.fixture
def settings(data_dir: Path) -> Settings:
    return Settings(data_dir=data_dir)


@pytest.fixture
def client(settings: Settings, data_service: DataService) -> Iterator[TestClient]:
    """Test client bound to a temporary copy of the sample data."""
    get_metrics_service().reset()
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_data_service_dependency] = lambda: data_service
    with TestClient(app) as test_client:
        yield test_client
