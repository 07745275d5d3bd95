from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from threading import Lock
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, TypeAdapter, ValidationError

from ..config import Settings
from ..models import Medication, Patient, PrescribedDrug, Prescription
from .errors import DataLoadError

logger = logging.getLogger(__name__)

PATIENTS_FILE = "patients.json"
MEDICATIONS_FILE = "medications.json"
PRESCRIPTIONS_FILE = "prescriptions.json"

_patients_adapter = TypeAdapter(List[Patient])
_medications_adapter = TypeAdapter(List[Medication])
_prescriptions_adapter = TypeAdapter(List[Prescription])


class DataService:
    """File-backed store of patients, medications, prescriptions and the rule corpus.

    Data is loaded once with ``load_all_data``; patient and prescription
    changes are written back to ``data_dir`` immediately. Medications and
    interaction rules are read-only.
    """

    def __init__(self, data_dir: Path, *, rules_file: str = "interaction_rules.json") -> None:
        self._data_dir = Path(data_dir)
        self._rules_file = rules_file
        self._lock = Lock()
        self._patients: List[Patient] = []
        self._medications: List[Medication] = []
        self._prescriptions: List[Prescription] = []
        self._interaction_rules: Dict[str, Any] = {}

    @property
    def data_dir(self) -> Path:
        return self._data_dir

    # -------------------------------------------------------------------------
    # Loading
    # -------------------------------------------------------------------------
    def load_all_data(self) -> None:
        patients = self._load_records(PATIENTS_FILE, _patients_adapter)
        medications = self._load_records(MEDICATIONS_FILE, _medications_adapter)
        prescriptions = self._load_records(PRESCRIPTIONS_FILE, _prescriptions_adapter)
        rules = self._read_file(self._rules_file) or {}
        if not isinstance(rules, dict):
            raise DataLoadError(
                f"{self._rules_file} must contain a mapping of rule families",
                reason="invalid_rules_file",
            )
        with self._lock:
            self._patients = patients
            self._medications = medications
            self._prescriptions = prescriptions
            self._interaction_rules = rules
        logger.info(
            "data_service.loaded patients=%d medications=%d prescriptions=%d rule_families=%d",
            len(patients),
            len(medications),
            len(prescriptions),
            len(rules),
        )

    def _read_file(self, filename: str) -> Any:
        path = self._data_dir / filename
        if not path.exists():
            raise DataLoadError(f"Cannot find data file: {path}", reason="data_file_missing")
        try:
            with path.open("r", encoding="utf-8") as fp:
                if path.suffix in {".yaml", ".yml"}:
                    return yaml.safe_load(fp)
                return json.load(fp)
        except (json.JSONDecodeError, yaml.YAMLError) as exc:
            raise DataLoadError(
                f"Failed to decode {filename}: {exc}",
                reason="data_file_invalid",
            ) from exc

    def _load_records(self, filename: str, adapter: TypeAdapter) -> List[Any]:
        raw = self._read_file(filename) or []
        try:
            return adapter.validate_python(raw)
        except ValidationError as exc:
            raise DataLoadError(
                f"Invalid records in {filename}: {exc.error_count()} error(s)",
                reason="data_file_invalid",
            ) from exc

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------
    def all_patients(self) -> List[Patient]:
        with self._lock:
            return list(self._patients)

    def all_medications(self) -> List[Medication]:
        with self._lock:
            return list(self._medications)

    def all_prescriptions(self) -> List[Prescription]:
        with self._lock:
            return list(self._prescriptions)

    def interaction_rules(self) -> Dict[str, Any]:
        with self._lock:
            return self._interaction_rules

    def get_patient(self, patient_id: str) -> Optional[Patient]:
        with self._lock:
            return next((p for p in self._patients if p.patient_id == patient_id), None)

    def get_medication(self, medication_id: str) -> Optional[Medication]:
        with self._lock:
            return next((m for m in self._medications if m.medication_id == medication_id), None)

    def search_patients(self, term: Optional[str]) -> List[Patient]:
        if term is None or not term.strip():
            return self.all_patients()
        needle = term.lower()
        with self._lock:
            return [p for p in self._patients if needle in p.full_name.lower()]

    def search_medications(self, term: Optional[str]) -> List[Medication]:
        if term is None or not term.strip():
            return self.all_medications()
        needle = term.lower()
        with self._lock:
            return [
                m
                for m in self._medications
                if needle in m.generic_name.lower()
                or (m.brand_name is not None and needle in m.brand_name.lower())
            ]

    def prescriptions_for_patient(self, patient_id: str) -> List[Prescription]:
        with self._lock:
            return [p for p in self._prescriptions if p.patient_id == patient_id]

    def active_prescription_for_patient(self, patient_id: str) -> Optional[Prescription]:
        with self._lock:
            return next((p for p in self._prescriptions if p.patient_id == patient_id), None)

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------
    # Every write builds the new list, persists it, and only then makes it
    # current, so a failed write leaves memory and disk as they were.

    def save_patient(self, patient: Patient) -> None:
        with self._lock:
            self._commit(patients=[*self._patients, patient])

    def update_patient(self, patient: Patient) -> None:
        """Replace the stored patient with the same id and persist."""
        with self._lock:
            patients = list(self._patients)
            for index, existing in enumerate(patients):
                if existing.patient_id == patient.patient_id:
                    patients[index] = patient
                    break
            else:
                patients.append(patient)
            self._commit(patients=patients)

    def delete_patient(self, patient: Patient) -> None:
        with self._lock:
            self._commit(
                patients=[p for p in self._patients if p.patient_id != patient.patient_id]
            )

    def save_prescription(self, prescription: Prescription) -> None:
        """Store ``prescription`` as the patient's only active prescription."""
        with self._lock:
            prescriptions = [
                p for p in self._prescriptions if p.patient_id != prescription.patient_id
            ]
            prescriptions.append(prescription)
            self._commit(prescriptions=prescriptions)

    def add_medication_to_existing_prescription(
        self,
        patient_id: str,
        medication: Medication,
        dosage: str,
        frequency: str,
        duration: str,
        prescribing_physician: str,
    ) -> bool:
        """Append a drug to the patient's active prescription; False if there is none."""
        with self._lock:
            index = next(
                (i for i, p in enumerate(self._prescriptions) if p.patient_id == patient_id),
                None,
            )
            if index is None:
                return False
            updated = self._prescriptions[index].model_copy(deep=True)
            updated.add_prescribed_drug(
                PrescribedDrug.from_medication(
                    medication,
                    dosage=dosage,
                    frequency=frequency,
                    duration=duration,
                    prescribing_physician=prescribing_physician,
                )
            )
            prescriptions = list(self._prescriptions)
            prescriptions[index] = updated
            self._commit(prescriptions=prescriptions)
            return True

    def save_all_data(self) -> None:
        with self._lock:
            self._commit(patients=self._patients, prescriptions=self._prescriptions)

    def _commit(
        self,
        *,
        patients: Optional[List[Patient]] = None,
        prescriptions: Optional[List[Prescription]] = None,
    ) -> None:
        """Write the given lists, then swap them in. Caller holds the lock."""
        if patients is not None:
            self._write_records(PATIENTS_FILE, patients)
            self._patients = patients
        if prescriptions is not None:
            self._write_records(PRESCRIPTIONS_FILE, prescriptions)
            self._prescriptions = prescriptions
        logger.info(
            "data_service.saved patients=%d prescriptions=%d",
            len(self._patients),
            len(self._prescriptions),
        )

    def _write_records(self, filename: str, records: List[BaseModel]) -> None:
        """Replace ``filename`` atomically: write a sibling temp file, then rename it over."""
        path = self._data_dir / filename
        path.parent.mkdir(parents=True, exist_ok=True)
        payload = [record.model_dump(mode="json", by_alias=True) for record in records]
        with tempfile.NamedTemporaryFile(
            "w",
            encoding="utf-8",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
        ) as fp:
            tmp_path = Path(fp.name)
            try:
                json.dump(payload, fp, ensure_ascii=False, indent=2)
            except BaseException:
                fp.close()
                tmp_path.unlink(missing_ok=True)
                raise
        try:
            os.replace(tmp_path, path)
        except OSError:
            tmp_path.unlink(missing_ok=True)
            raise


# Singleton instance
_data_service: Optional[DataService] = None


def get_data_service(settings: Settings) -> DataService:
    """Get or create the data service, loading data on first use."""
    global _data_service
    if _data_service is None:
        service = DataService(settings.data_dir, rules_file=settings.rules_file)
        service.load_all_data()
        _data_service = service
    return _data_service


def reset_data_service() -> None:
    global _data_service
    _data_service = None
