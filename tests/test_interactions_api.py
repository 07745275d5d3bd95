from __future__ import annotations

from fastapi.testclient import TestClient

from rxcheck.config import get_settings
from rxcheck.main import create_app
from rxcheck.routers.dependencies import get_data_service_dependency
from rxcheck.services.interactions import InteractionCheckStrategy, InteractionEngine


class ExplodingStrategy(InteractionCheckStrategy):
    name = "Exploding Check"

    def check(self, patient, prescription, rules, all_medications):
        raise RuntimeError("boom")


def _check(client: TestClient, **payload):
    return client.post("/api/interactions/check", json=payload)


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_search_patients_returns_camel_case_records(client: TestClient) -> None:
    response = client.get("/api/patients", params={"q": "patel"})

    assert response.status_code == 200, response.text
    payload = response.json()
    assert [p["patientId"] for p in payload] == ["P002"]
    assert payload[0]["chronicConditions"] == ["Type 2 Diabetes"]


def test_search_medications_by_brand(client: TestClient) -> None:
    response = client.get("/api/medications", params={"q": "coumadin"})

    assert response.status_code == 200, response.text
    payload = response.json()
    assert [m["genericName"] for m in payload] == ["Warfarin"]
    assert payload[0]["interactionIdentifiers"] == ["ANTICOAGULANT", "VITAMIN_K_ANTAGONIST"]
    assert len(client.get("/api/medications").json()) == 11


def test_check_bleeding_risk_for_kidney_patient(client: TestClient) -> None:
    response = _check(client, patientId="P001", medicationIds=["M002", "M003"])

    assert response.status_code == 200, response.text
    payload = response.json()
    assert [a["alertType"] for a in payload["alerts"]] == [
        "DRUG_DRUG",
        "DRUG_CONDITION",
        "DRUG_CONDITION",
    ]
    assert payload["alerts"][0]["level"] == "CRITICAL"
    assert payload["alerts"][0]["involved"] == "Ibuprofen (Advil) & Warfarin (Coumadin)"
    assert payload["hasCritical"] is True
    assert payload["alertCounts"] == {"DRUG_DRUG": 1, "DRUG_CONDITION": 2}
    assert payload["checkedMedicationsCount"] == 2
    assert payload["meta"]["trace_id"]


def test_check_response_uses_camel_case_and_accepts_snake_case(client: TestClient) -> None:
    response = client.post(
        "/api/interactions/check",
        json={"patient_id": "P001", "medication_ids": ["M001"]},
    )

    assert response.status_code == 200, response.text
    payload = response.json()
    assert set(payload) == {
        "patientId",
        "alerts",
        "hasCritical",
        "alertCounts",
        "checkedMedicationsCount",
        "meta",
    }
    assert set(payload["alerts"][0]) == {
        "level",
        "alertType",
        "title",
        "message",
        "recommendation",
        "involved",
        "trigger",
    }


def test_check_includes_active_prescription(client: TestClient) -> None:
    response = _check(
        client,
        patientId="P001",
        medicationIds=["M002"],
        includeActivePrescription=True,
    )

    assert response.status_code == 200, response.text
    payload = response.json()
    drug_drug = [a for a in payload["alerts"] if a["alertType"] == "DRUG_DRUG"]
    assert len(drug_drug) == 1
    assert drug_drug[0]["level"] == "WARNING"
    assert drug_drug[0]["involved"] == "Lisinopril (Zestril) & Ibuprofen (Advil)"
    assert payload["alertCounts"]["DRUG_CONDITION"] == 2
    assert payload["checkedMedicationsCount"] == 2


def test_check_allergy_alert(client: TestClient) -> None:
    payload = _check(client, patientId="P001", medicationIds=["M001"]).json()

    assert [a["alertType"] for a in payload["alerts"]] == ["DRUG_ALLERGY"]
    assert payload["alerts"][0]["trigger"] == "Penicillin"


def test_check_unknown_patient(client: TestClient) -> None:
    response = _check(client, patientId="P999", medicationIds=["M002"])

    assert response.status_code == 404
    error = response.json()["meta"]["error"]
    assert error == {"code": "NOT_FOUND", "reason": "patient_not_found"}


def test_check_without_medications(client: TestClient) -> None:
    response = _check(client, patientId="P002", medicationIds=[])

    assert response.status_code == 400
    assert response.json()["meta"]["error"]["reason"] == "empty_prescription"


def test_unknown_medication_is_checked_without_alerts(client: TestClient) -> None:
    response = _check(client, patientId="P002", medicationIds=["M999"])

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["alerts"] == []
    assert payload["hasCritical"] is False
    assert payload["checkedMedicationsCount"] == 1


def test_check_after_engine_shutdown(client: TestClient) -> None:
    client.app.state.interaction_engine.shutdown()

    response = _check(client, patientId="P002", medicationIds=["M002"])

    assert response.status_code == 503
    assert response.json()["meta"]["error"] == {"code": "INVALID_USAGE", "reason": "engine_shutdown"}


def test_strategy_failure_maps_to_error_response(client: TestClient) -> None:
    client.app.state.interaction_engine.shutdown()
    client.app.state.interaction_engine = InteractionEngine(strategies=[ExplodingStrategy()])

    response = _check(client, patientId="P002", medicationIds=["M002"])

    assert response.status_code == 500
    meta = response.json()["meta"]
    assert meta["error"]["code"] == "STRATEGY_FAILED"
    assert meta["debug"]["strategy"] == "Exploding Check"
    assert client.get("/api/interactions/metrics").json()["checks_failed"] == 1


def test_metrics_count_checks_and_alerts(client: TestClient) -> None:
    _check(client, patientId="P001", medicationIds=["M002", "M003"])
    _check(client, patientId="P002", medicationIds=["M011"])

    metrics = client.get("/api/interactions/metrics").json()

    assert metrics["checks_total"] == 2
    assert metrics["checks_failed"] == 0
    assert metrics["alerts_total"] == 3
    assert metrics["critical_alerts"] == 2
    assert metrics["alerts_by_type"]["DRUG_ALLERGY"] == 0


def test_save_and_list_prescription(client: TestClient) -> None:
    response = client.post(
        "/api/prescriptions",
        json={
            "patientId": "P002",
            "prescribingPhysician": "Dr. Shah",
            "drugs": [{"medicationId": "M009", "dosage": "500mg", "frequency": "bid"}],
        },
    )

    assert response.status_code == 201, response.text
    created = response.json()
    assert created["patientName"] == "Meera Patel"
    assert created["prescribedDrugs"][0]["medicationName"] == "Metformin (Glucophage)"

    listed = client.get("/api/patients/P002/prescriptions").json()
    assert [p["prescriptionId"] for p in listed] == [created["prescriptionId"]]


def test_save_prescription_rejects_empty_and_unknown(client: TestClient) -> None:
    empty = client.post("/api/prescriptions", json={"patientId": "P002", "drugs": []})
    unknown = client.post(
        "/api/prescriptions",
        json={"patientId": "P002", "drugs": [{"medicationId": "M999"}]},
    )

    assert empty.status_code == 400
    assert unknown.status_code == 404
    assert unknown.json()["meta"]["error"]["reason"] == "medication_not_found"


def test_add_drug_to_active_prescription(client: TestClient) -> None:
    response = client.post(
        "/api/prescriptions/P001/drugs",
        json={"medicationId": "M011", "dosage": "500mg", "prescribingPhysician": "Dr. Rao"},
    )

    assert response.status_code == 200, response.text
    drugs = response.json()["prescribedDrugs"]
    assert [d["medicationId"] for d in drugs] == ["M004", "M011"]

    missing = client.post("/api/prescriptions/P002/drugs", json={"medicationId": "M011"})
    assert missing.status_code == 404
    assert missing.json()["meta"]["error"]["reason"] == "prescription_not_found"


def test_list_prescriptions_for_unknown_patient(client: TestClient) -> None:
    response = client.get("/api/patients/P999/prescriptions")

    assert response.status_code == 404


def test_engine_lives_for_the_app_lifespan(settings, data_service) -> None:
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_data_service_dependency] = lambda: data_service

    assert getattr(app.state, "interaction_engine", None) is None
    with TestClient(app) as test_client:
        engine = app.state.interaction_engine
        assert not engine.is_shutdown
        response = _check(test_client, patientId="P002", medicationIds=["M002"])
        assert response.status_code == 200, response.text

    assert engine.is_shutdown


def test_check_before_startup_is_rejected(settings, data_service) -> None:
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: settings
    app.dependency_overrides[get_data_service_dependency] = lambda: data_service

    # Not used as a context manager, so the lifespan never runs
    response = _check(TestClient(app), patientId="P002", medicationIds=["M002"])

    assert response.status_code == 503
    assert response.json()["meta"]["error"] == {"code": "INVALID_USAGE", "reason": "engine_not_started"}
