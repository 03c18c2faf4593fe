"""HTTP API tests (httpx + ASGI transport, no lifespan)."""

from decimal import Decimal
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from patientflow.api.dependencies import get_db, get_health_service, get_workflow_manager
from patientflow.main import app
from patientflow.services.health import HealthCheckService

PATIENT = {
    "first_name": "Grace",
    "last_name": "Achieng",
    "date_of_birth": "1975-02-03",
    "gender": "female",
    "phone": "+254700123456",
    "address": "Nakuru, Kenyatta Ave. 12",
    "emergency_contact_name": "Tom Achieng",
    "emergency_contact_phone": "+254700654321",
}


@pytest_asyncio.fixture
async def client(manager, session_factory) -> AsyncGenerator[AsyncClient, None]:
    async def override_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_workflow_manager] = lambda: manager
    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_health_service] = lambda: HealthCheckService(session_factory)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def register(client, episode_type="outpatient") -> dict:
    response = await client.post(
        "/api/v1/registrations",
        json={"patient": PATIENT, "episode_type": episode_type},
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
@pytest.mark.api
async def test_full_visit_over_http(client):
    body = await register(client, "emergency")
    number = body["episode"]["episode_number"]
    patient_id = body["patient"]["id"]
    assert body["status"] == "registration"
    assert Decimal(body["episode"]["consultation_fee"]) == Decimal("50.00")

    response = await client.post(f"/api/v1/episodes/{number}/payment", json={"payment_method": "cash"})
    assert response.status_code == 200
    assert response.json()["message"] == "Payment successful. Patient added to consultation queue."

    response = await client.post(f"/api/v1/episodes/{number}/queue")
    assert response.json() == {"queue_position": 1, "estimated_wait_time": 15, "status": "in-queue"}

    response = await client.get("/api/v1/queue")
    assert [entry["episode_number"] for entry in response.json()] == [number]

    response = await client.post(f"/api/v1/episodes/{number}/consultation", json={"doctor_id": 7})
    assert response.json()["status"] == "in-consultation"

    response = await client.put(f"/api/v1/episodes/{number}/notes", json={"notes": "Chest pain, ECG normal"})
    assert response.json()["consultation_notes"] == "Chest pain, ECG normal"

    response = await client.post(
        f"/api/v1/episodes/{number}/services",
        json={"order": {"kind": "lab-test", "test_name": "Troponin"}},
    )
    assert response.status_code == 200
    assert response.json()["episode"]["lab_tests"][0]["cost"] == "25.00"

    response = await client.get(f"/api/v1/patients/{patient_id}/workflow")
    assert response.json()["status"] == "consultation"

    response = await client.get("/api/v1/episodes")
    assert [item["current_step"] for item in response.json()] == ["With Doctor"]

    response = await client.post(
        f"/api/v1/episodes/{number}/completion", json={"discharge_notes": "Discharged, stable"}
    )
    assert response.json()["episode"]["status"] == "completed"

    response = await client.get(f"/api/v1/patients/{patient_id}/workflow")
    assert response.status_code == 404

    response = await client.get("/api/v1/billing", params={"episode_number": number})
    assert [entry["service_type"] for entry in response.json()] == [
        "Consultation",
        "Consultation Fee",
        "Laboratory Test",
    ]


@pytest.mark.asyncio
@pytest.mark.api
async def test_workflow_errors_map_to_status_codes(client):
    response = await client.get("/api/v1/episodes/OP999999")
    assert response.status_code == 404
    assert response.json()["detail"] == "Episode not found: OP999999"
    assert response.json()["error"] == "EpisodeNotFoundError"

    number = (await register(client))["episode"]["episode_number"]

    response = await client.post(f"/api/v1/episodes/{number}/queue")
    assert response.status_code == 409
    assert response.json()["error"] == "ConsultationFeeNotPaidError"

    response = await client.post(
        f"/api/v1/episodes/{number}/services",
        json={"order": {"kind": "radiology", "study_name": "CT head"}},
    )
    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.api
async def test_patient_registry_endpoints(client):
    response = await client.post("/api/v1/patients", json=PATIENT)
    assert response.status_code == 201
    patient = response.json()
    assert patient["patient_code"].startswith("CMH-")

    response = await client.put(f"/api/v1/patients/{patient['id']}", json={"phone": "+254711000000"})
    assert response.json()["phone"] == "+254711000000"

    response = await client.get("/api/v1/patients", params={"search": "achi"})
    assert [p["id"] for p in response.json()] == [patient["id"]]

    response = await client.get("/api/v1/patients/31337")
    assert response.status_code == 404

    # Registered without an episode: a first episode can be opened directly
    response = await client.post(f"/api/v1/patients/{patient['id']}/episodes", json={"episode_type": "inpatient"})
    assert response.status_code == 201
    assert response.json()["episode"]["episode_number"].startswith("IP")

    response = await client.post(f"/api/v1/patients/{patient['id']}/episodes", json={})
    assert response.status_code == 409


@pytest.mark.asyncio
@pytest.mark.api
async def test_manual_billing_entry(client):
    patient_id = (await register(client))["patient"]["id"]

    response = await client.post(
        "/api/v1/billing",
        json={
            "patient_id": patient_id,
            "service_type": "Procedure",
            "service_description": "Wound dressing",
            "amount": "20.00",
            "total_amount": "20.00",
        },
    )
    assert response.status_code == 201
    entry = response.json()
    assert entry["payment_status"] == "pending"

    response = await client.put(
        f"/api/v1/billing/{entry['id']}",
        json={"payment_status": "paid", "payment_method": "mobile_money"},
    )
    assert response.json()["payment_status"] == "paid"
    assert response.json()["payment_date"] is not None

    response = await client.get("/api/v1/billing", params={"patient_id": patient_id})
    assert len(response.json()) == 2


@pytest.mark.asyncio
@pytest.mark.api
async def test_health_endpoints(client):
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["services"]["database"]["details"]["dialect"] == "sqlite"

    assert (await client.get("/api/v1/health/live")).json() == {"status": "alive"}
    assert (await client.get("/api/v1/health/ready")).json() == {"status": "ready"}


@pytest.mark.asyncio
@pytest.mark.api
async def test_updates_cannot_clear_required_fields(client):
    body = await register(client)
    patient_id = body["patient"]["id"]

    response = await client.put(f"/api/v1/patients/{patient_id}", json={"first_name": None})
    assert response.status_code == 422
    assert "first_name cannot be null" in response.text

    response = await client.put(f"/api/v1/patients/{patient_id}", json={"is_active": None})
    assert response.status_code == 422

    response = await client.put(f"/api/v1/patients/{patient_id}", json={"email": None})
    assert response.status_code == 200
    assert response.json()["first_name"] == "Grace"

    response = await client.get("/api/v1/billing", params={"patient_id": patient_id})
    entry = response.json()[0]

    response = await client.put(f"/api/v1/billing/{entry['id']}", json={"amount": None})
    assert response.status_code == 422
    assert "amount cannot be null" in response.text

    response = await client.put(f"/api/v1/billing/{entry['id']}", json={"payment_status": None})
    assert response.status_code == 422

    response = await client.put(f"/api/v1/billing/{entry['id']}", json={"notes": None})
    assert response.status_code == 200
    assert Decimal(response.json()["amount"]) == Decimal("30.00")
    assert response.json()["payment_status"] == "pending"
