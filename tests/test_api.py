from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient

from hospital_registration.core.database import get_db
from hospital_registration.core.security import Identity, UserRole, create_access_token
from hospital_registration.main import app
from hospital_registration.models.department import HalfDay

FUTURE_DAY = date.today() + timedelta(days=7)

def auth_headers(role, user_id):
    token = create_access_token(Identity(role=role, id=user_id))
    return {"Authorization": f"Bearer {token}"}

@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()

@pytest.fixture
def hospital(factory):
    """One department, two doctors, one future morning schedule for two."""
    dept = factory.department(name="Orthopedics", detail="Bones and joints")
    doctor_a = factory.doctor(dept, first_name="Ada", last_name="Bone")
    doctor_b = factory.doctor(dept, first_name="Ben", last_name="Joint")
    schedule = factory.schedule(dept, day=FUTURE_DAY, half_day=HalfDay.MORNING, capacity=2)
    patients = [factory.patient(first_name=f"P{i}") for i in range(3)]
    return {
        "department_id": dept.id,
        "doctors": [doctor_a.id, doctor_b.id],
        "schedule_id": schedule.id,
        "patients": [p.id for p in patients],
    }

def registration_body(hospital, **extra):
    body = {
        "department_id": hospital["department_id"],
        "date": FUTURE_DAY.isoformat(),
        "half_day": "morning",
    }
    body.update(extra)
    return body

class TestDepartments:

    def test_list_departments(self, client, hospital):
        response = client.get("/api/v1/departments")
        assert response.status_code == 200
        assert [d["name"] for d in response.json()] == ["Orthopedics"]

    def test_department_detail(self, client, hospital):
        response = client.get(f"/api/v1/departments/{hospital['department_id']}")
        assert response.status_code == 200

        data = response.json()
        assert data["doctors"] == ["Ada Bone", "Ben Joint"]
        assert data["schedules"][0]["capacity"] == 2
        assert data["schedules"][0]["half_day"] == "morning"

    def test_unknown_department(self, client, hospital):
        response = client.get("/api/v1/departments/999")
        assert response.status_code == 404
        assert response.json()["error"] == "NotFound"

class TestRegistrationEndpoints:

    def test_register_and_duplicate(self, client, hospital):
        """Patient registers once; the second attempt is a duplicate."""
        headers = auth_headers(UserRole.PATIENT, hospital["patients"][0])

        response = client.post("/api/v1/registrations", json=registration_body(hospital), headers=headers)
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "committed"
        assert data["doctor_id"] == hospital["doctors"][0]
        assert data["milestones"] == []

        response = client.post("/api/v1/registrations", json=registration_body(hospital), headers=headers)
        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateBooking"

    def test_capacity_exceeded(self, client, hospital):
        for patient_id in hospital["patients"][:2]:
            response = client.post(
                "/api/v1/registrations",
                json=registration_body(hospital),
                headers=auth_headers(UserRole.PATIENT, patient_id)
            )
            assert response.status_code == 201

        response = client.post(
            "/api/v1/registrations",
            json=registration_body(hospital),
            headers=auth_headers(UserRole.PATIENT, hospital["patients"][2])
        )
        assert response.status_code == 409
        assert response.json()["error"] == "CapacityExceeded"

        detail = client.get(f"/api/v1/departments/{hospital['department_id']}").json()
        assert detail["schedules"][0]["occupancy"] == 2

    def test_invalid_half_day(self, client, hospital):
        response = client.post(
            "/api/v1/registrations",
            json=registration_body(hospital, half_day="evening"),
            headers=auth_headers(UserRole.PATIENT, hospital["patients"][0])
        )
        assert response.status_code == 422

    def test_missing_schedule(self, client, hospital):
        response = client.post(
            "/api/v1/registrations",
            json=registration_body(hospital, half_day="afternoon"),
            headers=auth_headers(UserRole.PATIENT, hospital["patients"][0])
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidSlot"

    def test_requires_token(self, client, hospital):
        response = client.post("/api/v1/registrations", json=registration_body(hospital))
        assert response.status_code in (401, 403)

        response = client.post(
            "/api/v1/registrations",
            json=registration_body(hospital),
            headers={"Authorization": "Bearer invalid_token"}
        )
        assert response.status_code == 401

    def test_lifecycle_and_milestones(self, client, hospital):
        """Doctor accepts, records milestones, then terminates with a cause."""
        patient_headers = auth_headers(UserRole.PATIENT, hospital["patients"][0])
        doctor_headers = auth_headers(UserRole.DOCTOR, hospital["doctors"][0])
        other_headers = auth_headers(UserRole.DOCTOR, hospital["doctors"][1])

        registration = client.post(
            "/api/v1/registrations", json=registration_body(hospital), headers=patient_headers
        ).json()
        registration_id = registration["id"]

        listed = client.get("/api/v1/doctor/registrations", headers=doctor_headers).json()
        assert [r["id"] for r in listed] == [registration_id]
        assert client.get("/api/v1/doctor/registrations", headers=other_headers).json() == []

        response = client.put(
            f"/api/v1/registrations/{registration_id}/status",
            json={"status": "accepted"},
            headers=doctor_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "accepted"

        response = client.post(
            f"/api/v1/registrations/{registration_id}/milestones",
            json={"activity": "Knee X-ray"},
            headers=doctor_headers
        )
        assert response.status_code == 201
        milestone_id = response.json()["id"]

        response = client.put(
            f"/api/v1/milestones/{milestone_id}",
            json={"checked": True},
            headers=other_headers
        )
        assert response.status_code == 403
        assert response.json()["error"] == "Unauthorized"

        response = client.put(
            f"/api/v1/milestones/{milestone_id}",
            json={"checked": True},
            headers=doctor_headers
        )
        assert response.status_code == 200
        assert response.json() == {
            "id": milestone_id,
            "registration_id": registration_id,
            "activity": "Knee X-ray",
            "checked": True,
        }

        response = client.put(
            f"/api/v1/registrations/{registration_id}/status",
            json={"status": "terminated"},
            headers=doctor_headers
        )
        assert response.status_code == 400
        assert response.json()["error"] == "MissingTerminationCause"

        response = client.put(
            f"/api/v1/registrations/{registration_id}/status",
            json={"status": "terminated", "terminated_cause": "Treatment finished"},
            headers=doctor_headers
        )
        assert response.status_code == 200

        mine = client.get(f"/api/v1/registrations/{registration_id}", headers=patient_headers).json()
        assert mine["status"] == "terminated"
        assert mine["terminated_cause"] == "Treatment finished"
        assert [m["id"] for m in mine["milestones"]] == [milestone_id]

        response = client.delete(f"/api/v1/milestones/{milestone_id}", headers=doctor_headers)
        assert response.status_code == 200

        history = client.get("/api/v1/patient/registrations", headers=patient_headers).json()
        assert history[0]["milestones"] == []

    def test_patient_cannot_see_others_registration(self, client, hospital):
        registration = client.post(
            "/api/v1/registrations",
            json=registration_body(hospital),
            headers=auth_headers(UserRole.PATIENT, hospital["patients"][0])
        ).json()

        response = client.get(
            f"/api/v1/registrations/{registration['id']}",
            headers=auth_headers(UserRole.PATIENT, hospital["patients"][1])
        )
        assert response.status_code == 403

class TestServiceEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert "X-Process-Time" in response.headers

    def test_info(self, client):
        data = client.get("/api/v1/info").json()
        assert data["endpoints"]["registrations"] == "/api/v1/registrations"
        assert data["admission"] == {"slot_lock_backend": "local", "max_retries": 3}

    def test_schedule_shows_remaining_places(self, client, hospital):
        client.post(
            "/api/v1/registrations",
            json=registration_body(hospital),
            headers=auth_headers(UserRole.PATIENT, hospital["patients"][0])
        )

        schedule = client.get(f"/api/v1/departments/{hospital['department_id']}").json()["schedules"][0]
        assert (schedule["occupancy"], schedule["remaining"]) == (1, 1)
