import pytest
from fastapi.testclient import TestClient

from substitute_planner.api.deps import get_planner_service
from substitute_planner.main import create_app
from substitute_planner.services.planner_service import PlannerService
from substitute_planner.settings import Settings

from conftest import day_payload


@pytest.fixture
def client(settings: Settings, planner_service: PlannerService) -> TestClient:
    app = create_app(settings)
    app.dependency_overrides[get_planner_service] = lambda: planner_service
    return TestClient(app)


def _open(client: TestClient, **extra) -> dict:
    response = client.post("/sessions", json={"day": day_payload(), **extra})
    assert response.status_code == 201
    return response.json()


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_open_session_returns_day_and_absences(client: TestClient) -> None:
    body = _open(client, mode_id="emergencyMode", absences=[{"teacher_id": "t_math"}])

    assert body["date"] == "2024-09-01"
    assert body["day"] == "sunday"
    assert body["mode_id"] == "emergencyMode"
    assert "examMode" in body["available_modes"]
    assert [a["teacher_id"] for a in body["absences"]] == ["t_math"]
    assert body["assignments"] == []


def test_candidates_endpoint(client: TestClient) -> None:
    session = _open(client, mode_id="emergencyMode", absences=[{"teacher_id": "t_math"}])

    response = client.get(f"/sessions/{session['id']}/slots/5A/1/candidates")

    assert response.status_code == 200
    body = response.json()
    assert [c["teacher_id"] for c in body["home_room"]] == ["t_hr"]
    assert body["ranking"][0]["teacher_id"] == "ext"
    assert body["ranking"][0]["primary_step"] == "External substitute"


def test_distribution_apply_and_commit(client: TestClient) -> None:
    session = _open(client, mode_id="emergencyMode", absences=[{"teacher_id": "t_math"}])
    sid = session["id"]

    preview = client.post(f"/sessions/{sid}/distribution", json={})
    assert preview.status_code == 200
    assert preview.json()["path"] == "rule_set"
    assert preview.json()["applied"] == []
    assert client.get(f"/sessions/{sid}").json()["assignments"] == []

    applied = client.post(f"/sessions/{sid}/distribution", json={"apply": True})
    assert len(applied.json()["applied"]) == 2
    assert len(client.get(f"/sessions/{sid}/assignments").json()) == 2

    committed = client.post(f"/sessions/{sid}/commit")
    assert committed.status_code == 200
    assert {r["kind"] for r in committed.json()} == {"assign_external"}


def test_manual_assignment_conflict_and_removal(client: TestClient) -> None:
    sid = _open(client)["id"]

    created = client.post(f"/sessions/{sid}/assignments", json={"class_id": "5A", "period": 2, "teacher_id": "t_stay"})
    assert created.status_code == 201

    clash = client.post(f"/sessions/{sid}/assignments", json={"class_id": "6A", "period": 2, "teacher_id": "t_stay"})
    assert clash.status_code == 409

    removed = client.delete(
        f"/sessions/{sid}/assignments", params={"class_id": "5A", "period": 2, "teacher_id": "t_stay"}
    )
    assert removed.status_code == 204

    missing = client.delete(
        f"/sessions/{sid}/assignments", params={"class_id": "5A", "period": 2, "teacher_id": "t_stay"}
    )
    assert missing.status_code == 404


def test_switch_mode_and_errors(client: TestClient) -> None:
    sid = _open(client)["id"]

    switched = client.put(f"/sessions/{sid}/mode", json={"mode_id": "examMode"})
    assert switched.status_code == 200
    assert switched.json()["mode_id"] == "examMode"

    assert client.put(f"/sessions/{sid}/mode", json={"mode_id": "nope"}).status_code == 404
    assert client.get("/sessions/missing").status_code == 404
    assert client.get(f"/sessions/{sid}/slots/5A/9/candidates").status_code == 422


def test_invalid_day_is_rejected_with_messages(client: TestClient) -> None:
    payload = day_payload()
    payload["employees"].append({"id": "t_hr"})

    response = client.post("/sessions", json={"day": payload})

    assert response.status_code == 422
    assert any("Duplicated employee ids" in msg for msg in response.json()["detail"])


def test_partial_absence_without_periods_is_a_bad_request(client: TestClient) -> None:
    response = client.post(
        "/sessions", json={"day": day_payload(), "absences": [{"teacher_id": "t_math", "type": "PARTIAL"}]}
    )

    assert response.status_code == 400
    assert "needs at least one period" in response.json()["detail"]


def test_unknown_ids_on_a_mutation_are_validation_errors(client: TestClient) -> None:
    sid = _open(client)["id"]

    response = client.post(f"/sessions/{sid}/assignments", json={"class_id": "9Z", "period": 1, "teacher_id": "t_free"})

    assert response.status_code == 422
    assert response.json()["detail"] == ["Unknown class '9Z'."]
