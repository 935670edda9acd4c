import io
import json

import pytest
from PIL import Image

from src.daycare_system.daycare_system.container import build_services
from src.daycare_system.daycare_system.core.enums import Role, Section
from src.daycare_system.daycare_system.main import create_app
from tests.fakes import fake_repositories, seed_people


@pytest.fixture
def repos():
    repos = fake_repositories()
    seed_people(repos)
    repos.groups.add("lucioles", Section.MATERNELLE_MS, educator_id="educator")
    repos.children.add("kid", first_name="Inès", section=Section.MATERNELLE_MS, group_id="lucioles", code="ZK4PQ")
    repos.parents.add("mum", "kid", primary=True)
    repos.parents.add("dad", "kid")
    return repos


@pytest.fixture
def container(repos, tmp_path):
    return build_services(repos, secret_key="test-secret", media_root=str(tmp_path), media_url_prefix="/media")


@pytest.fixture
def client(container):
    app = create_app("config.testing", container=container)
    return app.test_client()


def login(client, profile_id):
    resp = client.post("/api/login", json={"email": f"{profile_id}@creche.test", "password": "secret123"})
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["profile"]


def test_login_me_logout(client):
    profile = login(client, "secretary")
    assert profile["role"] == "secretary"

    me = client.get("/api/me").get_json()
    assert me["profile"]["id"] == "secretary"

    client.post("/api/logout")
    assert client.get("/api/me").status_code == 401


def test_bad_credentials_are_a_json_401(client):
    resp = client.post("/api/login", json={"email": "admin@creche.test", "password": "wrong"})

    assert resp.status_code == 401
    assert resp.get_json() == {"success": False, "message": "Email ou mot de passe incorrect"}


def test_role_guards(client):
    assert client.get("/api/children").status_code == 401

    login(client, "mum")
    assert client.get("/api/groups").status_code == 403
    assert client.post("/api/attendance/scan", json={"payload": "LPRDS-ZK4PQ"}).status_code == 403


def test_parent_only_sees_own_children(client, repos):
    repos.children.add("other")
    login(client, "mum")

    children = client.get("/api/children").get_json()["children"]

    assert [c["id"] for c in children] == ["kid"]
    assert client.get("/api/children/other").status_code == 404


def test_enroll_then_print_badge(client, repos):
    login(client, "secretary")

    resp = client.post(
        "/api/children",
        json={
            "first_name": "Moussa",
            "last_name": "Fall",
            "birth_date": "2019-11-20",
            "admission_date": "2024-09-02",
            "section": "maternelle_MS",
            "guardians": [{"name": "Aminata Fall", "phone": "775555555", "relationship": "mère"}],
        },
    )

    assert resp.status_code == 201
    child = resp.get_json()["child"]
    assert child["group_id"] == "lucioles"
    assert child["section_label"] == "Maternelle Moyenne Section"
    assert len(child["code_qr_id"]) == 5

    badge = client.get(f"/api/children/{child['id']}/badge.png")
    assert badge.status_code == 200
    assert badge.mimetype == "image/png"
    assert Image.open(io.BytesIO(badge.data)).size == (1004, 650)


def test_enroll_validation_error_is_a_400(client):
    login(client, "admin")

    resp = client.post(
        "/api/children",
        json={"first_name": "A", "last_name": "B", "birth_date": "2020-01-01", "admission_date": "2024-09-02", "guardians": []},
    )

    assert resp.status_code == 400
    assert resp.get_json()["success"] is False


def test_group_assignment_endpoint(client, repos):
    repos.children.add("newcomer", section=Section.MATERNELLE_MS)
    login(client, "admin")

    body = client.put("/api/groups/lucioles/children", json={"child_ids": ["newcomer"]}).get_json()

    assert body["added"] == ["newcomer"]
    assert body["removed"] == ["kid"]
    assert repos.children.get_by_id("kid").group_id is None


def test_badge_scan_arrival_then_departure(client, container, repos):
    login(client, "educator")
    payload = container.signed_token.to_payload("kid")

    check = client.post("/api/attendance/resolve", json={"payload": payload}).get_json()
    assert check["check"]["suggested_action"] == "arrival"

    first = client.post("/api/attendance/scan", json={"payload": payload})
    assert first.status_code == 200
    assert first.get_json()["action"] == "arrival"
    assert "Inès" in first.get_json()["message"]

    too_soon = client.post("/api/attendance/scan", json={"payload": "LPRDS-ZK4PQ"})
    assert too_soon.status_code == 400

    manual = client.post("/api/attendance/scan", json={"child_id": "kid", "scan_type": "departure"})
    assert manual.get_json()["attendance"]["departure_time"] is not None

    sheet = client.get("/api/attendance/day").get_json()
    assert sheet["summary"] == {"total": 1, "present": 1, "absent": 0, "not_scanned": 0}


def test_mark_absent_endpoint(client):
    login(client, "secretary")

    body = client.post("/api/attendance/absent", json={"child_id": "kid", "date": "2025-03-03", "reason": "Rhume"}).get_json()

    assert body["attendance"]["is_present"] is False
    assert body["attendance"]["absence_reason"] == "Rhume"
    history = client.get("/api/children/kid/attendance").get_json()["history"]
    assert [h["date"] for h in history] == ["2025-03-03"]


def test_report_validation_notifies_parents(client):
    login(client, "educator")
    saved = client.post(
        "/api/reports/daily",
        json={
            "child_id": "kid",
            "report_date": "2025-03-03",
            "submit": True,
            "health_status": "well",
            "lunch_eaten": "little",
            "mood": ["happy", "calme"],
            "activities": ["peinture", "comptines"],
            "nap_taken": True,
            "nap_duration_minutes": 60,
        },
    )
    assert saved.status_code == 201
    report_id = saved.get_json()["id"]
    assert saved.get_json()["status"] == "pending"

    client.post("/api/logout")
    login(client, "admin")
    pending = client.get("/api/reports/daily/pending").get_json()["reports"]
    assert [r["id"] for r in pending] == [report_id]
    assert pending[0]["mood"] == ["joyeux", "calme"]
    assert pending[0]["health_status"] == "bien"
    assert pending[0]["lunch_eaten"] == "peu_mange"

    decided = client.post(f"/api/reports/daily/{report_id}/decision", json={"approve": True}).get_json()
    assert decided == {"success": True, "status": "validated", "notified": 2, "warning": None}

    client.post("/api/logout")
    login(client, "mum")
    inbox = client.get("/api/messages").get_json()
    assert inbox["unread"] == 1
    assert inbox["messages"][0]["subject"] == "Nouveau rapport journalier disponible"
    reports = client.get("/api/reports/daily").get_json()["reports"]
    assert [r["id"] for r in reports] == [report_id]


def test_rejection_requires_reason_over_http(client):
    login(client, "educator")
    report_id = client.post(
        "/api/reports/weekly", json={"child_id": "kid", "week_start_date": "2025-03-03", "submit": True}
    ).get_json()["id"]
    client.post("/api/logout")
    login(client, "secretary")

    missing = client.post(f"/api/reports/weekly/{report_id}/decision", json={"approve": False})
    rejected = client.post(
        f"/api/reports/weekly/{report_id}/decision", json={"approve": False, "rejection_reason": "Trop court"}
    )

    assert missing.status_code == 400
    assert rejected.get_json()["status"] == "rejected"
    detail = client.get(f"/api/reports/weekly/{report_id}").get_json()["report"]
    assert detail["rejection_reason"] == "Trop court"
    assert detail["week_end_date"] == "2025-03-16"


def test_multipart_report_upload_is_served(client):
    login(client, "educator")

    resp = client.post(
        "/api/reports/daily",
        data={
            "data": json.dumps({"child_id": "kid", "report_date": "2025-03-03"}),
            "media": [
                (io.BytesIO(b"\x89PNG fake"), "atelier.png", "image/png"),
                (io.BytesIO(b"hello"), "notes.txt", "text/plain"),
            ],
        },
        content_type="multipart/form-data",
    )

    body = resp.get_json()
    assert resp.status_code == 201
    assert body["failed_uploads"] == ["notes.txt"]
    assert "warning" in body
    [url] = body["uploaded"]
    served = client.get(url)
    assert served.status_code == 200
    assert served.data == b"\x89PNG fake"
    assert client.get("/media/daily-reports/../secret.txt").status_code == 404


def test_messaging_endpoints(client):
    login(client, "mum")
    sent = client.post("/api/messages", json={"recipient_id": "educator", "content": "Inès arrive à 10h"})
    assert sent.status_code == 201
    assert client.post("/api/messages", json={"recipient_id": "dad", "content": "coucou"}).status_code == 403

    client.post("/api/logout")
    login(client, "educator")
    inbox = client.get("/api/messages").get_json()
    message_id = inbox["messages"][0]["id"]
    assert client.post(f"/api/messages/{message_id}/read").get_json()["success"] is True
    assert client.get("/api/messages").get_json()["unread"] == 0


def test_parent_links_over_http(client, repos):
    repos.profiles.add("grandma", Role.PARENT)
    login(client, "secretary")

    linked = client.post("/api/children/kid/parents", json={"parent_id": "grandma", "relationship": "grand-mère"})

    assert linked.status_code == 201
    parents = client.get("/api/children/kid/parents").get_json()["parents"]
    assert {p["parent_id"] for p in parents} == {"mum", "dad", "grandma"}
    assert client.delete("/api/children/kid/parents/grandma").status_code == 200


def test_health(client):
    assert client.get("/api/health").get_json() == {"success": True, "status": "up"}
