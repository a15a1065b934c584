from pathlib import Path
import sys

ROOT = Path(__file__).resolve().parents[1]
BACKEND_DIR = ROOT / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from models import Department, Evaluation, GuestActivity, UserRole

PASSWORD = "secret123"


def _create(client, headers, **overrides):
    body = {"title": "Campus Navigator", "description": "Indoor maps for the campus"}
    body.update(overrides)
    return client.post("/api/students/projects", json=body, headers=headers)


def test_health_and_banner(client):
    assert client.get("/api/health").json() == {"status": "healthy"}
    assert "running" in client.get("/api/").json()["message"]


def test_register_login_and_me(client):
    response = client.post("/api/auth/register", json={
        "name": "Asha",
        "email": "Asha@College.edu",
        "password": "secret123",
        "role": "student",
        "department": "Computer Science",
    })
    assert response.status_code == 201
    assert response.json()["data"]["user"]["email"] == "asha@college.edu"

    duplicate = client.post("/api/auth/register", json={
        "name": "Asha",
        "email": "asha@college.edu",
        "password": "secret123",
        "role": "student",
        "department": "Computer Science",
    })
    assert duplicate.status_code == 409
    assert duplicate.json()["error"] == "conflict"

    bad = client.post("/api/auth/login", json={"email": "asha@college.edu", "password": "wrong-pass"})
    assert bad.status_code == 401
    assert bad.json()["error"] == "not_authenticated"

    token = client.post("/api/auth/login", json={"email": "asha@college.edu", "password": "secret123"}).json()["data"]["access_token"]
    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.json()["data"]["role"] == "student"


def test_register_requires_department_for_non_directors(client):
    response = client.post("/api/auth/register", json={
        "name": "Ravi", "email": "ravi@college.edu", "password": "secret123", "role": "professor",
    })
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


def test_missing_or_garbage_token_is_unauthenticated(client):
    assert client.get("/api/students/projects").status_code == 401
    response = client.get("/api/students/projects", headers={"Authorization": "Bearer nonsense"})
    assert response.status_code == 401
    assert response.json() == {
        "success": False,
        "error": "not_authenticated",
        "message": "Could not validate credentials",
    }


def test_student_flow_over_http(client, make_user, auth_headers):
    headers = auth_headers(make_user())
    created = _create(client, headers)
    assert created.status_code == 201
    project = created.json()["data"]
    assert project["status"] == "draft"
    assert project["department"] == "Computer Science"

    first = client.post(f"/api/students/projects/{project['id']}/submit", json={"notes": "v1"}, headers=headers)
    second = client.post(f"/api/students/projects/{project['id']}/submit", headers=headers)
    assert first.json()["data"]["submission"]["version"] == 1
    assert second.json()["data"]["submission"]["version"] == 2
    assert second.json()["data"]["project"]["status"] == "submitted"

    listing = client.get("/api/students/projects", headers=headers).json()
    assert listing["count"] == 1

    deleting = client.delete(f"/api/students/projects/{project['id']}", headers=headers)
    assert deleting.status_code == 400
    assert deleting.json()["error"] == "invalid_state_transition"


def test_not_found_versus_forbidden(client, make_user, auth_headers):
    owner = auth_headers(make_user())
    stranger = auth_headers(make_user())
    project_id = _create(client, owner).json()["data"]["id"]

    missing = client.get("/api/students/projects/9999", headers=stranger)
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"

    forbidden = client.put(f"/api/students/projects/{project_id}", json={"title": "Mine"}, headers=stranger)
    assert forbidden.status_code == 403
    assert forbidden.json()["error"] == "forbidden"


def test_invalid_link_is_a_validation_error(client, make_user, auth_headers):
    response = _create(client, auth_headers(make_user()), github_link="ftp://example")
    assert response.status_code == 422
    assert response.json()["success"] is False


def test_role_gates(client, make_user, auth_headers):
    professor = auth_headers(make_user(UserRole.PROFESSOR))
    student = auth_headers(make_user())

    assert client.get("/api/students/projects", headers=professor).status_code == 403
    assert client.get("/api/director/analytics", headers=student).status_code == 403
    assert client.get("/api/professors/projects", headers=auth_headers()).status_code == 403
    assert client.get("/api/hod/projects", headers=auth_headers()).status_code == 403


def test_guest_creates_and_submits_guest_projects(client, make_user, auth_headers):
    guest = auth_headers()
    token = client.post("/api/auth/guest").json()["data"]
    assert token["is_guest"] is True

    no_department = _create(client, guest)
    assert no_department.status_code == 400
    assert no_department.json()["error"] == "validation_error"

    created = _create(client, guest, department="Mechanical", guest_name="Visitor")
    project = created.json()["data"]
    assert project["is_guest"] is True
    assert project["guest_details"]["name"] == "Visitor"

    submitted = client.post(f"/api/students/projects/{project['id']}/submit", headers=guest)
    assert submitted.status_code == 200

    student_view = client.get(f"/api/students/projects/{project['id']}", headers=auth_headers(make_user()))
    assert student_view.status_code == 403


def test_professor_evaluates_and_sets_status(client, db, make_user, auth_headers):
    student = auth_headers(make_user())
    professor_user = make_user(UserRole.PROFESSOR)
    professor = auth_headers(professor_user)
    outsider = auth_headers(make_user(UserRole.PROFESSOR, Department.ECE))
    project_id = _create(client, student).json()["data"]["id"]
    client.post(f"/api/students/projects/{project_id}/submit", headers=student)

    criteria = {"innovation": 18, "implementation": 22, "documentation": 12, "presentation": 17, "teamwork": 16}
    body = {"marks": 85, "feedback": "Strong", "criteria": criteria}
    first = client.post(f"/api/professors/evaluate/{project_id}", json=body, headers=professor)
    assert first.status_code == 200
    assert first.json()["data"]["criteria_total"] == 85

    body["marks"] = 90
    client.post(f"/api/professors/evaluate/{project_id}", json=body, headers=professor)
    db.expire_all()
    rows = db.query(Evaluation).filter(Evaluation.project_id == project_id).all()
    assert [row.marks for row in rows] == [90]

    assert client.post(f"/api/professors/evaluate/{project_id}", json=body, headers=outsider).status_code == 403
    assert client.post("/api/professors/evaluate/4242", json=body, headers=professor).status_code == 404

    detail = client.get(f"/api/professors/projects/{project_id}", headers=professor).json()["data"]
    assert detail["project"]["status"] == "under_review"
    assert detail["my_evaluation"]["marks"] == 90

    bad_status = client.put(f"/api/professors/projects/{project_id}/status", json={"status": "archived"}, headers=professor)
    assert bad_status.status_code == 400
    assert bad_status.json()["error"] == "invalid_state_transition"

    approved = client.put(f"/api/professors/projects/{project_id}/status", json={"status": "approved"}, headers=professor)
    assert approved.json()["data"]["status"] == "approved"
    again = client.put(f"/api/professors/projects/{project_id}/status", json={"status": "approved"}, headers=professor)
    assert again.status_code == 200
    assert again.json()["data"]["status"] == "approved"

    ranking = client.get("/api/professors/rankings", headers=professor).json()["data"]
    assert ranking[0]["rank"] == 1
    assert ranking[0]["marks"] == 90

    own = client.get(f"/api/students/projects/{project_id}/evaluation", headers=student).json()
    assert own["count"] == 1


def test_hod_assignment_over_http(client, make_user, auth_headers):
    hod = auth_headers(make_user(UserRole.HOD))
    student = make_user()
    professor = make_user(UserRole.PROFESSOR)
    created = client.post("/api/hod/projects", json={
        "title": "Library Kiosk",
        "description": "Self checkout",
        "submitted_by_id": student.id,
    }, headers=hod)
    assert created.status_code == 201
    project_id = created.json()["data"]["id"]

    assigned = client.post("/api/hod/assign", json={"project_id": project_id, "professor_id": professor.id}, headers=hod)
    assert assigned.json()["data"]["assigned_professor_id"] == professor.id

    professors = client.get("/api/hod/professors", headers=hod).json()
    assert professors["count"] == 1


def test_director_views(client, make_user, auth_headers):
    director = auth_headers(make_user(UserRole.DIRECTOR))
    student = auth_headers(make_user())
    _create(client, student)

    analytics = client.get("/api/director/analytics", headers=director).json()["data"]
    assert analytics["overview"]["total_projects"] == 1
    assert len(analytics["monthly_submissions"]) == 6

    departments = client.get("/api/director/departments", headers=director).json()
    assert departments["count"] == len(Department)

    page = client.get("/api/director/projects", params={"limit": 10, "page": 1}, headers=director).json()
    assert page["total"] == 1

    bad_filter = client.get("/api/director/projects", params={"status": "nope"}, headers=director)
    assert bad_filter.status_code == 400


def test_guest_activity_log(client, db, make_user, auth_headers):
    response = client.post("/api/activity/log", json={"action": "viewed_dashboard", "details": {"page": "home"}})
    assert response.status_code == 201
    assert db.query(GuestActivity).count() == 1

    logs = client.get("/api/activity/logs", headers=auth_headers(make_user(UserRole.DIRECTOR))).json()
    assert logs["data"][0]["action"] == "viewed_dashboard"


def test_login_with_seeded_password(client, make_user):
    user = make_user(UserRole.HOD)
    response = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
    assert response.status_code == 200
    assert response.json()["data"]["user"]["role"] == "hod"


def test_director_paging_is_bounded(client, make_user, auth_headers):
    director = auth_headers(make_user(UserRole.DIRECTOR))
    student = auth_headers(make_user())
    for title in ("One", "Two", "Three"):
        _create(client, student, title=title)

    page = client.get("/api/director/projects", params={"limit": 2, "page": 2}, headers=director).json()
    assert page["count"] == 1
    assert page["total"] == 3
    assert page["pages"] == 2
    assert page["page"] == 2

    too_big = client.get("/api/director/projects", params={"limit": 500}, headers=director)
    assert too_big.status_code == 422
