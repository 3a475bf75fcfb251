"""
Shared pytest fixtures for the ProFlow test suite.

Provides:
    - app: Flask application (session-scoped, uploads under a temp dir)
    - _setup_db: Database table creation/teardown (session-scoped)
    - session: Per-test DB cleanup w/ rollback + recreate (autouse)
    - client: Flask test client (function-scoped)
    - company_admin / other_company_admin: signed-up companies
    - make_employee: factory creating employees through the API
    - make_project / make_task / make_sprint: factories creating domain rows through the API
"""

import pytest

from proflow import create_app
from proflow.models import db as _db


def auth(token):
    """Authorization header for a bearer token."""
    return {"Authorization": f"Bearer {token}"}


def signup(client, company="Acme", email="admin@acme.com", password="secret123"):
    res = client.post(
        "/api/auth/admin-signup",
        json={
            "company_name": company,
            "company_location": "Berlin",
            "industry": "Software",
            "admin_name": f"{company} Admin",
            "email": email,
            "password": password,
        },
    )
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ── App & DB fixtures ────────────────────────────────────────────────────


@pytest.fixture(scope="session")
def app(tmp_path_factory):
    """Create the Flask application once per test session."""
    application = create_app("testing")
    application.config["UPLOAD_FOLDER"] = str(tmp_path_factory.mktemp("uploads"))
    return application


@pytest.fixture(scope="session")
def _setup_db(app):
    """Create all tables at session start, drop at end."""
    with app.app_context():
        _db.create_all()
    yield
    with app.app_context():
        _db.drop_all()


@pytest.fixture(autouse=True)
def session(app, _setup_db):
    """Per-test: open app context, rollback after test, recreate tables."""
    with app.app_context():
        yield
        _db.session.rollback()
        _db.drop_all()
        _db.create_all()


@pytest.fixture()
def client(app):
    """Flask test client."""
    return app.test_client()


# ── Tenant fixtures ──────────────────────────────────────────────────────


@pytest.fixture()
def company_admin(client):
    """Signed-up company "Acme": dict with token, user and headers."""
    body = signup(client)
    body["headers"] = auth(body["token"])
    return body


@pytest.fixture()
def other_company_admin(client):
    """A second, unrelated company."""
    body = signup(client, company="Globex", email="admin@globex.com")
    body["headers"] = auth(body["token"])
    return body


@pytest.fixture()
def make_employee(client):
    """Factory: make_employee(admin, name) → dict with id, token, headers."""
    counter = {"n": 0}

    def _make(admin, name=None, password="emppass123"):
        counter["n"] += 1
        name = name or f"Employee {counter['n']}"
        domain = admin["user"]["company"]["name"].lower()
        email = f"{name.lower().replace(' ', '.')}@{domain}.com"
        res = client.post(
            "/api/employees",
            json={"name": name, "email": email, "password": password},
            headers=admin["headers"],
        )
        assert res.status_code == 201, res.get_json()
        employee = res.get_json()
        login = client.post("/api/auth/signin", json={"email": email, "password": password})
        assert login.status_code == 200
        employee["token"] = login.get_json()["token"]
        employee["headers"] = auth(employee["token"])
        return employee

    return _make


@pytest.fixture()
def make_project(client):
    """Factory: make_project(admin, **fields) → project JSON."""

    def _make(admin, **fields):
        payload = {"name": "Alpha"}
        payload.update(fields)
        res = client.post("/api/projects", json=payload, headers=admin["headers"])
        assert res.status_code == 201, res.get_json()
        return res.get_json()

    return _make


@pytest.fixture()
def make_task(client):
    """Factory: make_task(admin, project_id, **fields) → task JSON."""

    def _make(admin, project_id, **fields):
        payload = {"title": "Task", "project_id": project_id}
        payload.update(fields)
        res = client.post("/api/tasks", json=payload, headers=admin["headers"])
        assert res.status_code == 201, res.get_json()
        return res.get_json()

    return _make


@pytest.fixture()
def make_sprint(client):
    """Factory: make_sprint(admin, project_id, **fields) → sprint JSON."""

    def _make(admin, project_id, **fields):
        payload = {
            "title": "Sprint 1",
            "goal": "Ship it",
            "duration": 2,
            "start_date": "2026-01-05",
            "end_date": "2026-01-19",
            "project_id": project_id,
        }
        payload.update(fields)
        res = client.post("/api/sprints", json=payload, headers=admin["headers"])
        assert res.status_code == 201, res.get_json()
        return res.get_json()

    return _make
