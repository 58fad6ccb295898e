"""
API tests for the WebAnno FastAPI application.

Uses the in-memory database from conftest through dependency overrides.

Run with: python -m pytest webanno/tests/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

from webanno.config import get_settings
from webanno.db import get_db
from webanno.main import app
from webanno.services.annotator_state import get_annotator_state_store

DOCUMENT = "John lives in Berlin. He works for Siemens. Berlin is large."


@pytest.fixture
def client(session_factory, settings, admin, annotator):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: settings
    get_annotator_state_store.cache_clear()

    yield TestClient(app)

    app.dependency_overrides.clear()
    get_annotator_state_store.cache_clear()


def login(client, username, password="secret"):
    response = client.post("/api/v1/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def admin_headers(client):
    return login(client, "admin")


@pytest.fixture
def anna_headers(client):
    return login(client, "anna")


@pytest.fixture
def project_id(client, admin_headers):
    response = client.post("/api/v1/projects", json={"name": "API project"}, headers=admin_headers)
    assert response.status_code == 201
    project_id = response.json()["id"]

    response = client.put(
        f"/api/v1/projects/{project_id}/permissions/anna",
        json={"levels": ["user"]},
        headers=admin_headers,
    )
    assert response.status_code == 200
    return project_id


@pytest.fixture
def document_id(client, admin_headers, project_id):
    response = client.post(
        f"/api/v1/projects/{project_id}/documents",
        files={"file": ("doc1.txt", DOCUMENT.encode("utf-8"), "text/plain")},
        headers=admin_headers,
    )
    assert response.status_code == 201
    return response.json()["id"]


class TestAuth:
    """Tests for authentication."""

    def test_health(self, client):
        assert client.get("/health").json()["status"] == "healthy"

    def test_wrong_password(self, client):
        response = client.post("/api/v1/auth/login", json={"username": "admin", "password": "nope"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid username or password"

    def test_token_required(self, client):
        assert client.get("/api/v1/projects").status_code == 401
        assert client.get(
            "/api/v1/projects", headers={"Authorization": "Bearer garbage"}
        ).status_code == 401

    def test_me(self, client, anna_headers):
        response = client.get("/api/v1/users/me", headers=anna_headers)
        assert response.json()["username"] == "anna"


class TestProjects:
    """Tests for project management endpoints."""

    def test_default_layers_are_created(self, client, admin_headers, project_id):
        response = client.get(f"/api/v1/projects/{project_id}/layers", headers=admin_headers)
        assert [layer["name"] for layer in response.json()] == ["named_entity", "pos", "dependency"]

    def test_only_administrators_create_projects(self, client, anna_headers):
        response = client.post("/api/v1/projects", json={"name": "Mine"}, headers=anna_headers)
        assert response.status_code == 403

    def test_duplicate_project_name(self, client, admin_headers, project_id):
        response = client.post("/api/v1/projects", json={"name": "API project"}, headers=admin_headers)
        assert response.status_code == 400

    def test_annotator_sees_only_own_projects(self, client, admin_headers, anna_headers, project_id):
        client.post("/api/v1/projects", json={"name": "Other"}, headers=admin_headers)

        response = client.get("/api/v1/projects", headers=anna_headers)

        assert [p["name"] for p in response.json()] == ["API project"]

    def test_guidelines_need_saved_project(self, client, admin_headers):
        response = client.post(
            "/api/v1/projects/0/guidelines",
            files=[("files", ("rules.txt", b"rules", "text/plain"))],
            headers=admin_headers,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Project not yet created, please save project Details!"

    def test_guideline_upload(self, client, admin_headers, project_id):
        response = client.post(
            f"/api/v1/projects/{project_id}/guidelines",
            files=[
                ("files", ("rules.txt", b"rules", "text/plain")),
                ("files", ("more.txt", b"more", "text/plain")),
            ],
            headers=admin_headers,
        )

        assert response.status_code == 200
        assert response.json()["errors"] == []
        listing = client.get(f"/api/v1/projects/{project_id}/guidelines", headers=admin_headers)
        assert listing.json() == ["more.txt", "rules.txt"]

    def test_remove_project(self, client, admin_headers, project_id, document_id):
        response = client.delete(f"/api/v1/projects/{project_id}", headers=admin_headers)
        assert response.status_code == 200
        assert client.get(f"/api/v1/projects/{project_id}", headers=admin_headers).status_code == 404


class TestAnnotation:
    """Tests for the annotation editor endpoints."""

    def test_render_requires_open_document(self, client, anna_headers, project_id, document_id):
        response = client.get(f"/api/v1/annotate/{project_id}/{document_id}", headers=anna_headers)
        assert response.status_code == 400
        assert response.json()["detail"] == "Please open a document first!"

    def test_open_without_permission(self, client, admin_headers, project_id, document_id, services):
        services.users.create_user("carl", "secret")
        headers = login(client, "carl")

        response = client.post(f"/api/v1/annotate/{project_id}/{document_id}/open", headers=headers)

        assert response.status_code == 403

    def test_annotate_and_finish(self, client, admin_headers, anna_headers, project_id, document_id):
        base = f"/api/v1/annotate/{project_id}/{document_id}"

        view = client.post(f"{base}/open", headers=anna_headers).json()
        assert view["position"]["number_of_sentences"] == 3

        response = client.post(
            f"{base}/spans",
            json={"layer": "named_entity", "begin": 0, "end": 4, "features": {"value": "PER"}},
            headers=anna_headers,
        )
        assert response.status_code == 201
        span_id = response.json()["id"]

        response = client.post(
            f"{base}/features",
            json={"annotation_id": span_id, "feature": "value", "value": "ANIMAL"},
            headers=anna_headers,
        )
        assert response.status_code == 400

        response = client.post(f"{base}/page/next", headers=anna_headers)
        assert response.json()["position"]["first_visible_sentence"] == 3

        response = client.post(f"{base}/finish", json={}, headers=anna_headers)
        assert response.status_code == 409
        assert response.json()["detail"].startswith("Are you sure")

        response = client.post(f"{base}/finish", json={"confirmed": True}, headers=anna_headers)
        assert response.status_code == 200
        assert response.json()["finished"] is True

        progress = client.get(f"/api/v1/monitoring/projects/{project_id}", headers=admin_headers).json()
        assert progress["annotators"] == ["admin", "anna"]
        row = progress["documents"][0]
        assert row["cells"]["anna"]["src"] == "/api/v1/monitoring/icons/FINISHED.svg"
        assert row["finished"] == 1

        export = client.get(
            f"/api/v1/export/projects/{project_id}/documents/{document_id}",
            params={"format": "tsv"},
            headers=anna_headers,
        )
        assert export.status_code == 200
        assert export.text.startswith("#FORMAT=WebAnno TSV")
        assert "PER[" in export.text

    def test_unknown_page_direction(self, client, anna_headers, project_id, document_id):
        base = f"/api/v1/annotate/{project_id}/{document_id}"
        client.post(f"{base}/open", headers=anna_headers)

        response = client.post(f"{base}/page/sideways", headers=anna_headers)

        assert response.status_code == 404


class TestMonitoring:
    """Tests for monitoring endpoints."""

    def test_annotators_cannot_monitor(self, client, anna_headers, project_id):
        response = client.get(f"/api/v1/monitoring/projects/{project_id}", headers=anna_headers)
        assert response.status_code == 403

    def test_state_icons_are_cacheable(self, client):
        response = client.get("/api/v1/monitoring/icons/IN_PROGRESS.svg")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")
        assert response.headers["cache-control"] == "public, max-age=86400"

    def test_unknown_icon(self, client):
        assert client.get("/api/v1/monitoring/icons/WHATEVER.svg").status_code == 404
