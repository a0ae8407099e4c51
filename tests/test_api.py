"""Tests for the HTTP API using FastAPI's TestClient."""
import pytest
from fastapi.testclient import TestClient

from conftest import BLIGHT, PNG_BYTES, FakeAnalyzer
from plant_health.api.main import create_app
from plant_health.context import create_context
from plant_health.errors import GENERIC_STORAGE_MESSAGE, StorageError
from plant_health.storage.kv_store import InMemoryStore


@pytest.fixture
def context():
    return create_context(store=InMemoryStore(), analyzer=FakeAnalyzer(), timeout=5)


@pytest.fixture
def client(context):
    with TestClient(create_app(context)) as c:
        yield c


def _upload(client):
    return client.post(
        "/v1/analysis/image",
        files={"image": ("leaf.png", PNG_BYTES, "image/png")},
    )


def test_root_and_health(client):
    assert client.get("/").json()["service"] == "Plant Health Monitor API"
    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["accounts_loaded"] == 1
    assert health["surface"] == "auth"


def test_login_and_me(client):
    resp = client.post("/v1/auth/login", json={"email": "admin@plant.health", "password": "admin123"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["principal"]["role"] == "admin"
    assert body["surface"] == "admin"
    assert client.get("/v1/auth/me").json()["principal"]["email"] == "admin@plant.health"


def test_bad_login_is_401_with_message(client):
    resp = client.post("/v1/auth/login", json={"email": "admin@plant.health", "password": "nope"})
    assert resp.status_code == 401
    assert resp.json()["detail"] == "Invalid email or password."
    view = client.get("/v1/view").json()
    assert view["surface"] == "auth"
    assert view["auth_error"] == "Invalid email or password."


def test_duplicate_register_is_409(client):
    creds = {"email": "alice@x.com", "password": "pw1"}
    assert client.post("/v1/auth/register", json=creds).status_code == 200
    client.post("/v1/auth/logout")
    resp = client.post("/v1/auth/register", json=creds)
    assert resp.status_code == 409
    assert resp.json()["detail"] == "An account with this email already exists."


def test_register_storage_failure_is_500(client, context):
    class ReadOnlyStore(InMemoryStore):
        def set(self, key, value):
            raise StorageError("disk full")

    context.registry.store = ReadOnlyStore()
    resp = client.post("/v1/auth/register", json={"email": "alice@x.com", "password": "pw1"})
    assert resp.status_code == 500
    assert resp.json()["detail"] == GENERIC_STORAGE_MESSAGE


def test_analysis_requires_login(client):
    assert client.post("/v1/analysis/run").status_code == 401
    assert client.get("/v1/history").status_code == 401


def test_run_without_image_is_400(client):
    client.post("/v1/auth/register", json={"email": "alice@x.com", "password": "pw1"})
    resp = client.post("/v1/analysis/run")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Please select an image first."


def test_upload_and_run(client, context):
    client.post("/v1/auth/register", json={"email": "alice@x.com", "password": "pw1"})
    snap = _upload(client).json()
    assert snap["state"] == "image_selected"
    assert snap["image_url"].startswith("data:image/png;base64,")

    snap = client.post("/v1/analysis/run").json()
    assert snap["state"] == "succeeded"
    assert snap["result"]["disease_name"] == BLIGHT.disease_name

    records = client.get("/v1/history").json()
    assert len(records) == 1
    assert records[0]["userEmail"] == "alice@x.com"
    assert records[0]["imageUrl"] == snap["image_url"]


def test_failed_run_reports_failed_state(client, context):
    context.pipeline.analyzer = FakeAnalyzer(error=RuntimeError("model overloaded"))
    client.post("/v1/auth/register", json={"email": "alice@x.com", "password": "pw1"})
    _upload(client)
    resp = client.post("/v1/analysis/run")
    assert resp.status_code == 200
    assert resp.json()["state"] == "failed"
    assert resp.json()["error"] == "model overloaded"
    assert client.get("/v1/history").json() == []


def test_stats_are_admin_only(client):
    client.post("/v1/auth/register", json={"email": "alice@x.com", "password": "pw1"})
    assert client.get("/v1/history/stats").status_code == 403
    client.post("/v1/auth/logout")
    client.post("/v1/auth/login", json={"email": "admin@plant.health", "password": "admin123"})
    assert client.get("/v1/history/stats").json()["total"] == 0


def test_user_view_includes_pipeline(client):
    client.post("/v1/auth/register", json={"email": "alice@x.com", "password": "pw1"})
    view = client.get("/v1/view").json()
    assert view["surface"] == "user"
    assert view["pipeline"]["state"] == "idle"
    assert view["stats"] is None


def test_reset_analysis(client):
    client.post("/v1/auth/register", json={"email": "alice@x.com", "password": "pw1"})
    _upload(client)
    assert client.delete("/v1/analysis").json()["state"] == "idle"
