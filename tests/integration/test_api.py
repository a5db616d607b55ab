"""
Integration Tests for HTTP / WebSocket API
FastAPI TestClient + 인메모리 컨테이너

Run: pytest tests/integration/test_api.py -v
"""

import pytest
from fastapi.testclient import TestClient

from conftest import FakeConnector, RecordingEmailSender, make_raw
from mentionwatch.core.config import Settings
from mentionwatch.core.container import build_container, get_container
from mentionwatch.data_pipeline.adapters.registry import ConnectorRegistry
from mentionwatch.data_pipeline.repositories import Database
from mentionwatch.main import app


@pytest.fixture
def container():
    db = Database.in_memory()
    db.create_all()
    connector = FakeConnector(items=[
        make_raw("https://news.example.com/a", title="Budget passes"),
    ])
    built = build_container(
        config=Settings(SCHEDULER_ENABLED=False),
        db=db,
        registry=ConnectorRegistry([connector]),
        email_sender=RecordingEmailSender(),
    )
    yield built
    db.dispose()


@pytest.fixture
def client(container):
    app.dependency_overrides[get_container] = lambda: container
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def account(container):
    return container.accounts.create(email="owner@example.com", full_name="Owner", plan="individual")


@pytest.fixture
def created_project(client, account):
    response = client.post("/api/v1/projects", json={
        "account_id": account.id,
        "name": "Budget Watch",
        "keywords": ["budget"],
    })
    assert response.status_code == 201
    return response.json()


class TestSystem:
    """시스템 엔드포인트"""

    def test_root(self, client):
        assert client.get("/").json()["name"] == "MentionWatch"

    def test_health(self, client):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["scheduler"] == {"running": False}

    def test_connectors(self, client):
        connectors = client.get("/api/v1/connectors").json()["connectors"]
        assert [c["id"] for c in connectors] == ["fake"]
        assert connectors[0]["enabled_by_default"] is True


class TestProjects:
    """프로젝트 CRUD"""

    def test_create_applies_defaults(self, created_project):
        assert created_project["status"] == "active"
        assert created_project["schedule_minutes"] == 30
        assert created_project["sources"] == {"fake": True}
        assert created_project["last_run_at"] is None

    def test_create_unknown_account(self, client):
        response = client.post("/api/v1/projects", json={"account_id": "missing", "name": "X"})
        assert response.status_code == 404

    def test_create_keyword_limit(self, client, account):
        response = client.post("/api/v1/projects", json={
            "account_id": account.id, "name": "X", "keywords": ["a", "b", "c", "d"],
        })
        assert response.status_code == 400

    def test_get_update_delete(self, client, created_project):
        project_id = created_project["id"]

        assert client.get(f"/api/v1/projects/{project_id}").json()["name"] == "Budget Watch"

        updated = client.patch(f"/api/v1/projects/{project_id}", json={"status": "paused", "keywords": ["tax"]})
        assert updated.status_code == 200
        assert updated.json()["status"] == "paused"
        assert updated.json()["keywords"] == ["tax"]

        assert client.delete(f"/api/v1/projects/{project_id}").json() == {"success": True}
        assert client.get(f"/api/v1/projects/{project_id}").status_code == 404
        assert client.delete(f"/api/v1/projects/{project_id}").status_code == 404

    def test_duplicate_name_rejected(self, client, account, created_project):
        response = client.post("/api/v1/projects", json={"account_id": account.id, "name": "Budget Watch"})
        assert response.status_code == 400
        assert "already exists" in response.json()["detail"]

    def test_invalid_status_rejected(self, client, created_project):
        response = client.patch(f"/api/v1/projects/{created_project['id']}", json={"status": "archived"})
        assert response.status_code == 422

    def test_account_projects(self, client, account, created_project):
        data = client.get(f"/api/v1/accounts/{account.id}/projects").json()
        assert data["total"] == 1
        assert data["projects"][0]["id"] == created_project["id"]


class TestIngestion:
    """수동 수집과 조회"""

    def test_ingest_then_query(self, client, account, created_project):
        project_id = created_project["id"]

        result = client.post(f"/api/v1/projects/{project_id}/ingest").json()
        assert result["inserted"] == 1
        assert result["status"] == "active"
        assert result["connectors"][0]["state"] == "ok"

        metrics = client.get(f"/api/v1/projects/{project_id}/metrics").json()
        assert metrics["total_mentions"] == 1

        health = client.get(f"/api/v1/projects/{project_id}/health").json()
        assert health["connectors"][0]["connector_id"] == "fake"

        usage = client.get(f"/api/v1/accounts/{account.id}/usage").json()
        assert usage["mentions_count"] == 1
        assert usage["remaining"] == 2999

    def test_second_ingest_inserts_nothing(self, client, created_project):
        project_id = created_project["id"]
        client.post(f"/api/v1/projects/{project_id}/ingest")

        assert client.post(f"/api/v1/projects/{project_id}/ingest").json()["inserted"] == 0

    def test_ingest_paused_project_is_forced(self, client, created_project):
        project_id = created_project["id"]
        client.patch(f"/api/v1/projects/{project_id}", json={"status": "paused"})

        result = client.post(f"/api/v1/projects/{project_id}/ingest").json()
        assert result["inserted"] == 1
        assert result["status"] == "paused"

    def test_ingest_already_claimed_conflict(self, client, container, created_project, monkeypatch):
        monkeypatch.setattr(container.projects, "claim", lambda *args, **kwargs: False)

        response = client.post(f"/api/v1/projects/{created_project['id']}/ingest")

        assert response.status_code == 409
        assert container.projects.get(created_project["id"]).last_run_at is None

    def test_ingest_claims_last_run(self, client, container, created_project):
        client.post(f"/api/v1/projects/{created_project['id']}/ingest")
        stamped = container.projects.get(created_project["id"]).last_run_at

        assert stamped is not None
        # 이전 값으로 다시 선점할 수 없다
        assert container.projects.claim(created_project["id"], None, stamped, require_active=False) is False

    def test_ingest_unknown_project(self, client):
        assert client.post("/api/v1/projects/missing/ingest").status_code == 404

    def test_metrics_unknown_project(self, client):
        assert client.get("/api/v1/projects/missing/metrics").status_code == 404


class TestAlerts:
    """알림 조회 / 읽음 처리"""

    def test_alert_lifecycle(self, client, account, created_project):
        client.post(f"/api/v1/projects/{created_project['id']}/ingest")

        alerts = client.get(f"/api/v1/accounts/{account.id}/alerts").json()["alerts"]
        assert [a["type"] for a in alerts] == ["new_mentions"]

        read = client.post(f"/api/v1/alerts/{alerts[0]['id']}/read").json()
        assert read["read_at"] is not None

        unread = client.get(f"/api/v1/accounts/{account.id}/alerts", params={"unread_only": True}).json()
        assert unread["total"] == 0

        stats = client.get(f"/api/v1/accounts/{account.id}/alerts/stats").json()
        assert stats["today"] == 1
        assert stats["unread"] == 0

    def test_read_missing_alert(self, client):
        assert client.post("/api/v1/alerts/missing/read").status_code == 404

    def test_unknown_account(self, client):
        assert client.get("/api/v1/accounts/missing/alerts").status_code == 404
        assert client.get("/api/v1/accounts/missing/usage").status_code == 404


class TestRealtime:
    """웹소켓 룸"""

    def test_join_rooms(self, client, account, created_project):
        url = f"/api/v1/ws?account_id={account.id}&project_id={created_project['id']}"
        with client.websocket_connect(url) as websocket:
            message = websocket.receive_json()

        assert message["event"] == "joined"
        assert message["data"]["rooms"] == sorted([
            f"user:{account.id}", f"project:{created_project['id']}",
        ])
