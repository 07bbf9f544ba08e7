"""
Tests for the sync control API.

The app is built with a service factory that points the orchestrator at
a temp inbox and a stub dispatcher; auto-sync stays off.
"""

import pytest
from fastapi.testclient import TestClient

from ordersync.ingestion.kv_store import SqlKeyValueStore
from ordersync.ingestion.local_channel import LocalDirectoryChannel
from ordersync.main import create_app
from ordersync.service import build_service, restored_interval
from tests.factories import ORDER_TEXT, StubDispatcher

API = "/api/v1"


@pytest.fixture
def inbox(tmp_path):
    directory = tmp_path / "inbox"
    directory.mkdir()
    (directory / "orders_1.txt").write_text(ORDER_TEXT)
    return directory


@pytest.fixture
def dispatcher():
    return StubDispatcher()


@pytest.fixture
def client(test_settings, inbox, dispatcher):
    def factory():
        return build_service(
            test_settings,
            store=SqlKeyValueStore("sqlite:///:memory:"),
            channel_factory=lambda: LocalDirectoryChannel(inbox),
            dispatcher=dispatcher,
        )

    with TestClient(create_app(service_factory=factory)) as test_client:
        yield test_client


class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"


class TestSyncRoutes:
    """Manual run, status and auto-sync control."""

    def test_run(self, client, dispatcher):
        response = client.post(f"{API}/sync/run")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "COMPLETED"
        assert body["retired"] == 1
        assert body["files"][0]["file_name"] == "orders_1.txt"
        assert [name for name, _ in dispatcher.calls] == ["orders_1.txt"]

    def test_status(self, client):
        client.post(f"{API}/sync/run")

        body = client.get(f"{API}/sync/status").json()

        assert body["scheduler"]["running"] is False
        assert body["scheduler"]["interval_minutes"] == 10
        assert body["orchestrator"]["processed_files"] == 1
        assert body["orchestrator"]["last_report"]["retired"] == 1

    def test_start_and_stop(self, client):
        started = client.post(f"{API}/sync/start").json()

        assert started["started"] is True
        assert started["scheduler"]["running"] is True

        stopped = client.post(f"{API}/sync/stop").json()

        assert stopped["stopped"] is True
        assert stopped["scheduler"]["running"] is False

    @pytest.mark.parametrize("minutes", [0, -5, 1441])
    def test_interval_validation(self, client, minutes):
        response = client.put(f"{API}/sync/interval", json={"minutes": minutes})

        assert response.status_code == 422

    def test_interval_change_starts_scheduler(self, client):
        response = client.put(f"{API}/sync/interval", json={"minutes": 5})

        assert response.status_code == 200
        assert response.json() == {
            "action": "started",
            "interval_minutes": 5.0,
            "pending_interval_minutes": None,
        }
        assert client.app.state.service.store.get("syncIntervalMinutes") == 5.0


class TestLedgerRoutes:
    def test_list_after_run(self, client):
        client.post(f"{API}/sync/run")

        assert client.get(f"{API}/ledger").json() == {"count": 1, "files": ["orders_1.txt"]}

    def test_remove_entry(self, client):
        client.post(f"{API}/sync/run")

        assert client.delete(f"{API}/ledger/orders_1.txt").json() == {"removed": 1}
        assert client.delete(f"{API}/ledger/orders_1.txt").status_code == 404

    def test_remove_invalid_name(self, client):
        assert client.delete(f"{API}/ledger/{'x' * 300}").status_code == 422

    def test_clear(self, client):
        client.post(f"{API}/sync/run")

        assert client.delete(f"{API}/ledger").json() == {"removed": 1}
        assert client.get(f"{API}/ledger").json()["count"] == 0


class TestResultsRoutes:
    def test_results_newest_first(self, client, inbox, dispatcher):
        dispatcher.outcomes["orders_2.txt"] = False
        (inbox / "orders_2.txt").write_text(ORDER_TEXT)
        client.post(f"{API}/sync/run")

        body = client.get(f"{API}/results").json()

        assert body["statistics"] == {"total": 2, "successful": 1, "failed": 1, "success_rate": 50.0}
        assert [r["file_name"] for r in body["results"]] == ["orders_2.txt", "orders_1.txt"]

        failed = client.get(f"{API}/results", params={"success": False}).json()["results"]
        assert [r["error_code"] for r in failed] == ["SubmissionFailed"]

    def test_clear(self, client):
        client.post(f"{API}/sync/run")

        assert client.delete(f"{API}/results").json() == {"removed": 1}
        assert client.get(f"{API}/results").json()["results"] == []


class TestServiceWiring:
    def test_restored_interval(self, store):
        assert restored_interval(store, 10.0) == 10.0

        store.set("syncIntervalMinutes", 3)
        assert restored_interval(store, 10.0) == 3.0

        store.set("syncIntervalMinutes", "soon")
        assert restored_interval(store, 10.0) == 10.0
