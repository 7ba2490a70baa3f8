# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false

"""
Tests for the On-Call Bot HTTP surface.
Slash commands go through the real controller and OnCallService, backed
by the in-memory Slack and store fakes from conftest.py.
"""

import pytest
from fastapi.testclient import TestClient
from prometheus_client import REGISTRY

from main import app
from oncallbot.core.config import settings
from oncallbot.core.dependencies import (
    get_identity_cache,
    get_messages,
    get_oncall_service,
    get_rotation_store,
)

TOKEN = "test-command-token"

client = TestClient(app)


# ============================================
# Fixtures
# ============================================
@pytest.fixture(autouse=True)
def wired(monkeypatch, service, store, identities, messages):
    """Route every dependency to the fake-backed services."""
    monkeypatch.setattr(settings, "SLACK_COMMAND_TOKEN", TOKEN)
    monkeypatch.setattr(settings, "COMMAND_ENDPOINT", "/oncall")
    app.dependency_overrides[get_oncall_service] = lambda: service
    app.dependency_overrides[get_rotation_store] = lambda: store
    app.dependency_overrides[get_identity_cache] = lambda: identities
    app.dependency_overrides[get_messages] = lambda: messages
    yield
    app.dependency_overrides.clear()


def slash(text: str, user_id: str = "UADMIN", user_name: str = "admin", **overrides):
    form = {
        "token": TOKEN,
        "team_id": "T0001",
        "team_domain": "example",
        "channel_id": "C2147483705",
        "channel_name": "ops",
        "user_id": user_id,
        "user_name": user_name,
        "command": "/oncall",
        "text": text,
        "response_url": "https://hooks.slack.com/commands/1234/5678",
    }
    form.update(overrides)
    response = client.post("/api/v1/slack/commands", data=form)
    assert response.status_code == 200
    return response.json()


# ============================================
# Health & Metrics
# ============================================
class TestHealth:
    def test_health_returns_ok_status(self):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == settings.SERVICE_NAME
        assert data["version"] == settings.SERVICE_VERSION
        assert "timestamp" in data

    def test_health_counts_teams(self):
        slash("register platform")
        data = client.get("/health").json()
        assert data["teams_count"] == 1


class TestReadiness:
    def test_not_ready_before_state_load(self):
        response = client.get("/health/ready")
        assert response.status_code == 503
        assert response.json()["teams_loaded"] is False

    def test_ready_after_first_command(self):
        slash("list")
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"


class TestRequestID:
    def test_response_has_request_id_header(self):
        response = client.get("/health")
        assert "X-Request-ID" in response.headers

    def test_request_id_propagated(self):
        response = client.get("/health", headers={"X-Request-ID": "req-42"})
        assert response.headers["X-Request-ID"] == "req-42"


class TestMetrics:
    def test_metrics_exposes_command_counters(self):
        slash("list")
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "oncall_bot_commands_total" in response.text
        assert "oncall_bot_requests_total" in response.text

    def test_probes_are_not_counted(self):
        client.get("/health")
        client.get("/metrics")
        assert REGISTRY.get_sample_value(
            "oncall_bot_requests_total",
            {"method": "GET", "endpoint": "/health", "status": "200"},
        ) is None

    def test_commands_are_counted(self):
        labels = {"method": "POST", "endpoint": "/api/v1/slack/commands", "status": "200"}
        before = REGISTRY.get_sample_value("oncall_bot_requests_total", labels) or 0.0
        slash("list")
        assert REGISTRY.get_sample_value("oncall_bot_requests_total", labels) == before + 1


# ============================================
# Request verification
# ============================================
class TestVerification:
    def test_wrong_token_is_rejected(self, messages, store):
        data = slash("register platform", token="forged")
        assert data["text"] == messages.external
        assert store.count() == 0

    def test_non_ascii_token_is_rejected(self, messages, store):
        data = slash("register platform", token="tök")
        assert data["text"] == messages.external
        assert store.count() == 0

    def test_wrong_command_is_rejected(self, messages, store):
        data = slash("register platform", command="/other")
        assert data["text"] == messages.external
        assert store.count() == 0

    def test_none_fields_are_omitted(self):
        data = slash("")
        assert "response_type" not in data
        assert data["attachments"] == []


# ============================================
# Commands end to end
# ============================================
class TestEndToEnd:
    def test_register_add_list(self):
        data = slash("register platform <@UALICE|alice>")
        assert data["text"] == "Success! New team PLATFORM registered, with manager <@UALICE>"

        data = slash("add platform <@UBOB|bob> OnCall", user_id="UALICE", user_name="alice")
        assert data["text"].startswith("Success! <@UBOB> added to the on-call list for PLATFORM")

        data = slash("list platform", user_id="UCAROL", user_name="carol")
        assert data["text"] == "On-call list for: PLATFORM"
        attachment = data["attachments"][0]
        assert attachment["title"] == "Manager: alice 555-0100"
        assert attachment["text"] == "1: bob 555-0101 (oncall)"
        assert attachment["footer"] == "updated: 2026-03-14 09:30 by alice"
        assert attachment["color"] == "EF203D"

    def test_list_teams(self):
        slash("register platform <@UALICE|alice>")
        slash("register data")
        data = slash("list")
        assert data["text"] == "List of Teams and Managers:"
        assert data["attachments"][0]["text"] == (
            "DATA: Manager not set :exclamation:\nPLATFORM: alice 555-0100"
        )

    def test_unknown_operation_shows_usage(self):
        data = slash("dance")
        assert data["text"].startswith("Usage:\n")
        assert "`/oncall swap" in data["text"]

    def test_bad_arity_shows_operation_usage(self):
        data = slash("swap platform 1")
        assert data["text"].startswith("Usage:\n`/oncall swap")
        assert "`/oncall add" not in data["text"]

    def test_domain_error_gets_human_emoji(self):
        data = slash("flush nowhere")
        assert data["text"] == "Team NOWHERE is not registered in oncall command :exclamation:"


class TestPermissionBoundary:
    @pytest.fixture
    def platform(self):
        slash("register platform <@UALICE|alice>")
        slash("add platform <@UBOB|bob>", user_id="UALICE", user_name="alice")
        slash("add platform <@UCAROL|carol>", user_id="UALICE", user_name="alice")
        return "PLATFORM"

    @pytest.mark.parametrize(
        "text",
        [
            "add platform <@UADMIN|admin>",
            "remove platform <@UBOB|bob>",
            "swap platform 1 2",
            "flush platform",
            "register platform <@UCAROL|carol>",
            "unregister platform",
        ],
        ids=["add", "remove", "swap", "flush", "register", "unregister"],
    )
    def test_base_user_is_denied_every_mutation(self, messages, store, repo, platform, text):
        before = store.list_teams()
        puts, deletes = repo.puts, repo.deletes
        data = slash(text, user_id="UCAROL", user_name="carol")
        assert data["text"] == messages.no_permission
        assert data["attachments"] == []
        assert store.list_teams() == before
        assert (repo.puts, repo.deletes) == (puts, deletes)

    def test_manager_cannot_register(self, messages):
        slash("register platform <@UALICE|alice>")
        data = slash("register other", user_id="UALICE", user_name="alice")
        assert data["text"] == messages.no_permission

    def test_manager_limited_to_own_team(self, messages):
        slash("register platform <@UALICE|alice>")
        slash("register data <@UBOB|bob>")
        data = slash("flush data", user_id="UALICE", user_name="alice")
        assert data["text"] == messages.no_permission

    def test_base_user_can_list(self):
        slash("register platform")
        data = slash("list platform", user_id="UCAROL", user_name="carol")
        assert data["text"] == "On-call list for: PLATFORM"
