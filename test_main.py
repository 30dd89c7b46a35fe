# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Assistant Gateway — HTTP surface tests
======================================
Services are swapped through FastAPI dependency overrides; the lifespan is
not run, so no database engine or upstream client is created.

Run:  pytest test_main.py -v
"""

import json
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from gateway.core import dependencies
from gateway.core.config import settings
from gateway.core.logging import JSONFormatter, request_id_var
from gateway.models.domain import Caller, TurnRole
from gateway.models.errors import (
    AuthRequired,
    DeliveryError,
    FailureKind,
    UpstreamError,
    UpstreamExhausted,
    ValidationError,
)
from gateway.services.chat_service import ChatReply, ChatService
from main import app

client = TestClient(app)

METADATA = {
    "roster_count": 4,
    "ongoing_events_count": 2,
    "past_events_count": 5,
    "articles_count": 3,
    "is_authenticated": False,
    "caller_name": None,
    "restricted_requery": False,
    "report_requested": False,
}


# ── Fixtures ──────────────────────────────────────────────────────────────
@pytest.fixture(autouse=True)
def clear_overrides():
    yield
    app.dependency_overrides.clear()


@pytest.fixture
def chat_service():
    service = MagicMock()
    service.process_message = AsyncMock(
        return_value=ChatReply(response="Our next event is the hackathon.", metadata=dict(METADATA))
    )
    app.dependency_overrides[dependencies.get_chat_service] = lambda: service
    app.dependency_overrides[dependencies.get_optional_caller] = lambda: None
    return service


@pytest.fixture
def report_service():
    service = MagicMock()
    service.send_report = AsyncMock(return_value={"sender": "mock"})
    app.dependency_overrides[dependencies.get_report_service] = lambda: service
    app.dependency_overrides[dependencies.get_optional_caller] = lambda: None
    return service


@pytest.fixture
def health_service():
    service = MagicMock()
    service.check = AsyncMock(return_value={
        "status": "healthy",
        "services": {"gemini": "connected", "database": "connected"},
        "credentials": 2,
        "timestamp": "2026-01-01T00:00:00+00:00",
    })
    service.check_store = AsyncMock(return_value=True)
    app.dependency_overrides[dependencies.get_health_service] = lambda: service
    return service


# ═══════════════════════════════════════════════════════════════════════════
# SYSTEM
# ═══════════════════════════════════════════════════════════════════════════
class TestSystem:
    def test_health_returns_ok(self):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == settings.SERVICE_NAME

    def test_request_id_is_echoed(self):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"

    def test_request_id_is_generated(self):
        assert client.get("/health").headers.get("X-Request-ID")

    def test_malformed_request_id_is_replaced(self):
        response = client.get("/health", headers={"X-Request-ID": "x" * 200})
        request_id = response.headers["X-Request-ID"]
        assert request_id != "x" * 200
        assert len(request_id) == 36

    def test_log_records_carry_request_id_from_context(self):
        record = logging.LogRecord("gateway", logging.INFO, __file__, 1, "Using API key 1/2", None, None)
        token = request_id_var.set("req-ctx-1")
        try:
            line = json.loads(JSONFormatter().format(record))
        finally:
            request_id_var.reset(token)
        assert line["request_id"] == "req-ctx-1"
        assert line["message"] == "Using API key 1/2"
        assert "request_id" not in json.loads(JSONFormatter().format(record))

    def test_metrics_exposed(self, chat_service):
        client.post("/api/v1/chatbot/message", json={"message": "hi"})
        response = client.get("/metrics")
        assert response.status_code == 200
        assert "assistant_requests_total" in response.text

    def test_ready_when_store_answers(self, health_service):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert response.json()["status"] == "ready"

    def test_not_ready_when_store_down(self, health_service):
        health_service.check_store.return_value = False
        response = client.get("/health/ready")
        assert response.status_code == 503


# ═══════════════════════════════════════════════════════════════════════════
# CHAT MESSAGE
# ═══════════════════════════════════════════════════════════════════════════
class TestChatMessage:
    URL = "/api/v1/chatbot/message"

    def test_success(self, chat_service):
        response = client.post(self.URL, json={"message": "What's on next?"})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["response"] == "Our next event is the hackathon."
        assert data["metadata"]["roster_count"] == 4

    def test_history_shapes_are_normalised(self, chat_service):
        client.post(self.URL, json={
            "message": "and after that?",
            "conversationHistory": [
                {"isUser": False, "text": "Hi! Ask me anything."},
                {"role": "user", "content": "what's on?"},
                {"role": "model", "content": "The hackathon."},
                {"isUser": True, "text": "thanks"},
            ],
        })
        message, history, caller = chat_service.process_message.await_args.args
        assert message == "and after that?"
        assert [t.role for t in history] == [
            TurnRole.ASSISTANT, TurnRole.CALLER, TurnRole.ASSISTANT, TurnRole.CALLER,
        ]
        assert history[1].text == "what's on?"
        assert caller is None

    def test_validation_error_is_400(self, chat_service):
        chat_service.process_message.side_effect = ValidationError("Message is required")
        response = client.post(self.URL, json={"message": ""})
        assert response.status_code == 400
        assert response.json()["success"] is False

    @pytest.mark.parametrize("body", [{}, {"message": "   "}, {"message": 7}])
    def test_real_service_rejects_bad_messages(self, body):
        snapshots = MagicMock()
        snapshots.fetch_snapshot = AsyncMock()
        service = ChatService(snapshots, MagicMock())
        app.dependency_overrides[dependencies.get_chat_service] = lambda: service
        app.dependency_overrides[dependencies.get_optional_caller] = lambda: None
        response = client.post(self.URL, json=body)
        assert response.status_code == 400
        snapshots.fetch_snapshot.assert_not_awaited()

    def test_auth_required_is_200_with_flag(self, chat_service):
        chat_service.process_message.side_effect = AuthRequired()
        response = client.post(self.URL, json={"message": "show my certificates"})
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is False
        assert data["requires_auth"] is True
        assert "sign in" in data["message"]

    def test_exhausted_pool_is_generic_500(self, chat_service):
        chat_service.process_message.side_effect = UpstreamExhausted(
            UpstreamError(FailureKind.RATE_LIMIT, "429 Too Many Requests", status_code=429)
        )
        with patch.object(settings, "DEBUG", False):
            response = client.post(self.URL, json={"message": "hi"})
        assert response.status_code == 500
        data = response.json()
        assert data["success"] is False
        assert data["details"] is None

    def test_debug_mode_includes_details(self, chat_service):
        chat_service.process_message.side_effect = UpstreamError(
            FailureKind.OTHER, "API key not valid", status_code=400
        )
        with patch.object(settings, "DEBUG", True):
            response = client.post(self.URL, json={"message": "hi"})
        assert response.status_code == 500
        assert "API key not valid" in response.json()["details"]

    def test_bearer_token_resolves_caller(self, chat_service):
        del app.dependency_overrides[dependencies.get_optional_caller]
        resolver = MagicMock()
        resolver.resolve.return_value = Caller(name="Ada", email="ada@x.org")
        with patch.object(dependencies, "_caller_resolver", resolver):
            client.post(self.URL, json={"message": "hi"},
                        headers={"Authorization": "Bearer tok-123"})
        resolver.resolve.assert_called_once_with("tok-123")
        assert chat_service.process_message.await_args.args[2].email == "ada@x.org"

    def test_no_token_is_anonymous(self, chat_service):
        del app.dependency_overrides[dependencies.get_optional_caller]
        resolver = MagicMock()
        with patch.object(dependencies, "_caller_resolver", resolver):
            client.post(self.URL, json={"message": "hi"})
        resolver.resolve.assert_not_called()
        assert chat_service.process_message.await_args.args[2] is None


# ═══════════════════════════════════════════════════════════════════════════
# SEND REPORT
# ═══════════════════════════════════════════════════════════════════════════
class TestSendReport:
    URL = "/api/v1/chatbot/send-report"

    def test_success(self, report_service):
        response = client.post(self.URL, json={
            "content": "We'd like to sponsor your next event",
            "senderName": "Grace",
            "senderEmail": "grace@x.org",
        })
        assert response.status_code == 200
        assert response.json()["success"] is True
        content, name, email, caller = report_service.send_report.await_args.args
        assert (content, name, email, caller) == (
            "We'd like to sponsor your next event", "Grace", "grace@x.org", None,
        )

    def test_blank_content_is_400(self, report_service):
        report_service.send_report.side_effect = ValidationError("Report content is required")
        response = client.post(self.URL, json={"content": ""})
        assert response.status_code == 400

    def test_delivery_failure_is_500(self, report_service):
        report_service.send_report.side_effect = DeliveryError("all senders failed")
        response = client.post(self.URL, json={"content": "hello"})
        assert response.status_code == 500
        assert response.json()["success"] is False


# ═══════════════════════════════════════════════════════════════════════════
# CHATBOT HEALTH
# ═══════════════════════════════════════════════════════════════════════════
class TestChatbotHealth:
    URL = "/api/v1/chatbot/health"

    def test_healthy(self, health_service):
        response = client.get(self.URL)
        assert response.status_code == 200
        assert response.json()["services"] == {"gemini": "connected", "database": "connected"}

    def test_unhealthy_is_503(self, health_service):
        health_service.check.return_value = {
            "status": "unhealthy",
            "services": {"gemini": "disconnected", "database": "connected"},
            "credentials": 2,
            "timestamp": "2026-01-01T00:00:00+00:00",
        }
        response = client.get(self.URL)
        assert response.status_code == 503
        assert response.json()["status"] == "unhealthy"


# ═══════════════════════════════════════════════════════════════════════════
# STARTUP WIRING
# ═══════════════════════════════════════════════════════════════════════════
class TestStartup:
    def test_empty_credential_pool_is_fatal(self):
        with pytest.raises(RuntimeError):
            dependencies.init_services(engine=MagicMock(), http_client=MagicMock(), credentials=[])

    def test_services_wired_with_credentials(self):
        saved = (dependencies._chat_service, dependencies._report_service,
                 dependencies._health_service, dependencies._caller_resolver,
                 dependencies._engine, dependencies._http_client)
        try:
            dependencies.init_services(engine=MagicMock(), http_client=MagicMock(),
                                       credentials=["key-alpha-000001"])
            assert isinstance(dependencies.get_chat_service(), ChatService)
            assert dependencies.get_report_service() is not None
            assert dependencies.get_health_service() is not None
        finally:
            (dependencies._chat_service, dependencies._report_service,
             dependencies._health_service, dependencies._caller_resolver,
             dependencies._engine, dependencies._http_client) = saved
