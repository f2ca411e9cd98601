"""Integration tests for the chat HTTP endpoints."""

from contextlib import contextmanager
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from agent.errors import ConversationStoreError, GenerativeBackendError
from agent.orchestrator import BACKEND_UNAVAILABLE_MESSAGE, ChatOrchestrator
from api.main import app
from shared.rate_limiter import RateLimiter
from shared.web_cache import WebSearchCache


@pytest.fixture
def build(conversation_store, hotel, test_settings, reference_date, fake_clock, scripted_llm):
    """Factory: build(*replies, max_messages=20) -> ChatOrchestrator with a scripted backend."""

    def factory(*replies, max_messages=20):
        return ChatOrchestrator(
            conversations=conversation_store,
            inventory=hotel,
            booking=hotel,
            llm=scripted_llm(*replies),
            rate_limiter=RateLimiter(max_messages=max_messages, clock=fake_clock),
            web_cache=WebSearchCache(clock=fake_clock),
            settings=test_settings,
            today=lambda: reference_date,
        )

    return factory


@contextmanager
def serving(orchestrator):
    """Run the app with orchestrator installed by the startup hook."""
    with patch("api.main.build_orchestrator", return_value=orchestrator):
        with TestClient(app) as client:
            yield client


class TestChatEndpoint:
    """POST /chat"""

    def test_booking_turn_uses_camel_case(self, build):
        with serving(build("¡Perfecto! ¿Qué tipo de habitación prefieres?")) as client:
            response = client.post(
                "/chat",
                json={"message": "quiero reservar del 10 al 15 de diciembre para 2 adultos"},
            )

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "¡Perfecto! ¿Qué tipo de habitación prefieres?"
        assert body["conversationId"]
        assert body["requiresHuman"] is False
        assert body["suggestedActions"][-1] == "Cancelar reserva"
        assert body["reservationInProgress"]["step"] == "room_type"
        assert body["reservationInProgress"]["fechaEntrada"] == "2025-12-10"
        assert body["reservationInProgress"]["cantidadAdultos"] == 2
        assert body["metadata"]["llmModel"] == "test/model"

    def test_empty_message_rejected(self, build):
        with serving(build()) as client:
            response = client.post("/chat", json={"message": ""})

        assert response.status_code == 422

    def test_backend_down_still_answers(self, build):
        with serving(build(GenerativeBackendError("circuit open"))) as client:
            response = client.post("/chat", json={"message": "¿y el clima?"})

        assert response.status_code == 200
        assert response.json()["message"] == BACKEND_UNAVAILABLE_MESSAGE

    def test_throttled_sender_gets_message(self, build):
        with serving(build("Claro.", max_messages=1)) as client:
            client.post("/chat", json={"message": "¿y el clima?", "clienteId": 3})
            response = client.post("/chat", json={"message": "¿y el clima?", "clienteId": 3})

        assert response.status_code == 200
        body = response.json()
        assert body["message"].startswith("⚠️ Has enviado muchos mensajes")
        assert body["conversationId"] == ""
        assert body["metadata"]["rateLimited"] is True


class TestConversationEndpoints:
    """GET /chat/conversations/{id} and GET /chat/clients/{id}/conversations"""

    def test_history_after_turn(self, build):
        with serving(build("Hoy está soleado.")) as client:
            turn = client.post("/chat", json={"message": "¿y el clima?", "clienteId": 7}).json()
            history = client.get(f"/chat/conversations/{turn['conversationId']}")
            listing = client.get("/chat/clients/7/conversations")

        assert history.status_code == 200
        assert history.json()["clienteId"] == 7
        assert [message["role"] for message in history.json()["messages"]] == ["user", "assistant"]

        assert listing.status_code == 200
        assert listing.json()["total"] == 1
        assert listing.json()["conversations"][0]["id"] == turn["conversationId"]

    def test_unknown_conversation(self, build):
        with serving(build()) as client:
            response = client.get("/chat/conversations/does-not-exist")

        assert response.status_code == 404

    def test_store_unavailable(self, build, conversation_store):
        conversation_store.get = AsyncMock(side_effect=ConversationStoreError("redis down"))

        with serving(build()) as client:
            response = client.get("/chat/conversations/conv-1")

        assert response.status_code == 503


class TestHealth:
    def test_health_without_redis(self, build):
        with serving(build()) as client:
            response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["redis"] == "not_configured"
        assert {"openrouter", "tavily"} <= set(body["circuit_breakers"])

    def test_root(self, build):
        with serving(build()) as client:
            assert "POST /chat" in client.get("/").json()["message"]
