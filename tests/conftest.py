"""
Test configuration and fixtures.

This module sets up test environment and provides shared fixtures for all tests.
"""

import os
from datetime import date
from unittest.mock import AsyncMock, MagicMock

import pytest

# Force the in-memory conversation store and disable web search for tests
# Must be set BEFORE any imports of shared.config
os.environ["REDIS_URL"] = ""
os.environ["TAVILY_API_KEY"] = ""
os.environ["OPENROUTER_API_KEY"] = "sk-or-test"

from agent.services.collaborators import LLMReply  # noqa: E402
from agent.services.in_memory import (  # noqa: E402
    InMemoryConversationStore,
    InMemoryHotel,
    default_room_types,
    default_rooms,
)
from shared.config import Settings  # noqa: E402


class FakeClock:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def reference_date():
    """Fixed 'today' for consistent testing: Saturday, Nov 1, 2025."""
    return date(2025, 11, 1)


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def room_catalog():
    return default_room_types()


@pytest.fixture
def hotel():
    return InMemoryHotel(default_room_types(), default_rooms())


@pytest.fixture
def conversation_store():
    return InMemoryConversationStore()


@pytest.fixture
def test_settings():
    return Settings(
        REDIS_URL="",
        TAVILY_API_KEY="",
        OPENROUTER_API_KEY="sk-or-test",
        LLM_MODEL="test/model",
        HOTEL_LOCATION="Lima, Perú",
    )


def make_llm(*replies):
    """
    Build a generative backend mock returning replies in order.

    Each reply is a string (wrapped in LLMReply) or an exception instance.
    """
    side_effect = [
        LLMReply(content=reply, tokens_used=10, model="test/model") if isinstance(reply, str) else reply
        for reply in replies
    ]
    llm = MagicMock()
    llm.complete = AsyncMock(side_effect=side_effect)
    return llm


@pytest.fixture
def personal_data_payload():
    return {
        "nombre": "Juan",
        "primerApellido": "Pérez",
        "segundoApellido": "García",
        "numeroDocumento": "12345678",
        "genero": "M",
        "correo": "juan@mail.com",
        "telefono1": "987654321",
    }


@pytest.fixture
def scripted_llm():
    """Factory fixture: scripted_llm("reply 1", "reply 2", GenerativeBackendError(...))."""
    return make_llm
