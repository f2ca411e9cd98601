"""
Unit tests for response shaping: handoff, quick replies and marker stripping.
"""

import pytest

from agent.fsm.models import ReservationInProgress, ReservationStep
from agent.nodes.response_shaping import (
    DEFAULT_ACTIONS,
    FALLBACK_MESSAGE,
    clean_visible_message,
    requires_human_handoff,
    suggested_actions,
)


class TestHumanHandoff:
    @pytest.mark.parametrize(
        "user_message",
        ["Tengo una queja", "quiero hablar con el gerente", "es URGENTE"],
    )
    def test_user_keywords(self, user_message):
        assert requires_human_handoff(user_message, "Claro.") is True

    def test_reply_phrases(self):
        assert requires_human_handoff("¿me ayudas?", "Lo siento, no puedo hacer eso.") is True

    def test_no_handoff(self):
        assert requires_human_handoff("¿tienen wifi?", "Sí, WiFi gratuito.") is False


class TestSuggestedActions:
    @pytest.mark.parametrize("step", list(ReservationStep))
    def test_step_actions_while_reserving(self, step):
        actions = suggested_actions("hola", "hola", ReservationInProgress(step=step))

        assert 1 <= len(actions) <= 4
        assert "Cancelar reserva" in actions

    def test_confirmation_step(self):
        reservation = ReservationInProgress(step=ReservationStep.CONFIRMATION)

        assert suggested_actions("", "", reservation)[0] == "Confirmar reserva"

    def test_topic_actions(self):
        assert suggested_actions("¿precio?", "Depende de las fechas.") == [
            "Ver todas las tarifas",
            "Consultar promociones",
        ]

    def test_default_actions(self):
        assert suggested_actions("hola", "¡Hola!") == DEFAULT_ACTIONS


class TestCleanVisibleMessage:
    def test_plain_text_untouched(self):
        assert clean_visible_message("Con gusto.") == "Con gusto."

    def test_result_block_markers_removed(self):
        text = (
            "Aquí tienes:\n\n[RESULTADO DE CALCULATE_PRICE]:\nTotal: S/450.00\n[FIN RESULTADO]"
        )

        cleaned = clean_visible_message(text)

        assert "RESULTADO" not in cleaned
        assert "Total: S/450.00" in cleaned
        assert cleaned.startswith("Aquí tienes:")

    def test_invocation_and_error_removed(self):
        text = "Reviso.\n[USE_TOOL: book_spa] {} [END_TOOL]\n\n[ERROR]: herramienta 'book_spa' no encontrada"

        assert clean_visible_message(text) == "Reviso."

    def test_unclosed_invocation_removed(self):
        assert clean_visible_message("Un momento [USE_TOOL: list_room_types] {}") == "Un momento"

    def test_empty_after_cleaning_uses_fallback(self):
        assert clean_visible_message("[USE_TOOL: x] {} [END_TOOL]") == FALLBACK_MESSAGE
