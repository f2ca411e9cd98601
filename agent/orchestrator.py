"""
ChatOrchestrator - processes one inbound chat turn end to end.

Per turn, in order:
1. Rate-limit gate (conversation id → client_<id> → anonymous)
2. FAQ shortcut for short, date-free questions
3. Load or create the conversation
4. Cancel the reservation in progress on cancel intent
5. Entity extraction + ReservationFSM update, user turn appended
6. Optional web search (request override or keyword heuristic), cached
7. System prompt assembly
8. Generative call with the last 10 turns
9. Bounded tool loop (at most 3 resolve passes)
10. Assistant turn appended, conversation persisted (best-effort)
11. Human handoff detection
12. Suggested actions
13. Protocol markers stripped from the visible message

The rate limiter and web cache are shared by every turn and injected through
the constructor, together with the collaborators.
"""

import logging
import time
from collections.abc import Callable
from datetime import date
from typing import Any
from zoneinfo import ZoneInfo

from agent.errors import (
    ConversationStoreError,
    GenerativeBackendError,
    ReservationAlreadyCreatedError,
    SearchProviderError,
    ToolError,
)
from agent.fsm.entity_extractor import detect_cancel_intent, detect_confirmation, extract_entities
from agent.fsm.models import ReservationInProgress
from agent.fsm.reservation_fsm import ReservationFSM
from agent.nodes.faq import match_faq
from agent.nodes.response_shaping import (
    clean_visible_message,
    requires_human_handoff,
    suggested_actions,
)
from agent.prompts import (
    assemble_system_prompt,
    build_inventory_context,
    build_request_context,
    format_reservation_summary,
    format_web_results,
    load_hotel_system_prompt,
)
from agent.services.collaborators import (
    BookingDomain,
    ConversationStore,
    GenerativeBackend,
    LLMReply,
    RoomInventory,
    RoomType,
    SearchProvider,
    SearchResponse,
)
from agent.services.web_search import build_search_query, should_search_web
from agent.state.schemas import ChatRequest, ChatResponse, ConversationHistory
from agent.tools.booking_tools import create_booking_registry
from agent.tools.protocol import ToolCallProtocol
from agent.tools.registry import ToolRegistry
from agent.utils.date_parser import calculate_nights, parse_iso_date, today_in
from shared.config import Settings, get_settings
from shared.rate_limiter import ANONYMOUS_IDENTIFIER, RateLimiter
from shared.web_cache import WebSearchCache

logger = logging.getLogger(__name__)

MAX_TOOL_ITERATIONS = 3
HISTORY_WINDOW = 10
WEB_MAX_RESULTS = 3

THROTTLE_PREFIX = "⚠️ Has enviado muchos mensajes en poco tiempo. "
THROTTLE_ACTIONS = ["Espera un momento", "Intenta más tarde"]

CANCEL_ACKNOWLEDGEMENT = "✅ He cancelado la reserva en progreso. ¿En qué más puedo ayudarte?"
CANCEL_ACTIONS = ["Ver habitaciones disponibles", "Hacer una nueva reserva"]

BACKEND_UNAVAILABLE_MESSAGE = (
    "❌ Error al procesar tu mensaje. El servicio está temporalmente no disponible. "
    "Por favor, intenta de nuevo en unos momentos"
)
BACKEND_UNAVAILABLE_ACTIONS = ["Intenta de nuevo", "Hablar con un agente"]


class ChatOrchestrator:
    """Runs chat turns against the booking collaborators."""

    def __init__(
        self,
        conversations: ConversationStore,
        inventory: RoomInventory,
        booking: BookingDomain,
        llm: GenerativeBackend,
        rate_limiter: RateLimiter,
        web_cache: WebSearchCache,
        search: SearchProvider | None = None,
        settings: Settings | None = None,
        today: Callable[[], date] | None = None,
        tools: ToolRegistry | None = None,
    ):
        self.conversations = conversations
        self.inventory = inventory
        self.booking = booking
        self.llm = llm
        self.rate_limiter = rate_limiter
        self.web_cache = web_cache
        self.search = search
        self.settings = settings or get_settings()

        timezone = ZoneInfo(self.settings.TIMEZONE)
        self.today = today or (lambda: today_in(timezone))
        self.tools = tools or create_booking_registry(inventory, booking, self.today)
        self.protocol = ToolCallProtocol(self.tools)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def process_message(self, request: ChatRequest) -> ChatResponse:
        started = time.perf_counter()
        message = request.message.strip()

        # 1. Rate limit
        identifier = self.rate_limit_identifier(request)
        decision = await self.rate_limiter.allow(identifier)
        if not decision.allowed:
            return ChatResponse(
                message=THROTTLE_PREFIX + decision.message,
                conversation_id="",
                suggested_actions=list(THROTTLE_ACTIONS),
                metadata={
                    "rateLimited": True,
                    "retryAfter": round(decision.retry_after, 1),
                    "rateLimitRemaining": 0,
                },
            )
        remaining = await self.rate_limiter.get_remaining(identifier)
        reference_date = self.today()

        # 2. FAQ shortcut
        faq = match_faq(message, reference_date)
        if faq is not None:
            conversation, is_new = await self._load_or_create(request)
            conversation.add_message("user", message)
            answer = faq.render(self.settings.HOTEL_LOCATION)
            conversation.add_message("assistant", answer)
            await self._persist(conversation, is_new, request.client_id, message, answer)

            logger.info(
                f"FAQ answered | faq_id={faq.id}",
                extra={"conversation_id": conversation.id},
            )
            return ChatResponse(
                message=answer,
                conversation_id=conversation.id,
                suggested_actions=suggested_actions(
                    message, answer, conversation.reservation_in_progress
                ),
                metadata={
                    "source": "faq",
                    "faqId": faq.id,
                    "sources": ["hotel"],
                    "responseTime": self._elapsed_ms(started),
                    "messageCount": len(conversation.messages),
                    "rateLimitRemaining": remaining,
                },
                reservation_in_progress=conversation.reservation_in_progress,
            )

        # 3. Conversation
        conversation, is_new = await self._load_or_create(request)

        # 4. Cancel
        if conversation.reservation_in_progress is not None and detect_cancel_intent(message):
            conversation.reservation_in_progress = ReservationFSM.cancel(
                conversation.reservation_in_progress
            )
            conversation.add_message("user", message)
            conversation.add_message("assistant", CANCEL_ACKNOWLEDGEMENT)
            await self._persist(conversation, is_new, request.client_id, message, CANCEL_ACKNOWLEDGEMENT)

            logger.info("Reservation cancelled by user", extra={"conversation_id": conversation.id})
            return ChatResponse(
                message=CANCEL_ACKNOWLEDGEMENT,
                conversation_id=conversation.id,
                suggested_actions=list(CANCEL_ACTIONS),
                metadata={
                    "source": "cancel",
                    "sources": ["hotel"],
                    "responseTime": self._elapsed_ms(started),
                    "messageCount": len(conversation.messages),
                    "rateLimitRemaining": remaining,
                },
            )

        # 5. Extraction + reservation state
        catalog = await self._load_catalog()
        patch = extract_entities(message, reference_date, catalog)
        user_confirmed = detect_confirmation(message)
        reservation = ReservationFSM.update(conversation.reservation_in_progress, message, patch)
        conversation.reservation_in_progress = await self._refresh_price(reservation)
        conversation.add_message("user", message)

        # 6. Web search
        web_response, web_cache_hit, web_searched = await self._web_context(request, message)

        # 7. System prompt
        base_sections = [
            load_hotel_system_prompt(),
            await build_inventory_context(self.inventory, reference_date, self.settings.HOTEL_LOCATION),
            await build_request_context(self.inventory, request.context),
            format_web_results(web_response),
            self.tools.render_catalog(),
        ]
        system_prompt = assemble_system_prompt(
            *base_sections,
            format_reservation_summary(conversation.reservation_in_progress, user_confirmed),
        )

        # 8. Generative call
        history = [turn.model_dump() for turn in conversation.recent_messages(HISTORY_WINDOW)]
        try:
            reply = await self._generate(system_prompt, history)
        except GenerativeBackendError as e:
            logger.error(
                f"Generative backend unavailable, turn aborted: {e}",
                extra={"conversation_id": conversation.id},
            )
            return ChatResponse(
                message=BACKEND_UNAVAILABLE_MESSAGE,
                conversation_id=request.conversation_id or "",
                suggested_actions=list(BACKEND_UNAVAILABLE_ACTIONS),
                metadata={
                    "error": "generative_backend_unavailable",
                    "responseTime": self._elapsed_ms(started),
                    "rateLimitRemaining": remaining,
                },
            )

        # 9. Tool loop
        final_text, tokens_used, tools_executed, reservation_created = await self._run_tool_loop(
            conversation, system_prompt, base_sections, history, reply
        )

        # 10. Persist
        conversation.add_message("assistant", final_text)
        await self._persist(conversation, is_new, request.client_id, message, final_text)

        # 11-13. Shape the response
        visible = clean_visible_message(final_text)
        reservation = conversation.reservation_in_progress

        sources = ["hotel"]
        if web_response is not None and web_response.results:
            sources.append("web")
        if tools_executed:
            sources.append("tools")

        metadata: dict[str, Any] = {
            "tokensUsed": tokens_used,
            "sources": sources,
            "responseTime": self._elapsed_ms(started),
            "llmModel": reply.model or self.settings.LLM_MODEL,
            "messageCount": len(conversation.messages),
            "toolsExecuted": tools_executed,
            "webCacheHit": web_cache_hit,
            "rateLimitRemaining": remaining,
        }
        if web_searched:
            metadata["webResults"] = len(web_response.results) if web_response else 0

        logger.info(
            f"Message processed | tokens={tokens_used} | tools={tools_executed} | "
            f"step={reservation.step.value if reservation else None} | "
            f"response_time_ms={metadata['responseTime']}",
            extra={"conversation_id": conversation.id},
        )

        return ChatResponse(
            message=visible,
            conversation_id=conversation.id,
            suggested_actions=suggested_actions(message, visible, reservation),
            requires_human=requires_human_handoff(message, visible),
            metadata=metadata,
            reservation_in_progress=reservation,
            reservation_created=reservation_created,
        )

    async def get_conversation_history(self, conversation_id: str) -> ConversationHistory | None:
        return await self.conversations.get(conversation_id)

    async def get_client_conversations(self, client_id: int) -> list[ConversationHistory]:
        return await self.conversations.list_by_client(client_id)

    @staticmethod
    def rate_limit_identifier(request: ChatRequest) -> str:
        if request.conversation_id:
            return request.conversation_id
        if request.client_id is not None:
            return f"client_{request.client_id}"
        return ANONYMOUS_IDENTIFIER

    # ------------------------------------------------------------------
    # Steps
    # ------------------------------------------------------------------

    async def _load_or_create(self, request: ChatRequest) -> tuple[ConversationHistory, bool]:
        conversation = None
        if request.conversation_id:
            try:
                conversation = await self.conversations.get(request.conversation_id)
            except ConversationStoreError as e:
                logger.error(
                    f"Failed to load conversation, starting a new one: {e}",
                    extra={"conversation_id": request.conversation_id},
                )
            if conversation is None:
                logger.info(
                    "Conversation not found, starting a new one",
                    extra={"conversation_id": request.conversation_id},
                )

        if conversation is None:
            conversation = ConversationHistory(client_id=request.client_id)
            return conversation, True

        if conversation.client_id is None and request.client_id is not None:
            conversation.client_id = request.client_id
        return conversation, False

    async def _persist(
        self,
        conversation: ConversationHistory,
        is_new: bool,
        client_id: int | None,
        user_message: str,
        assistant_message: str,
    ) -> None:
        """Best-effort: failures are logged, never raised."""
        try:
            if is_new:
                await self.conversations.save(conversation)
            else:
                await self.conversations.update(conversation)
        except Exception as e:
            logger.error(
                f"Failed to persist conversation: {e}",
                extra={"conversation_id": conversation.id},
                exc_info=True,
            )

        if client_id is None:
            return
        try:
            await self.conversations.save_message(client_id, "user", user_message)
            await self.conversations.save_message(client_id, "assistant", assistant_message)
        except Exception as e:
            logger.error(
                f"Failed to write message log: {e}",
                extra={"conversation_id": conversation.id, "client_id": client_id},
            )

    async def _load_catalog(self) -> list[RoomType] | None:
        try:
            return await self.inventory.list_room_types()
        except Exception as e:
            logger.error(f"Failed to load room catalog for extraction: {e}", exc_info=True)
            return None

    async def _refresh_price(
        self, reservation: ReservationInProgress | None
    ) -> ReservationInProgress | None:
        """Recompute the stay price whenever dates and room type are known."""
        if (
            reservation is None
            or reservation.room_type_id is None
            or not reservation.check_in
            or not reservation.check_out
        ):
            return reservation

        try:
            room_type = await self.inventory.get_room_type(reservation.room_type_id)
        except Exception as e:
            logger.error(f"Failed to refresh reservation price: {e}", exc_info=True)
            return reservation

        if room_type is not None:
            nights = calculate_nights(
                parse_iso_date(reservation.check_in), parse_iso_date(reservation.check_out)
            )
            reservation.computed_price = room_type.nightly_price * nights
        return reservation

    async def _web_context(
        self, request: ChatRequest, message: str
    ) -> tuple[SearchResponse | None, bool, bool]:
        """Returns (results, cache_hit, searched)."""
        wants_web = request.use_web if request.use_web is not None else should_search_web(message)
        if not wants_web or self.search is None:
            return None, False, False

        query = build_search_query(message, self.settings.HOTEL_LOCATION)
        cached, hit = await self.web_cache.get(query)
        if hit:
            logger.debug(f"Web search cache hit | query={query[:80]}")
            return cached, True, True

        try:
            response = await self.search.search(query, max_results=WEB_MAX_RESULTS)
        except SearchProviderError as e:
            logger.warning(f"Web search failed, continuing without it: {e}")
            return None, False, True

        await self.web_cache.set(query, response)
        return response, False, True

    async def _generate(self, system_prompt: str, history: list[dict[str, str]]) -> LLMReply:
        messages = [{"role": "system", "content": system_prompt}, *history[-HISTORY_WINDOW:]]
        reply = await self.llm.complete(
            messages,
            temperature=self.settings.LLM_TEMPERATURE,
            max_tokens=self.settings.LLM_MAX_TOKENS,
        )
        if not reply.content or not reply.content.strip():
            raise GenerativeBackendError("empty response from generative backend")
        return reply

    async def _run_tool_loop(
        self,
        conversation: ConversationHistory,
        system_prompt: str,
        base_sections: list[str],
        history: list[dict[str, str]],
        reply: LLMReply,
    ) -> tuple[str, int, list[str], int | None]:
        """
        Resolve tool invocations, re-asking the backend after each success.

        Once create_reservation succeeds, the follow-up prompt drops the
        reservation block and further create_reservation calls in the same
        turn are not executed; the reply falls back to the creation result.

        Returns (final_text, tokens_used, tools_executed, reservation_created).
        """
        working = list(history)
        text = reply.content
        tokens_used = reply.tokens_used
        tools_executed: list[str] = []
        reservation_created: int | None = None
        creation_text: str | None = None
        blocked: dict[str, ToolError] = {}

        for iteration in range(1, MAX_TOOL_ITERATIONS + 1):
            resolution = await self.protocol.resolve(text, blocked)

            if isinstance(resolution.error, ReservationAlreadyCreatedError):
                logger.warning(
                    f"Repeated create_reservation ignored | reservation_id={reservation_created}",
                    extra={"conversation_id": conversation.id},
                )
                text = creation_text
                break

            text = resolution.text

            if resolution.tool_executed:
                tools_executed.append(resolution.tool_name)
                if resolution.tool_name == "create_reservation" and resolution.output:
                    reservation_created = resolution.output.data.get("reservation_id")
                    conversation.reservation_in_progress = None
                    creation_text = text
                    blocked["create_reservation"] = ReservationAlreadyCreatedError(reservation_created)
                    system_prompt = assemble_system_prompt(*base_sections)
                    logger.info(
                        f"Reservation completed | reservation_id={reservation_created}",
                        extra={"conversation_id": conversation.id},
                    )

            if not resolution.tool_executed or resolution.error or iteration == MAX_TOOL_ITERATIONS:
                break

            working.append({"role": "assistant", "content": text})
            try:
                follow_up = await self._generate(system_prompt, working)
            except GenerativeBackendError as e:
                logger.warning(
                    f"Follow-up generation failed, keeping tool result: {e}",
                    extra={"conversation_id": conversation.id},
                )
                break
            tokens_used += follow_up.tokens_used
            text = follow_up.content

        return text, tokens_used, tools_executed, reservation_created

    @staticmethod
    def _elapsed_ms(started: float) -> int:
        return int((time.perf_counter() - started) * 1000)
