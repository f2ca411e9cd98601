"""
Exception hierarchy for the booking chatbot.

ChatbotError covers failures of outbound collaborators (generative backend,
web search, conversation store). ToolError covers failures of a single tool
invocation; those are rendered inline in the assistant text and never
escape a chat turn.
"""


class ChatbotError(Exception):
    """Base class for every error raised by this package."""


class GenerativeBackendError(ChatbotError):
    """The LLM call failed, timed out, was short-circuited or returned nothing."""


class SearchProviderError(ChatbotError):
    """The external web search call failed."""


class ConversationStoreError(ChatbotError):
    """Reading or writing a conversation failed."""


# ============================================================================
# Tool errors
# ============================================================================


class ToolError(ChatbotError):
    """A tool invocation could not be parsed or executed."""


class MalformedToolCallError(ToolError):
    """A [USE_TOOL: ...] marker without its closing [END_TOOL]."""


class UnknownToolError(ToolError):
    def __init__(self, name: str):
        super().__init__(f"herramienta '{name}' no encontrada")
        self.name = name


class InvalidToolArgumentsError(ToolError):
    """Arguments are not a JSON object or do not match the tool schema."""


class InvalidDateError(ToolError):
    pass


class RoomTypeNotFoundError(ToolError):
    def __init__(self, room_type_id: int):
        super().__init__(f"tipo de habitación {room_type_id} no encontrado")
        self.room_type_id = room_type_id


class NoRoomAvailableError(ToolError):
    pass


class PastCheckInError(ToolError):
    pass


class InvalidGuestCountError(ToolError):
    pass


class ReservationAlreadyCreatedError(ToolError):
    def __init__(self, reservation_id: int):
        super().__init__(f"la reserva #{reservation_id} ya fue creada en este turno")
        self.reservation_id = reservation_id
