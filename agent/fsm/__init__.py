"""
FSM module for the reservation flow.

Public exports:
    - ReservationFSM: pure reducer that advances the reservation in progress
    - ReservationInProgress: booking state tracked per conversation
    - ReservationStep: ordered steps of the reservation flow
    - PersonalData: guest identity collected before confirmation
    - ExtractionPatch: entities found in one user message
    - extract_entities: heuristic extraction pipeline feeding the FSM
"""

from agent.fsm.entity_extractor import (
    detect_booking_intent,
    detect_cancel_intent,
    detect_confirmation,
    extract_entities,
)
from agent.fsm.models import (
    ExtractionPatch,
    PersonalData,
    ReservationInProgress,
    ReservationStep,
)
from agent.fsm.reservation_fsm import ReservationFSM

__all__ = [
    "ExtractionPatch",
    "PersonalData",
    "ReservationFSM",
    "ReservationInProgress",
    "ReservationStep",
    "detect_booking_intent",
    "detect_cancel_intent",
    "detect_confirmation",
    "extract_entities",
]
