"""
ReservationFSM - reducer for the reservation in progress.

The FSM never mutates its input: update() takes the current reservation (or
None), the raw user message and the ExtractionPatch for that message, and
returns the next reservation (or None).

Rules:
- A cancel keyword clears the reservation, taking priority over everything
  else in the same message.
- Without a reservation in progress, only a booking-intent keyword starts one
  (at step DATES).
- Every extracted field is applied, including fields for later steps.
- Transitions are checked in order within one call: each step is left only
  when every field it requires is present, so a message carrying dates and
  guests moves dates → guests → room_type. It never moves backwards.
"""

import logging
from typing import ClassVar

from agent.fsm.entity_extractor import detect_booking_intent, detect_cancel_intent
from agent.fsm.models import ExtractionPatch, ReservationInProgress, ReservationStep

logger = logging.getLogger(__name__)


class ReservationFSM:
    """
    Step controller for the reservation in progress.

    Example:
        >>> patch = ExtractionPatch(check_in=date(2025, 12, 10), check_out=date(2025, 12, 15))
        >>> reservation = ReservationFSM.update(None, "quiero reservar del 10 al 15 de diciembre", patch)
        >>> reservation.step
        <ReservationStep.GUESTS: 'guests'>
    """

    STEP_ORDER: ClassVar[list[ReservationStep]] = [
        ReservationStep.DATES,
        ReservationStep.GUESTS,
        ReservationStep.ROOM_TYPE,
        ReservationStep.PERSONAL_DATA,
        ReservationStep.CONFIRMATION,
    ]

    # Fields that must be set before leaving each step
    STEP_REQUIREMENTS: ClassVar[dict[ReservationStep, list[str]]] = {
        ReservationStep.DATES: ["check_in", "check_out"],
        ReservationStep.GUESTS: ["adults"],
        ReservationStep.ROOM_TYPE: ["room_type_id"],
        ReservationStep.PERSONAL_DATA: ["personal_data"],
        ReservationStep.CONFIRMATION: [],
    }

    @classmethod
    def update(
        cls,
        current: ReservationInProgress | None,
        utterance: str,
        extracted: ExtractionPatch,
    ) -> ReservationInProgress | None:
        """Compute the reservation that results from one user message."""
        if detect_cancel_intent(utterance):
            return cls.cancel(current)

        if current is None:
            if not detect_booking_intent(utterance):
                return None
            reservation = ReservationInProgress(step=ReservationStep.DATES)
            logger.info("Reservation started | step=dates")
        else:
            reservation = current.model_copy(deep=True)

        cls._apply(reservation, extracted)
        cls._advance(reservation)
        return reservation

    @staticmethod
    def cancel(current: ReservationInProgress | None) -> None:
        """Discard the reservation in progress, whatever its step."""
        if current is not None:
            logger.info(f"Reservation cancelled | step={current.step.value}")
        return None

    @classmethod
    def missing_fields(cls, reservation: ReservationInProgress) -> list[str]:
        """Fields still required to leave the current step."""
        return [
            field
            for field in cls.STEP_REQUIREMENTS[reservation.step]
            if getattr(reservation, field) is None
        ]

    @classmethod
    def next_step(cls, step: ReservationStep) -> ReservationStep | None:
        index = cls.STEP_ORDER.index(step)
        if index + 1 < len(cls.STEP_ORDER):
            return cls.STEP_ORDER[index + 1]
        return None

    @staticmethod
    def _apply(reservation: ReservationInProgress, extracted: ExtractionPatch) -> None:
        if extracted.check_in and extracted.check_out:
            reservation.check_in = extracted.check_in.isoformat()
            reservation.check_out = extracted.check_out.isoformat()
        elif extracted.single_date:
            single = extracted.single_date.isoformat()
            if reservation.check_in is None:
                reservation.check_in = single
            elif reservation.check_out is None and single > reservation.check_in:
                reservation.check_out = single

        if extracted.adults is not None:
            reservation.adults = extracted.adults
        if extracted.children is not None:
            reservation.children = extracted.children
        if extracted.room_type_id is not None:
            reservation.room_type_id = extracted.room_type_id
        if extracted.personal_data is not None:
            reservation.personal_data = extracted.personal_data

    @classmethod
    def _advance(cls, reservation: ReservationInProgress) -> None:
        while not cls.missing_fields(reservation):
            following = cls.next_step(reservation.step)
            if following is None:
                return
            logger.info(
                f"Reservation step advanced | {reservation.step.value} -> {following.value}"
            )
            reservation.step = following
