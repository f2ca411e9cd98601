"""
Data models for the reservation flow.

- ReservationStep: ordered steps of a reservation in progress
- PersonalData: guest identity collected before confirmation
- ReservationInProgress: partially filled booking tracked per conversation
- ExtractionPatch: entities found in one user message, applied by ReservationFSM

Pydantic models carry the camelCase Spanish wire names used by the chat API
(fechaEntrada, cantidadAdultos, personalData, ...) as aliases; Python code
uses the English attribute names.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ReservationStep(str, Enum):
    """Steps of a reservation in progress, in the order they are completed."""

    DATES = "dates"
    GUESTS = "guests"
    ROOM_TYPE = "room_type"
    PERSONAL_DATA = "personal_data"
    CONFIRMATION = "confirmation"


class PersonalData(BaseModel):
    """Guest identity required to create a reservation."""

    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(alias="nombre", min_length=1)
    first_surname: str = Field(alias="primerApellido", min_length=1)
    second_surname: str | None = Field(default=None, alias="segundoApellido")
    document_number: str = Field(alias="numeroDocumento", min_length=1)
    gender: str = Field(default="M", alias="genero")
    email: str = Field(alias="correo", min_length=3)
    phone: str | None = Field(default=None, alias="telefono1")
    phone_secondary: str | None = Field(default=None, alias="telefono2")
    city: str | None = Field(default=None, alias="ciudadReferencia")
    country: str | None = Field(default=None, alias="paisReferencia")

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.first_surname, self.second_surname]
        return " ".join(part for part in parts if part)


class ReservationInProgress(BaseModel):
    """
    Booking state threaded through a conversation.

    Dates are ISO strings (YYYY-MM-DD). Fields for later steps may be filled
    early, but `step` only advances once the current step's requirements hold.
    """

    model_config = ConfigDict(populate_by_name=True)

    step: ReservationStep = ReservationStep.DATES
    check_in: str | None = Field(default=None, alias="fechaEntrada")
    check_out: str | None = Field(default=None, alias="fechaSalida")
    adults: int | None = Field(default=None, alias="cantidadAdultos")
    children: int | None = Field(default=None, alias="cantidadNinhos")
    room_type_id: int | None = Field(default=None, alias="tipoHabitacionId")
    computed_price: Decimal | None = Field(default=None, alias="precioCalculado")
    personal_data: PersonalData | None = Field(default=None, alias="personalData")


@dataclass(frozen=True)
class ExtractionPatch:
    """
    Entities found in a single user message.

    check_in/check_out are only set together (a parsed range); a lone date is
    reported as single_date and placed by the reducer.
    """

    check_in: date | None = None
    check_out: date | None = None
    single_date: date | None = None
    adults: int | None = None
    children: int | None = None
    room_type_id: int | None = None
    personal_data: PersonalData | None = None
