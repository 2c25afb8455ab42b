"""
Pydantic schemas for the attivita API.

Activity field names follow the wire contract consumed by the frontend
(``titolo``, ``descrizione``, ``scadenza``, ``stato``, ``idUser``).
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from attivita.dates import format_wire_datetime, parse_wire_datetime
from attivita.db import ActivityDraft, ActivityRecord, UserRecord


class RegisterRequest(BaseModel):
    email: str
    password: str


class LoginRequest(BaseModel):
    email: str
    password: str


class LoginResponse(BaseModel):
    token: str


class UserResponse(BaseModel):
    id: str
    email: str

    @classmethod
    def from_record(cls, user: UserRecord) -> "UserResponse":
        return cls(id=user.id, email=user.email)


class ActivityPayload(BaseModel):
    id: Optional[int] = None
    titolo: str = ""
    descrizione: str = ""
    scadenza: datetime
    stato: Optional[str] = None
    idUser: Optional[str] = None

    @field_validator("scadenza", mode="before")
    @classmethod
    def _parse_scadenza(cls, value):
        if isinstance(value, datetime):
            return value
        if not isinstance(value, str):
            raise ValueError("scadenza must be an ISO-8601 string")
        return parse_wire_datetime(value)

    def to_draft(self) -> ActivityDraft:
        return ActivityDraft(
            title=self.titolo,
            description=self.descrizione,
            due=self.scadenza,
            status=self.stato,
            owner_id=self.idUser,
        )


class ActivityResponse(BaseModel):
    id: int
    titolo: str
    descrizione: str
    scadenza: str
    stato: Optional[str] = None
    idUser: str

    @classmethod
    def from_record(cls, record: ActivityRecord) -> "ActivityResponse":
        return cls(
            id=record.id,
            titolo=record.title,
            descrizione=record.description,
            scadenza=format_wire_datetime(record.due),
            stato=record.status,
            idUser=record.owner_id,
        )


class HealthResponse(BaseModel):
    status: Literal["ok"]
