# backend/agenda/schemas/slots.py
"""
Pydantic schemas for providers and slots.
"""

import re
from datetime import date, datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from ._time import as_utc


TIME_RE = re.compile(r"^([01][0-9]|2[0-3]):[0-5][0-9]$")


class SlotStatus(str, Enum):
    FREE = "free"
    HELD = "held"
    BLOCKED = "blocked"


class ProviderRead(BaseModel):
    id: int
    name: str = ""
    duration_minutes: int

    model_config = {"from_attributes": True}


class DateRange(BaseModel):
    """Inclusive range of calendar days (UTC)."""
    start: date
    end: date


class DailyWindow(BaseModel):
    """Time-of-day window, "HH:MM" strings."""
    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _check_format(cls, v: str) -> str:
        if not TIME_RE.match(v):
            raise ValueError(f"time must be HH:MM, got {v!r}")
        return v


class SlotCandidate(BaseModel):
    """A slot produced by the grid generator, not yet persisted."""
    provider_id: int
    start: datetime
    end: datetime

    model_config = {"frozen": True}

    @field_validator("start", "end")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class SlotRead(BaseModel):
    id: int
    provider_id: int
    start: datetime
    end: datetime
    status: SlotStatus

    model_config = {"from_attributes": True}

    @field_validator("start", "end")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class SlotGenerateRequest(BaseModel):
    """Request for grid generation (admin)."""
    provider_id: int = Field(gt=0)
    date_range: DateRange
    daily_window: DailyWindow


class SlotsGenerated(BaseModel):
    provider_id: int
    candidates: int
    inserted: int
