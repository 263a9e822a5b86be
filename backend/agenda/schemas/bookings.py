# backend/agenda/schemas/bookings.py

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, field_validator

from ._time import as_utc


class BookingStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CancelReason(str, Enum):
    CLIENT_REQUEST = "client_request"
    ADMIN_CANCEL = "admin_cancel"
    OUTCOME_OVERRIDE = "outcome_override"


class BookingRead(BaseModel):
    id: int

    slot_id: int
    client_id: int
    provider_id: int
    slot_start: datetime

    status: BookingStatus
    cancel_reason: Optional[CancelReason] = None

    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @field_validator("slot_start", "created_at", "updated_at")
    @classmethod
    def _utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class BookingFilters(BaseModel):
    provider_id: Optional[int] = None
    client_id: Optional[int] = None
    status: Optional[BookingStatus] = None
    start_from: Optional[datetime] = None
    end_to: Optional[datetime] = None
