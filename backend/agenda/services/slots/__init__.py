# backend/agenda/services/slots/__init__.py
"""
Slot grid and slot storage.

Generator: pure, lazy candidate grid per provider
Store:     atomic per-slot compare-and-swap (SQL or in-memory)
"""

from .config import BookingConfig, get_booking_config, CANCELLATION_MIN_ADVANCE
from .calculator import SlotGrid, generate_slot_grid
from .store import SlotStore
from .sql_store import SqlSlotStore
from .memory_store import MemorySlotStore

__all__ = [
    "BookingConfig",
    "get_booking_config",
    "CANCELLATION_MIN_ADVANCE",
    "SlotGrid",
    "generate_slot_grid",
    "SlotStore",
    "SqlSlotStore",
    "MemorySlotStore",
]
