import logging
from pathlib import Path

from .config import settings
from .database import SessionLocal, init_db
from .services.booking import BookingEngine, BookingService
from .services.events import get_event_emitter
from .services.slots import SqlSlotStore, get_booking_config

logger = logging.getLogger(__name__)


def build_service(create_tables: bool = True) -> BookingService:
    """Wire the SQL store, events and engine into a ready BookingService."""
    logging.basicConfig(level=settings.log_level)

    if create_tables:
        url = settings.resolved_database_url
        if url.startswith("sqlite:///") and not url.endswith(":memory:"):
            Path(url.replace("sqlite:///", "", 1)).parent.mkdir(parents=True, exist_ok=True)
        init_db()

    engine = BookingEngine(
        store=SqlSlotStore(SessionLocal),
        config=get_booking_config(),
        events=get_event_emitter(),
    )
    logger.info(f"Booking service ready (db={settings.resolved_database_url})")
    return BookingService(engine)
