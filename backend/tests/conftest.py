from datetime import date, datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from agenda.database import make_engine
from agenda.models.generated import Base, Providers
from agenda.schemas.actors import Actor, Role
from agenda.schemas.slots import DailyWindow, DateRange, ProviderRead
from agenda.services.booking import BookingEngine, BookingService
from agenda.services.events import EventEmitter
from agenda.services.slots import BookingConfig, MemorySlotStore, SqlSlotStore

MONDAY = date(2030, 1, 7)
PROVIDER_ID = 1
OTHER_PROVIDER_ID = 2


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def set(self, now: datetime) -> None:
        self.now = now


def at(day: date, hh: int, mm: int = 0) -> datetime:
    return datetime(day.year, day.month, day.day, hh, mm, tzinfo=timezone.utc)


@pytest.fixture
def clock():
    # a week before MONDAY
    return FakeClock(at(MONDAY - timedelta(days=7), 12))


@pytest.fixture
def config():
    return BookingConfig()


@pytest.fixture
def redis_mock():
    return MagicMock()


@pytest.fixture
def events(redis_mock):
    return EventEmitter(redis_mock, "events:test")


@pytest.fixture
def memory_store():
    store = MemorySlotStore()
    store.add_provider(ProviderRead(id=PROVIDER_ID, name="Dr. Lima", duration_minutes=30))
    store.add_provider(ProviderRead(id=OTHER_PROVIDER_ID, name="Dr. Rocha", duration_minutes=30))
    return store


def seeded_session_factory(eng):
    Base.metadata.create_all(bind=eng)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=eng)

    db = factory()
    db.add_all([
        Providers(id=PROVIDER_ID, name="Dr. Lima", duration_minutes=30),
        Providers(id=OTHER_PROVIDER_ID, name="Dr. Rocha", duration_minutes=30),
    ])
    db.commit()
    db.close()
    return factory


@pytest.fixture
def sql_session_factory():
    eng = make_engine("sqlite://", poolclass=StaticPool)
    yield seeded_session_factory(eng)
    eng.dispose()


@pytest.fixture
def file_sql_store(tmp_path):
    """SQL store on a file database: one connection per thread, real locking."""
    eng = make_engine(f"sqlite:///{tmp_path / 'agenda.db'}")
    yield SqlSlotStore(seeded_session_factory(eng))
    eng.dispose()


@pytest.fixture
def sql_store(sql_session_factory):
    return SqlSlotStore(sql_session_factory)


@pytest.fixture(params=["memory", "sql"])
def store(request):
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture
def engine(store, clock, config, events):
    return BookingEngine(store, clock=clock, config=config, events=events)


@pytest.fixture
def service(engine):
    return BookingService(engine)


@pytest.fixture
def monday_slots(engine, store):
    """Four 30-minute slots, MONDAY 08:00–10:00, for PROVIDER_ID."""
    engine.generate_slots(
        PROVIDER_ID,
        DateRange(start=MONDAY, end=MONDAY),
        DailyWindow(start="08:00", end="10:00"),
    )
    _, slots = store.list_slots(PROVIDER_ID, None, None, 0, 100)
    return slots


@pytest.fixture
def admin():
    return Actor(id=100, role=Role.ADMINISTRATOR)


@pytest.fixture
def provider():
    return Actor(id=PROVIDER_ID, role=Role.PROVIDER)


@pytest.fixture
def other_provider():
    return Actor(id=OTHER_PROVIDER_ID, role=Role.PROVIDER)


@pytest.fixture
def client_a():
    return Actor(id=501, role=Role.CLIENT)


@pytest.fixture
def client_b():
    return Actor(id=502, role=Role.CLIENT)
