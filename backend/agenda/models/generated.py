from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer, Text, UniqueConstraint, text
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()
metadata = Base.metadata


class Providers(Base):
    __tablename__ = 'providers'

    name = Column(Text, nullable=False)
    duration_minutes = Column(Integer, nullable=False)
    id = Column(Integer, primary_key=True)

    slots = relationship('Slots', back_populates='provider')


class Slots(Base):
    __tablename__ = 'slots'
    __table_args__ = (
        UniqueConstraint('provider_id', 'start', name='uq_slots_provider_start'),
    )

    provider_id = Column(ForeignKey('providers.id', ondelete='CASCADE'), nullable=False, index=True)
    start = Column(DateTime(timezone=True), nullable=False, index=True)
    end = Column(DateTime(timezone=True), nullable=False)
    status = Column(Enum('free', 'held', 'blocked', name='slot_status'), nullable=False, server_default=text("'free'"))
    id = Column(Integer, primary_key=True)

    provider = relationship('Providers', back_populates='slots')
    bookings = relationship('Bookings', back_populates='slot')


class Bookings(Base):
    __tablename__ = 'bookings'
    __table_args__ = (
        # one scheduled booking per slot
        Index(
            'uq_bookings_scheduled_slot', 'slot_id', unique=True,
            sqlite_where=text("status = 'scheduled'"),
            postgresql_where=text("status = 'scheduled'"),
        ),
        # one scheduled booking per client per instant
        Index(
            'uq_bookings_scheduled_client_start', 'client_id', 'slot_start', unique=True,
            sqlite_where=text("status = 'scheduled'"),
            postgresql_where=text("status = 'scheduled'"),
        ),
    )

    slot_id = Column(ForeignKey('slots.id'), nullable=False)
    client_id = Column(Integer, nullable=False, index=True)
    provider_id = Column(ForeignKey('providers.id'), nullable=False, index=True)
    slot_start = Column(DateTime(timezone=True), nullable=False)
    status = Column(
        Enum('scheduled', 'completed', 'cancelled', name='booking_status'),
        nullable=False,
        server_default=text("'scheduled'"),
    )
    id = Column(Integer, primary_key=True)
    cancel_reason = Column(Enum('client_request', 'admin_cancel', 'outcome_override', name='cancel_reason'))
    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    slot = relationship('Slots', back_populates='bookings')
