from .generated import Base, Bookings, Providers, Slots

__all__ = ["Base", "Bookings", "Providers", "Slots"]
