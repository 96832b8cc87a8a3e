from bookings.stores.interfaces import CommerceStore

__all__ = ["CommerceStore"]
