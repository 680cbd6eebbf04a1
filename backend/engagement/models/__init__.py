from engagement.models.lead import Lead, LeadStatus
from engagement.models.call_history import CallHistoryEntry, CallOutcome
from engagement.models.call_booking import CallBooking, BookingStatus, TERMINAL_BOOKING_STATUSES
from engagement.models.customer import Customer, CustomerStatus
from engagement.models.user_session import UserSession
from engagement.models.event import Event, EVENT_TYPES

__all__ = [
    "Lead", "LeadStatus", "CallHistoryEntry", "CallOutcome",
    "CallBooking", "BookingStatus", "TERMINAL_BOOKING_STATUSES",
    "Customer", "CustomerStatus", "UserSession", "Event", "EVENT_TYPES",
]
