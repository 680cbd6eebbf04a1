"""
Call completion — mark a lead's call as done.

Call completion and lead status are orthogonal: a New lead can have
call_completed=True ("we reached them, nothing to report yet"). The status
field is never touched here.

For reporting symmetry, each completion also leaves a Completed CallBooking
behind for the completion slot. That row is informational: it is written
directly (no slot pre-check) and, being Completed, never collides with the
Scheduled-only uniqueness constraint.
"""
import logging
from dataclasses import dataclass

from django.conf import settings
from django.db import transaction

from engagement.models import BookingStatus, CallBooking, CallOutcome, Event, Lead
from engagement.services import lead_store
from engagement.services.errors import InvalidArgument
from engagement.utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    lead: Lead
    booking: CallBooking


def complete_call(lead_id, outcome: str = "", completed_at=None, actor: str = None, clock=utcnow) -> CompletionResult:
    """
    Stamp call completion on the lead and append a `completed` history entry.
    `outcome` is free text describing how the call went; it becomes the entry's notes.
    """
    if not actor:
        raise InvalidArgument("actor", "The completing actor is required")
    completed_at = completed_at or clock()

    with transaction.atomic():
        lead = lead_store.lock_active_lead(lead_id)

        lead.call_completed = True
        lead.call_completed_at = completed_at
        lead.call_completed_by = actor
        lead.last_contacted = completed_at
        lead.save(update_fields=[
            "call_completed", "call_completed_at", "call_completed_by", "last_contacted", "updated_at",
        ])

        booking = CallBooking.objects.create(
            lead=lead,
            scheduled_by=actor,
            scheduled_date=completed_at.date(),
            scheduled_time=completed_at.strftime("%H:%M"),
            duration_minutes=settings.BOOKING_DEFAULT_DURATION_MINUTES,
            status=BookingStatus.COMPLETED,
        )

        lead_store.append_history(
            lead.id,
            outcome=CallOutcome.COMPLETED,
            occurred_at=completed_at,
            actor=actor,
            notes=outcome,
            booking=booking,
        )

        Event.objects.create(
            lead_id=lead.id,
            event_type="call_completed",
            actor=actor,
            payload={"completed_at": completed_at.isoformat(), "outcome": outcome or ""},
            description="Call completed" + (f": {outcome}" if outcome else ""),
        )

    logger.info("Call completed for lead %s by %s", lead.id, actor)
    return CompletionResult(lead=lead, booking=booking)
