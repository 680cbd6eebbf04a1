"""
Rescheduler — the "not connected" auto-retry policy.

When a call attempt does not connect, a follow-up booking is placed a fixed
offset into the future (NOT_CONNECTED_RETRY_HOURS, default 2). The future
booking is just a row; nothing fires at that time.

The two sub-effects are independent:
  A. book the retry slot through the normal booking path (conflict rules apply)
  B. append a not_connected history entry and stamp last_contacted
A slot conflict in A is captured on the result; B still happens.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta

from django.conf import settings
from django.db import transaction

from engagement.models import CallBooking, CallOutcome, Event, Lead
from engagement.services import booking_service, lead_store
from engagement.services.errors import Conflict
from engagement.utils import utcnow

logger = logging.getLogger(__name__)


@dataclass
class RescheduleResult:
    lead: Lead
    rescheduled_for: datetime
    booking: CallBooking | None = None
    booking_error: Conflict | None = None
    steps: list[str] = field(default_factory=list)

    @property
    def fully_applied(self) -> bool:
        return self.booking_error is None


def retry_slot(now: datetime) -> tuple[date, str, datetime]:
    """Date, HH:MM token and exact instant of the retry attempt."""
    retry_at = now + timedelta(hours=settings.NOT_CONNECTED_RETRY_HOURS)
    return retry_at.date(), retry_at.strftime("%H:%M"), retry_at


def handle_not_connected(lead_id, actor: str, clock=utcnow, notes: str = "") -> RescheduleResult:
    """
    Record an unanswered call and book the retry.
    NotFound (missing/inactive lead) is raised before any effect is applied.
    """
    lead = lead_store.get_lead(lead_id)
    now = clock()
    retry_date, retry_time, retry_at = retry_slot(now)

    result = RescheduleResult(lead=lead, rescheduled_for=retry_at)

    # ─── Sub-step A: retry booking ───────────────────────────────────────
    try:
        result.booking = booking_service.create_booking(
            lead.id, retry_date, retry_time, owner=actor, clock=clock,
        )
        result.steps.append(f"booking_created ({retry_date.isoformat()} {retry_time})")
    except Conflict as e:
        logger.warning("Auto-reschedule for lead %s hit a taken slot: %s", lead.id, e.existing)
        result.booking_error = e
        result.steps.append("booking_conflict")

    # ─── Sub-step B: history + last_contacted ────────────────────────────
    with transaction.atomic():
        lead = lead_store.lock_active_lead(lead.id)
        lead_store.append_history(
            lead.id,
            outcome=CallOutcome.NOT_CONNECTED,
            occurred_at=now,
            actor=actor,
            notes=notes,
            booking=result.booking,
            rescheduled_for=retry_at,
        )
        lead.last_contacted = now
        lead.save(update_fields=["last_contacted", "updated_at"])

        Event.objects.create(
            lead_id=lead.id,
            event_type="call_not_connected",
            actor=actor,
            payload={
                "occurred_at": now.isoformat(),
                "rescheduled_for": retry_at.isoformat(),
                "booking_id": str(result.booking.id) if result.booking else None,
                "booking_conflict": result.booking_error.existing if result.booking_error else None,
            },
            description=f"Call not connected; retry at {retry_at:%Y-%m-%d %H:%M}",
        )
    result.lead = lead
    result.steps.append("history_appended")

    logger.info("Not-connected handled for lead %s: %s", lead.id, " -> ".join(result.steps))
    return result
