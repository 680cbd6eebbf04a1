"""
Booking Store — persistence for CallBooking rows.

insert_if_absent() is the only write path for new Scheduled bookings. It
relies on the uniq_scheduled_booking_slot constraint rather than on the
caller's pre-check, so two concurrent inserts for the same slot resolve to
one row and one Conflict.
"""
import logging
from datetime import date

from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import Count

from engagement.models import CallBooking, BookingStatus
from engagement.services.errors import Conflict, NotFound

logger = logging.getLogger(__name__)

SLOT_TAKEN_MESSAGE = "A call is already scheduled for this lead at this time"


def booking_summary(booking: CallBooking) -> dict:
    """What a caller needs to pick a different slot."""
    return {
        "id": str(booking.id),
        "scheduled_date": booking.scheduled_date.isoformat(),
        "scheduled_time": booking.scheduled_time,
        "status": booking.status,
    }


def find_blocking(lead_id, scheduled_date: date, scheduled_time: str, statuses, exclude_id=None) -> CallBooking | None:
    queryset = CallBooking.objects.filter(
        lead_id=lead_id,
        scheduled_date=scheduled_date,
        scheduled_time=scheduled_time,
        status__in=list(statuses),
    )
    if exclude_id is not None:
        queryset = queryset.exclude(id=exclude_id)
    # Prefer the pending one when both pending and historical rows exist
    return queryset.filter(status=BookingStatus.SCHEDULED).first() or queryset.first()


def slot_conflict(lead_id, scheduled_date: date, scheduled_time: str) -> Conflict:
    blocking = find_blocking(lead_id, scheduled_date, scheduled_time, [BookingStatus.SCHEDULED])
    return Conflict(SLOT_TAKEN_MESSAGE, existing=booking_summary(blocking) if blocking else None)


def insert_if_absent(**fields) -> CallBooking:
    """
    Insert a Scheduled booking unless its slot is already held.
    A constraint violation is reported as the same Conflict the pre-check raises.
    """
    fields.setdefault("status", BookingStatus.SCHEDULED)
    try:
        with transaction.atomic():
            return CallBooking.objects.create(**fields)
    except IntegrityError:
        lead_id = fields.get("lead_id") or fields["lead"].id
        logger.info(
            "Slot race lost for lead %s on %s %s",
            lead_id, fields["scheduled_date"], fields["scheduled_time"],
        )
        raise slot_conflict(lead_id, fields["scheduled_date"], fields["scheduled_time"])


def save_slot_change(booking: CallBooking, update_fields: list[str]) -> CallBooking:
    """Persist a change that may move a Scheduled booking onto a held slot."""
    try:
        with transaction.atomic():
            booking.save(update_fields=[*update_fields, "updated_at"])
    except IntegrityError:
        raise slot_conflict(booking.lead_id, booking.scheduled_date, booking.scheduled_time)
    return booking


def get_booking(booking_id, owner: str | None = None) -> CallBooking:
    """Fetch a booking, optionally scoped to its owner. Out-of-scope looks the same as missing."""
    queryset = CallBooking.objects.all()
    if owner is not None:
        queryset = queryset.filter(scheduled_by=owner)
    try:
        return queryset.get(id=booking_id)
    except (CallBooking.DoesNotExist, ValidationError, ValueError):
        raise NotFound(f"Booking {booking_id} not found", booking_id=str(booking_id))


def bookings_for_owner(owner: str | None = None, status: str | None = None, on_date: date | None = None):
    """owner=None means every owner (admin view)."""
    queryset = CallBooking.objects.select_related("lead")
    if owner is not None:
        queryset = queryset.filter(scheduled_by=owner)
    if status:
        queryset = queryset.filter(status=status)
    if on_date:
        queryset = queryset.filter(scheduled_date=on_date)
    return queryset.order_by("scheduled_date", "scheduled_time")


def bookings_in_range(owner: str | None, start: date, end: date):
    return bookings_for_owner(owner).filter(scheduled_date__gte=start, scheduled_date__lte=end)


def upcoming_bookings(today: date, owner: str | None = None, limit: int = 10):
    return bookings_for_owner(owner, status=BookingStatus.SCHEDULED).filter(
        scheduled_date__gte=today,
    )[:limit]


def bookings_for_lead(lead_id):
    return CallBooking.objects.filter(lead_id=lead_id).order_by("-scheduled_date", "-scheduled_time")


def booking_stats(owner: str | None = None) -> dict:
    queryset = CallBooking.objects.all()
    if owner is not None:
        queryset = queryset.filter(scheduled_by=owner)

    stats = {"total": 0, "scheduled": 0, "completed": 0, "cancelled": 0, "no_show": 0}
    for row in queryset.values("status").annotate(count=Count("id")).order_by():
        key = row["status"].lower().replace(" ", "_")
        if key in stats:
            stats[key] = row["count"]
        stats["total"] += row["count"]
    return stats
