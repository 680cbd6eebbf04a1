import uuid
from django.db import models
from django.db.models import Q


class BookingStatus(models.TextChoices):
    SCHEDULED = "Scheduled", "Scheduled"
    COMPLETED = "Completed", "Completed"
    CANCELLED = "Cancelled", "Cancelled"
    NO_SHOW = "No Show", "No Show"


# Scheduled is the only non-terminal status; bookings are never reopened.
TERMINAL_BOOKING_STATUSES = frozenset({
    BookingStatus.COMPLETED, BookingStatus.CANCELLED, BookingStatus.NO_SHOW,
})


class CallBooking(models.Model):
    """
    A contact attempt booked against a lead for a (date, time) slot.

    The partial unique constraint is the source of truth for slot exclusivity:
    two Scheduled bookings for the same (lead, date, time) can never coexist,
    whatever the interleaving of concurrent requests. Historical rows in other
    statuses are free to share the slot.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    lead = models.ForeignKey("Lead", on_delete=models.CASCADE, related_name="bookings")
    scheduled_by = models.CharField(max_length=64)

    scheduled_date = models.DateField()
    # Opaque HH:MM token; only ever paired with scheduled_date, no tz math
    scheduled_time = models.CharField(max_length=5)
    duration_minutes = models.PositiveIntegerField(default=30)

    status = models.CharField(max_length=20, choices=BookingStatus.choices, default=BookingStatus.SCHEDULED)
    reminder_sent = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "call_bookings"
        ordering = ["scheduled_date", "scheduled_time"]
        indexes = [
            models.Index(fields=["scheduled_by", "scheduled_date"], name="idx_booking_owner_date"),
            models.Index(fields=["status", "scheduled_date"], name="idx_booking_status_date"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["lead", "scheduled_date", "scheduled_time"],
                condition=Q(status="Scheduled"),
                name="uniq_scheduled_booking_slot",
            ),
        ]

    @property
    def is_open(self) -> bool:
        return self.status == BookingStatus.SCHEDULED

    def __str__(self):
        return f"call for lead={self.lead_id} on {self.scheduled_date} {self.scheduled_time} ({self.status})"
