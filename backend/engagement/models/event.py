import uuid
from django.db import models

# Every event_type the services write
EVENT_TYPES = frozenset({
    "lead_created", "contact_updated", "lead_deactivated", "status_changed",
    "customer_converted", "conversion_skipped", "conversion_failed",
    "booking_created", "booking_status_changed", "booking_rescheduled",
    "call_completed", "call_not_connected",
})


class Event(models.Model):
    """
    Append-only event log — the audit trail for everything that happens to a lead.
    Status transitions are persisted here as status_changed events carrying
    the previous and new status, the actor and the timestamp.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    lead = models.ForeignKey("Lead", on_delete=models.CASCADE, related_name="events")

    # Event classification
    event_type = models.CharField(max_length=50, db_index=True)  # one of EVENT_TYPES

    # Who triggered it
    source = models.CharField(max_length=50, default="operator")  # "system", "operator"
    actor = models.CharField(max_length=64, null=True, blank=True)

    payload = models.JSONField(default=dict, blank=True)

    # Human-readable description
    description = models.TextField()

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "events"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["lead", "-created_at"], name="idx_event_lead_date"),
        ]

    def __str__(self):
        return f"{self.event_type} for lead={self.lead_id} at {self.created_at}"
