from django.db import models


class CallOutcome(models.TextChoices):
    COMPLETED = "completed", "Completed"
    NOT_CONNECTED = "not_connected", "Not connected"
    RESCHEDULED = "rescheduled", "Rescheduled"


class CallHistoryEntry(models.Model):
    """
    One entry in a lead's call history. Append-only: rows are inserted by the
    completion and not-connected paths and never edited afterwards.
    """

    id = models.BigAutoField(primary_key=True)
    lead = models.ForeignKey("Lead", on_delete=models.CASCADE, related_name="call_history")

    outcome = models.CharField(max_length=20, choices=CallOutcome.choices)
    occurred_at = models.DateTimeField()
    actor = models.CharField(max_length=64)
    notes = models.TextField(blank=True, default="")

    # Set when the attempt produced a follow-up booking
    booking = models.ForeignKey(
        "CallBooking", on_delete=models.SET_NULL, null=True, blank=True, related_name="history_entries"
    )
    rescheduled_for = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = "call_history"
        ordering = ["occurred_at", "id"]
        indexes = [
            models.Index(fields=["lead", "occurred_at"], name="idx_history_lead_time"),
        ]

    def __str__(self):
        return f"{self.outcome} for lead={self.lead_id} at {self.occurred_at}"
