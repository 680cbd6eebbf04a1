import uuid
from django.db import models
from django.db.models import Q


class LeadStatus(models.TextChoices):
    NEW = "New", "New"
    QUALIFIED = "Qualified", "Qualified"
    NEGOTIATION = "Negotiation", "Negotiation"
    CLOSED = "Closed", "Closed"
    LOST = "Lost", "Lost"


class Lead(models.Model):
    """
    A Lead is a prospective contact tracked through the sales funnel.
    This is the central entity — bookings, call history and events all link to a lead.

    Soft-deleted leads (is_active=False) are kept for audit but never show up
    in active-lead reads.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    # Contact info
    name = models.CharField(max_length=100)
    phone = models.CharField(max_length=30, blank=True, default="")
    email = models.EmailField(null=True, blank=True)
    source = models.CharField(max_length=50, default="Manual")

    notes = models.TextField(blank=True, default="")
    important_points = models.TextField(blank=True, default="")

    status = models.CharField(max_length=20, choices=LeadStatus.choices, default=LeadStatus.NEW)

    # Ownership (opaque principal references; identity lives in the auth service)
    created_by = models.CharField(max_length=64)
    assigned_to = models.CharField(max_length=64, null=True, blank=True)

    # Contact attempts
    last_contacted = models.DateTimeField(null=True, blank=True)
    call_completed = models.BooleanField(default=False)
    call_completed_at = models.DateTimeField(null=True, blank=True)
    call_completed_by = models.CharField(max_length=64, null=True, blank=True)

    is_active = models.BooleanField(default=True, db_index=True)

    # Extra columns carried over from spreadsheet imports
    additional_fields = models.JSONField(default=dict, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "leads"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["status"], name="idx_lead_status"),
            models.Index(fields=["created_by"], name="idx_lead_created_by"),
            models.Index(fields=["assigned_to"], name="idx_lead_assigned_to"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(status__in=LeadStatus.values),
                name="lead_status_valid",
            ),
            models.CheckConstraint(
                condition=(
                    Q(call_completed=False)
                    | (Q(call_completed_at__isnull=False) & Q(call_completed_by__isnull=False))
                ),
                name="lead_call_completed_stamped",
            ),
        ]

    def __str__(self):
        return f"{self.name} ({self.status})"
