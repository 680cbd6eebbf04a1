import uuid
from django.db import models
from django.db.models import Q


class CustomerStatus(models.TextChoices):
    ACTIVE = "active", "Active"
    INACTIVE = "inactive", "Inactive"
    PENDING = "pending", "Pending"


class Customer(models.Model):
    """
    A customer materialized from a qualified lead (or entered manually).

    Contact fields are a snapshot taken at conversion time; later edits to the
    lead do not flow through. converted_from_lead survives a hard delete of
    the lead (SET_NULL) so the customer record is never lost with it.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    name = models.CharField(max_length=100)
    email = models.EmailField(null=True, blank=True)
    phone = models.CharField(max_length=30, null=True, blank=True)
    status = models.CharField(max_length=20, choices=CustomerStatus.choices, default=CustomerStatus.ACTIVE)
    notes = models.TextField(null=True, blank=True)

    converted_from_lead = models.ForeignKey(
        "Lead", on_delete=models.SET_NULL, null=True, blank=True, related_name="customers"
    )
    converted_at = models.DateTimeField(null=True, blank=True)

    owner = models.CharField(max_length=64)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "customers"
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["converted_from_lead"],
                condition=Q(converted_from_lead__isnull=False),
                name="uniq_customer_origin_lead",
            ),
            models.UniqueConstraint(
                fields=["email"],
                condition=Q(email__isnull=False),
                name="uniq_customer_email",
            ),
        ]

    def __str__(self):
        return f"{self.name} <{self.email or 'no email'}>"
