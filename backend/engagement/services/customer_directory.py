"""
Customer collaborator — the boundary the conversion policy talks to.

The default implementation is backed by the Customer table. Anything with
the same three methods can be injected instead (a remote customer service,
a test double).
"""
import logging

from django.db import DatabaseError, IntegrityError, transaction

from engagement.models import Customer
from engagement.services.errors import Conflict, DependencyUnavailable

logger = logging.getLogger(__name__)


def normalize_identity(email: str | None) -> str | None:
    """Contact identity used to decide whether two records are the same person."""
    if not email:
        return None
    email = email.strip().lower()
    return email or None


class CustomerDirectory:
    """ORM-backed customer collaborator."""

    def find_by_lead_id(self, lead_id) -> Customer | None:
        try:
            return Customer.objects.filter(converted_from_lead_id=lead_id).first()
        except DatabaseError as e:
            raise DependencyUnavailable(f"Customer lookup failed: {e}") from e

    def find_by_contact_identity(self, identity: str | None) -> Customer | None:
        if not identity:
            return None
        try:
            return Customer.objects.filter(email__iexact=identity).first()
        except DatabaseError as e:
            raise DependencyUnavailable(f"Customer lookup failed: {e}") from e

    def create(self, snapshot: dict) -> Customer:
        """Insert a customer. A uniqueness violation comes back as Conflict."""
        try:
            with transaction.atomic():
                return Customer.objects.create(**snapshot)
        except IntegrityError as e:
            raise Conflict(f"Customer already exists: {e}") from e
        except DatabaseError as e:
            raise DependencyUnavailable(f"Customer creation failed: {e}") from e
