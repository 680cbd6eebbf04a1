"""
Conversion Policy — turn a lead into a Customer, at most once.

Two paths reach it: the automatic one (lead moved to Qualified, see
lifecycle.py) and the manual one (operator converts from the dashboard,
convert_lead below). Both go through convert_if_qualified().

Two idempotency keys are checked before creating anything:
  1. a customer already linked to this lead id  -> NoOp (already_converted)
  2. a customer with the same contact identity  -> NoOp (identity_exists), warned

The check-then-create is not linearizable when both paths convert the same
lead at once. The partial unique constraints on Customer catch the overlap,
and the loser reports NoOp (lost_race). The contract is "at most one customer
per lead, eventually".
"""
import logging
from dataclasses import dataclass

from engagement.models import Lead, Customer, CustomerStatus, Event
from engagement.services import lead_store
from engagement.services.customer_directory import CustomerDirectory, normalize_identity
from engagement.services.errors import Conflict
from engagement.utils import utcnow

logger = logging.getLogger(__name__)

QUALIFIED_NOTE = "Converted from qualified lead"
MANUAL_NOTE = "Converted from lead"


@dataclass
class ConversionOutcome:
    created: bool
    reason: str  # converted, already_converted, identity_exists, lost_race
    customer: Customer | None = None

    def to_dict(self) -> dict:
        return {
            "created": self.created,
            "reason": self.reason,
            "customer_id": str(self.customer.id) if self.customer else None,
        }


def build_snapshot(lead: Lead, actor: str, converted_at, note: str = QUALIFIED_NOTE) -> dict:
    """Denormalized copy of the lead's contact fields at conversion time."""
    return {
        "name": lead.name,
        "email": normalize_identity(lead.email),
        "phone": lead.phone or None,
        "status": CustomerStatus.ACTIVE,
        "notes": f"{note}: {lead.notes or 'No notes'}",
        "converted_from_lead": lead,
        "converted_at": converted_at,
        "owner": actor,
    }


def convert_if_qualified(
    lead: Lead,
    actor: str,
    clock=utcnow,
    directory: CustomerDirectory | None = None,
    note: str = QUALIFIED_NOTE,
) -> ConversionOutcome:
    """
    Materialize a Customer from `lead` unless one already exists for it.
    DependencyUnavailable from the directory propagates to the caller.
    """
    directory = directory or CustomerDirectory()

    existing = directory.find_by_lead_id(lead.id)
    if existing:
        return ConversionOutcome(created=False, reason="already_converted", customer=existing)

    identity = normalize_identity(lead.email)
    existing = directory.find_by_contact_identity(identity)
    if existing:
        logger.warning(
            "Customer %s already exists with email %s; not converting lead %s",
            existing.id, identity, lead.id,
        )
        return ConversionOutcome(created=False, reason="identity_exists", customer=existing)

    try:
        customer = directory.create(build_snapshot(lead, actor, clock(), note=note))
    except Conflict:
        logger.warning("Concurrent conversion of lead %s detected; keeping the existing customer", lead.id)
        winner = directory.find_by_lead_id(lead.id) or directory.find_by_contact_identity(identity)
        return ConversionOutcome(created=False, reason="lost_race", customer=winner)

    logger.info("Lead %s converted to customer %s", lead.id, customer.id)
    return ConversionOutcome(created=True, reason="converted", customer=customer)


def convert_lead(lead_id, actor: str, clock=utcnow, directory: CustomerDirectory | None = None) -> ConversionOutcome:
    """
    Manual conversion from the dashboard. Works from any status and leaves the
    status alone; the dedupe keys are the same as the automatic path.

    Raises NotFound for a missing/inactive lead; DependencyUnavailable propagates.
    """
    lead = lead_store.get_lead(lead_id)
    outcome = convert_if_qualified(lead, actor, clock=clock, directory=directory, note=MANUAL_NOTE)

    Event.objects.create(
        lead_id=lead.id,
        event_type="customer_converted" if outcome.created else "conversion_skipped",
        actor=actor,
        payload={**outcome.to_dict(), "manual": True},
        description="Lead converted to customer" if outcome.created else f"Conversion skipped ({outcome.reason})",
    )
    return outcome
