"""
Lifecycle Engine — lead status transitions.

A transition runs as an ordered pipeline:
1. (fatal)       lock the lead, write status + updated_at, log status_changed. Commit.
2. (best-effort) if the new status is Qualified, run the conversion policy.

Step 1 is the transaction of record. Anything that goes wrong in step 2 is
logged and reported on the result as a warning; it never rolls back or fails
the status change. Call history is not touched here.
"""
import logging
from dataclasses import dataclass, field

from django.db import transaction

from engagement.models import Lead, LeadStatus, Event
from engagement.services import lead_store
from engagement.services.conversion import ConversionOutcome, convert_if_qualified
from engagement.services.customer_directory import CustomerDirectory
from engagement.services.errors import DependencyUnavailable, InvalidArgument
from engagement.utils import utcnow

logger = logging.getLogger(__name__)

# Statuses that trigger conversion once committed
CONVERTING_STATUSES = frozenset({LeadStatus.QUALIFIED})


@dataclass
class TransitionResult:
    lead: Lead
    previous_status: str
    conversion: ConversionOutcome | None = None
    warnings: list[str] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)

    @property
    def status_changed(self) -> bool:
        return self.previous_status != self.lead.status


def validate_status(requested_status) -> str:
    if requested_status not in LeadStatus.values:
        raise InvalidArgument(
            "status", f"Invalid status. Must be one of: {', '.join(LeadStatus.values)}",
        )
    return requested_status


def transition_status(
    lead_id,
    requested_status: str,
    actor: str,
    clock=utcnow,
    directory: CustomerDirectory | None = None,
) -> TransitionResult:
    """
    Move a lead to `requested_status`.

    Raises InvalidArgument for a value outside the status set and NotFound if
    the lead is missing or inactive. No other failure reaches the caller.
    """
    requested_status = validate_status(requested_status)

    # ─── Step 1: status write (fatal) ────────────────────────────────────
    with transaction.atomic():
        lead = lead_store.lock_active_lead(lead_id)
        previous_status = lead.status

        lead.status = requested_status
        lead.save(update_fields=["status", "updated_at"])

        if previous_status != requested_status:
            Event.objects.create(
                lead_id=lead.id,
                event_type="status_changed",
                actor=actor,
                payload={
                    "previous_status": previous_status,
                    "new_status": requested_status,
                    "changed_at": clock().isoformat(),
                },
                description=f"Status changed: {previous_status} -> {requested_status}",
            )

    result = TransitionResult(lead=lead, previous_status=previous_status)
    result.steps.append(f"status_updated ({previous_status} -> {requested_status})")
    logger.info("Lead %s status %s -> %s by %s", lead.id, previous_status, requested_status, actor)

    # ─── Step 2: conversion (best-effort, after commit) ──────────────────
    if requested_status in CONVERTING_STATUSES:
        _run_conversion(result, actor, clock, directory)

    return result


def _run_conversion(result: TransitionResult, actor: str, clock, directory) -> None:
    lead = result.lead
    try:
        outcome = convert_if_qualified(lead, actor, clock=clock, directory=directory)
    except DependencyUnavailable as e:
        logger.warning("Conversion of lead %s deferred: %s", lead.id, e)
        result.warnings.append(f"Customer conversion unavailable: {e.message}")
        result.steps.append("conversion_failed (dependency_unavailable)")
        _log_conversion_event(lead, actor, "conversion_failed", {"error": e.message})
        return
    except Exception as e:
        logger.exception("Conversion of lead %s failed", lead.id)
        result.warnings.append(f"Customer conversion failed: {e}")
        result.steps.append("conversion_failed")
        _log_conversion_event(lead, actor, "conversion_failed", {"error": str(e)})
        return

    result.conversion = outcome
    if outcome.created:
        result.steps.append("customer_converted")
        _log_conversion_event(lead, actor, "customer_converted", outcome.to_dict())
    else:
        result.steps.append(f"conversion_skipped ({outcome.reason})")
        if outcome.reason == "identity_exists":
            result.warnings.append("A customer with this contact identity already exists; lead was not converted")
        _log_conversion_event(lead, actor, "conversion_skipped", outcome.to_dict())


def _log_conversion_event(lead: Lead, actor: str, event_type: str, payload: dict) -> None:
    """Audit the conversion attempt. Failing to log must not fail the transition."""
    descriptions = {
        "customer_converted": "Lead converted to customer",
        "conversion_skipped": f"Conversion skipped ({payload.get('reason')})",
        "conversion_failed": "Conversion failed",
    }
    try:
        Event.objects.create(
            lead_id=lead.id,
            event_type=event_type,
            source="system",
            actor=actor,
            payload=payload,
            description=descriptions[event_type],
        )
    except Exception:
        logger.exception("Could not record %s event for lead %s", event_type, lead.id)
