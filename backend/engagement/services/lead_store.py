"""
Lead Store — reads and writes for Lead rows and their call history.

Active-lead reads treat a soft-deleted lead exactly like a missing one.
Plain field updates are read-modify-write with last-write-wins; the only
locking here is the row lock callers take through lock_active_lead().
"""
import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import Count, Q

from engagement.models import Lead, LeadStatus, CallHistoryEntry, Event
from engagement.services.errors import NotFound, InvalidArgument
from engagement.utils import utcnow

logger = logging.getLogger(__name__)

# Fields an operator may patch directly. Status has its own path (lifecycle engine).
EDITABLE_FIELDS = {
    "name", "phone", "email", "source", "notes",
    "important_points", "assigned_to", "additional_fields",
}

# Changes to these are logged as contact_updated events
TRACKED_CONTACT_FIELDS = ("phone", "email")


def _not_found(lead_id) -> NotFound:
    return NotFound(f"Lead {lead_id} not found", lead_id=str(lead_id))


def _validate_name(name) -> str:
    name = (name or "").strip()
    if not 2 <= len(name) <= 100:
        raise InvalidArgument("name", "Name must be between 2 and 100 characters")
    return name


def _active_queryset():
    return Lead.objects.filter(is_active=True)


def get_lead(lead_id) -> Lead:
    """Fetch an active lead or raise NotFound."""
    try:
        return _active_queryset().get(id=lead_id)
    except (Lead.DoesNotExist, ValidationError, ValueError):
        raise _not_found(lead_id)


def lock_active_lead(lead_id) -> Lead:
    """Row-lock an active lead. Must be called inside transaction.atomic()."""
    try:
        return _active_queryset().select_for_update().get(id=lead_id)
    except (Lead.DoesNotExist, ValidationError, ValueError):
        raise _not_found(lead_id)


def create_lead(name: str, created_by: str, **fields) -> Lead:
    """Manual entry / import. New leads always start in status New."""
    unknown = set(fields) - EDITABLE_FIELDS
    if unknown:
        raise InvalidArgument(sorted(unknown)[0], f"Unknown lead field(s): {', '.join(sorted(unknown))}")

    with transaction.atomic():
        lead = Lead.objects.create(
            name=_validate_name(name),
            created_by=created_by,
            status=LeadStatus.NEW,
            **fields,
        )
        Event.objects.create(
            lead_id=lead.id,
            event_type="lead_created",
            actor=created_by,
            description=f"Lead created: {lead.name}",
        )
    return lead


def update_lead(lead_id, patch: dict, actor: str | None = None) -> Lead:
    """Apply a partial update of editable fields. Logs contact changes as events."""
    if "status" in patch:
        raise InvalidArgument("status", "Use the status transition to change a lead's status")
    unknown = set(patch) - EDITABLE_FIELDS
    if unknown:
        raise InvalidArgument(sorted(unknown)[0], f"Unknown lead field(s): {', '.join(sorted(unknown))}")
    if "name" in patch:
        patch = {**patch, "name": _validate_name(patch["name"])}

    with transaction.atomic():
        lead = lock_active_lead(lead_id)
        old_values = {f: getattr(lead, f) for f in TRACKED_CONTACT_FIELDS}

        for field, value in patch.items():
            setattr(lead, field, value)
        lead.save(update_fields=[*patch.keys(), "updated_at"])

        for field in TRACKED_CONTACT_FIELDS:
            old_val = old_values[field] or ""
            new_val = getattr(lead, field) or ""
            if old_val != new_val:
                Event.objects.create(
                    lead_id=lead.id,
                    event_type="contact_updated",
                    actor=actor,
                    payload={"field": field, "old_value": old_val, "new_value": new_val},
                    description=f"{field.title()} updated: {old_val or '(empty)'} -> {new_val or '(empty)'}",
                )
    return lead


def append_history(
    lead_id,
    outcome: str,
    occurred_at,
    actor: str,
    notes: str = "",
    booking=None,
    rescheduled_for=None,
) -> CallHistoryEntry:
    """Append one call-history entry. Entries are never edited or removed."""
    lead = get_lead(lead_id)
    return CallHistoryEntry.objects.create(
        lead=lead,
        outcome=outcome,
        occurred_at=occurred_at,
        actor=actor,
        notes=notes or "",
        booking=booking,
        rescheduled_for=rescheduled_for,
    )


def call_history(lead_id) -> list[CallHistoryEntry]:
    lead = get_lead(lead_id)
    return list(CallHistoryEntry.objects.filter(lead=lead).order_by("occurred_at", "id"))


def active_leads(status: str | None = None, owner: str | None = None, search: str | None = None):
    """Active leads, newest first. owner matches creator or assignee."""
    queryset = _active_queryset()
    if status:
        if status not in LeadStatus.values:
            raise InvalidArgument("status", f"Invalid status. Must be one of: {', '.join(LeadStatus.values)}")
        queryset = queryset.filter(status=status)
    if owner:
        queryset = queryset.filter(Q(created_by=owner) | Q(assigned_to=owner))
    if search:
        queryset = queryset.filter(
            Q(name__icontains=search) |
            Q(phone__icontains=search) |
            Q(email__icontains=search)
        )
    return queryset.order_by("-created_at")


def lead_stats(owner: str | None = None) -> dict:
    """Count of active leads per status, plus the total."""
    queryset = _active_queryset()
    if owner:
        queryset = queryset.filter(created_by=owner)

    rows = queryset.values("status").annotate(count=Count("id")).order_by()
    stats = {"total": 0, **{s.lower(): 0 for s in LeadStatus.values}}
    for row in rows:
        stats[row["status"].lower()] = row["count"]
        stats["total"] += row["count"]
    return stats


def deactivate_lead(lead_id, actor: str | None = None, clock=utcnow) -> Lead:
    """Soft delete. The row stays for audit but drops out of every active read."""
    with transaction.atomic():
        lead = lock_active_lead(lead_id)
        lead.is_active = False
        lead.save(update_fields=["is_active", "updated_at"])
        Event.objects.create(
            lead_id=lead.id,
            event_type="lead_deactivated",
            actor=actor,
            payload={"deactivated_at": clock().isoformat()},
            description="Lead deactivated",
        )
    logger.info("Lead %s deactivated by %s", lead.id, actor)
    return lead


def hard_delete_lead(lead_id, actor: str | None = None) -> None:
    """
    Administrative, irreversible delete. Works on inactive leads too and
    cascades to the lead's bookings, call history and events.
    """
    try:
        lead = Lead.objects.get(id=lead_id)
    except (Lead.DoesNotExist, ValidationError, ValueError):
        raise _not_found(lead_id)
    lead.delete()
    logger.warning("Lead %s hard-deleted by %s", lead_id, actor)
