"""
Seed data script — populates the database with demo leads spread across the
funnel, with bookings, call outcomes and one converted customer.

Usage: cd backend && python seed_data.py
"""
import os
import sys
from datetime import timedelta

import django

# Setup Django
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'crm_backend.settings')
django.setup()

from engagement.models import Lead
from engagement.services import booking_service, lead_store
from engagement.services.call_completion import complete_call
from engagement.services.errors import Conflict
from engagement.services.lifecycle import transition_status
from engagement.services.rescheduler import handle_not_connected
from engagement.utils import utcnow

OWNER = "rep.alvarez"

LEADS = [
    {"name": "Priya Patel", "phone": "+1-555-0105", "email": "priya.patel@example.com",
     "source": "Web form", "notes": "Asked about annual pricing"},
    {"name": "David Chen", "phone": "+1-555-0102", "email": "david.chen@example.com",
     "source": "Referral", "important_points": "Decision maker is the CFO"},
    {"name": "James Thompson", "phone": "+1-555-0104", "email": None,
     "source": "Trade show"},
    {"name": "Sarah Mitchell", "phone": "+1-555-0107", "email": "sarah.m@example.com",
     "source": "Cold list", "notes": "Prefers mornings"},
    {"name": "Tom Alvarado", "phone": "+1-555-0110", "email": "tom.alvarado@example.com",
     "source": "Manual"},
]

# lead index -> target status (Qualified triggers conversion)
STATUS_TARGETS = {
    1: "Qualified",
    3: "Negotiation",
    4: "Lost",
}


def seed():
    existing = Lead.objects.count()
    if existing > 0:
        print(f"Database already has {existing} leads. Skipping seed.")
        print("Run 'python manage.py flush --no-input' to clear, then re-seed.")
        return

    lead_records = [lead_store.create_lead(created_by=OWNER, **data) for data in LEADS]
    print(f"Created {len(lead_records)} leads")

    tomorrow = (utcnow() + timedelta(days=1)).date()
    for i, lead in enumerate(lead_records[:3]):
        try:
            booking = booking_service.create_booking(lead.id, tomorrow, f"{9 + i:02d}:00", 30, owner=OWNER)
            print(f"  Booked {lead.name} on {booking.scheduled_date} {booking.scheduled_time}")
        except Conflict as e:
            print(f"  Slot taken for {lead.name}: {e.existing}")

    complete_call(lead_records[0].id, outcome="Walked through pricing", actor=OWNER)
    print(f"  Call completed for {lead_records[0].name}")

    result = handle_not_connected(lead_records[2].id, OWNER)
    print(f"  {lead_records[2].name} not reached; retry at {result.rescheduled_for:%Y-%m-%d %H:%M}")

    for idx, target_status in STATUS_TARGETS.items():
        result = transition_status(lead_records[idx].id, target_status, OWNER)
        print(f"  {result.lead.name}: {' -> '.join(result.steps)}")

    print(f"\n{'='*50}")
    print(f"Seed complete! {len(lead_records)} leads:\n")
    for lead in lead_records:
        lead.refresh_from_db()
        print(f"  {lead.name:16s} | {lead.status:12s} | call completed: {lead.call_completed}")
    print(f"\nRun the server: python manage.py runserver")


if __name__ == "__main__":
    seed()
