"""
Administrative hard delete of a lead.

Usage:
    python manage.py purge_lead <lead_id> --actor admin@example.com
    python manage.py purge_lead <lead_id> --actor admin@example.com --yes

Irreversible: removes the lead (active or not) together with its bookings,
call history and events. Customers converted from the lead are kept and
simply lose the back-reference.
"""
from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from engagement.models import Lead
from engagement.services import lead_store
from engagement.services.errors import NotFound


class Command(BaseCommand):
    help = "Permanently delete a lead and everything it owns"

    def add_arguments(self, parser):
        parser.add_argument("lead_id")
        parser.add_argument("--actor", required=True, help="Administrator performing the purge")
        parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    def handle(self, *args, **options):
        lead_id = options["lead_id"]
        try:
            lead = Lead.objects.get(id=lead_id)
        except (Lead.DoesNotExist, ValidationError):
            raise CommandError(f"Lead {lead_id} not found")

        bookings = lead.bookings.count()
        history = lead.call_history.count()
        if not options["yes"]:
            answer = input(
                f"Delete lead '{lead.name}' with {bookings} booking(s) and {history} history entries? [y/N] "
            )
            if answer.strip().lower() != "y":
                self.stdout.write("Aborted.")
                return

        try:
            lead_store.hard_delete_lead(lead_id, actor=options["actor"])
        except NotFound as e:
            raise CommandError(e.message)

        self.stdout.write(self.style.SUCCESS(
            f"Deleted lead {lead_id} ({bookings} booking(s), {history} history entries)"
        ))
