"""
Queues reminders for invoices waiting on their manager past the SLA.
Meant to run once a day from cron.
"""

from datetime import date

from django.core.management.base import BaseCommand, CommandError

from invoices.services import send_sla_reminders


class Command(BaseCommand):
    help = "Queue SLA reminders for invoices pending manager approval."

    def add_arguments(self, parser):
        parser.add_argument(
            "--date",
            help="Evaluate as of this date (YYYY-MM-DD) instead of today.",
        )

    def handle(self, *args, **options):
        today = None
        if options["date"]:
            try:
                today = date.fromisoformat(options["date"])
            except ValueError as e:
                raise CommandError(f"Invalid --date: {e}")

        queued = send_sla_reminders(today=today)
        self.stdout.write(self.style.SUCCESS(f"Queued {queued} reminder(s)."))
