from datetime import date

from django.core.management.base import BaseCommand, CommandError

from attendance.services import mark_absent


class Command(BaseCommand):
    help = "Record couriers without attendance on a date as absent."

    def add_arguments(self, parser):
        parser.add_argument("--date", help="Day to sweep (YYYY-MM-DD), defaults to today")

    def handle(self, *args, **options):
        target = None
        if options.get("date"):
            try:
                target = date.fromisoformat(options["date"])
            except ValueError:
                raise CommandError(f"Invalid date: {options['date']}")
        created = mark_absent(target)
        self.stdout.write(self.style.SUCCESS(f"Marked {created} courier(s) absent"))
