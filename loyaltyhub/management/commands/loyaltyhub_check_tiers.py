"""Management command to report venues with an incomplete tier catalog."""

from django.core.management.base import BaseCommand, CommandError

from loyaltyhub.gates import GateError, Gates
from loyaltyhub.models import Venue


class Command(BaseCommand):
    help = "Check every active venue configures all tiers (base tier at 0 visits)"

    def add_arguments(self, parser):
        parser.add_argument(
            "--fail",
            action="store_true",
            help="Exit with an error if any venue fails the check",
        )

    def handle(self, *args, **options):
        failures = 0
        for venue in Venue.objects.filter(is_active=True):
            try:
                Gates.tier_catalog_completeness(venue.pk)
            except GateError as e:
                failures += 1
                self.stdout.write(self.style.WARNING(f"{venue}: {e.message} {e.details}"))
            else:
                self.stdout.write(f"{venue}: OK")

        if failures and options["fail"]:
            raise CommandError(f"{failures} venue(s) with incomplete tier catalog.")

        self.stdout.write(self.style.SUCCESS(f"Checked venues, {failures} failing."))
