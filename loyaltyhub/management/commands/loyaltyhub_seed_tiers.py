"""Management command to seed the default tier catalog."""

from django.core.management.base import BaseCommand

from loyaltyhub.models import Tier

DEFAULT_TIERS = (
    ("member", "Member", 1),
    ("loyalty", "Loyalty", 2),
    ("regular", "Regular", 3),
)


class Command(BaseCommand):
    help = "Create the default Member/Loyalty/Regular tiers (idempotent)"

    def handle(self, *args, **options):
        created_count = 0
        for slug, name, rank in DEFAULT_TIERS:
            _, created = Tier.objects.get_or_create(
                slug=slug, defaults={"name": name, "rank": rank}
            )
            created_count += int(created)

        self.stdout.write(
            self.style.SUCCESS(
                f"Created {created_count} tier(s); {Tier.objects.count()} in catalog."
            )
        )
