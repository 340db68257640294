from django.core.management.base import BaseCommand
from django.db import transaction
from django.utils import timezone

from quotes.locking import lock_stale_after
from quotes.models import Quote


class Command(BaseCommand):
    help = (
        "Clear edit locks older than QUOTE_LOCK_STALE_SECONDS. Stale locks are already "
        "ignored when checked; this only tidies the stored columns."
    )

    def add_arguments(self, parser):
        parser.add_argument("--dry-run", action="store_true", help="List the locks without clearing them")

    def handle(self, *args, **options):
        cutoff = timezone.now() - lock_stale_after()
        stale = Quote.objects.filter(locked_by__isnull=False, locked_at__lt=cutoff)

        for quote in stale.select_related("locked_by"):
            self.stdout.write(f"{quote.reference}: locked by {quote.locked_by} since {quote.locked_at:%Y-%m-%d %H:%M}")

        if options["dry_run"]:
            self.stdout.write(self.style.WARNING(f"Dry run: {stale.count()} stale lock(s) left in place."))
            return

        with transaction.atomic():
            released = stale.update(locked_by=None, locked_at=None)
        self.stdout.write(self.style.SUCCESS(f"Released {released} stale lock(s)."))
