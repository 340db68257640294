# backend/pricing/management/commands/seed_pricing_defaults.py

from decimal import Decimal

from django.conf import settings
from django.core.management.base import BaseCommand
from django.db import transaction

from pricing.dataclasses import DEFAULT_CONTAINER_TYPE
from pricing.models import CommissionTier, ContainerMapping
from pricing.services.commission import default_tiers, validate_tiers

# (series_code, category, model, qty_per_container, container_cost_eur, notes)
CONTAINER_MAPPINGS = [
    ("1275", "E Counterbalance", "All", 4, Decimal("3300"), ""),
    ("386", "E Counterbalance", "All", 6, Decimal("3300"), "* Quantities based on standard spec * Attachments reduce qty"),
    ("5021", "IC Counterbalance", "All", 2, Decimal("3300"), ""),
]


def upsert_mapping(series_code, category, model, qty, cost_eur, notes):
    return ContainerMapping.objects.update_or_create(
        series_code=series_code,
        defaults={
            "category": category,
            "model": model,
            "qty_per_container": qty,
            "container_type": DEFAULT_CONTAINER_TYPE,
            "container_cost_eur": cost_eur,
            "notes": notes,
        },
    )


class Command(BaseCommand):
    help = "Seed commission tiers (from settings.DEFAULT_COMMISSION_TIERS) and baseline container mappings."

    def add_arguments(self, parser):
        parser.add_argument("--replace-tiers", action="store_true", help="Delete existing commission tiers first")

    @transaction.atomic
    def handle(self, *args, **opts):
        tiers = default_tiers()
        problems = validate_tiers(tiers)
        for problem in problems:
            self.stdout.write(self.style.WARNING(f"DEFAULT_COMMISSION_TIERS: {problem}"))

        if opts["replace_tiers"]:
            deleted, _ = CommissionTier.objects.all().delete()
            self.stdout.write(f"Deleted {deleted} commission tier(s)")

        created_tiers = 0
        for tier in tiers:
            _, created = CommissionTier.objects.get_or_create(
                min_margin=tier.min_margin,
                max_margin=tier.max_margin,
                defaults={"commission_rate": tier.commission_rate},
            )
            created_tiers += int(created)

        created_mappings = 0
        for row in CONTAINER_MAPPINGS:
            _, created = upsert_mapping(*row)
            created_mappings += int(created)

        self.stdout.write(self.style.SUCCESS(
            f"Seeded {created_tiers} commission tier(s) and {created_mappings} container mapping(s) "
            f"(settings: {settings.SETTINGS_MODULE})"
        ))
