from django.contrib import admin, messages

from pricing.models import CommissionTier, ContainerMapping
from pricing.services.commission import validate_tiers


@admin.register(ContainerMapping)
class ContainerMappingAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "series_code",
        "category",
        "model",
        "qty_per_container",
        "container_type",
        "container_cost_eur",
    )
    list_filter = ("container_type", "category")
    search_fields = ("series_code", "category", "model")


@admin.register(CommissionTier)
class CommissionTierAdmin(admin.ModelAdmin):
    list_display = ("id", "min_margin", "max_margin", "commission_rate")
    actions = ["validate_tier_table"]

    def validate_tier_table(self, request, queryset):
        problems = validate_tiers([t.as_data() for t in CommissionTier.objects.all()])
        if not problems:
            messages.info(request, "Commission tiers are contiguous and within range.")
        for problem in problems:
            messages.warning(request, problem)

    validate_tier_table.short_description = "Validate the commission tier table"
