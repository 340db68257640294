from django.db import models

from pricing.dataclasses import DEFAULT_CONTAINER_TYPE, CommissionTierData, ContainerMappingData


class ContainerMapping(models.Model):
    id = models.BigAutoField(primary_key=True)
    # Short family code, e.g. "1275"; price-list codes such as "12750000000" match by prefix
    series_code = models.CharField(max_length=32, unique=True)
    category = models.TextField()
    model = models.TextField(blank=True, default="")
    qty_per_container = models.PositiveIntegerField()
    container_type = models.CharField(max_length=32, default=DEFAULT_CONTAINER_TYPE)
    container_cost_eur = models.DecimalField(max_digits=12, decimal_places=2)
    notes = models.TextField(blank=True, default="")
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.series_code} - {self.category}"

    def as_data(self) -> ContainerMappingData:
        return ContainerMappingData(
            series_code=self.series_code,
            category=self.category,
            model=self.model,
            qty_per_container=self.qty_per_container,
            container_type=self.container_type,
            container_cost_eur=self.container_cost_eur,
            notes=self.notes,
        )

    class Meta:
        db_table = 'container_mappings'
        ordering = ['series_code']


class CommissionTier(models.Model):
    id = models.BigAutoField(primary_key=True)
    min_margin = models.DecimalField(max_digits=6, decimal_places=2, help_text="Inclusive lower bound, % margin")
    max_margin = models.DecimalField(max_digits=6, decimal_places=2, help_text="Exclusive upper bound, % margin")
    commission_rate = models.DecimalField(max_digits=5, decimal_places=2, help_text="% of total sales")

    def __str__(self):
        return f"{self.min_margin}% - {self.max_margin}% margin: {self.commission_rate}%"

    def as_data(self) -> CommissionTierData:
        return CommissionTierData(
            min_margin=self.min_margin,
            max_margin=self.max_margin,
            commission_rate=self.commission_rate,
        )

    class Meta:
        db_table = 'commission_tiers'
        ordering = ['min_margin']
        unique_together = (('min_margin', 'max_margin'),)
