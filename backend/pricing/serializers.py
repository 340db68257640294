from rest_framework import serializers

from .models import CommissionTier, ContainerMapping


class ContainerMappingSerializer(serializers.ModelSerializer):
    class Meta:
        model = ContainerMapping
        fields = [
            "id", "series_code", "category", "model", "qty_per_container",
            "container_type", "container_cost_eur", "notes", "updated_at",
        ]
        read_only_fields = ("updated_at",)

    def validate_qty_per_container(self, value: int) -> int:
        if value <= 0:
            raise serializers.ValidationError("qty_per_container must be at least 1.")
        return value

    def validate_series_code(self, value: str) -> str:
        normalized = (value or "").strip()
        if not normalized:
            raise serializers.ValidationError("series_code is required.")
        return normalized


class CommissionTierSerializer(serializers.ModelSerializer):
    class Meta:
        model = CommissionTier
        fields = ["id", "min_margin", "max_margin", "commission_rate"]

    def validate(self, attrs):
        lo = attrs.get("min_margin", getattr(self.instance, "min_margin", None))
        hi = attrs.get("max_margin", getattr(self.instance, "max_margin", None))
        if lo is not None and hi is not None and lo >= hi:
            raise serializers.ValidationError("min_margin must be below max_margin.")
        return attrs
