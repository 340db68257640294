from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from accounts.permissions import CanManagePricing

from .models import CommissionTier, ContainerMapping
from .serializers import CommissionTierSerializer, ContainerMappingSerializer
from .services.commission import load_tiers, validate_tiers


class ContainerMappingViewSet(viewsets.ModelViewSet):
    queryset = ContainerMapping.objects.all().order_by("series_code")
    serializer_class = ContainerMappingSerializer
    permission_classes = [CanManagePricing]


class CommissionTierViewSet(viewsets.ModelViewSet):
    queryset = CommissionTier.objects.all().order_by("min_margin")
    serializer_class = CommissionTierSerializer
    permission_classes = [CanManagePricing]

    @action(detail=False, methods=["get"])
    def check(self, request):
        """Problems with the effective tier table (gaps, overlaps, bad bounds)."""
        problems = validate_tiers(load_tiers())
        return Response({"ok": not problems, "problems": problems})
