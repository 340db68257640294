from rest_framework.routers import DefaultRouter

from .views import CommissionTierViewSet, ContainerMappingViewSet

router = DefaultRouter()
router.register(r'container-mappings', ContainerMappingViewSet, basename='container-mappings')
router.register(r'commission-tiers', CommissionTierViewSet, basename='commission-tiers')

urlpatterns = router.urls
