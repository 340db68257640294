from django.contrib import admin
from django.urls import include, path

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include('accounts.urls')),
    path('api/', include('quotes.urls')),
    path('api/pricing/', include('pricing.urls')),
]
