from django.urls import path, include
from rest_framework.routers import DefaultRouter

from .views import ClientViewSet, DeviceViewSet

router = DefaultRouter()
# Clients & appareils
router.register(r"clients", ClientViewSet, basename="client")
router.register(r"clients/(?P<client_pk>[^/.]+)/devices", DeviceViewSet, basename="client-device")


urlpatterns = [
    path("v1/", include(router.urls)),
    path("v1/", include("workshop.api.urls")),
    path("v1/", include("loans.api.urls")),
    path("v1/", include("stock.api.urls")),
]
