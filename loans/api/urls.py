from django.urls import include, path
from rest_framework.routers import SimpleRouter

from loans.views import LoanerDeviceViewSet, LoanViewSet

router = SimpleRouter()

# Parc de prêt & prêts
router.register(r"loaner-devices", LoanerDeviceViewSet, basename="loaner-device")
router.register(r"loans", LoanViewSet, basename="loan")

urlpatterns = [
    path("", include(router.urls)),
]
