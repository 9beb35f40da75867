from django.urls import include, path
from rest_framework.routers import SimpleRouter

from stock.views import PartViewSet

router = SimpleRouter()

# Stock pièces détachées
router.register(r"parts", PartViewSet, basename="part")

urlpatterns = [
    path("", include(router.urls)),
]
