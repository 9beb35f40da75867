from django.urls import include, path
from rest_framework.routers import SimpleRouter

from workshop.api.views import InterventionViewSet

router = SimpleRouter()

# Atelier
router.register(r"interventions", InterventionViewSet, basename="intervention")

urlpatterns = [
    path("", include(router.urls)),
]
