from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from api.filters import PartFilter
from api.serializers import PartSerializer
from api.views import DefaultsMixin
from stock import services
from stock.models import Part


# ------------- Stock -------------
class PartViewSet(DefaultsMixin, viewsets.ModelViewSet):
    serializer_class = PartSerializer
    filterset_class = PartFilter
    search_fields = ("reference", "designation", "brand", "supplier", "supplier_reference")
    ordering = ("reference",)

    def get_queryset(self):
        qs = Part.objects.all()
        # Pièces désactivées masquées de la liste, sauf filtre explicite ?active=
        if self.action == "list" and "active" not in self.request.query_params:
            qs = qs.active()
        return qs

    def get_object(self):
        return services.get_part(self.kwargs["pk"])

    def perform_destroy(self, instance):
        services.deactivate(instance.pk)

    @action(detail=False, methods=["get"], url_path="alerts")
    def alerts(self, request):
        qs = services.alerts()
        return Response({"count": qs.count(), "results": self.get_serializer(qs, many=True).data})
