from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from api.filters import InterventionFilter
from api.serializers import (
    DepositSerializer, InterventionSerializer, InterventionWriteSerializer,
    PartUsageInputSerializer, PartUsageSerializer, StatusChangeSerializer,
)
from api.views import DefaultsMixin
from workshop import services


class InterventionViewSet(DefaultsMixin, viewsets.ModelViewSet):
    """
    Les écritures passent par workshop.services (numérotation, historique,
    stock, prêt) ; le sérialiseur modèle ne sert qu'à la lecture.
    """
    serializer_class = InterventionSerializer
    filterset_class = InterventionFilter
    search_fields = ("number", "client__last_name", "client__first_name", "client__phone", "description", "technician")
    ordering = ("-created_at",)

    def get_queryset(self):
        return services.interventions_queryset()

    def get_object(self):
        return services.get_intervention(self.kwargs["pk"])

    def create(self, request, *args, **kwargs):
        serializer = InterventionWriteSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        intervention = services.create_intervention(**serializer.validated_data)
        return Response(InterventionSerializer(intervention).data, status=status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        # PUT et PATCH : mise à jour partielle, le client d'une intervention ne change pas
        serializer = InterventionWriteSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        fields = dict(serializer.validated_data)
        fields.pop("client_id", None)
        intervention = services.update_intervention(kwargs["pk"], **fields)
        return Response(InterventionSerializer(intervention).data)

    def destroy(self, request, *args, **kwargs):
        services.delete_intervention(kwargs["pk"])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["post"], url_path="parts")
    def parts(self, request, pk=None):
        serializer = PartUsageInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        usage = services.record_part_usage(pk, **serializer.validated_data)
        return Response(
            {
                "usage": PartUsageSerializer(usage).data,
                "intervention": InterventionSerializer(services.get_intervention(pk)).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["get", "post"], url_path="deposit")
    def deposit(self, request, pk=None):
        if request.method == "GET":
            started = services.begin_workshop_deposit(pk)
            return Response(
                {
                    "intervention": InterventionSerializer(started["intervention"]).data,
                    "accessories": started["accessories"],
                }
            )

        serializer = DepositSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        intervention = services.complete_workshop_deposit(pk, **serializer.validated_data)
        return Response(InterventionSerializer(intervention).data)

    @action(detail=True, methods=["get"], url_path="history")
    def history(self, request, pk=None):
        return Response(StatusChangeSerializer(services.status_history(pk), many=True).data)
