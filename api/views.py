from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.response import Response

from core.context import bind_actor
from customers import services as customers_services
from customers.models import Client
from workshop import services as workshop_services
from .permissions import StaffOrReadOnly
from .serializers import ClientSerializer, DeviceSerializer, InterventionSerializer


# ------------- Base Mixins -------------
class DefaultsMixin:
    filter_backends = (DjangoFilterBackend, SearchFilter, OrderingFilter)
    ordering_fields = "__all__"
    search_fields = ()
    permission_classes = [StaffOrReadOnly]
    http_method_names = ["get", "post", "put", "patch", "delete", "head", "options"]

    def initial(self, request, *args, **kwargs):
        super().initial(request, *args, **kwargs)
        # Le JWT est décodé par DRF, après ActorScopeMiddleware : on affine l'acteur ici
        if request.user and request.user.is_authenticated:
            bind_actor(request.user.get_username())

    def paginated(self, queryset, serializer_class=None):
        serializer_class = serializer_class or self.get_serializer_class()
        page = self.paginate_queryset(queryset)
        if page is not None:
            return self.get_paginated_response(serializer_class(page, many=True).data)
        return Response(serializer_class(queryset, many=True).data)


# ------------- Clients -------------
class ClientViewSet(DefaultsMixin, viewsets.ModelViewSet):
    queryset = Client.objects.all()
    serializer_class = ClientSerializer
    search_fields = ("last_name", "first_name", "phone", "email", "city")
    filterset_fields = ("city", "postal_code")
    ordering = ("-created_at",)

    def get_object(self):
        return customers_services.get_client(self.kwargs["pk"])

    def perform_destroy(self, instance):
        customers_services.delete_client(instance.pk)


class DeviceViewSet(DefaultsMixin, viewsets.GenericViewSet):
    """/clients/{client_pk}/devices : les appareils n'existent qu'à travers leur client."""
    serializer_class = DeviceSerializer
    search_fields = ("type", "brand", "model", "serial_number")
    ordering = ("created_at",)

    def get_queryset(self):
        return customers_services.list_devices(self.kwargs["client_pk"])

    def list(self, request, client_pk=None):
        return self.paginated(self.filter_queryset(self.get_queryset()))

    def create(self, request, client_pk=None):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        device = customers_services.add_device(client_pk, **serializer.validated_data)
        return Response(self.get_serializer(device).data, status=status.HTTP_201_CREATED)

    def retrieve(self, request, client_pk=None, pk=None):
        device = customers_services.get_device(client_pk, pk)
        return Response(self.get_serializer(device).data)

    def update(self, request, client_pk=None, pk=None, partial=False):
        serializer = self.get_serializer(data=request.data, partial=partial)
        serializer.is_valid(raise_exception=True)
        device = customers_services.update_device(client_pk, pk, **serializer.validated_data)
        return Response(self.get_serializer(device).data)

    def partial_update(self, request, client_pk=None, pk=None):
        return self.update(request, client_pk=client_pk, pk=pk, partial=True)

    def destroy(self, request, client_pk=None, pk=None):
        customers_services.delete_device(client_pk, pk)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=["get"], url_path="interventions")
    def interventions(self, request, client_pk=None, pk=None):
        qs = workshop_services.device_interventions(client_pk, pk)
        return self.paginated(qs, InterventionSerializer)
