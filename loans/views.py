from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from api.filters import LoanFilter, LoanerDeviceFilter
from api.serializers import LoanerDeviceSerializer, LoanOpenSerializer, LoanReturnSerializer, LoanSerializer
from api.views import DefaultsMixin
from loans import services
from loans.models import Loan, LoanerDevice


# ------------- Parc de prêt -------------
class LoanerDeviceViewSet(DefaultsMixin, viewsets.ModelViewSet):
    queryset = LoanerDevice.objects.all()
    serializer_class = LoanerDeviceSerializer
    filterset_class = LoanerDeviceFilter
    search_fields = ("type", "brand", "model", "serial_number", "location")
    ordering = ("type", "brand")

    def get_object(self):
        return services.get_loaner_device(self.kwargs["pk"])

    def perform_create(self, serializer):
        serializer.instance = services.create_loaner_device(**serializer.validated_data)

    def perform_update(self, serializer):
        serializer.instance = services.update_loaner_device(serializer.instance.pk, **serializer.validated_data)

    def perform_destroy(self, instance):
        services.delete_loaner_device(instance.pk)

    @action(detail=False, methods=["get"], url_path="available")
    def available(self, request):
        return Response(self.get_serializer(services.available_devices(), many=True).data)

    @action(detail=True, methods=["get"], url_path="loans")
    def loans(self, request, pk=None):
        return Response(LoanSerializer(services.device_loans(pk), many=True).data)


# ------------- Prêts -------------
class LoanViewSet(DefaultsMixin, viewsets.ModelViewSet):
    serializer_class = LoanSerializer
    filterset_class = LoanFilter
    search_fields = ("client__last_name", "client__first_name", "loaner_device__type", "loaner_device__serial_number")
    ordering = ("-loaned_at",)

    def get_queryset(self):
        # Annotation calculée à chaque requête : "Retard" dépend de la date du jour
        return Loan.objects.select_related("loaner_device", "client", "intervention").with_effective_status()

    def get_object(self):
        return services.get_loan(self.kwargs["pk"])

    def create(self, request, *args, **kwargs):
        serializer = LoanOpenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        loan = services.open_loan(**serializer.validated_data)
        return Response(LoanSerializer(services.get_loan(loan.pk)).data, status=status.HTTP_201_CREATED)

    def perform_update(self, serializer):
        serializer.instance = services.update_loan(serializer.instance.pk, **serializer.validated_data)

    def perform_destroy(self, instance):
        services.delete_loan(instance.pk)

    @action(detail=False, methods=["get"], url_path="active")
    def active(self, request):
        return self.paginated(self.filter_queryset(self.get_queryset().open()))

    @action(detail=False, methods=["get"], url_path="late")
    def late(self, request):
        return self.paginated(self.filter_queryset(self.get_queryset().late()))

    @action(detail=True, methods=["post"], url_path="return")
    def return_loan(self, request, pk=None):
        serializer = LoanReturnSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        loan = services.close_loan(pk, **serializer.validated_data)
        return Response(LoanSerializer(services.get_loan(loan.pk)).data)
