from rest_framework import serializers

from customers.models import Client, Device
from loans.models import Loan, LoanerDevice
from stock.models import Part
from workshop.domain import DEPOSIT_ACCESSORIES
from workshop.models import Intervention, PartUsage, StatusChange


# --------- Clients ---------
class ClientSerializer(serializers.ModelSerializer):
    class Meta:
        model = Client
        fields = "__all__"


class DeviceSerializer(serializers.ModelSerializer):
    intervention_count = serializers.SerializerMethodField()

    class Meta:
        model = Device
        fields = "__all__"
        read_only_fields = ("client",)

    def get_intervention_count(self, obj):
        # Annoté par customers.services.list_devices, sinon compté
        count = getattr(obj, "intervention_count", None)
        return obj.interventions.count() if count is None else count


# --------- Stock ---------
class PartSerializer(serializers.ModelSerializer):
    in_alert = serializers.BooleanField(read_only=True)

    class Meta:
        model = Part
        fields = "__all__"
        extra_kwargs = {
            "stock_quantity": {"min_value": 0},
            "minimum_quantity": {"min_value": 0},
            "purchase_price": {"min_value": 0},
            "sale_price": {"min_value": 0},
        }

    def validate_compatible_models(self, value):
        if not isinstance(value, list):
            raise serializers.ValidationError("Liste de modèles attendue.")
        return [str(v) for v in value]


# --------- Interventions ---------
class PartUsageSerializer(serializers.ModelSerializer):
    part_reference = serializers.CharField(source="part.reference", read_only=True)
    part_designation = serializers.CharField(source="part.designation", read_only=True)
    amount = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)

    class Meta:
        model = PartUsage
        fields = (
            "id", "intervention", "part", "part_reference", "part_designation",
            "quantity", "unit_price", "amount", "used_at",
        )
        read_only_fields = fields


class StatusChangeSerializer(serializers.ModelSerializer):
    class Meta:
        model = StatusChange
        fields = "__all__"


class InterventionSerializer(serializers.ModelSerializer):
    """Lecture : appareil en variante étiquetée, coûts dérivés, pièces utilisées."""
    device = serializers.SerializerMethodField()
    client_name = serializers.StringRelatedField(source="client")
    labor_cost = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    parts_cost = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    total_cost = serializers.DecimalField(max_digits=12, decimal_places=2, read_only=True)
    warranty_until = serializers.DateTimeField(read_only=True)
    is_deposited = serializers.BooleanField(read_only=True)
    part_usages = PartUsageSerializer(many=True, read_only=True)

    class Meta:
        model = Intervention
        exclude = ("adhoc_device",)

    def get_device(self, obj):
        return {**obj.device_ref.as_dict(), **obj.device_snapshot}


class AdHocDeviceSerializer(serializers.Serializer):
    type = serializers.CharField(max_length=120)
    brand = serializers.CharField(max_length=120, required=False, allow_null=True, allow_blank=True)
    model = serializers.CharField(max_length=120, required=False, allow_null=True, allow_blank=True)
    serial_number = serializers.CharField(max_length=120, required=False, allow_null=True, allow_blank=True)


class InterventionWriteSerializer(serializers.Serializer):
    """Écriture : l'appareil est SOIT ``device_id`` SOIT ``adhoc_device``."""
    client_id = serializers.UUIDField()
    device_id = serializers.UUIDField(required=False, allow_null=True)
    adhoc_device = AdHocDeviceSerializer(required=False, allow_null=True)
    loaner_device_id = serializers.UUIDField(required=False, allow_null=True)

    description = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    status = serializers.ChoiceField(choices=Intervention.Status.choices, required=False)
    kind = serializers.ChoiceField(choices=Intervention.Kind.choices, required=False)
    technician = serializers.CharField(max_length=120, required=False, allow_null=True, allow_blank=True)
    planned_date = serializers.DateTimeField(required=False, allow_null=True)
    completed_at = serializers.DateTimeField(required=False, allow_null=True)
    diagnosis = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)
    labor_hours = serializers.DecimalField(max_digits=6, decimal_places=2, min_value=0, required=False)
    hourly_rate = serializers.DecimalField(max_digits=8, decimal_places=2, min_value=0, required=False)
    flat_fee = serializers.DecimalField(max_digits=10, decimal_places=2, min_value=0, required=False)


class PartUsageInputSerializer(serializers.Serializer):
    part_id = serializers.UUIDField()
    quantity = serializers.IntegerField(min_value=1)


class DepositSerializer(serializers.Serializer):
    # URL ou data URI (image encodée en base64 par le front)
    photos = serializers.ListField(child=serializers.CharField(trim_whitespace=False), required=False, default=list)
    accessories = serializers.ListField(
        child=serializers.ChoiceField(choices=DEPOSIT_ACCESSORIES), required=False, default=list
    )


# --------- Prêts ---------
class LoanerDeviceSerializer(serializers.ModelSerializer):
    class Meta:
        model = LoanerDevice
        fields = "__all__"
        extra_kwargs = {"value": {"min_value": 0}}


class LoanSerializer(serializers.ModelSerializer):
    effective_status = serializers.SerializerMethodField()
    loaner_device_label = serializers.StringRelatedField(source="loaner_device")
    client_name = serializers.StringRelatedField(source="client")
    intervention_number = serializers.CharField(source="intervention.number", read_only=True, default=None)

    class Meta:
        model = Loan
        fields = "__all__"
        read_only_fields = (
            "loaner_device", "client", "intervention", "loaned_at", "returned_at",
            "status", "condition_at_loan", "condition_at_return",
        )

    def get_effective_status(self, obj):
        # "Retard" est annoté par LoanQuerySet.with_effective_status, sinon recalculé
        return getattr(obj, "effective_status", None) or obj.compute_effective_status()


class LoanOpenSerializer(serializers.Serializer):
    loaner_device_id = serializers.UUIDField()
    client_id = serializers.UUIDField()
    intervention_id = serializers.UUIDField(required=False, allow_null=True)
    expected_return_date = serializers.DateField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)


class LoanReturnSerializer(serializers.Serializer):
    condition_at_return = serializers.CharField(max_length=64, required=False, allow_null=True, allow_blank=True)
    notes = serializers.CharField(required=False, allow_null=True, allow_blank=True)
