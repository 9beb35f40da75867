import django_filters as df
from django.db.models import F

from loans.models import Loan, LoanerDevice
from stock.models import Part
from workshop.models import Intervention


class InterventionFilter(df.FilterSet):
    created_after = df.IsoDateTimeFilter(field_name="created_at", lookup_expr="gte")
    created_before = df.IsoDateTimeFilter(field_name="created_at", lookup_expr="lte")
    planned_after = df.IsoDateTimeFilter(field_name="planned_date", lookup_expr="gte")
    planned_before = df.IsoDateTimeFilter(field_name="planned_date", lookup_expr="lte")
    status = df.ChoiceFilter(choices=Intervention.Status.choices)
    kind = df.ChoiceFilter(choices=Intervention.Kind.choices)
    technician = df.CharFilter(lookup_expr="iexact")
    client = df.UUIDFilter(field_name="client__id")
    device = df.UUIDFilter(field_name="device__id")
    deposited = df.BooleanFilter(field_name="deposited_at", lookup_expr="isnull", exclude=True)

    class Meta:
        model = Intervention
        fields = ["status", "kind", "technician", "client", "device"]


class LoanFilter(df.FilterSet):
    # "Retard" n'existe pas en base : filtré via LoanQuerySet
    status = df.ChoiceFilter(
        choices=[(s, s) for s in Loan.EFFECTIVE_STATUSES], method="filter_status"
    )
    loaned_after = df.IsoDateTimeFilter(field_name="loaned_at", lookup_expr="gte")
    loaned_before = df.IsoDateTimeFilter(field_name="loaned_at", lookup_expr="lte")
    client = df.UUIDFilter(field_name="client__id")
    loaner_device = df.UUIDFilter(field_name="loaner_device__id")
    intervention = df.UUIDFilter(field_name="intervention__id")

    class Meta:
        model = Loan
        fields = ["client", "loaner_device", "intervention"]

    def filter_status(self, queryset, name, value):
        return queryset.with_effective_status_equal(value)


class LoanerDeviceFilter(df.FilterSet):
    status = df.ChoiceFilter(choices=LoanerDevice.Status.choices)
    type = df.CharFilter(lookup_expr="iexact")
    brand = df.CharFilter(lookup_expr="iexact")

    class Meta:
        model = LoanerDevice
        fields = ["status", "type", "brand"]


class PartFilter(df.FilterSet):
    brand = df.CharFilter(lookup_expr="iexact")
    supplier = df.CharFilter(lookup_expr="iexact")
    location = df.CharFilter(lookup_expr="iexact")
    active = df.BooleanFilter()
    alert = df.BooleanFilter(method="filter_alert")

    class Meta:
        model = Part
        fields = ["brand", "supplier", "location", "active"]

    def filter_alert(self, queryset, name, value):
        alerting = queryset.filter(stock_quantity__lt=F("minimum_quantity"))
        return alerting if value else queryset.exclude(pk__in=alerting.values("pk"))
