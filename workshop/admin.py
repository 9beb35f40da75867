from django.contrib import admin

from workshop import services
from workshop.models import Intervention, InterventionCounter, PartUsage, StatusChange


class PartUsageInline(admin.TabularInline):
    model = PartUsage
    extra = 0
    fields = ("part", "quantity", "unit_price", "used_at")
    readonly_fields = fields
    can_delete = False


class StatusChangeInline(admin.TabularInline):
    model = StatusChange
    extra = 0
    fields = ("from_status", "to_status", "changed_at", "actor")
    readonly_fields = fields
    can_delete = False


@admin.register(Intervention)
class InterventionAdmin(admin.ModelAdmin):
    list_display = ("number", "client", "status", "kind", "technician", "planned_date", "deposited_at")
    list_filter = ("status", "kind", "technician")
    search_fields = ("number", "client__last_name", "client__phone", "description")
    raw_id_fields = ("client", "device", "loaner_device")
    readonly_fields = (
        "number", "status", "loaner_device", "deposited_at", "deposit_document_url", "deposit_qr_code_url",
    )
    list_select_related = ("client",)
    inlines = [PartUsageInline, StatusChangeInline]

    # Création par l'API uniquement : numérotation et historique dans workshop.services
    def has_add_permission(self, request):
        return False

    def get_actions(self, request):
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions

    # Suppression refusée tant qu'un prêt en cours référence l'intervention
    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.loans.open().exists():
            return False
        return super().has_delete_permission(request, obj)

    def delete_model(self, request, obj):
        services.delete_intervention(obj.pk)


@admin.register(InterventionCounter)
class InterventionCounterAdmin(admin.ModelAdmin):
    list_display = ("year", "last_value")
    readonly_fields = ("year", "last_value")
