from django.contrib import admin

from loans import services
from loans.models import Loan, LoanerDevice


class LoanInline(admin.TabularInline):
    model = Loan
    extra = 0
    fields = ("client", "loaned_at", "expected_return_date", "returned_at", "status")
    readonly_fields = fields
    show_change_link = True
    can_delete = False


@admin.register(LoanerDevice)
class LoanerDeviceAdmin(admin.ModelAdmin):
    list_display = ("type", "brand", "model", "serial_number", "status", "condition", "location")
    list_filter = ("status", "type")
    search_fields = ("serial_number", "model", "brand")
    # Le statut "Prêté" est maintenu par loans.services
    readonly_fields = ("status",)
    inlines = [LoanInline]

    def get_actions(self, request):
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.loans.open().exists():
            return False
        return super().has_delete_permission(request, obj)

    def delete_model(self, request, obj):
        services.delete_loaner_device(obj.pk)


@admin.register(Loan)
class LoanAdmin(admin.ModelAdmin):
    list_display = ("loaner_device", "client", "loaned_at", "expected_return_date", "returned_at", "status")
    list_filter = ("status",)
    search_fields = ("client__last_name", "loaner_device__serial_number")
    raw_id_fields = ("loaner_device", "client", "intervention")
    readonly_fields = ("loaner_device", "client", "intervention", "status", "returned_at", "condition_at_return")
    list_select_related = ("loaner_device", "client")

    # Ouverture et retour par l'API : statut de l'appareil tenu par loans.services
    def has_add_permission(self, request):
        return False

    def get_actions(self, request):
        actions = super().get_actions(request)
        actions.pop("delete_selected", None)
        return actions

    def has_delete_permission(self, request, obj=None):
        if obj is not None and obj.is_open:
            return False
        return super().has_delete_permission(request, obj)

    def delete_model(self, request, obj):
        services.delete_loan(obj.pk)
