from django.contrib import admin
from django.utils.translation import gettext_lazy as _

from stock.models import Part


class AlertListFilter(admin.SimpleListFilter):
    title = _("Alerte stock")
    parameter_name = "alert"

    def lookups(self, request, model_admin):
        return [("1", _("Sous le minimum"))]

    def queryset(self, request, qs):
        if self.value() == "1":
            return qs.in_alert()
        return qs


@admin.register(Part)
class PartAdmin(admin.ModelAdmin):
    list_display = ("reference", "designation", "brand", "stock_quantity", "minimum_quantity", "sale_price", "active")
    list_filter = ("active", "brand", AlertListFilter)
    search_fields = ("reference", "designation", "supplier_reference")
    ordering = ("reference",)

    # Le stock se décrémente via les interventions ; la désactivation remplace la suppression
    actions = ["deactivate"]

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.action(description=_("Désactiver les pièces sélectionnées"))
    def deactivate(self, request, queryset):
        updated = queryset.update(active=False)
        self.message_user(request, _("%d pièces désactivées.") % updated)
