from django.contrib import admin

from customers.models import Client, Device


class DeviceInline(admin.TabularInline):
    model = Device
    extra = 0
    fields = ("type", "brand", "model", "serial_number")
    show_change_link = True


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ("last_name", "first_name", "phone", "email", "city", "created_at")
    list_filter = ("city",)
    search_fields = ("last_name", "first_name", "phone", "email")
    inlines = [DeviceInline]


@admin.register(Device)
class DeviceAdmin(admin.ModelAdmin):
    list_display = ("type", "brand", "model", "serial_number", "client")
    list_filter = ("type", "brand")
    search_fields = ("serial_number", "model", "client__last_name")
    raw_id_fields = ("client",)
