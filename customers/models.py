from django.db import models
from django.utils.translation import gettext_lazy as _
from django_prometheus.models import ExportModelOperationsMixin

from core.models import OrderedByCreationModel, TimeStampedModel, UUIDModel


class Client(ExportModelOperationsMixin("client"), OrderedByCreationModel):
    last_name = models.CharField(max_length=120)
    first_name = models.CharField(max_length=120)
    phone = models.CharField(max_length=32)
    email = models.EmailField(null=True, blank=True)
    address = models.CharField(max_length=255, null=True, blank=True)
    postal_code = models.CharField(max_length=16, null=True, blank=True)
    city = models.CharField(max_length=120, null=True, blank=True)
    notes = models.TextField(null=True, blank=True)

    class Meta(OrderedByCreationModel.Meta):
        verbose_name = _("Client")
        verbose_name_plural = _("Clients")
        indexes = [
            models.Index(fields=["last_name", "first_name"]),
            models.Index(fields=["phone"]),
        ]

    def __str__(self):
        return f"{self.last_name} {self.first_name}".strip()


class Device(UUIDModel, TimeStampedModel):
    """
    Appareil appartenant à un client (électroménager, TV, ...).
    Créé / modifié / supprimé uniquement via son client.
    Une intervention qui le référence bloque sa suppression (FK PROTECT côté Intervention).
    """
    client = models.ForeignKey(Client, on_delete=models.CASCADE, related_name="devices")
    type = models.CharField(max_length=120)
    brand = models.CharField(max_length=120, null=True, blank=True)
    model = models.CharField(max_length=120, null=True, blank=True)
    serial_number = models.CharField(max_length=120, null=True, blank=True)

    class Meta:
        verbose_name = _("Appareil client")
        verbose_name_plural = _("Appareils clients")
        ordering = ("created_at",)
        indexes = [
            models.Index(fields=["client", "created_at"]),
            models.Index(fields=["serial_number"]),
        ]

    def snapshot(self):
        return {
            "type": self.type,
            "brand": self.brand,
            "model": self.model,
            "serial_number": self.serial_number,
        }

    def __str__(self):
        label = " ".join(p for p in (self.type, self.brand, self.model) if p)
        return f"{label} [{self.serial_number}]" if self.serial_number else label
