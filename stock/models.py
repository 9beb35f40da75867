from django.db import models
from django.utils.translation import gettext_lazy as _
from django_prometheus.models import ExportModelOperationsMixin

from core.models import OrderedByCreationModel


class PartQuerySet(models.QuerySet):
    def active(self):
        return self.filter(active=True)

    def in_alert(self):
        # Alerte stock : quantité strictement sous le minimum configuré
        return self.active().filter(stock_quantity__lt=models.F("minimum_quantity"))


class Part(ExportModelOperationsMixin("part"), OrderedByCreationModel):
    reference = models.CharField(max_length=64, unique=True)
    designation = models.CharField(max_length=255)
    brand = models.CharField(max_length=120, null=True, blank=True)
    compatible_models = models.JSONField(default=list, blank=True)  # ["WW90T", "WF80F5E"]
    location = models.CharField(max_length=32, null=True, blank=True)  # A1-B2, Z2C3...

    stock_quantity = models.IntegerField(default=0)
    minimum_quantity = models.IntegerField(default=5)

    purchase_price = models.DecimalField(max_digits=10, decimal_places=2)
    sale_price = models.DecimalField(max_digits=10, decimal_places=2)
    supplier = models.CharField(max_length=160, null=True, blank=True)
    supplier_reference = models.CharField(max_length=64, null=True, blank=True)

    # Suppression "douce" : les lignes d'intervention continuent de pointer sur la pièce
    active = models.BooleanField(default=True, db_index=True)

    objects = PartQuerySet.as_manager()

    class Meta(OrderedByCreationModel.Meta):
        verbose_name = _("Pièce détachée")
        verbose_name_plural = _("Pièces détachées")
        indexes = [
            models.Index(fields=["designation"]),
            models.Index(fields=["brand"]),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(stock_quantity__gte=0), name="part_stock_ge_0"),
            models.CheckConstraint(condition=models.Q(minimum_quantity__gte=0), name="part_minimum_ge_0"),
            models.CheckConstraint(condition=models.Q(purchase_price__gte=0), name="part_purchase_price_ge_0"),
            models.CheckConstraint(condition=models.Q(sale_price__gte=0), name="part_sale_price_ge_0"),
        ]

    @property
    def in_alert(self):
        return self.stock_quantity < self.minimum_quantity

    def __str__(self):
        return f"{self.reference} - {self.designation}"
