from decimal import Decimal

from django.conf import settings
from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from django_prometheus.models import ExportModelOperationsMixin

from core.models import OrderedByCreationModel, UUIDModel
from .domain import AdHocDevice, RegisteredDevice, add_months


def default_hourly_rate():
    return Decimal(str(settings.ATELIER_HOURLY_RATE))


class InterventionCounter(models.Model):
    """
    Compteur annuel des numéros d'intervention (INT-2025-0001, ...).
    La ligne de l'année est verrouillée (SELECT ... FOR UPDATE) le temps de
    l'allocation : pas de "count + 1", pas de doublon sous concurrence.
    """
    year = models.PositiveSmallIntegerField(unique=True)
    last_value = models.PositiveIntegerField(default=0)

    class Meta:
        verbose_name = _("Compteur d'interventions")
        verbose_name_plural = _("Compteurs d'interventions")

    @classmethod
    def allocate(cls, year):
        # Appelant : dans transaction.atomic()
        counter, _created = cls.objects.select_for_update().get_or_create(year=year)
        counter.last_value += 1
        counter.save(update_fields=["last_value"])
        return f"INT-{year}-{counter.last_value:04d}"


class Intervention(ExportModelOperationsMixin("intervention"), OrderedByCreationModel):
    """
    Demande de réparation, du premier appel à la facturation.
    L'appareil est SOIT un appareil de la fiche client (``device``), SOIT un
    appareil saisi à la volée (``adhoc_device``) : jamais les deux.
    Les coûts sont dérivés (main d'oeuvre, pièces, forfait), jamais stockés.
    """

    class Status(models.TextChoices):
        REQUESTED = "Demande", _("Demande")
        PLANNED = "Planifié", _("Planifié")
        IN_PROGRESS = "En cours", _("En cours")
        DIAGNOSIS = "Diagnostic", _("Diagnostic")
        REPAIR = "Réparation", _("Réparation")
        DONE = "Terminé", _("Terminé")
        INVOICED = "Facturé", _("Facturé")

    class Kind(models.TextChoices):
        WORKSHOP = "Atelier", _("Atelier")
        HOME = "Domicile", _("Domicile")

    # Statuts qui datent la réalisation (et ouvrent la garantie)
    COMPLETION_STATUSES = (Status.DONE, Status.INVOICED)

    number = models.CharField(max_length=20, unique=True, editable=False)

    client = models.ForeignKey("customers.Client", on_delete=models.PROTECT, related_name="interventions")
    device = models.ForeignKey(
        "customers.Device", null=True, blank=True, on_delete=models.PROTECT, related_name="interventions"
    )
    adhoc_device = models.JSONField(null=True, blank=True)  # {"type", "brand", "model", "serial_number"}
    loaner_device = models.ForeignKey(
        "loans.LoanerDevice", null=True, blank=True, on_delete=models.SET_NULL, related_name="interventions"
    )

    description = models.TextField(null=True, blank=True)
    status = models.CharField(max_length=16, choices=Status.choices, default=Status.REQUESTED, db_index=True)
    kind = models.CharField(max_length=16, choices=Kind.choices, default=Kind.WORKSHOP)
    technician = models.CharField(max_length=120, null=True, blank=True, db_index=True)

    planned_date = models.DateTimeField(null=True, blank=True, db_index=True)
    completed_at = models.DateTimeField(null=True, blank=True)

    diagnosis = models.TextField(null=True, blank=True)
    notes = models.TextField(null=True, blank=True)

    labor_hours = models.DecimalField(max_digits=6, decimal_places=2, default=0)
    hourly_rate = models.DecimalField(max_digits=8, decimal_places=2, default=default_hourly_rate)
    flat_fee = models.DecimalField(max_digits=10, decimal_places=2, default=0)

    # Dépôt atelier : écrit en une seule mise à jour par workshop.services.complete_workshop_deposit
    deposit_photos = models.JSONField(default=list, blank=True)
    deposit_accessories = models.JSONField(default=list, blank=True)
    deposited_at = models.DateTimeField(null=True, blank=True)
    deposit_document_url = models.CharField(max_length=500, null=True, blank=True)
    deposit_qr_code_url = models.CharField(max_length=500, null=True, blank=True)

    class Meta(OrderedByCreationModel.Meta):
        verbose_name = _("Intervention")
        verbose_name_plural = _("Interventions")
        indexes = [
            models.Index(fields=["status", "created_at"]),
            models.Index(fields=["client", "created_at"]),
            models.Index(fields=["technician", "planned_date"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    models.Q(device__isnull=False, adhoc_device__isnull=True)
                    | models.Q(device__isnull=True, adhoc_device__isnull=False)
                ),
                name="intervention_registered_xor_adhoc_device",
            ),
            models.CheckConstraint(condition=models.Q(labor_hours__gte=0), name="intervention_labor_hours_ge_0"),
            models.CheckConstraint(condition=models.Q(hourly_rate__gte=0), name="intervention_hourly_rate_ge_0"),
            models.CheckConstraint(condition=models.Q(flat_fee__gte=0), name="intervention_flat_fee_ge_0"),
        ]

    def __str__(self):
        return self.number or "INT-?"

    @property
    def device_ref(self):
        if self.device_id:
            return RegisteredDevice(id=self.device_id)
        return AdHocDevice.from_dict(self.adhoc_device or {})

    @property
    def device_snapshot(self):
        """Type / marque / modèle / n° de série, quelle que soit la variante."""
        if self.device_id:
            return self.device.snapshot()
        return dict(self.adhoc_device or {})

    @property
    def is_deposited(self):
        return self.deposited_at is not None

    # --- Coûts dérivés ---
    @property
    def labor_cost(self):
        return (self.labor_hours or Decimal("0")) * (self.hourly_rate or Decimal("0"))

    @property
    def parts_cost(self):
        return sum((usage.amount for usage in self.part_usages.all()), Decimal("0"))

    @property
    def total_cost(self):
        return (self.flat_fee or Decimal("0")) + self.labor_cost + self.parts_cost

    @property
    def warranty_until(self):
        if not self.completed_at:
            return None
        return add_months(self.completed_at, settings.ATELIER_WARRANTY_MONTHS)


class PartUsage(UUIDModel):
    """Pièce consommée sur une intervention, au prix de vente du jour de l'utilisation."""
    intervention = models.ForeignKey(Intervention, on_delete=models.CASCADE, related_name="part_usages")
    part = models.ForeignKey("stock.Part", on_delete=models.PROTECT, related_name="usages")
    quantity = models.PositiveIntegerField()
    unit_price = models.DecimalField(max_digits=10, decimal_places=2)
    used_at = models.DateTimeField(default=timezone.now)

    class Meta:
        verbose_name = _("Pièce utilisée")
        verbose_name_plural = _("Pièces utilisées")
        ordering = ("used_at",)
        constraints = [
            models.CheckConstraint(condition=models.Q(quantity__gt=0), name="partusage_qty_gt_0"),
            models.CheckConstraint(condition=models.Q(unit_price__gte=0), name="partusage_unit_price_ge_0"),
        ]

    @property
    def amount(self):
        return self.quantity * self.unit_price


class StatusChange(UUIDModel):
    """
    Trace du cycle de l'intervention : chaque changement de statut,
    avec l'acteur de la requête. Sert d'historique sur la fiche.
    """
    intervention = models.ForeignKey(Intervention, on_delete=models.CASCADE, related_name="status_changes")
    from_status = models.CharField(max_length=16, choices=Intervention.Status.choices, null=True, blank=True)
    to_status = models.CharField(max_length=16, choices=Intervention.Status.choices)
    changed_at = models.DateTimeField(default=timezone.now, db_index=True)
    actor = models.CharField(max_length=150, null=True, blank=True)

    class Meta:
        verbose_name = _("Changement de statut")
        verbose_name_plural = _("Changements de statut")
        ordering = ("changed_at",)
        indexes = [models.Index(fields=["intervention", "changed_at"])]
