from django.db import models
from django.utils import timezone
from django.utils.translation import gettext_lazy as _
from django_prometheus.models import ExportModelOperationsMixin

from core.models import OrderedByCreationModel


class LoanerDevice(ExportModelOperationsMixin("loaner_device"), OrderedByCreationModel):
    """
    Appareil du parc de prêt.
    ``status`` :
      - PRETE        <=> un prêt "En cours" le référence (maintenu par loans.services uniquement)
      - MAINTENANCE  : forçage opérateur, seulement depuis / vers DISPONIBLE
    """

    class Status(models.TextChoices):
        AVAILABLE = "Disponible", _("Disponible")
        LOANED = "Prêté", _("Prêté")
        MAINTENANCE = "En maintenance", _("En maintenance")

    type = models.CharField(max_length=120)
    brand = models.CharField(max_length=120, null=True, blank=True)
    model = models.CharField(max_length=120, null=True, blank=True)
    serial_number = models.CharField(max_length=120, unique=True, null=True, blank=True)

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.AVAILABLE, db_index=True)

    condition = models.CharField(max_length=64, null=True, blank=True)  # Neuf, Bon, Moyen, À réparer
    value = models.DecimalField(max_digits=10, decimal_places=2, default=0)
    purchase_date = models.DateField(null=True, blank=True)
    location = models.CharField(max_length=120, null=True, blank=True)

    included_accessories = models.JSONField(default=list, blank=True)  # ["Chargeur", "Housse", "Câble"]
    loan_terms = models.TextField(null=True, blank=True)
    notes = models.TextField(null=True, blank=True)

    class Meta(OrderedByCreationModel.Meta):
        verbose_name = _("Appareil de prêt")
        verbose_name_plural = _("Appareils de prêt")
        indexes = [
            models.Index(fields=["type", "brand"]),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(value__gte=0), name="loaner_device_value_ge_0"),
        ]

    def __str__(self):
        label = " ".join(p for p in (self.type, self.brand, self.model) if p)
        return f"{label} ({self.status})"


class LoanQuerySet(models.QuerySet):
    def open(self):
        return self.filter(status=Loan.Status.OPEN)

    # Échéance = date de retour prévue (jour entier) : en retard à partir du lendemain
    def late(self, today=None):
        today = today or timezone.localdate()
        return self.open().filter(expected_return_date__lt=today)

    def with_effective_status(self, today=None):
        """
        Annoter ``effective_status`` : "Retard" se calcule à la lecture
        (prêt en cours dont la date de retour prévue est dépassée), jamais stocké.
        """
        today = today or timezone.localdate()
        return self.annotate(
            effective_status=models.Case(
                models.When(
                    status=Loan.Status.OPEN,
                    expected_return_date__lt=today,
                    then=models.Value(Loan.LATE),
                ),
                default=models.F("status"),
                output_field=models.CharField(),
            )
        )

    def with_effective_status_equal(self, value, today=None):
        if value == Loan.LATE:
            return self.late(today)
        if value == Loan.Status.OPEN:
            today = today or timezone.localdate()
            return self.open().exclude(expected_return_date__lt=today)
        return self.filter(status=value)


class Loan(ExportModelOperationsMixin("loan"), OrderedByCreationModel):
    """
    Prêt d'un appareil du parc à un client (éventuellement pour une intervention).
    Au plus un prêt "En cours" par appareil : garanti par loans.services (mise à jour
    conditionnelle du statut de l'appareil) et par l'index unique partiel ci-dessous.
    """

    class Status(models.TextChoices):
        OPEN = "En cours", _("En cours")
        RETURNED = "Retourné", _("Retourné")

    # Statut dérivé à la lecture, jamais écrit en base
    LATE = "Retard"
    EFFECTIVE_STATUSES = (Status.OPEN.value, Status.RETURNED.value, LATE)

    loaner_device = models.ForeignKey(LoanerDevice, on_delete=models.CASCADE, related_name="loans")
    client = models.ForeignKey("customers.Client", on_delete=models.PROTECT, related_name="loans")
    intervention = models.ForeignKey(
        "workshop.Intervention", null=True, blank=True, on_delete=models.SET_NULL, related_name="loans"
    )

    loaned_at = models.DateTimeField(default=timezone.now, db_index=True)
    expected_return_date = models.DateField(null=True, blank=True, db_index=True)
    returned_at = models.DateTimeField(null=True, blank=True)

    status = models.CharField(max_length=16, choices=Status.choices, default=Status.OPEN, db_index=True)
    condition_at_loan = models.CharField(max_length=64, null=True, blank=True)
    condition_at_return = models.CharField(max_length=64, null=True, blank=True)
    notes = models.TextField(null=True, blank=True)

    objects = LoanQuerySet.as_manager()

    class Meta:
        verbose_name = _("Prêt")
        verbose_name_plural = _("Prêts")
        ordering = ("-loaned_at",)
        indexes = [
            models.Index(fields=["loaner_device", "status"]),
            models.Index(fields=["client", "loaned_at"]),
        ]
        constraints = [
            # Un seul prêt ouvert par appareil
            models.UniqueConstraint(
                fields=["loaner_device"],
                condition=models.Q(status="En cours"),
                name="uniq_open_loan_per_device",
            ),
            models.CheckConstraint(
                condition=(
                    models.Q(status="En cours", returned_at__isnull=True)
                    | models.Q(status="Retourné", returned_at__isnull=False)
                ),
                name="loan_status_matches_return",
            ),
        ]

    @property
    def is_open(self):
        return self.status == self.Status.OPEN

    def compute_effective_status(self, today=None):
        today = today or timezone.localdate()
        if self.is_open and self.expected_return_date and self.expected_return_date < today:
            return self.LATE
        return self.status

    def __str__(self):
        return f"Prêt {self.loaner_device_id} -> {self.client_id} ({self.status})"
