"""
Registre des prêts et parc d'appareils de prêt.

Invariant central : un appareil a au plus un prêt "En cours", et son statut
vaut "Prêté" si et seulement si ce prêt existe. Le statut de l'appareil et la
ligne de prêt sont toujours écrits dans la même transaction ; l'ouverture passe
par une mise à jour conditionnelle ``status = 'Disponible'`` : de deux
ouvertures concurrentes sur le même appareil, une seule voit sa ligne modifiée.
"""
import logging

from django.db import IntegrityError, transaction
from django.utils import timezone

from core import exceptions as errors
from core.shortcuts import get_or_not_found, resolve_reference
from customers.models import Client
from loans.models import Loan, LoanerDevice
from workshop.models import Intervention

logger = logging.getLogger(__name__)

Status = LoanerDevice.Status

# Statuts que l'opérateur peut poser lui-même sur un appareil
OPERATOR_STATUSES = (Status.AVAILABLE, Status.MAINTENANCE)


def get_loaner_device(device_id) -> LoanerDevice:
    return get_or_not_found(LoanerDevice.objects, device_id, "Appareil de prêt")


def get_loan(loan_id) -> Loan:
    return get_or_not_found(
        Loan.objects.select_related("loaner_device", "client", "intervention"), loan_id, "Prêt"
    )


def available_devices():
    return LoanerDevice.objects.filter(status=Status.AVAILABLE).order_by("type", "brand")


def device_loans(device_id):
    device = get_loaner_device(device_id)
    return (
        device.loans.select_related("client", "intervention")
        .with_effective_status()
        .order_by("-loaned_at")
    )


@transaction.atomic
def open_loan(loaner_device_id, client_id, intervention_id=None, expected_return_date=None, notes=None) -> Loan:
    device = get_loaner_device(loaner_device_id)
    client = resolve_reference(Client.objects, client_id, "client")
    intervention = None
    if intervention_id:
        # Verrou : une suppression concurrente de l'intervention attend l'ouverture du prêt
        intervention = resolve_reference(
            Intervention.objects.select_for_update(), intervention_id, "intervention"
        )

    # Réservation atomique : seule une ligne encore "Disponible" passe à "Prêté"
    reserved = LoanerDevice.objects.filter(pk=device.pk, status=Status.AVAILABLE).update(
        status=Status.LOANED, updated_at=timezone.now()
    )
    if not reserved:
        device.refresh_from_db(fields=["status"])
        raise errors.DeviceUnavailableError(device.pk, device.status)
    device.status = Status.LOANED

    try:
        with transaction.atomic():
            loan = Loan.objects.create(
                loaner_device=device,
                client=client,
                intervention=intervention,
                expected_return_date=expected_return_date,
                condition_at_loan=device.condition,
                notes=notes,
            )
    except IntegrityError:
        # Index unique partiel : un autre prêt ouvert existe déjà pour cet appareil
        raise errors.DeviceUnavailableError(device.pk, Status.LOANED)

    logger.info(
        "loan %s opened: device %s -> client %s (intervention %s)",
        loan.pk,
        device.pk,
        client.pk,
        intervention.number if intervention else None,
    )
    return loan


@transaction.atomic
def close_loan(loan_id, condition_at_return=None, notes=None) -> Loan:
    loan = get_or_not_found(Loan.objects.select_for_update(), loan_id, "Prêt")
    if not loan.is_open:
        raise errors.AlreadyReturnedError(loan.pk)

    now = timezone.now()
    condition = condition_at_return or loan.condition_at_loan
    changes = {
        "status": Loan.Status.RETURNED,
        "returned_at": now,
        "condition_at_return": condition,
        "updated_at": now,
    }
    if notes:
        changes["notes"] = notes

    closed = Loan.objects.filter(pk=loan.pk, status=Loan.Status.OPEN).update(**changes)
    if not closed:
        raise errors.AlreadyReturnedError(loan.pk)

    device_changes = {"status": Status.AVAILABLE, "updated_at": now}
    if condition:
        device_changes["condition"] = condition
    LoanerDevice.objects.filter(pk=loan.loaner_device_id).update(**device_changes)

    logger.info("loan %s closed, device %s available again", loan.pk, loan.loaner_device_id)
    loan.refresh_from_db()
    return loan


def update_loan(loan_id, **fields) -> Loan:
    """Seules la date de retour prévue et les notes sont modifiables hors ouverture / retour."""
    loan = get_loan(loan_id)
    changed = []
    for name in ("expected_return_date", "notes"):
        if name in fields:
            setattr(loan, name, fields[name])
            changed.append(name)
    if changed:
        loan.save(update_fields=changed + ["updated_at"])
    return loan


@transaction.atomic
def delete_loan(loan_id) -> None:
    loan = get_or_not_found(Loan.objects.select_for_update(), loan_id, "Prêt")
    if loan.is_open:
        raise errors.ConflictError(
            "Impossible de supprimer un prêt en cours : enregistrez d'abord le retour.",
            loan=str(loan.pk),
        )
    loan.delete()


def create_loaner_device(**fields) -> LoanerDevice:
    status = fields.pop("status", None) or Status.AVAILABLE
    if status not in OPERATOR_STATUSES:
        raise errors.ValidationError(
            "Un appareil est créé 'Disponible' ou 'En maintenance'.", field="status"
        )
    return LoanerDevice.objects.create(status=status, **fields)


@transaction.atomic
def update_loaner_device(device_id, **fields) -> LoanerDevice:
    device = get_or_not_found(LoanerDevice.objects.select_for_update(), device_id, "Appareil de prêt")
    status = fields.pop("status", None)
    if status and status != device.status:
        _change_status(device, status)

    for name, value in fields.items():
        setattr(device, name, value)
    if fields:
        device.save(update_fields=list(fields) + ["updated_at"])
    return device


def _change_status(device, new_status):
    if new_status not in OPERATOR_STATUSES:
        raise errors.ValidationError(
            "Le statut 'Prêté' est posé uniquement par l'ouverture d'un prêt.", field="status"
        )
    changed = LoanerDevice.objects.filter(pk=device.pk, status__in=OPERATOR_STATUSES).update(
        status=new_status, updated_at=timezone.now()
    )
    if not changed:
        raise errors.ConflictError(
            "Appareil actuellement prêté : enregistrez le retour avant de changer son statut.",
            loaner_device=str(device.pk),
        )
    device.status = new_status
    logger.info("loaner device %s set to %s", device.pk, new_status)


@transaction.atomic
def delete_loaner_device(device_id) -> None:
    device = get_or_not_found(LoanerDevice.objects.select_for_update(), device_id, "Appareil de prêt")
    if device.loans.open().exists():
        raise errors.ConflictError(
            "Impossible de supprimer un appareil actuellement prêté.",
            loaner_device=str(device.pk),
        )
    device.delete()
    logger.info("loaner device %s deleted", device_id)
