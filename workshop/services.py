"""
Workflow des interventions.

Orchestration : chaque opération est une transaction qui lit / écrit
clients, appareils de prêt et stock de façon cohérente.

  create_intervention        -> statut "Demande", numéro INT-<année>-<NNNN>
  update_intervention        -> mise à jour partielle + historique de statut
  record_part_usage          -> sortie de stock conditionnelle + ligne de pièce
  delete_intervention        -> refusée si un prêt ouvert la référence
  begin_workshop_deposit     -> contrôle d'entrée du dépôt atelier (étapes 1-3 côté front)
  complete_workshop_deposit  -> étape 4 : documents puis écriture unique du dépôt

Les transitions de statut sont libres entre statuts connus (pipeline indicatif).
Passer à "Facturé" ne génère pas la facture : c'est le rôle du service de facturation.
"""
import logging

from django.db import transaction
from django.db.models import Prefetch
from django.utils import timezone

from core import exceptions as errors
from core.context import get_actor
from core.shortcuts import get_or_not_found, resolve_reference
from customers.models import Client, Device
from loans.models import LoanerDevice
from stock import services as stock_services
from .documents import get_document_generator
from .domain import DEPOSIT_ACCESSORIES
from .models import Intervention, InterventionCounter, PartUsage, StatusChange

logger = logging.getLogger(__name__)

Status = Intervention.Status

UPDATABLE_FIELDS = (
    "description",
    "kind",
    "technician",
    "planned_date",
    "completed_at",
    "diagnosis",
    "notes",
    "labor_hours",
    "hourly_rate",
    "flat_fee",
)
ADHOC_DEVICE_FIELDS = ("type", "brand", "model", "serial_number")


def interventions_queryset():
    return Intervention.objects.select_related("client", "device", "loaner_device").prefetch_related(
        Prefetch("part_usages", queryset=PartUsage.objects.select_related("part"))
    )


def get_intervention(intervention_id) -> Intervention:
    return get_or_not_found(interventions_queryset(), intervention_id, "Intervention")


def device_interventions(client_id, device_id):
    device = get_or_not_found(Device.objects, device_id, "Appareil", client_id=client_id)
    return interventions_queryset().filter(device=device)


def status_history(intervention_id):
    intervention = get_or_not_found(Intervention.objects, intervention_id, "Intervention")
    return intervention.status_changes.all()


@transaction.atomic
def create_intervention(client_id, device_id=None, adhoc_device=None, loaner_device_id=None, **fields):
    client = resolve_reference(Client.objects, client_id, "client")
    device, adhoc = _resolve_device(client, device_id, adhoc_device)
    loaner = _resolve_loaner(loaner_device_id) if loaner_device_id else None

    intervention = Intervention.objects.create(
        number=InterventionCounter.allocate(timezone.localdate().year),
        client=client,
        device=device,
        adhoc_device=adhoc,
        loaner_device=loaner,
        status=Status.REQUESTED,
        **_pick(fields),
    )
    _record_status(intervention, None, Status.REQUESTED)
    logger.info("intervention %s created for client %s", intervention.number, client.pk)
    return get_intervention(intervention.pk)


@transaction.atomic
def update_intervention(intervention_id, **fields):
    intervention = get_or_not_found(Intervention.objects.select_for_update(), intervention_id, "Intervention")

    if "device_id" in fields or "adhoc_device" in fields:
        intervention.device, intervention.adhoc_device = _resolve_device(
            intervention.client, fields.pop("device_id", None), fields.pop("adhoc_device", None)
        )

    if "loaner_device_id" in fields:
        loaner_device_id = fields.pop("loaner_device_id")
        if not loaner_device_id:
            intervention.loaner_device = None
        elif str(loaner_device_id) != str(intervention.loaner_device_id):
            intervention.loaner_device = _resolve_loaner(loaner_device_id)

    new_status = fields.pop("status", None)
    for name, value in _pick(fields).items():
        setattr(intervention, name, value)

    if new_status and new_status != intervention.status:
        _transition(intervention, new_status)

    intervention.save()
    return get_intervention(intervention.pk)


@transaction.atomic
def record_part_usage(intervention_id, part_id, quantity) -> PartUsage:
    intervention = get_or_not_found(Intervention.objects.select_for_update(), intervention_id, "Intervention")
    # Décrément conditionnel : InsufficientStockError avant toute écriture
    part = stock_services.consume(part_id, quantity)
    usage = PartUsage.objects.create(
        intervention=intervention,
        part=part,
        quantity=int(quantity),
        unit_price=part.sale_price,
    )
    intervention.save(update_fields=["updated_at"])
    logger.info(
        "intervention %s: %s x %s used (stock left %s)",
        intervention.number,
        usage.quantity,
        part.reference,
        part.stock_quantity,
    )
    return usage


@transaction.atomic
def delete_intervention(intervention_id) -> None:
    intervention = get_or_not_found(Intervention.objects.select_for_update(), intervention_id, "Intervention")
    open_loans = intervention.loans.open()
    if open_loans.exists():
        raise errors.ConflictError(
            "Impossible de supprimer une intervention liée à un prêt en cours.",
            intervention=intervention.number,
            loans=[str(pk) for pk in open_loans.values_list("pk", flat=True)],
        )
    intervention.delete()
    logger.info("intervention %s deleted", intervention.number)


def begin_workshop_deposit(intervention_id):
    """Vérifie que le dépôt atelier peut commencer et renvoie le catalogue d'accessoires."""
    intervention = get_intervention(intervention_id)
    _check_deposit_allowed(intervention)
    return {"intervention": intervention, "accessories": list(DEPOSIT_ACCESSORIES)}


def complete_workshop_deposit(intervention_id, photos=None, accessories=None, generator=None):
    """
    Étape 4 du dépôt atelier.

    Les documents sont générés AVANT toute écriture : si le générateur échoue,
    l'intervention reste intacte. Photos, accessoires, horodatage et URLs sont
    ensuite écrits par une seule requête conditionnelle (``deposited_at IS NULL``),
    ce qui empêche aussi un double dépôt concurrent.
    """
    intervention = get_intervention(intervention_id)
    _check_deposit_allowed(intervention)

    photos = [str(photo) for photo in (photos or [])]
    accessories = _validate_accessories(accessories or [])
    deposited_at = timezone.now()

    generator = generator or get_document_generator()
    documents = generator.generate_deposit(
        {
            "intervention": str(intervention.pk),
            "number": intervention.number,
            "client": {
                "id": str(intervention.client_id),
                "last_name": intervention.client.last_name,
                "first_name": intervention.client.first_name,
                "phone": intervention.client.phone,
            },
            "device": intervention.device_snapshot,
            "description": intervention.description,
            "photos": photos,
            "accessories": accessories,
            "deposited_at": deposited_at,
        }
    )

    with transaction.atomic():
        written = Intervention.objects.filter(
            pk=intervention.pk,
            deposited_at__isnull=True,
            status=Status.PLANNED,
            kind=Intervention.Kind.WORKSHOP,
        ).update(
            deposit_photos=photos,
            deposit_accessories=accessories,
            deposited_at=deposited_at,
            deposit_document_url=documents.document_url,
            deposit_qr_code_url=documents.qr_code_url,
            updated_at=deposited_at,
        )
        if not written:
            raise errors.ConflictError(
                "Le dépôt atelier a déjà été enregistré pour cette intervention.",
                intervention=intervention.number,
            )

    logger.info(
        "intervention %s deposited (%s photos, %s accessories)",
        intervention.number,
        len(photos),
        len(accessories),
    )
    return get_intervention(intervention.pk)


# --- helpers ---
def _pick(fields):
    return {name: value for name, value in fields.items() if name in UPDATABLE_FIELDS}


def _resolve_device(client, device_id, adhoc_device):
    """Variante exclusive : appareil enregistré du client OU appareil saisi à la volée."""
    if device_id and adhoc_device:
        raise errors.ValidationError(
            "Indiquez soit un appareil enregistré, soit un appareil saisi, pas les deux.", field="device"
        )
    if device_id:
        device = resolve_reference(Device.objects, device_id, "device", client=client)
        return device, None
    if adhoc_device:
        if not adhoc_device.get("type"):
            raise errors.ValidationError("Le type de l'appareil est obligatoire.", field="adhoc_device.type")
        return None, {name: adhoc_device.get(name) for name in ADHOC_DEVICE_FIELDS}
    raise errors.ValidationError("Un appareil (enregistré ou saisi) est obligatoire.", field="device")


def _resolve_loaner(loaner_device_id):
    loaner = resolve_reference(LoanerDevice.objects, loaner_device_id, "loaner_device")
    if loaner.status != LoanerDevice.Status.AVAILABLE:
        raise errors.DeviceUnavailableError(loaner.pk, loaner.status)
    return loaner


def _transition(intervention, new_status):
    if new_status not in Status.values:
        raise errors.ValidationError(f"Statut inconnu : {new_status}", field="status")
    previous = intervention.status
    intervention.status = new_status
    if new_status in Intervention.COMPLETION_STATUSES and intervention.completed_at is None:
        intervention.completed_at = timezone.now()
    _record_status(intervention, previous, new_status)
    logger.info("intervention %s: %s -> %s", intervention.number, previous, new_status)


def _record_status(intervention, from_status, to_status):
    StatusChange.objects.create(
        intervention=intervention,
        from_status=from_status,
        to_status=to_status,
        actor=get_actor(),
    )


def _check_deposit_allowed(intervention):
    if intervention.kind != Intervention.Kind.WORKSHOP:
        raise errors.ConflictError(
            "Le dépôt atelier ne concerne que les interventions en atelier.", intervention=intervention.number
        )
    if intervention.is_deposited:
        raise errors.ConflictError(
            "Le dépôt atelier a déjà été enregistré pour cette intervention.", intervention=intervention.number
        )
    if intervention.status != Status.PLANNED:
        raise errors.ConflictError(
            "Le dépôt atelier se fait sur une intervention au statut 'Planifié'.",
            intervention=intervention.number,
            current_status=intervention.status,
        )


def _validate_accessories(accessories):
    unknown = [item for item in accessories if item not in DEPOSIT_ACCESSORIES]
    if unknown:
        raise errors.ValidationError("Accessoire inconnu.", field="accessories", unknown=unknown)
    # Dédoublonné, dans l'ordre du catalogue
    return [item for item in DEPOSIT_ACCESSORIES if item in accessories]
