"""
Registre des appareils clients.

Un appareil n'existe qu'à travers son client ; toutes les mutations passent
par ce module pour que la règle "pas de suppression d'un appareil référencé
par une intervention" soit appliquée à un seul endroit.
"""
import logging

from django.db import transaction
from django.db.models import Count

from core import exceptions as errors
from core.shortcuts import get_or_not_found
from customers.models import Client, Device

logger = logging.getLogger(__name__)

DEVICE_FIELDS = ("type", "brand", "model", "serial_number")


def get_client(client_id) -> Client:
    return get_or_not_found(Client.objects, client_id, "Client")


def get_device(client_id, device_id) -> Device:
    return get_or_not_found(
        Device.objects.select_related("client"), device_id, "Appareil", client_id=client_id
    )


def list_devices(client_id):
    """Appareils du client, avec le nombre d'interventions de chacun."""
    client = get_client(client_id)
    return (
        client.devices.annotate(intervention_count=Count("interventions"))
        .order_by("created_at")
    )


def add_device(client_id, **fields) -> Device:
    client = get_client(client_id)
    if not fields.get("type"):
        raise errors.ValidationError("Le type d'appareil est obligatoire.", field="type")
    device = Device.objects.create(client=client, **_device_fields(fields))
    logger.info("device %s added to client %s", device.pk, client.pk)
    return device


def update_device(client_id, device_id, **fields) -> Device:
    device = get_device(client_id, device_id)
    changes = _device_fields(fields)
    if "type" in changes and not changes["type"]:
        raise errors.ValidationError("Le type d'appareil est obligatoire.", field="type")
    for name, value in changes.items():
        setattr(device, name, value)
    device.save()
    return device


@transaction.atomic
def delete_device(client_id, device_id) -> None:
    # Verrou sur l'appareil : une intervention créée en parallèle attend la fin de la suppression
    device = get_or_not_found(
        Device.objects.select_for_update(), device_id, "Appareil", client_id=client_id
    )

    referenced = device.interventions.count()
    if referenced:
        raise errors.ConflictError(
            "Impossible de supprimer un appareil lié à des interventions.",
            device=str(device.pk),
            interventions=referenced,
        )
    device.delete()
    logger.info("device %s removed from client %s", device_id, client_id)


@transaction.atomic
def delete_client(client_id) -> None:
    client = get_client(client_id)
    if client.interventions.exists() or client.loans.exists():
        raise errors.ConflictError(
            "Impossible de supprimer un client ayant des interventions ou des prêts.",
            client=str(client.pk),
        )
    client.delete()


def _device_fields(fields):
    return {name: fields[name] for name in DEVICE_FIELDS if name in fields}
