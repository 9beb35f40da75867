"""
Grand livre du stock de pièces.

Seules deux écritures touchent ``stock_quantity`` :
  - ``consume``            : sortie de stock liée à une intervention (décrément conditionnel)
  - la modification admin  : valeur absolue saisie depuis la fiche pièce (>= 0)
"""
import logging

from django.db.models import F

from core import exceptions as errors
from core.shortcuts import get_or_not_found
from stock.models import Part

logger = logging.getLogger(__name__)


def consume(part_id, quantity: int) -> Part:
    """
    Décrémente le stock de ``quantity`` en une seule requête conditionnelle
    (``UPDATE ... WHERE stock_quantity >= quantity``) : deux sorties concurrentes
    ne peuvent pas faire passer le stock sous zéro.

    Doit être appelé dans la transaction de l'opération appelante.
    Renvoie la pièce rechargée (stock après sortie).
    """
    if quantity is None or int(quantity) < 1:
        raise errors.ValidationError("La quantité doit être au moins 1.", field="quantity")
    quantity = int(quantity)

    part = get_or_not_found(Part.objects.active(), part_id, "Pièce")
    updated = Part.objects.filter(
        pk=part.pk, active=True, stock_quantity__gte=quantity
    ).update(stock_quantity=F("stock_quantity") - quantity)

    if not updated:
        part.refresh_from_db(fields=["stock_quantity"])
        raise errors.InsufficientStockError(part.pk, quantity, part.stock_quantity)

    part.refresh_from_db()
    if part.in_alert:
        logger.warning(
            "part %s below minimum stock (%s < %s)",
            part.reference,
            part.stock_quantity,
            part.minimum_quantity,
        )
    return part


def get_part(part_id) -> Part:
    return get_or_not_found(Part.objects, part_id, "Pièce")


def alerts():
    return Part.objects.in_alert().order_by("stock_quantity", "reference")


def deactivate(part_id) -> Part:
    part = get_part(part_id)
    if part.active:
        part.active = False
        part.save(update_fields=["active", "updated_at"])
        logger.info("part %s deactivated", part.reference)
    return part
