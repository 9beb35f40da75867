"""
Erreurs typées du moteur atelier.

Chaque erreur porte :
  - ``code``        : identifiant stable, lisible par le front (mapping des messages)
  - ``status_code`` : statut HTTP renvoyé par l'API
  - ``data``        : contexte structuré (ids, quantités...) ajouté à la réponse

Hiérarchie :

    AtelierError
    +-- NotFoundError
    +-- InvalidReferenceError
    +-- ValidationError
    +-- ConflictError
    |   +-- DeviceUnavailableError
    |   +-- AlreadyReturnedError
    |   +-- InsufficientStockError
    +-- DocumentGenerationError

Aucune de ces erreurs n'est "retryable" : l'appelant refuse la mutation et
aucun état partiel n'est écrit (chaque opération tient dans une transaction).
"""
import logging

from django.db.models import ProtectedError
from rest_framework import exceptions as drf_exceptions, status
from rest_framework.response import Response
from rest_framework.views import exception_handler as drf_exception_handler

logger = logging.getLogger(__name__)


class AtelierError(Exception):
    code = "ATELIER_ERROR"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Erreur atelier."

    def __init__(self, message=None, **data):
        self.message = message or self.default_message
        self.data = data
        super().__init__(self.message)

    def as_dict(self):
        return {"detail": self.message, "code": self.code, **self.data}


class NotFoundError(AtelierError):
    """L'identifiant ne correspond à aucun enregistrement."""
    code = "NOT_FOUND"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Ressource introuvable."

    def __init__(self, resource, identifier, message=None):
        super().__init__(
            message or f"{resource} introuvable : {identifier}",
            resource=resource,
            id=str(identifier),
        )


class InvalidReferenceError(AtelierError):
    """Une référence (client, appareil...) du corps de la requête ne se résout pas."""
    code = "INVALID_REFERENCE"
    default_message = "Référence invalide."

    def __init__(self, field, identifier, message=None):
        super().__init__(
            message or f"Référence invalide pour '{field}' : {identifier}",
            field=field,
            id=str(identifier),
        )


class ValidationError(AtelierError):
    code = "VALIDATION_ERROR"
    default_message = "Données invalides."

    def __init__(self, message=None, field=None, **data):
        if field:
            data["field"] = field
        super().__init__(message, **data)


class ConflictError(AtelierError):
    """L'opération violerait un invariant référentiel ou d'exclusivité."""
    code = "CONFLICT"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Opération impossible dans l'état actuel."


class DeviceUnavailableError(ConflictError):
    code = "DEVICE_UNAVAILABLE"
    default_message = "Appareil non disponible."

    def __init__(self, device_id, current_status=None, message=None):
        AtelierError.__init__(
            self,
            message or f"Appareil de prêt non disponible (statut : {current_status or 'inconnu'}).",
            loaner_device=str(device_id),
            current_status=current_status,
        )


class AlreadyReturnedError(ConflictError):
    code = "ALREADY_RETURNED"
    default_message = "Prêt déjà retourné."

    def __init__(self, loan_id, message=None):
        AtelierError.__init__(self, message or self.default_message, loan=str(loan_id))


class InsufficientStockError(ConflictError):
    code = "INSUFFICIENT_STOCK"
    default_message = "Stock insuffisant."

    def __init__(self, part_id, requested, available, message=None):
        AtelierError.__init__(
            self,
            message or f"Stock insuffisant : {requested} demandé(s), {available} disponible(s).",
            part=str(part_id),
            requested=requested,
            available=available,
        )


class DocumentGenerationError(AtelierError):
    """Le générateur de documents (fiche dépôt + QR code) a échoué."""
    code = "DOCUMENT_GENERATION_FAILED"
    status_code = status.HTTP_502_BAD_GATEWAY
    default_message = "Génération des documents de dépôt impossible."


def exception_handler(exc, context):
    """
    EXCEPTION_HANDLER DRF : rend les erreurs atelier en JSON typé,
    délègue le reste au handler par défaut.
    """
    if isinstance(exc, ProtectedError):
        exc = ConflictError(
            "Suppression impossible : l'enregistrement est encore référencé.",
            referenced_by=sorted({obj._meta.model_name for obj in exc.protected_objects}),
        )

    if isinstance(exc, AtelierError):
        view = context.get("view")
        logger.info(
            "refused %s: %s",
            exc.code,
            exc.message,
            extra={"view": view.__class__.__name__ if view else None, "error_code": exc.code},
        )
        return Response(exc.as_dict(), status=exc.status_code)

    response = drf_exception_handler(exc, context)
    if response is not None and isinstance(exc, drf_exceptions.ValidationError):
        # Erreurs de sérialiseur : même forme que ValidationError, détail par champ
        response.data = {
            "detail": ValidationError.default_message,
            "code": ValidationError.code,
            "errors": exc.detail,
        }
    return response
