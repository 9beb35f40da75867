# core/shortcuts.py
from django.core.exceptions import ObjectDoesNotExist, ValidationError as DjangoValidationError

from core import exceptions as errors

# UUID mal formé -> ValidationError Django ; on le traite comme un id inconnu
_LOOKUP_ERRORS = (ObjectDoesNotExist, DjangoValidationError, ValueError, TypeError)


def get_or_not_found(queryset, identifier, resource, **filters):
    """Résout un id de chemin d'URL, ``NotFoundError`` sinon."""
    try:
        return queryset.get(pk=identifier, **filters)
    except _LOOKUP_ERRORS:
        raise errors.NotFoundError(resource, identifier)


def resolve_reference(queryset, identifier, field, **filters):
    """Résout une référence portée par le corps de la requête, ``InvalidReferenceError`` sinon."""
    if identifier in (None, ""):
        raise errors.InvalidReferenceError(field, identifier)
    try:
        return queryset.get(pk=identifier, **filters)
    except _LOOKUP_ERRORS:
        raise errors.InvalidReferenceError(field, identifier)
