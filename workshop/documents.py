"""
Client du générateur de documents (fiche de dépôt atelier + QR code).

Le rendu PDF / QR est un service externe : on lui transmet les données du dépôt
et il renvoie les URLs des documents produits. L'implémentation utilisée est
choisie par ``settings.ATELIER_DOCUMENT_GENERATOR`` (chemin pointé).
"""
import logging
from dataclasses import dataclass

import httpx
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.utils.module_loading import import_string

from core.exceptions import DocumentGenerationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DepositDocuments:
    document_url: str
    qr_code_url: str


class DocumentGenerator:
    """Interface : ``generate_deposit(payload) -> DepositDocuments``."""

    def generate_deposit(self, payload) -> DepositDocuments:
        raise NotImplementedError


class HttpDocumentGenerator(DocumentGenerator):
    """
    POST JSON vers ``ATELIER_DOCUMENTS_URL`` + "/depots".
    Réponse attendue : ``{"document_url": "...", "qr_code_url": "..."}``.
    """

    def __init__(self, base_url=None, timeout=None):
        self.base_url = (base_url or settings.ATELIER_DOCUMENTS_URL).rstrip("/")
        self.timeout = timeout or settings.ATELIER_DOCUMENTS_TIMEOUT

    def generate_deposit(self, payload) -> DepositDocuments:
        url = f"{self.base_url}/depots"
        body = DjangoJSONEncoder().encode(payload)
        try:
            response = httpx.post(
                url,
                content=body,
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
            )
            response.raise_for_status()
            data = response.json()
            return DepositDocuments(document_url=data["document_url"], qr_code_url=data["qr_code_url"])
        except (httpx.HTTPError, ValueError, KeyError) as exc:
            logger.error("document generator failed for %s: %s", payload.get("number"), exc)
            raise DocumentGenerationError(
                "Génération de la fiche de dépôt impossible.", number=payload.get("number")
            ) from exc


def get_document_generator() -> DocumentGenerator:
    return import_string(settings.ATELIER_DOCUMENT_GENERATOR)()
