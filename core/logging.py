# core/logging.py
import logging

from core.context import get_actor


class ActorFilter(logging.Filter):
    """Ajoute ``record.actor`` (acteur de la requête ou "-") à chaque enregistrement."""

    def filter(self, record):
        record.actor = get_actor() or "-"
        return True
