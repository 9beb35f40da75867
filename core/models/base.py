# core/models/base.py
import uuid

from django.db import models


class UUIDModel(models.Model):
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)

    class Meta:
        abstract = True


class TimeStampedModel(models.Model):
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True, db_index=True)

    class Meta:
        abstract = True


class OrderedByCreationModel(UUIDModel, TimeStampedModel):
    """
    Base commune des entités de l'atelier :
      - identifiant opaque (UUID) résolu par id à la lecture
      - horodatage création / modification
      - ordre par défaut : du plus récent au plus ancien
    """

    class Meta:
        abstract = True
        ordering = ("-created_at",)
