from .base import UUIDModel, TimeStampedModel, OrderedByCreationModel

__all__ = ["UUIDModel", "TimeStampedModel", "OrderedByCreationModel"]
