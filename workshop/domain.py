# workshop/domain.py
import calendar
from dataclasses import asdict, dataclass
from typing import Optional
from uuid import UUID

# Accessoires proposés à l'étape 2 du dépôt atelier
DEPOSIT_ACCESSORIES = (
    "Chargeur",
    "Câble d'alimentation",
    "Batterie",
    "Télécommande",
    "Manuel d'utilisation",
    "Boîte d'origine",
    "Adaptateur",
    "Câbles divers",
    "Carte mémoire",
    "Sacoche/Housse",
    "Clés/Outils",
    "Accessoires spécifiques",
)


@dataclass(frozen=True)
class RegisteredDevice:
    """Appareil déjà enregistré sur la fiche client."""
    id: UUID

    kind = "registered"

    def as_dict(self):
        return {"kind": self.kind, "id": str(self.id)}


@dataclass(frozen=True)
class AdHocDevice:
    """Appareil saisi à la volée sur l'intervention, sans fiche client."""
    type: str
    brand: Optional[str] = None
    model: Optional[str] = None
    serial_number: Optional[str] = None

    kind = "adhoc"

    @classmethod
    def from_dict(cls, data):
        return cls(
            type=data.get("type"),
            brand=data.get("brand"),
            model=data.get("model"),
            serial_number=data.get("serial_number"),
        )

    def as_dict(self):
        return {"kind": self.kind, **asdict(self)}


def add_months(value, months):
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)
