"""
Schemas Pydantic pour les camions et le stock
Projet: SODIPAS (Gestion grossiste fruits)

Définit les schémas de validation et de sérialisation pour l'arrivage
des camions, leur déchargement et le stock des hangars.
"""

from enum import Enum
import datetime
import uuid
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
)


class TruckStatus(str, Enum):
    """États d'un camion."""
    REGISTERED = "registered"
    UNLOADED = "unloaded"


class StockLevel(str, Enum):
    """Niveau d'un stock par rapport au seuil d'alerte."""
    CRITICAL = "critical"
    WARNING = "warning"
    GOOD = "good"


def strip_text(value: Optional[str]) -> str:
    """Normalise un libellé saisi: None devient une chaîne vide."""
    return (value or "").strip()


# -------------------------------------------------------------------
# Enregistrement
# -------------------------------------------------------------------

class TruckArticleCreate(BaseModel):
    """
    Article du manifeste.

    Les lignes incomplètes sont acceptées ici et écartées par le service.
    """

    name: str = Field("", max_length=150, description="Article")
    quantity: int = Field(0, description="Quantité")
    unit: str = Field("cageots", max_length=20, description="Unité")
    unit_price: int = Field(0, description="Prix unitaire (FCFA)")

    @field_validator("name", "unit", mode="before")
    @classmethod
    def normalize_text(cls, v: Optional[str]) -> str:
        return strip_text(v)


class TruckCreate(BaseModel):
    """Enregistrement d'un camion à l'arrivée."""

    origin: str = Field("", max_length=100)
    driver: str = Field("", max_length=150)
    phone: str = Field("", max_length=20)
    hangar: str = Field("", max_length=100)
    articles: list[TruckArticleCreate] = Field(default_factory=list)
    declared_value: Optional[int] = Field(None, ge=0, description="Valeur déclarée (FCFA)")

    @field_validator("origin", "driver", "phone", "hangar", mode="before")
    @classmethod
    def normalize_text(cls, v: Optional[str]) -> str:
        return strip_text(v)


# -------------------------------------------------------------------
# Déchargement
# -------------------------------------------------------------------

class UnloadItem(BaseModel):
    """
    Quantité déchargée pour un article du manifeste.

    value absent: quantité × prix unitaire du manifeste.
    """

    name: str = Field(..., max_length=150)
    quantity: int = Field(0)
    value: Optional[int] = Field(None, ge=0)

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v: Optional[str]) -> str:
        return strip_text(v)


class TruckUnload(BaseModel):
    """Demande de déchargement."""

    items: list[UnloadItem] = Field(default_factory=list)


# -------------------------------------------------------------------
# Réponses
# -------------------------------------------------------------------

class TruckArticleRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    line_number: int
    name: str
    quantity: int
    unit: str
    unit_price: int
    total_value: int


class StockEntryRead(BaseModel):
    """Entrée de stock issue d'un déchargement."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    truck_id: uuid.UUID
    hangar: str
    article: str
    unit: str
    quantity: int
    value: int
    operator: str
    created_at: datetime.datetime


class TruckRead(BaseModel):
    """Camion avec son manifeste et, une fois déchargé, ses entrées de stock."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    origin: str
    driver: str
    phone: str
    hangar: str
    declared_value: Optional[int] = None
    value: int
    status: TruckStatus
    registered_by: str
    registered_at: datetime.datetime
    unloaded_by: Optional[str] = None
    unloaded_at: Optional[datetime.datetime] = None
    articles: list[TruckArticleRead] = Field(default_factory=list)
    stock_entries: list[StockEntryRead] = Field(default_factory=list)

    @computed_field
    def total_quantity(self) -> int:
        """Quantité totale déclarée."""
        return sum(a.quantity for a in self.articles)


class StockRead(BaseModel):
    """Stock d'un article dans un hangar."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    hangar: str
    article: str
    unit: str
    quantity: int
    value: int
    threshold: int
    level: StockLevel
    updated_at: datetime.datetime


__all__ = [
    "TruckStatus",
    "StockLevel",
    "TruckArticleCreate",
    "TruckCreate",
    "UnloadItem",
    "TruckUnload",
    "TruckArticleRead",
    "TruckRead",
    "StockRead",
    "StockEntryRead",
]
