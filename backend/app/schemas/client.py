"""
Schemas Pydantic pour l'entité Client
Projet: SODIPAS (Gestion grossiste fruits)
"""
# Définit les schémas de validation et de sérialisation de l'API.

import datetime
import logging
import re
import uuid
from enum import Enum
from typing import Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    computed_field,
    field_validator,
)

logger = logging.getLogger(__name__)


class ClientStatus(str, Enum):
    """Statut de risque d'un client."""
    GOOD = "good"            # Aucune dette
    WARNING = "warning"      # Dette dans la limite
    CRITICAL = "critical"    # Bloqué ou au-delà de la limite


# -------------------------------------------------------------------
# Fonctions de normalisation
# -------------------------------------------------------------------

def normalize_phone(phone: Optional[str]) -> Optional[str]:
    """
    Normalise le numéro de téléphone.

    Retire les espaces; accepte uniquement un '+' initial suivi de chiffres.

    Args:
        phone: Numéro à normaliser

    Returns:
        Numéro normalisé ou None

    Raises:
        ValueError: Format invalide
    """
    if phone is None:
        return None

    normalized = phone.strip().replace(" ", "").replace("-", "")

    if not re.match(r"^\+?\d{6,15}$", normalized):
        raise ValueError("Numéro de téléphone invalide")

    return normalized


class ClientValidatorsMixin(BaseModel):
    """Validateurs partagés entre création et mise à jour."""

    @field_validator("phone", mode="before", check_fields=False)
    @classmethod
    def validate_phone(cls, v: Optional[str]) -> Optional[str]:
        return normalize_phone(v)

    @field_validator("name", mode="before", check_fields=False)
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str):
            v = v.strip()
        return v

    @field_validator("email", mode="before", check_fields=False)
    @classmethod
    def empty_email_to_none(cls, v: Optional[str]) -> Optional[str]:
        if isinstance(v, str) and not v.strip():
            return None
        return v


class ClientBase(ClientValidatorsMixin):
    """
    Schéma de base: identité du client.

    Les soldes (dette, cageots) ne sont pas saisissables: ils sont
    alimentés uniquement par le grand livre.
    """

    model_config = ConfigDict(from_attributes=True)

    name: str = Field(
        ...,
        min_length=1,
        max_length=150,
        description="Nom ou raison sociale",
    )

    phone: str = Field(
        ...,
        max_length=20,
        description="Numéro de téléphone",
    )

    email: Optional[EmailStr] = Field(
        None,
        description="Adresse email",
    )

    address: Optional[str] = Field(
        None,
        max_length=255,
        description="Adresse",
    )

    notes: Optional[str] = Field(
        None,
        description="Notes libres",
    )


class ClientCreate(ClientBase):
    """
    Schéma de création d'un client.

    debt_limit est facultatif: la valeur par défaut de la configuration
    s'applique sinon.
    """

    debt_limit: Optional[int] = Field(
        None,
        ge=0,
        description="Limite de dette (FCFA)",
    )


class ClientUpdate(ClientValidatorsMixin):
    """
    Schéma de mise à jour partielle.

    expected_version permet de rejeter une modification faite sur un
    instantané périmé.
    """

    model_config = ConfigDict(from_attributes=True)

    name: Optional[str] = Field(None, min_length=1, max_length=150)
    phone: Optional[str] = Field(None, max_length=20)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    debt_limit: Optional[int] = Field(None, ge=0)
    is_blocked: Optional[bool] = None

    expected_version: Optional[int] = Field(
        None,
        ge=1,
        description="Version lue par l'appelant",
    )


class ClientRead(ClientBase):
    """Réponse API avec soldes et champs système."""

    id: uuid.UUID
    debt: int = Field(..., ge=0, description="Dette courante (FCFA)")
    debt_limit: int = Field(..., ge=0, description="Limite de dette (FCFA)")
    cageots: int = Field(..., ge=0, description="Cageots détenus")
    is_blocked: bool
    is_active: bool
    status: ClientStatus
    version: int
    created_at: datetime.datetime
    updated_at: datetime.datetime


# -------------------------------------------------------------------
# Liste paginée
# -------------------------------------------------------------------
class ClientList(BaseModel):
    """Réponse paginée de la liste des clients."""

    model_config = ConfigDict(from_attributes=True)

    items: list[ClientRead] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    page: int = Field(..., ge=1)
    per_page: int = Field(..., ge=1)

    @computed_field
    def total_pages(self) -> int:
        """Nombre total de pages."""
        if self.total == 0:
            return 0
        return (self.total + self.per_page - 1) // self.per_page


__all__ = [
    "ClientStatus",
    "normalize_phone",
    "ClientCreate",
    "ClientUpdate",
    "ClientRead",
    "ClientList",
]
