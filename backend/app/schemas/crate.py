"""
Schemas Pydantic pour les mouvements de cageots
Projet: SODIPAS (Gestion grossiste fruits)
"""

import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class CrateDirection(str, Enum):
    """Sens du mouvement vu du client."""
    ADD = "add"          # Cageots remis au client
    REMOVE = "remove"    # Cageots repris au client


class CrateAddReason(str, Enum):
    """Motifs d'un ajout de cageots."""
    LIVRAISON = "livraison"
    RETOUR_CLIENT = "retour_client"
    RECUPERATION = "recuperation"
    AUTRE = "autre"


class CrateRemoveReason(str, Enum):
    """Motifs d'un retrait de cageots."""
    COLLECTE = "collecte"
    VENTE = "vente"
    CLIENT_RETRAIT = "client_retrait"
    PERTE = "perte"
    AUTRE = "autre"


CRATE_REASONS: dict[str, frozenset[str]] = {
    CrateDirection.ADD.value: frozenset(r.value for r in CrateAddReason),
    CrateDirection.REMOVE.value: frozenset(r.value for r in CrateRemoveReason),
}


class CrateMovementCreate(BaseModel):
    """
    Demande de mouvement de cageots.

    La quantité et le motif sont contrôlés par le service pour
    produire un message métier précis.
    """

    client_id: uuid.UUID
    direction: CrateDirection
    quantity: int = Field(..., description="Nombre de cageots (> 0)")
    reason: str = Field(..., max_length=30, description="Motif du mouvement")
    expected_client_version: Optional[int] = Field(None, ge=1)


class CratePreview(BaseModel):
    """Solde résultant affiché avant confirmation."""

    client_id: uuid.UUID
    direction: CrateDirection
    quantity: int
    current_balance: int
    resulting_balance: int
    allowed: bool
    message: Optional[str] = None


class CrateMovementRead(BaseModel):
    """Mouvement de cageots enregistré."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    client_id: uuid.UUID
    direction: CrateDirection
    quantity: int
    reason: str
    balance_before: int
    balance_after: int
    cashier_id: str
    cashier_name: str
    hangar: str
    operating_date: datetime.date
    created_at: datetime.datetime


__all__ = [
    "CrateDirection",
    "CrateAddReason",
    "CrateRemoveReason",
    "CRATE_REASONS",
    "CrateMovementCreate",
    "CratePreview",
    "CrateMovementRead",
]
