"""
Schemas Pydantic pour l'identité de l'acteur
Projet: SODIPAS (Gestion grossiste fruits)

Le service d'authentification émet des jetons JWT; le grand livre lit
l'identité qu'ils portent sans la revalider.
"""

import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ActorRole(str, Enum):
    """Rôles reconnus par le grand livre."""
    ADMIN = "admin"
    MANAGER = "manager"
    CASHIER = "cashier"
    WAREHOUSE = "warehouse"


class TokenPayload(BaseModel):
    """
    Payload du jeton JWT.

    Attributes:
        sub: Identifiant de l'utilisateur
        name: Nom affiché
        role: Rôle
        hangar: Hangar d'affectation (absent pour les gérants)
        exp: Expiration
    """

    sub: str = Field(..., description="ID utilisateur")
    name: str = Field(..., description="Nom de l'utilisateur")
    role: ActorRole = Field(..., description="Rôle")
    hangar: Optional[str] = Field(None, description="Hangar d'affectation")
    exp: datetime.datetime = Field(..., description="Date/heure d'expiration")


class Actor(BaseModel):
    """Utilisateur à l'origine d'une opération."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    role: ActorRole = ActorRole.CASHIER
    hangar: Optional[str] = None

    @property
    def is_manager(self) -> bool:
        return self.role in (ActorRole.ADMIN, ActorRole.MANAGER)


class LedgerContext(BaseModel):
    """
    Contexte explicite d'une écriture: qui, où, quel jour.

    Passé à chaque opération du grand livre à la place d'un état de
    session implicite, ce qui rend les tests déterministes.
    """

    model_config = ConfigDict(frozen=True)

    actor: Actor
    hangar: Optional[str] = Field(None, description="Hangar courant (None pour un gérant)")
    operating_date: datetime.date


__all__ = [
    "ActorRole",
    "TokenPayload",
    "Actor",
    "LedgerContext",
]
