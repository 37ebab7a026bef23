"""
Modèle SQLAlchemy pour les mouvements de cageots
Projet: SODIPAS (Gestion grossiste fruits)

Les cageots sont des caisses consignées prêtées aux clients avec la marchandise.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import LedgerAttributionMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.client import Client


class CrateMovement(Base, UUIDMixin, TimestampMixin, LedgerAttributionMixin):
    """
    Mouvement immuable de cageots sur le compte d'un client.

    Le solde du client est la somme courante des mouvements; chaque ligne
    conserve le solde avant et après pour l'historique.

    Attributes:
        client_id: UUID du client
        direction: 'add' (cageots remis au client) ou 'remove' (cageots repris)
        quantity: Nombre de cageots (> 0)
        reason: Motif (livraison, retour_client, collecte, vente, perte, ...)
        balance_before: Solde avant le mouvement
        balance_after: Solde après le mouvement
    """

    __tablename__ = "crate_movements"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
    )

    direction: Mapped[str] = mapped_column(String(10), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    reason: Mapped[str] = mapped_column(String(30), nullable=False)

    balance_before: Mapped[int] = mapped_column(Integer, nullable=False)

    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)

    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="crate_movements",
        lazy="selectin",
    )

    @property
    def signed_quantity(self) -> int:
        """Variation du solde: positive pour 'add', négative pour 'remove'."""
        return self.quantity if self.direction == "add" else -self.quantity

    __table_args__ = (
        Index("ix_crate_movements_client_id", "client_id"),
        CheckConstraint("quantity > 0", name="ck_crate_movements_quantity_positive"),
        CheckConstraint("balance_after >= 0", name="ck_crate_movements_balance_positive"),
        CheckConstraint("direction IN ('add', 'remove')", name="ck_crate_movements_direction"),
    )

    def __repr__(self) -> str:
        return (
            f"<CrateMovement(client={self.client_id}, {self.direction} {self.quantity}, "
            f"{self.balance_before}->{self.balance_after})>"
        )
