"""
Modèle SQLAlchemy pour l'entité Client
Projet: SODIPAS (Gestion grossiste fruits)

Compte client: identité, dette, limite de dette et solde de cageots.
"""


from __future__ import annotations
from typing import Optional, TYPE_CHECKING, List

from sqlalchemy import BigInteger, Boolean, CheckConstraint, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin, SoftDeleteMixin

if TYPE_CHECKING:
    from app.models.invoice import Invoice, Payment
    from app.models.crate import CrateMovement


def client_status(debt: int, debt_limit: int, is_blocked: bool = False) -> str:
    """
    Classe le risque d'un client à partir de sa dette.

    - 'critical': bloqué ou dette au-delà de la limite
    - 'good': aucune dette
    - 'warning': dette dans la limite
    """
    if is_blocked or debt > debt_limit:
        return "critical"
    if debt == 0:
        return "good"
    return "warning"


class Client(Base, UUIDMixin, TimestampMixin, SoftDeleteMixin):
    """
    Compte client du grossiste.

    La dette et le solde de cageots ne sont modifiés que par le grand livre
    (factures, paiements, mouvements de cageots). La colonne version sert
    de verrou optimiste: toute mise à jour concurrente sur un instantané
    périmé échoue au flush.

    Attributes:
        id: UUID primary key
        name: Nom ou raison sociale
        phone: Téléphone
        email: Email
        address: Adresse
        notes: Notes libres
        debt: Montant dû (FCFA), 0 = aucune dette
        debt_limit: Plafond indicatif de dette (FCFA)
        cageots: Nombre de cageots SODIPAS détenus par le client
        is_blocked: Client bloqué manuellement
        version: Compteur de verrou optimiste

    Properties:
        status: 'good' | 'warning' | 'critical'
    """

    __tablename__ = "clients"

    # ------------------------------------------------------------
    # Identité
    # ------------------------------------------------------------
    name: Mapped[str] = mapped_column(
        String(150),
        nullable=False,
        doc="Nom ou raison sociale",
    )

    phone: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="Numéro de téléphone",
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Adresse email",
    )

    address: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        doc="Adresse",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Notes",
    )

    # ------------------------------------------------------------
    # Soldes
    # ------------------------------------------------------------
    debt: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Dette courante (FCFA)",
    )

    debt_limit: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Limite de dette indicative (FCFA)",
    )

    cageots: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=0,
        doc="Cageots détenus par le client",
    )

    is_blocked: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=False,
        doc="Client bloqué",
    )

    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        doc="Verrou optimiste",
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    invoices: Mapped[List["Invoice"]] = relationship(
        "Invoice",
        back_populates="client",
        lazy="noload",
        doc="Factures du client",
    )

    payments: Mapped[List["Payment"]] = relationship(
        "Payment",
        back_populates="client",
        lazy="noload",
        doc="Paiements du client",
    )

    crate_movements: Mapped[List["CrateMovement"]] = relationship(
        "CrateMovement",
        back_populates="client",
        lazy="noload",
        doc="Mouvements de cageots",
    )

    __mapper_args__ = {"version_id_col": version}

    __table_args__ = (
        Index("ix_clients_phone", "phone"),
        Index("ix_clients_name", "name"),
        CheckConstraint("debt >= 0", name="ck_clients_debt_positive"),
        CheckConstraint("debt_limit >= 0", name="ck_clients_debt_limit_positive"),
        CheckConstraint("cageots >= 0", name="ck_clients_cageots_positive"),
    )

    # ------------------------------------------------------------
    # Properties Calculées
    # ------------------------------------------------------------
    @property
    def status(self) -> str:
        """Statut de risque calculé à partir de la dette."""
        return client_status(self.debt, self.debt_limit, self.is_blocked)

    def __repr__(self) -> str:
        return f"<Client(id={self.id}, name={self.name}, debt={self.debt}, cageots={self.cageots})>"
