"""
Modèles SQLAlchemy pour la clôture de caisse journalière
Projet: SODIPAS (Gestion grossiste fruits)

Une clôture fige les opérations d'un caissier pour un hangar et une journée.
L'absence de ligne signifie que la journée est encore ouverte.
"""

from __future__ import annotations

import datetime
import uuid
from typing import List, Optional

from sqlalchemy import (
    BigInteger,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import TimestampMixin, UUIDMixin


class DailyClosure(Base, UUIDMixin, TimestampMixin):
    """
    Clôture de caisse d'un caissier pour (hangar, journée).

    Les totaux et les entrées sont copiés au moment de la clôture et
    ne sont plus jamais recalculés.

    Attributes:
        cashier_id / cashier_name: Caissier
        hangar: Hangar
        closure_date: Journée clôturée
        opening_balance: Fond de caisse déclaré en début de journée
        total_amount: Total des paiements encaissés
        closing_balance: opening_balance + total_amount
        total_cash / total_mobile_money / total_bank_transfer / total_check: Totaux par mode
        transactions_count: Nombre d'opérations figées
        invoices_created / invoices_amount: Factures émises dans la journée
        cageots_movements / cageots_in / cageots_out: Mouvements de cageots
        status: 'closed' (terminal)
        closed_at: Horodatage de la clôture
        validated_by / validated_at: Validation par un gérant
    """

    __tablename__ = "daily_closures"

    cashier_id: Mapped[str] = mapped_column(String(64), nullable=False)
    cashier_name: Mapped[str] = mapped_column(String(150), nullable=False)
    hangar: Mapped[str] = mapped_column(String(100), nullable=False)
    closure_date: Mapped[datetime.date] = mapped_column(Date, nullable=False, doc="Journée clôturée")

    opening_balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    closing_balance: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    total_cash: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_mobile_money: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_bank_transfer: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    total_check: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    transactions_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    payments_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    invoices_created: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    invoices_amount: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    cageots_movements: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cageots_in: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    cageots_out: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(10), nullable=False, default="closed")
    closed_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    validated_by: Mapped[Optional[str]] = mapped_column(String(150), nullable=True)
    validated_at: Mapped[Optional[datetime.datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    entries: Mapped[List["ClosureEntry"]] = relationship(
        "ClosureEntry",
        back_populates="closure",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="ClosureEntry.position",
    )

    @property
    def is_validated(self) -> bool:
        """True si un gérant a validé la clôture."""
        return self.validated_at is not None

    __table_args__ = (
        UniqueConstraint(
            "cashier_id", "hangar", "closure_date",
            name="uq_daily_closures_cashier_hangar_date",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<DailyClosure(cashier={self.cashier_id}, hangar={self.hangar}, "
            f"date={self.closure_date}, total={self.total_amount})>"
        )


class ClosureEntry(Base, UUIDMixin):
    """
    Copie figée d'une opération au moment de la clôture.

    Attributes:
        position: Ordre chronologique dans la journée
        kind: 'payment' | 'invoice' | 'cageots_in' | 'cageots_out'
        reference_id: UUID de l'opération d'origine
        reference: Référence lisible (numéro de facture, ...)
        client_id / client_name: Client concerné
        amount: Montant (FCFA) ou nombre de cageots
        method: Mode de paiement (paiements uniquement)
        description: Libellé
        occurred_at: Horodatage de l'opération
    """

    __tablename__ = "closure_entries"

    closure_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("daily_closures.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    reference_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    client_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    client_name: Mapped[str] = mapped_column(String(150), nullable=False)
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    method: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    description: Mapped[str] = mapped_column(String(255), nullable=False)
    occurred_at: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    closure: Mapped["DailyClosure"] = relationship("DailyClosure", back_populates="entries")
