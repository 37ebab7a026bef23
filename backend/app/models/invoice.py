"""
Modèles SQLAlchemy pour la facturation
Projet: SODIPAS (Gestion grossiste fruits)

Contient:
- Invoice: Facture client
- InvoiceItem: Lignes de la facture (article × quantité × prix)
- Payment: Paiement d'un client
- PaymentAllocation: Part d'un paiement imputée à une facture
"""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.models import Base
from app.models.mixins import LedgerAttributionMixin, TimestampMixin, UUIDMixin

if TYPE_CHECKING:
    from app.models.client import Client


def invoice_status(amount: int, paid_amount: int) -> str:
    """
    Statut d'une facture, fonction pure du couple (montant, payé).

    - 'paid': totalement payée
    - 'partial': partiellement payée
    - 'unpaid': rien n'a été payé
    """
    if paid_amount >= amount:
        return "paid"
    if paid_amount > 0:
        return "partial"
    return "unpaid"


class Invoice(Base, UUIDMixin, TimestampMixin, LedgerAttributionMixin):
    """
    Facture client.

    Le montant est figé à la création à partir des lignes; seul
    paid_amount évolue ensuite, de façon croissante, via les paiements.

    Attributes:
        id: UUID primary key
        number: Numéro progressif annuel (INV-YYYY-NNNN)
        client_id: UUID du client
        due_date: Date limite (facultative si payée à la création)
        responsible_person: Responsable de la vente
        amount: Total de la facture (FCFA)
        paid_amount: Montant déjà imputé par les paiements
        notes: Notes

    Relationships:
        client: Client facturé
        items: Lignes de la facture
        allocations: Imputations de paiements
    """

    __tablename__ = "invoices"

    number: Mapped[str] = mapped_column(
        String(30),
        nullable=False,
        unique=True,
        doc="Numéro de facture",
    )

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
        doc="UUID du client",
    )

    due_date: Mapped[Optional[date]] = mapped_column(
        Date,
        nullable=True,
        doc="Date limite de paiement",
    )

    responsible_person: Mapped[Optional[str]] = mapped_column(
        String(150),
        nullable=True,
        doc="Responsable de la vente",
    )

    amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        doc="Montant total (FCFA)",
    )

    paid_amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        default=0,
        doc="Montant payé (FCFA)",
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    # ------------------------------------------------------------
    # Relationships
    # ------------------------------------------------------------
    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="invoices",
        lazy="selectin",
    )

    items: Mapped[List["InvoiceItem"]] = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="InvoiceItem.line_number",
    )

    allocations: Mapped[List["PaymentAllocation"]] = relationship(
        "PaymentAllocation",
        back_populates="invoice",
        lazy="noload",
    )

    # ------------------------------------------------------------
    # Properties Calculées
    # ------------------------------------------------------------
    @property
    def remaining_amount(self) -> int:
        """Reste à payer."""
        return self.amount - self.paid_amount

    @property
    def status(self) -> str:
        """Statut calculé: 'unpaid' | 'partial' | 'paid'."""
        return invoice_status(self.amount, self.paid_amount)

    def is_overdue_on(self, operating_date: date) -> bool:
        """True si la date limite est passée à cette journée et la facture n'est pas soldée."""
        return (
            self.due_date is not None
            and operating_date > self.due_date
            and self.remaining_amount > 0
        )

    __table_args__ = (
        Index("ix_invoices_client_id", "client_id"),
        CheckConstraint("amount > 0", name="ck_invoices_amount_positive"),
        CheckConstraint(
            "paid_amount >= 0 AND paid_amount <= amount",
            name="ck_invoices_paid_amount_range",
        ),
    )

    def __repr__(self) -> str:
        return (
            f"<Invoice(number={self.number}, amount={self.amount}, "
            f"paid={self.paid_amount}, status={self.status})>"
        )


class InvoiceItem(Base, UUIDMixin):
    """
    Ligne de facture: un article vendu.

    Attributes:
        invoice_id: UUID de la facture
        line_number: Numéro de ligne (1-based)
        article: Nom de l'article (ex. "Bananes")
        quantity: Quantité
        unit_price: Prix unitaire (FCFA)
        cageots: Cageots remis avec la ligne (facultatif)
    """

    __tablename__ = "invoice_items"

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False,
    )

    line_number: Mapped[int] = mapped_column(Integer, nullable=False)

    article: Mapped[str] = mapped_column(String(150), nullable=False)

    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    unit_price: Mapped[int] = mapped_column(BigInteger, nullable=False)

    cageots: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="items")

    @property
    def subtotal(self) -> int:
        """Montant de la ligne."""
        return self.quantity * self.unit_price

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_invoice_items_quantity_positive"),
        CheckConstraint("unit_price >= 0", name="ck_invoice_items_unit_price_positive"),
    )


class PaymentAllocation(Base, UUIDMixin, TimestampMixin):
    """
    Imputation d'une part de paiement sur une facture.

    Exemple:
        Paiement P1 de 600 000 F sur deux factures sélectionnées:
        - 450 000 F → Facture A
        - 150 000 F → Facture B
    """

    __tablename__ = "payment_allocations"

    payment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("payments.id", ondelete="CASCADE"),
        nullable=False,
    )

    invoice_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("invoices.id", ondelete="RESTRICT"),
        nullable=False,
    )

    position: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        doc="Rang de la facture dans la sélection du caissier",
    )

    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    payment: Mapped["Payment"] = relationship("Payment", back_populates="allocations")

    invoice: Mapped["Invoice"] = relationship("Invoice", back_populates="allocations")

    __table_args__ = (
        Index("idx_payment_invoice_unique", "payment_id", "invoice_id", unique=True),
        Index("idx_allocation_invoice", "invoice_id"),
        CheckConstraint("amount > 0", name="check_allocation_amount_positive"),
    )

    def __repr__(self) -> str:
        return f"<PaymentAllocation(payment={self.payment_id}, invoice={self.invoice_id}, amount={self.amount})>"


class Payment(Base, UUIDMixin, TimestampMixin, LedgerAttributionMixin):
    """
    Paiement d'un client, imputé sur les factures sélectionnées.

    Immuable une fois enregistré.

    Attributes:
        client_id: UUID du client
        amount: Montant encaissé (FCFA)
        method: cash, mobile_money, bank_transfer, check
        reference: Référence (numéro de chèque, transaction mobile money, ...)
        notes: Notes

    Relationships:
        client: Client payeur
        allocations: Imputations sur les factures
    """

    __tablename__ = "payments"

    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("clients.id", ondelete="RESTRICT"),
        nullable=False,
    )

    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)

    method: Mapped[str] = mapped_column(String(20), nullable=False)

    reference: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    client: Mapped["Client"] = relationship(
        "Client",
        back_populates="payments",
        lazy="selectin",
    )

    allocations: Mapped[List["PaymentAllocation"]] = relationship(
        "PaymentAllocation",
        back_populates="payment",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PaymentAllocation.position",
    )

    @property
    def allocated_amount(self) -> int:
        """Somme imputée sur les factures."""
        return sum(a.amount for a in self.allocations)

    @property
    def invoice_ids(self) -> list[uuid.UUID]:
        """Factures concernées, dans l'ordre d'imputation."""
        return [a.invoice_id for a in self.allocations]

    __table_args__ = (
        Index("ix_payments_client_id", "client_id"),
        CheckConstraint("amount > 0", name="ck_payments_amount_positive"),
        CheckConstraint(
            "method IN ('cash', 'mobile_money', 'bank_transfer', 'check')",
            name="ck_payments_method",
        ),
    )

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, amount={self.amount}, method={self.method})>"
