"""
Schemas Pydantic pour la facturation
Projet: SODIPAS (Gestion grossiste fruits)

Contient:
- Enums: InvoiceType, InvoiceStatus, PaymentMethod
- Schemas pour les lignes de facture
- Schemas pour Invoice
- Schemas pour Payment et ses imputations

Les règles de gestion (lignes valides, acompte, échéance) sont vérifiées
par le service: les lignes incomplètes doivent pouvoir être reçues pour
être écartées ou rejetées avec un message précis.
"""

import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator


# -------------------------------------------------------------------
# Enum
# -------------------------------------------------------------------

class PaymentMethod(str, Enum):
    """Modes de paiement acceptés."""
    CASH = "cash"
    MOBILE_MONEY = "mobile_money"
    BANK_TRANSFER = "bank_transfer"
    CHECK = "check"


class InvoiceType(str, Enum):
    """Type de facture choisi à la création."""
    UNPAID = "unpaid"      # Rien encaissé
    PARTIAL = "partial"    # Acompte encaissé
    PAID = "paid"          # Payée comptant


class InvoiceStatus(str, Enum):
    """Statut calculé de la facture."""
    UNPAID = "unpaid"
    PARTIAL = "partial"
    PAID = "paid"


# -------------------------------------------------------------------
# Lignes de facture
# -------------------------------------------------------------------

class InvoiceItemCreate(BaseModel):
    """
    Ligne de facture saisie par le caissier.

    unit_price absent: le prix est repris de la grille tarifaire.
    """

    article: str = Field("", max_length=150, description="Article (ex. Bananes)")
    quantity: int = Field(0, description="Quantité")
    unit_price: Optional[int] = Field(None, ge=0, description="Prix unitaire (FCFA)")
    cageots: Optional[int] = Field(None, ge=0, description="Cageots remis avec la ligne")

    @field_validator("article", mode="before")
    @classmethod
    def strip_article(cls, v: Optional[str]) -> str:
        return (v or "").strip()


class InvoiceItemRead(BaseModel):
    """Ligne de facture enregistrée."""

    model_config = ConfigDict(from_attributes=True)

    line_number: int
    article: str
    quantity: int
    unit_price: int
    cageots: Optional[int] = None
    subtotal: int


# -------------------------------------------------------------------
# Invoice
# -------------------------------------------------------------------

class InvoiceCreate(BaseModel):
    """
    Schéma de création d'une facture.

    Attributes:
        client_id: Client facturé
        items: Lignes de la facture
        hangar: Hangar de vente (à défaut celui du contexte)
        invoice_type: unpaid | partial | paid
        due_date: Échéance, obligatoire sauf facture payée
        initial_payment: Acompte pour une facture 'partial'
        payment_method: Mode de l'encaissement initial
        expected_client_version: Version du client lue par l'appelant
    """

    client_id: uuid.UUID
    items: list[InvoiceItemCreate] = Field(default_factory=list)
    hangar: Optional[str] = Field(None, max_length=100)
    invoice_type: InvoiceType = InvoiceType.UNPAID
    due_date: Optional[datetime.date] = None
    initial_payment: Optional[int] = None
    payment_method: PaymentMethod = PaymentMethod.CASH
    responsible_person: Optional[str] = Field(None, max_length=150)
    notes: Optional[str] = None
    expected_client_version: Optional[int] = Field(None, ge=1)


class InvoiceRead(BaseModel):
    """Réponse API d'une facture."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    number: str
    client_id: uuid.UUID
    hangar: str
    cashier_id: str
    cashier_name: str
    operating_date: datetime.date
    due_date: Optional[datetime.date] = None
    responsible_person: Optional[str] = None
    amount: int
    paid_amount: int
    remaining_amount: int
    status: InvoiceStatus
    is_overdue: bool = False
    notes: Optional[str] = None
    items: list[InvoiceItemRead] = Field(default_factory=list)
    created_at: datetime.datetime

    @classmethod
    def for_day(cls, invoice, operating_date: datetime.date) -> "InvoiceRead":
        """Réponse d'une facture avec le retard évalué à la journée d'exploitation."""
        read = cls.model_validate(invoice)
        read.is_overdue = invoice.is_overdue_on(operating_date)
        return read


class InvoiceList(BaseModel):
    """Liste des factures avec totaux."""

    items: list[InvoiceRead] = Field(default_factory=list)
    total: int = Field(..., ge=0)

    @computed_field
    def total_remaining(self) -> int:
        """Reste à encaisser sur les factures listées."""
        return sum(i.remaining_amount for i in self.items)


# -------------------------------------------------------------------
# Payment
# -------------------------------------------------------------------

class PaymentCreate(BaseModel):
    """
    Schéma d'enregistrement d'un paiement.

    Le montant est imputé sur les factures sélectionnées dans l'ordre
    de la liste invoice_ids.
    """

    client_id: uuid.UUID
    amount: int = Field(..., description="Montant encaissé (FCFA)")
    method: PaymentMethod = PaymentMethod.CASH
    invoice_ids: list[uuid.UUID] = Field(default_factory=list)
    reference: Optional[str] = Field(None, max_length=255)
    notes: Optional[str] = None
    expected_client_version: Optional[int] = Field(None, ge=1)


class AllocationRead(BaseModel):
    """Part d'un paiement imputée sur une facture."""

    model_config = ConfigDict(from_attributes=True)

    invoice_id: uuid.UUID
    position: int
    amount: int


class PaymentRead(BaseModel):
    """Réponse API d'un paiement."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    client_id: uuid.UUID
    amount: int
    method: PaymentMethod
    reference: Optional[str] = None
    notes: Optional[str] = None
    cashier_id: str
    cashier_name: str
    hangar: str
    operating_date: datetime.date
    allocations: list[AllocationRead] = Field(default_factory=list)
    created_at: datetime.datetime


__all__ = [
    "PaymentMethod",
    "InvoiceType",
    "InvoiceStatus",
    "InvoiceItemCreate",
    "InvoiceItemRead",
    "InvoiceCreate",
    "InvoiceRead",
    "InvoiceList",
    "PaymentCreate",
    "AllocationRead",
    "PaymentRead",
]
