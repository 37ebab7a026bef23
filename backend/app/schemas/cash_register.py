import datetime
import uuid
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ClosureState(str, Enum):
    OPEN = "open"
    CLOSED = "closed"


class TransactionKind(str, Enum):
    PAYMENT = "payment"
    INVOICE = "invoice"
    CAGEOTS_IN = "cageots_in"
    CAGEOTS_OUT = "cageots_out"


class TransactionRead(BaseModel):
    kind: TransactionKind = Field(..., description="Type d'opération")
    reference_id: uuid.UUID = Field(..., description="UUID de l'opération d'origine")
    reference: Optional[str] = Field(None, description="Référence lisible")
    client_id: uuid.UUID
    client_name: str
    amount: int = Field(..., description="Montant (FCFA) ou nombre de cageots")
    method: Optional[str] = Field(None, description="Mode de paiement")
    description: str
    occurred_at: datetime.datetime

    model_config = ConfigDict(from_attributes=True)


class ClosureEntryRead(TransactionRead):
    position: int


class ClosureSummary(BaseModel):
    cashier_id: str
    cashier_name: str
    hangar: str
    closure_date: datetime.date = Field(..., description="Journée")
    status: ClosureState = Field(..., description="open ou closed")
    closure_id: Optional[uuid.UUID] = None
    opening_balance: int = Field(0, description="Fond de caisse")
    total_amount: int = Field(0, description="Total des paiements encaissés")
    closing_balance: int = Field(0, description="Fond de caisse + encaissements")
    total_cash: int = 0
    total_mobile_money: int = 0
    total_bank_transfer: int = 0
    total_check: int = 0
    transactions_count: int = 0
    payments_count: int = 0
    invoices_created: int = 0
    invoices_amount: int = 0
    cageots_movements: int = 0
    cageots_in: int = 0
    cageots_out: int = 0


class ClosureCreate(BaseModel):
    opening_balance: int = Field(0, ge=0, description="Fond de caisse déclaré")
    confirmed: bool = Field(False, description="Confirmation explicite du caissier")
    notes: Optional[str] = Field(None, description="Notes")


class ClosureRead(BaseModel):
    id: uuid.UUID
    cashier_id: str
    cashier_name: str
    hangar: str
    closure_date: datetime.date
    status: ClosureState
    opening_balance: int
    total_amount: int
    closing_balance: int
    total_cash: int
    total_mobile_money: int
    total_bank_transfer: int
    total_check: int
    transactions_count: int
    payments_count: int
    invoices_created: int
    invoices_amount: int
    cageots_movements: int
    cageots_in: int
    cageots_out: int
    notes: Optional[str]
    closed_at: datetime.datetime
    validated_by: Optional[str]
    validated_at: Optional[datetime.datetime]
    is_validated: bool
    entries: list[ClosureEntryRead] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)


# -------------------------------------------------------------------
# Rapport de clôture
# -------------------------------------------------------------------

class ReportHeader(BaseModel):
    title: str
    closure_id: uuid.UUID
    cashier_id: str
    cashier_name: str
    hangar: str
    closure_date: datetime.date
    closed_at: datetime.datetime
    validated_by: Optional[str] = None


class ReportRow(BaseModel):
    position: int
    time: str
    kind: TransactionKind
    reference: Optional[str]
    client_name: str
    description: str
    method: Optional[str]
    amount: int


class ReportTotals(BaseModel):
    opening_balance: int
    total_amount: int
    closing_balance: int
    by_method: dict[str, int]
    transactions_count: int
    payments_count: int
    invoices_created: int
    invoices_amount: int
    cageots_movements: int
    cageots_in: int
    cageots_out: int


class ClosureReport(BaseModel):
    header: ReportHeader
    rows: list[ReportRow]
    totals: ReportTotals
    notes: Optional[str] = None
