"""
Schemas Pydantic du projet SODIPAS

Ce module regroupe les schémas utilisés pour la validation des requêtes
et la sérialisation des réponses API.
"""

# Import des schémas pour un accès direct
# ex: from app.schemas import ClientRead, InvoiceRead

from app.schemas.token import Actor, ActorRole, LedgerContext, TokenPayload
from app.schemas.client import (
    ClientCreate,
    ClientList,
    ClientRead,
    ClientStatus,
    ClientUpdate,
)
from app.schemas.invoice import (
    AllocationRead,
    InvoiceCreate,
    InvoiceItemCreate,
    InvoiceItemRead,
    InvoiceList,
    InvoiceRead,
    InvoiceStatus,
    InvoiceType,
    PaymentCreate,
    PaymentMethod,
    PaymentRead,
)
from app.schemas.crate import (
    CrateDirection,
    CrateMovementCreate,
    CrateMovementRead,
    CratePreview,
)
from app.schemas.cash_register import (
    ClosureCreate,
    ClosureEntryRead,
    ClosureRead,
    ClosureReport,
    ClosureState,
    ClosureSummary,
    TransactionKind,
    TransactionRead,
)
from app.schemas.truck import (
    StockEntryRead,
    StockLevel,
    StockRead,
    TruckArticleCreate,
    TruckCreate,
    TruckRead,
    TruckStatus,
    TruckUnload,
    UnloadItem,
)

__all__ = [
    # Identité
    "Actor",
    "ActorRole",
    "LedgerContext",
    "TokenPayload",
    # Client
    "ClientCreate",
    "ClientList",
    "ClientRead",
    "ClientStatus",
    "ClientUpdate",
    # Facturation
    "AllocationRead",
    "InvoiceCreate",
    "InvoiceItemCreate",
    "InvoiceItemRead",
    "InvoiceList",
    "InvoiceRead",
    "InvoiceStatus",
    "InvoiceType",
    "PaymentCreate",
    "PaymentMethod",
    "PaymentRead",
    # Cageots
    "CrateDirection",
    "CrateMovementCreate",
    "CrateMovementRead",
    "CratePreview",
    # Clôture
    "ClosureCreate",
    "ClosureEntryRead",
    "ClosureRead",
    "ClosureReport",
    "ClosureState",
    "ClosureSummary",
    "TransactionKind",
    "TransactionRead",
    # Camions / stock
    "StockEntryRead",
    "StockLevel",
    "StockRead",
    "TruckArticleCreate",
    "TruckCreate",
    "TruckRead",
    "TruckStatus",
    "TruckUnload",
    "UnloadItem",
]
