"""
Router FastAPI pour la facturation
Projet: SODIPAS (Gestion grossiste fruits)

Endpoints des factures et des paiements.
"""

import logging
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.deps import CurrentActor, CurrentContext, OperatingDate
from app.schemas.invoice import (
    InvoiceCreate,
    InvoiceList,
    InvoiceRead,
    InvoiceStatus,
    PaymentCreate,
    PaymentRead,
)
from app.services.invoice_service import InvoiceService
from app.services.payment_service import PaymentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invoices", tags=["Factures"])
payments_router = APIRouter(prefix="/payments", tags=["Paiements"])


def get_invoice_service() -> InvoiceService:
    return InvoiceService()


def get_payment_service() -> PaymentService:
    return PaymentService()


# -------------------------------------------------------------------
# Factures
# -------------------------------------------------------------------

@router.post(
    "/",
    name="facture_creer",
    summary="Créer une facture",
    description="Crée une facture, augmente la dette du client et enregistre l'encaissement initial.",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
)
async def create_invoice(
    data: InvoiceCreate,
    ctx: CurrentContext,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    """
    Crée une facture pour la journée du caissier.

    Raises:
        BusinessValidationError: Hangar, lignes, acompte ou échéance invalides
        NotFoundError: Client inexistant
        ConflictError: Journée clôturée ou version client périmée
    """
    invoice = await service.create_invoice(db=db, ctx=ctx, data=data)
    return InvoiceRead.for_day(invoice, ctx.operating_date)


@router.get(
    "/",
    name="factures_liste",
    summary="Liste des factures",
    response_model=InvoiceList,
    status_code=status.HTTP_200_OK,
)
async def get_invoices(
    actor: CurrentActor,
    operating_date: OperatingDate,
    client_id: Optional[uuid.UUID] = Query(None, description="Filtre client"),
    invoice_status: Optional[InvoiceStatus] = Query(None, alias="status", description="Filtre statut"),
    hangar: Optional[str] = Query(None, description="Filtre hangar"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceList:
    """Liste des factures, les plus récentes en premier."""
    invoices = await service.get_all(
        db=db,
        client_id=client_id,
        status=invoice_status,
        hangar=hangar,
        skip=skip,
        limit=limit,
    )
    return InvoiceList(
        items=[InvoiceRead.for_day(i, operating_date) for i in invoices],
        total=len(invoices),
    )


@router.get(
    "/{invoice_id}",
    name="facture_detail",
    summary="Détail facture",
    response_model=InvoiceRead,
    status_code=status.HTTP_200_OK,
)
async def get_invoice(
    invoice_id: uuid.UUID,
    actor: CurrentActor,
    operating_date: OperatingDate,
    db: AsyncSession = Depends(get_db),
    service: InvoiceService = Depends(get_invoice_service),
) -> InvoiceRead:
    invoice = await service.get_by_id(db=db, invoice_id=invoice_id)
    return InvoiceRead.for_day(invoice, operating_date)


# -------------------------------------------------------------------
# Paiements
# -------------------------------------------------------------------

@payments_router.post(
    "/",
    name="paiement_enregistrer",
    summary="Enregistrer un paiement",
    description="Impute le paiement sur les factures sélectionnées, dans l'ordre de la sélection.",
    response_model=PaymentRead,
    status_code=status.HTTP_201_CREATED,
)
async def record_payment(
    data: PaymentCreate,
    ctx: CurrentContext,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    """
    Enregistre un paiement.

    Raises:
        BusinessValidationError: Montant invalide ou supérieur au reste dû
        NotFoundError: Client ou facture introuvable
        ConflictError: Facture soldée, journée clôturée, version périmée
    """
    payment = await service.record_payment(db=db, ctx=ctx, data=data)
    return PaymentRead.model_validate(payment)


@payments_router.get(
    "/",
    name="paiements_liste",
    summary="Liste des paiements",
    response_model=list[PaymentRead],
    status_code=status.HTTP_200_OK,
)
async def get_payments(
    actor: CurrentActor,
    client_id: Optional[uuid.UUID] = Query(None, description="Filtre client"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> list[PaymentRead]:
    payments = await service.get_all(db=db, client_id=client_id, skip=skip, limit=limit)
    return [PaymentRead.model_validate(p) for p in payments]


@payments_router.get(
    "/{payment_id}",
    name="paiement_detail",
    summary="Détail paiement",
    response_model=PaymentRead,
    status_code=status.HTTP_200_OK,
)
async def get_payment(
    payment_id: uuid.UUID,
    actor: CurrentActor,
    db: AsyncSession = Depends(get_db),
    service: PaymentService = Depends(get_payment_service),
) -> PaymentRead:
    payment = await service.get_by_id(db=db, payment_id=payment_id)
    return PaymentRead.model_validate(payment)
