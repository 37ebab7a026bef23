"""
Service Layer pour les paiements
Projet: SODIPAS (Gestion grossiste fruits)

Imputation d'un paiement sur les factures sélectionnées par le caissier.

Règle d'imputation:
    Le montant est imputé dans l'ordre de la sélection; chaque facture
    reçoit min(reste du paiement, reste dû). Un montant supérieur au total
    dû des factures sélectionnées est refusé: aucun avoir n'est créé.

Exemple:
    Factures A (reste 450 000 F) et B (reste 300 000 F), paiement 600 000 F
    → A: 450 000 F (payée), B: 150 000 F (partielle)
"""

import logging
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import commit_or_rollback
from app.core.exceptions import BusinessValidationError, ConflictError, NotFoundError
from app.models import Invoice, Payment, PaymentAllocation
from app.schemas.invoice import PaymentCreate
from app.schemas.token import LedgerContext
from app.services.cash_register_service import CashRegisterService, resolve_hangar
from app.services.client_service import ClientService, ensure_client_version

logger = logging.getLogger(__name__)


def allocate_in_order(amount: int, invoices: list[Invoice]) -> list[tuple[Invoice, int]]:
    """
    Répartit un montant sur des factures, dans l'ordre donné.

    Args:
        amount: Montant à répartir (≤ total dû)
        invoices: Factures sélectionnées, dans l'ordre de la sélection

    Returns:
        Liste (facture, montant imputé) sans imputation nulle
    """
    allocations = []
    remaining = amount
    for invoice in invoices:
        if remaining <= 0:
            break
        share = min(remaining, invoice.remaining_amount)
        allocations.append((invoice, share))
        remaining -= share
    return allocations


class PaymentService:
    """Service d'enregistrement et de consultation des paiements."""

    def __init__(
        self,
        cash_register: Optional[CashRegisterService] = None,
        clients: Optional[ClientService] = None,
    ) -> None:
        self.cash_register = cash_register or CashRegisterService()
        self.clients = clients or ClientService()

    async def record_payment(
        self,
        db: AsyncSession,
        ctx: LedgerContext,
        data: PaymentCreate,
        hangar: Optional[str] = None,
    ) -> Payment:
        """
        Enregistre un paiement et l'impute sur les factures sélectionnées.

        Args:
            db: Session base de données
            ctx: Contexte d'écriture
            data: Montant, mode, factures sélectionnées
            hangar: Hangar demandé (à défaut celui du contexte)

        Returns:
            Payment avec ses imputations

        Raises:
            BusinessValidationError: Montant invalide, aucune facture, doublon, montant trop élevé
            NotFoundError: Client inexistant, facture inconnue ou d'un autre client
            ConflictError: Facture déjà soldée, journée clôturée, version périmée
        """
        if data.amount <= 0:
            raise BusinessValidationError("Veuillez entrer un montant valide")
        if not data.invoice_ids:
            raise BusinessValidationError("Veuillez sélectionner au moins une facture")
        if len(set(data.invoice_ids)) != len(data.invoice_ids):
            raise BusinessValidationError("Une facture est sélectionnée plusieurs fois")
        hangar = resolve_hangar(ctx, hangar)

        client = await self.clients.get_by_id(db, data.client_id)
        ensure_client_version(client, data.expected_client_version)
        invoices = await self._load_selected_invoices(db, client.id, data.invoice_ids)

        outstanding = sum(invoice.remaining_amount for invoice in invoices)
        if data.amount > outstanding:
            logger.warning(
                "Paiement refusé pour %s: %s F pour %s F dû sur la sélection",
                client.id, data.amount, outstanding,
            )
            raise BusinessValidationError(
                f"Le montant ({data.amount} F) dépasse le reste dû sur les factures "
                f"sélectionnées ({outstanding} F)"
            )

        await self.cash_register.ensure_day_open(db, ctx, hangar)

        allocations = []
        for position, (invoice, share) in enumerate(
            allocate_in_order(data.amount, invoices), start=1
        ):
            invoice.paid_amount += share
            allocations.append(PaymentAllocation(invoice=invoice, position=position, amount=share))

        if client.debt < data.amount:
            logger.warning(
                "Dette du client %s (%s F) inférieure au paiement (%s F), ramenée à 0",
                client.id, client.debt, data.amount,
            )
        client.debt = max(0, client.debt - data.amount)

        payment = Payment(
            client=client,
            amount=data.amount,
            method=data.method.value,
            reference=data.reference,
            notes=data.notes,
            cashier_id=ctx.actor.id,
            cashier_name=ctx.actor.name,
            hangar=hangar,
            operating_date=ctx.operating_date,
            allocations=allocations,
        )
        db.add(payment)
        await commit_or_rollback(db, "Enregistrement du paiement")

        logger.info(
            "Paiement de %s F (%s) enregistré pour %s sur %s facture(s), dette %s F",
            payment.amount, payment.method, client.name, len(allocations), client.debt,
        )
        return payment

    async def get_by_id(self, db: AsyncSession, payment_id: uuid.UUID) -> Payment:
        payment = await db.get(Payment, payment_id)
        if payment is None:
            raise NotFoundError(f"Paiement {payment_id} introuvable")
        return payment

    async def get_all(
        self,
        db: AsyncSession,
        client_id: Optional[uuid.UUID] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Payment]:
        """Liste des paiements, les plus récents en premier."""
        stmt = select(Payment).order_by(Payment.created_at.desc())
        if client_id:
            stmt = stmt.where(Payment.client_id == client_id)
        result = await db.execute(stmt.offset(skip).limit(limit))
        return list(result.scalars().all())

    async def _load_selected_invoices(
        self,
        db: AsyncSession,
        client_id: uuid.UUID,
        invoice_ids: list[uuid.UUID],
    ) -> list[Invoice]:
        """
        Charge les factures sélectionnées dans l'ordre de la sélection.

        Raises:
            NotFoundError: Facture inconnue ou appartenant à un autre client
            ConflictError: Facture déjà soldée
        """
        stmt = select(Invoice).where(Invoice.id.in_(invoice_ids))
        by_id = {invoice.id: invoice for invoice in (await db.execute(stmt)).scalars().all()}

        invoices = []
        for invoice_id in invoice_ids:
            invoice = by_id.get(invoice_id)
            if invoice is None or invoice.client_id != client_id:
                raise NotFoundError(f"Facture {invoice_id} introuvable pour ce client")
            if invoice.remaining_amount <= 0:
                raise ConflictError(
                    f"La facture {invoice.number} est déjà soldée",
                    error_code="INVOICE_ALREADY_PAID",
                )
            invoices.append(invoice)
        return invoices


__all__ = ["PaymentService", "allocate_in_order"]
