"""
Service Layer pour la clôture de caisse journalière
Projet: SODIPAS (Gestion grossiste fruits)

Une journée (caissier, hangar, date) est ouverte tant qu'aucune clôture
n'existe. La clôture copie les opérations et les totaux: ils ne sont plus
jamais recalculés et la journée refuse toute nouvelle écriture.
"""

import datetime
import logging
import uuid
from typing import Iterable, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import commit_or_rollback
from app.core.exceptions import (
    AuthorizationError,
    BusinessValidationError,
    ConflictError,
    NotFoundError,
    PreconditionError,
)
from app.models import ClosureEntry, CrateMovement, DailyClosure, Invoice, Payment
from app.models.mixins import as_utc, utcnow
from app.schemas.cash_register import (
    ClosureCreate,
    ClosureState,
    ClosureSummary,
    TransactionKind,
    TransactionRead,
)
from app.schemas.token import Actor, LedgerContext

logger = logging.getLogger(__name__)

METHOD_LABELS = {
    "cash": "espèces",
    "mobile_money": "mobile money",
    "bank_transfer": "virement",
    "check": "chèque",
}

KIND_ORDER = {
    TransactionKind.INVOICE: 0,
    TransactionKind.PAYMENT: 1,
    TransactionKind.CAGEOTS_IN: 2,
    TransactionKind.CAGEOTS_OUT: 3,
}


def resolve_hangar(ctx: LedgerContext, requested: Optional[str] = None) -> str:
    """
    Hangar d'attribution: celui demandé, sinon celui du contexte.

    Raises:
        BusinessValidationError: Aucun hangar disponible
    """
    hangar = (requested or ctx.hangar or "").strip()
    if not hangar:
        raise BusinessValidationError("Veuillez sélectionner un hangar")
    return hangar


# ------------------------------------------------------------
# Fonctions pures de synthèse
# ------------------------------------------------------------

def payment_transaction(payment: Payment) -> TransactionRead:
    label = METHOD_LABELS.get(payment.method, payment.method)
    return TransactionRead(
        kind=TransactionKind.PAYMENT,
        reference_id=payment.id,
        reference=payment.reference,
        client_id=payment.client_id,
        client_name=payment.client.name,
        amount=payment.amount,
        method=payment.method,
        description=f"Paiement {label}",
        occurred_at=as_utc(payment.created_at),
    )


def invoice_transaction(invoice: Invoice) -> TransactionRead:
    return TransactionRead(
        kind=TransactionKind.INVOICE,
        reference_id=invoice.id,
        reference=invoice.number,
        client_id=invoice.client_id,
        client_name=invoice.client.name,
        amount=invoice.amount,
        description=f"Facture {invoice.number} ({len(invoice.items)} article(s))",
        occurred_at=as_utc(invoice.created_at),
    )


def crate_transaction(movement: CrateMovement) -> TransactionRead:
    if movement.direction == "add":
        kind, label = TransactionKind.CAGEOTS_IN, "Ajout"
    else:
        kind, label = TransactionKind.CAGEOTS_OUT, "Retrait"
    return TransactionRead(
        kind=kind,
        reference_id=movement.id,
        reference=movement.reason,
        client_id=movement.client_id,
        client_name=movement.client.name,
        amount=movement.quantity,
        description=f"{label} de {movement.quantity} cageots ({movement.reason})",
        occurred_at=as_utc(movement.created_at),
    )


def sort_transactions(transactions: Iterable[TransactionRead]) -> list[TransactionRead]:
    """Ordre chronologique stable."""
    return sorted(
        transactions,
        key=lambda t: (t.occurred_at, KIND_ORDER[t.kind], str(t.reference_id)),
    )


def summarize(
    transactions: Sequence[TransactionRead],
    opening_balance: int = 0,
) -> dict:
    """
    Totaux d'une liste d'opérations.

    Seuls les paiements alimentent la caisse; les factures et les cageots
    sont comptés à part.
    """
    totals = {
        "total_cash": 0,
        "total_mobile_money": 0,
        "total_bank_transfer": 0,
        "total_check": 0,
    }
    total_amount = payments_count = invoices_created = invoices_amount = 0
    cageots_in = cageots_out = cageots_movements = 0

    for tx in transactions:
        if tx.kind == TransactionKind.PAYMENT:
            payments_count += 1
            total_amount += tx.amount
            totals[f"total_{tx.method}"] += tx.amount
        elif tx.kind == TransactionKind.INVOICE:
            invoices_created += 1
            invoices_amount += tx.amount
        elif tx.kind == TransactionKind.CAGEOTS_IN:
            cageots_movements += 1
            cageots_in += tx.amount
        else:
            cageots_movements += 1
            cageots_out += tx.amount

    return {
        "opening_balance": opening_balance,
        "total_amount": total_amount,
        "closing_balance": opening_balance + total_amount,
        **totals,
        "transactions_count": len(transactions),
        "payments_count": payments_count,
        "invoices_created": invoices_created,
        "invoices_amount": invoices_amount,
        "cageots_movements": cageots_movements,
        "cageots_in": cageots_in,
        "cageots_out": cageots_out,
    }


def entry_from_transaction(position: int, tx: TransactionRead) -> ClosureEntry:
    """Copie figée d'une opération."""
    data = tx.model_dump()
    data["kind"] = tx.kind.value
    return ClosureEntry(position=position, **data)


def summary_from_closure(closure: DailyClosure) -> ClosureSummary:
    """Synthèse lue sur l'instantané figé."""
    return ClosureSummary(
        cashier_id=closure.cashier_id,
        cashier_name=closure.cashier_name,
        hangar=closure.hangar,
        closure_date=closure.closure_date,
        status=ClosureState.CLOSED,
        closure_id=closure.id,
        opening_balance=closure.opening_balance,
        total_amount=closure.total_amount,
        closing_balance=closure.closing_balance,
        total_cash=closure.total_cash,
        total_mobile_money=closure.total_mobile_money,
        total_bank_transfer=closure.total_bank_transfer,
        total_check=closure.total_check,
        transactions_count=closure.transactions_count,
        payments_count=closure.payments_count,
        invoices_created=closure.invoices_created,
        invoices_amount=closure.invoices_amount,
        cageots_movements=closure.cageots_movements,
        cageots_in=closure.cageots_in,
        cageots_out=closure.cageots_out,
    )


class CashRegisterService:
    """
    Service de clôture de caisse.

    Toutes les opérations du grand livre appellent ensure_day_open avant
    d'écrire: une journée clôturée n'accepte plus aucune opération.
    """

    async def ensure_day_open(
        self,
        db: AsyncSession,
        ctx: LedgerContext,
        hangar: Optional[str] = None,
    ) -> str:
        """
        Vérifie que la journée du contexte est ouverte.

        Args:
            db: Session base de données
            ctx: Contexte d'écriture
            hangar: Hangar demandé (à défaut celui du contexte)

        Returns:
            Le hangar d'attribution

        Raises:
            BusinessValidationError: Aucun hangar
            ConflictError: Journée déjà clôturée
        """
        hangar = resolve_hangar(ctx, hangar)
        closure = await self._find_closure(db, ctx.actor.id, hangar, ctx.operating_date)
        if closure is not None:
            logger.warning(
                "Écriture refusée: journée %s clôturée pour %s (%s)",
                ctx.operating_date, ctx.actor.id, hangar,
            )
            raise ConflictError(
                f"La journée du {ctx.operating_date:%d/%m/%Y} est clôturée pour {hangar}: "
                "aucune nouvelle opération n'est acceptée",
                error_code="DAY_CLOSED",
            )
        return hangar

    async def list_transactions(
        self,
        db: AsyncSession,
        ctx: LedgerContext,
        kind: Optional[TransactionKind] = None,
        hangar: Optional[str] = None,
    ) -> list[TransactionRead]:
        """
        Opérations de la journée, éventuellement filtrées par type.

        Pour une journée clôturée, renvoie les opérations figées.
        """
        hangar = resolve_hangar(ctx, hangar)
        closure = await self._find_closure(db, ctx.actor.id, hangar, ctx.operating_date)
        if closure is not None:
            transactions = [
                TransactionRead.model_validate(entry) for entry in closure.entries
            ]
        else:
            transactions = await self._collect_transactions(
                db, ctx.actor.id, hangar, ctx.operating_date
            )

        if kind is not None:
            transactions = [t for t in transactions if t.kind == kind]
        return transactions

    async def compute_summary(
        self,
        db: AsyncSession,
        ctx: LedgerContext,
        opening_balance: int = 0,
        hangar: Optional[str] = None,
    ) -> ClosureSummary:
        """
        Synthèse de la journée (caissier, hangar, date).

        Args:
            db: Session base de données
            ctx: Contexte (caissier et journée)
            opening_balance: Fond de caisse pour l'aperçu d'une journée ouverte
            hangar: Hangar demandé

        Returns:
            ClosureSummary ouverte (calcul en direct) ou clôturée (instantané)
        """
        hangar = resolve_hangar(ctx, hangar)
        closure = await self._find_closure(db, ctx.actor.id, hangar, ctx.operating_date)
        if closure is not None:
            return summary_from_closure(closure)

        transactions = await self._collect_transactions(
            db, ctx.actor.id, hangar, ctx.operating_date
        )
        return ClosureSummary(
            cashier_id=ctx.actor.id,
            cashier_name=ctx.actor.name,
            hangar=hangar,
            closure_date=ctx.operating_date,
            status=ClosureState.OPEN,
            **summarize(transactions, opening_balance),
        )

    async def close_day(
        self,
        db: AsyncSession,
        ctx: LedgerContext,
        data: ClosureCreate,
        hangar: Optional[str] = None,
    ) -> DailyClosure:
        """
        Clôture la journée et fige ses opérations.

        Steps:
        1. Exige la confirmation explicite du caissier
        2. Refuse une journée déjà clôturée
        3. Copie les opérations et calcule les totaux
        4. Enregistre la clôture (unicité caissier/hangar/date en base)

        Raises:
            PreconditionError: Clôture non confirmée
            BusinessValidationError: Aucun hangar
            ConflictError: Journée déjà clôturée
        """
        if not data.confirmed:
            logger.warning("Clôture non confirmée par %s", ctx.actor.id)
            raise PreconditionError(
                "Veuillez confirmer la clôture de la journée",
                error_code="CLOSURE_NOT_CONFIRMED",
            )

        hangar = await self.ensure_day_open(db, ctx, hangar)
        transactions = await self._collect_transactions(
            db, ctx.actor.id, hangar, ctx.operating_date
        )
        totals = summarize(transactions, data.opening_balance)

        closure = DailyClosure(
            cashier_id=ctx.actor.id,
            cashier_name=ctx.actor.name,
            hangar=hangar,
            closure_date=ctx.operating_date,
            notes=data.notes,
            status=ClosureState.CLOSED.value,
            closed_at=utcnow(),
            entries=[
                entry_from_transaction(position, tx)
                for position, tx in enumerate(transactions, start=1)
            ],
            **totals,
        )
        db.add(closure)
        await commit_or_rollback(db, "Clôture de la journée")

        logger.info(
            "Journée clôturée: %s / %s / %s - %s opérations, total %s F",
            ctx.actor.id, hangar, ctx.operating_date,
            closure.transactions_count, closure.total_amount,
        )
        return closure

    async def get_closure(
        self,
        db: AsyncSession,
        closure_id: uuid.UUID,
    ) -> DailyClosure:
        """
        Récupère une clôture.

        Raises:
            NotFoundError: Clôture inexistante
        """
        closure = await db.get(DailyClosure, closure_id)
        if closure is None:
            raise NotFoundError(f"Clôture {closure_id} introuvable")
        return closure

    async def list_closures(
        self,
        db: AsyncSession,
        cashier_id: Optional[str] = None,
        hangar: Optional[str] = None,
        from_date: Optional[datetime.date] = None,
        to_date: Optional[datetime.date] = None,
        skip: int = 0,
        limit: int = 50,
    ) -> Sequence[DailyClosure]:
        """Historique des clôtures, les plus récentes en premier."""
        stmt = select(DailyClosure).order_by(
            DailyClosure.closure_date.desc(), DailyClosure.hangar.asc()
        )
        if cashier_id:
            stmt = stmt.where(DailyClosure.cashier_id == cashier_id)
        if hangar:
            stmt = stmt.where(DailyClosure.hangar == hangar)
        if from_date:
            stmt = stmt.where(DailyClosure.closure_date >= from_date)
        if to_date:
            stmt = stmt.where(DailyClosure.closure_date <= to_date)

        result = await db.execute(stmt.offset(skip).limit(limit))
        return result.scalars().all()

    async def validate_closure(
        self,
        db: AsyncSession,
        closure_id: uuid.UUID,
        manager: Actor,
    ) -> DailyClosure:
        """
        Validation d'une clôture par un gérant (une seule fois).

        Raises:
            AuthorizationError: L'acteur n'est pas gérant
            NotFoundError: Clôture inexistante
            ConflictError: Clôture déjà validée
        """
        if not manager.is_manager:
            raise AuthorizationError("Seul un gérant peut valider une clôture")

        closure = await self.get_closure(db, closure_id)
        if closure.is_validated:
            raise ConflictError(
                f"Clôture déjà validée par {closure.validated_by}",
                error_code="CLOSURE_ALREADY_VALIDATED",
            )

        closure.validated_by = manager.name
        closure.validated_at = utcnow()
        await commit_or_rollback(db, "Validation de la clôture")

        logger.info("Clôture %s validée par %s", closure.id, manager.name)
        return closure

    # ----------------------------------------------------------------
    # Méthodes privées
    # ----------------------------------------------------------------

    async def _find_closure(
        self,
        db: AsyncSession,
        cashier_id: str,
        hangar: str,
        closure_date: datetime.date,
    ) -> Optional[DailyClosure]:
        stmt = select(DailyClosure).where(
            DailyClosure.cashier_id == cashier_id,
            DailyClosure.hangar == hangar,
            DailyClosure.closure_date == closure_date,
        )
        return (await db.execute(stmt)).scalar_one_or_none()

    async def _collect_transactions(
        self,
        db: AsyncSession,
        cashier_id: str,
        hangar: str,
        operating_date: datetime.date,
    ) -> list[TransactionRead]:
        """Paiements, factures et mouvements de cageots attribués à la journée."""
        transactions: list[TransactionRead] = []

        for model, to_transaction in (
            (Payment, payment_transaction),
            (Invoice, invoice_transaction),
            (CrateMovement, crate_transaction),
        ):
            stmt = select(model).where(
                model.cashier_id == cashier_id,
                model.hangar == hangar,
                model.operating_date == operating_date,
            )
            result = await db.execute(stmt)
            transactions.extend(to_transaction(row) for row in result.scalars().all())

        return sort_transactions(transactions)


__all__ = [
    "CashRegisterService",
    "resolve_hangar",
    "summarize",
    "summary_from_closure",
    "sort_transactions",
]
